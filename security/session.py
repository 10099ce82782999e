import hashlib
import secrets
from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.session import Session

BEARER_PREFIX = "bearer "


def _hash_token(token: str) -> str:
    # SHA-256 is fine for hashing random session tokens
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(user_id: int, label: str = None) -> str:
    """
    Creates a server-side session and returns the RAW bearer token.
    Only the hash is stored in DB.
    """
    raw_token = secrets.token_urlsafe(32)
    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 28800)

    db.session.add(Session(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        expires_at=datetime.utcnow() + timedelta(seconds=lifetime),
        label=label,
    ))
    db.session.commit()
    return raw_token


def _bearer_token():
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(BEARER_PREFIX):
        return None
    return header[len(BEARER_PREFIX):].strip() or None


def _is_live(sess: Session, now: datetime) -> bool:
    if sess.expires_at <= now:
        return False
    idle_seconds = current_app.config.get("IDLE_TIMEOUT_SECONDS", 1200)
    last_seen = sess.last_seen_at or sess.created_at
    return last_seen + timedelta(seconds=idle_seconds) > now


def get_session_from_request():
    raw_token = _bearer_token()
    if not raw_token:
        return None

    sess = Session.query.filter_by(token_hash=_hash_token(raw_token), revoked=False).first()
    now = datetime.utcnow()
    if sess is None or not _is_live(sess, now):
        return None

    # touch
    sess.last_seen_at = now
    db.session.commit()
    return sess


def revoke_user_sessions(user_id: int) -> int:
    sessions = Session.query.filter_by(user_id=user_id, revoked=False).all()
    for s in sessions:
        s.revoked = True
    db.session.commit()
    return len(sessions)
