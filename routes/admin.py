from flask import Blueprint, jsonify, request

from core import wiring
from models.audit_log import AuditLog
from routes.booking import booking_json
from security.rbac import require_roles

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _limit():
    limit = request.args.get("limit", type=int) or 200
    return max(1, min(limit, 500))


# ---------- ADMIN: list all bookings ----------
@admin_bp.get("/bookings")
@require_roles("ADMIN")
def list_all_bookings():
    status = (request.args.get("status") or "").strip().upper() or None
    rows = wiring.gateway().list_bookings(status=status, limit=_limit())
    return jsonify([booking_json(b, include_related=False) for b in rows]), 200


# ---------- ADMIN: notification outbox ----------
@admin_bp.get("/notifications")
@require_roles("ADMIN")
def list_notifications():
    status = (request.args.get("status") or "").strip().upper() or None
    rows = wiring.gateway().list_notifications(status=status, limit=_limit())
    return jsonify([
        {
            "id": n.id,
            "kind": n.kind,
            "booking_id": n.booking_id,
            "status": n.status,
            "attempts": n.attempts,
            "next_attempt_at": n.next_attempt_at.isoformat(),
            "last_error": n.last_error,
            "created_at": n.created_at.isoformat(),
            "sent_at": n.sent_at.isoformat() if n.sent_at else None,
        }
        for n in rows
    ]), 200


# ---------- ADMIN: audit trail ----------
@admin_bp.get("/audit-logs")
@require_roles("ADMIN")
def list_audit_logs():
    action = request.args.get("action")
    user_id = request.args.get("user_id", type=int)

    q = AuditLog.query
    if action:
        q = q.filter(AuditLog.action == action)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)

    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(_limit()).all()
    return jsonify([
        {
            "id": r.id,
            "created_at": r.timestamp.isoformat(),
            "user_id": r.user_id,
            "action": r.action,
            "entity": r.entity,
            "entity_id": r.entity_id,
            "source": r.source,
            "ip": r.ip,
            "user_agent": r.user_agent,
            "metadata": r.metadata_json,
        }
        for r in rows
    ]), 200
