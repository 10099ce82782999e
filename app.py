import logging
import time

from flask import Flask, jsonify
from sqlalchemy import inspect

from config import Config
from core.errors import BookingError
from routes import (
    health_bp,
    services_bp,
    working_hours_bp,
    booking_bp,
    reviews_bp,
    payments_bp,
    admin_bp,
)

from models import db
from flask_migrate import Migrate
from utils.seed import seed_roles
from utils.auth_context import load_current_user


def configure_logging(app):
    logging.basicConfig(
        level=getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    configure_logging(app)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(services_bp)
    app.register_blueprint(working_hours_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(reviews_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(admin_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Seed default roles once the schema exists (safe & idempotent)
    with app.app_context():
        if inspect(db.engine).has_table("roles"):
            seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.errorhandler(BookingError)
    def _booking_error(exc):
        db.session.rollback()
        if exc.status_code >= 500:
            app.logger.error("%s: %s", exc.kind, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------
import click
from core import wiring
from models.user import User, Role
from security.session import create_session, revoke_user_sessions
from utils.audit import log_event

def _find_user(email):
    return User.query.filter_by(email=email.strip().lower()).first()

def register_cli(app):
    @app.cli.command("create-user")
    @click.argument("email")
    @click.option("--first-name", default=None)
    @click.option("--last-name", default=None)
    @click.option("--phone", default=None)
    @click.option("--role", "roles", multiple=True, default=("CUSTOMER",), show_default=True)
    def create_user(email, first_name, last_name, phone, roles):
        """Create a user with one or more roles (bootstrap)."""
        if _find_user(email):
            print("User already exists")
            return

        wanted = {r.strip().upper() for r in roles}
        found = Role.query.filter(Role.name.in_(wanted)).all()
        missing = wanted - {r.name for r in found}
        if missing:
            print(f"Unknown role(s): {', '.join(sorted(missing))}")
            return

        user = User(email=email.strip().lower(), first_name=first_name, last_name=last_name, phone=phone, roles=found)
        db.session.add(user)
        db.session.commit()
        print(f"Created user #{user.id} {user.email}")

    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = _find_user(email)
        if not user:
            print("User not found")
            return

        admin_role = Role.query.filter_by(name="ADMIN").first()
        if not admin_role:
            admin_role = Role(name="ADMIN")
            db.session.add(admin_role)
            db.session.commit()

        if admin_role not in user.roles:
            user.roles.append(admin_role)
            db.session.commit()

        log_event("ADMIN_GRANT", entity="user", entity_id=user.id)
        print(f"{user.email} promoted to ADMIN")

    @app.cli.command("issue-session")
    @click.argument("email")
    @click.option("--label", default="cli")
    def issue_session(email, label):
        """Print a bearer token for the user."""
        user = _find_user(email)
        if not user:
            print("User not found")
            return
        print(create_session(user.id, label=label))

    @app.cli.command("revoke-sessions")
    @click.argument("email")
    def revoke_sessions(email):
        """Revoke every live bearer token of a user."""
        user = _find_user(email)
        if not user:
            print("User not found")
            return
        count = revoke_user_sessions(user.id)
        log_event("SESSIONS_REVOKED", entity="user", entity_id=user.id, metadata={"count": count})
        print(f"Revoked {count} session(s) for {user.email}")

    @app.cli.command("deliver-notifications")
    @click.option("--loop", is_flag=True, help="Keep polling for due notifications.")
    def deliver_notifications(loop):
        """Send due rows from the notification outbox."""
        queue = wiring.notification_queue()
        dispatcher = wiring.notification_dispatcher()
        while True:
            report = queue.deliver_due(dispatcher)
            print(f"sent={report.sent} retrying={report.retried} failed={report.failed}")
            if not loop:
                break
            time.sleep(app.config.get("NOTIFY_POLL_SECONDS", 30))

    @app.cli.command("send-reminders")
    def send_reminders():
        """Queue 24h and 1h booking reminders."""
        queued = wiring.reminder_sweep().run()
        print(", ".join(f"{kind}={count}" for kind, count in queued.items()))

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
