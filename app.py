import logging

from flask import Flask, g, jsonify
from sqlalchemy.exc import SQLAlchemyError
from config import Config
from routes import health_bp, auth_bp, admin_bp, booking_bp

from models import db
from flask_migrate import Migrate
from services import init_services
from services.calendar import BusinessCalendar
from services.errors import ServiceError
from services.notifier import EmailNotifier
from security.csrf import csrf_protect
from utils.auth_context import load_current_member
from utils.celery_app import celery_init_app
from utils.tasks import enqueue_email

logger = logging.getLogger(__name__)


def create_app(test_config=None, notifier=None, clock=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(booking_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Background tasks
    celery_init_app(app)

    # Booking engines, wired once with frozen settings
    calendar = BusinessCalendar(app.config["BUSINESS_TIMEZONE"], clock=clock)
    if notifier is None:
        notifier = EmailNotifier(
            send=enqueue_email,
            calendar=calendar,
            admin_email=app.config.get("ADMIN_EMAIL"),
            app_base_url=app.config.get("APP_BASE_URL"),
            brand=app.config.get("BRAND_NAME", "CSCoaching"),
        )
    init_services(app, db.session, calendar=calendar, notifier=notifier)

    @app.before_request
    def _load_member():
        load_current_member()

    @app.before_request
    def _csrf_protect():
        return csrf_protect(g.get("member"))

    @app.errorhandler(ServiceError)
    def _service_error(exc):
        return jsonify(error=exc.code), exc.status

    @app.errorhandler(SQLAlchemyError)
    def _db_error(exc):
        db.session.rollback()
        logger.exception("Database error")
        return jsonify(error="SERVER_ERROR"), 500

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------
import click
from services import get_services
from security.invites import issue_invite
from utils.audit import log_event

def register_cli(app):
    @app.cli.command("maintain-slots")
    @click.option("--days", default=None, type=int, help="Horizon in days (clamped to 1..31).")
    def maintain_slots(days):
        """Purge expired open slots and generate the upcoming ones."""
        result = get_services().slots.maintain(days)
        log_event(
            "SLOTS_MAINTAIN",
            actor="cli",
            metadata={"purged": result.purged, "created": result.created, "days": result.days},
        )
        print(f"purged {result.purged}, created {result.created} ({result.days} days)")

    @app.cli.command("create-member")
    @click.argument("email")
    @click.option("--name", default=None)
    @click.option("--credits", default=0, type=int)
    def create_member(email, name, credits):
        """Register a member and send them an activation invite."""
        services = get_services()
        if services.store.get_member_by_email(email):
            print("Member already exists")
            return
        if credits < 0:
            raise click.BadParameter("credits must be >= 0")

        with services.store.atomic():
            member = services.store.create_member(email, name=name, credits=credits)
        token = issue_invite(member.id, services.settings.invite_ttl_days)
        services.notifier.notify_invite(member, token)
        log_event("MEMBER_CREATE", actor="cli", entity="member", entity_id=member.id)
        print(f"{member.email} created with {member.credits} credits")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
