import logging

from flask import Flask, request, g, jsonify
from config import Config
from routes import health_bp, court_bp, booking_bp, full_venue_bp, calendar_bp, admin_bp

from models import db
from flask_migrate import Migrate
from services.calendar_policy import CalendarPolicyStore
from services.errors import BookingError
from utils.seed import seed_roles
from utils.auth_context import load_current_user
from security.csrf import require_csrf


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(court_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(full_venue_bp)
    app.register_blueprint(calendar_bp)
    app.register_blueprint(admin_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # One policy cache per process; reloads itself when the stored version changes
    app.extensions["calendar_policy_store"] = CalendarPolicyStore()

    # Seed default roles at startup (safe & idempotent)
    if app.config.get("SEED_ROLES_ON_STARTUP", True):
        with app.app_context():
            seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    CSRF_EXEMPT_PATHS = {
        "/health",
    }

    @app.before_request
    def _csrf_protect():
        # Only protect state-changing requests
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if request.path in CSRF_EXEMPT_PATHS:
                return None

            # Only enforce CSRF if user is already authenticated (cookie session)
            if getattr(g, "user", None) is not None:
                failure = require_csrf()
                if failure:
                    return failure

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    @app.errorhandler(BookingError)
    def _booking_error(exc):
        return jsonify(error=exc.message, **exc.payload), exc.status_code

    register_cli(app)

    return app

#-------------------------
import click
from models.user import MEMBERSHIP_LEVELS, User, Role
from utils.seed import seed_courts

def register_cli(app):
    @app.cli.command("create-user")
    @click.argument("email")
    @click.option("--name", default=None, help="Full name")
    @click.option("--membership", type=click.Choice(MEMBERSHIP_LEVELS), default="basic")
    @click.option("--role", default="PLAYER", help="Initial role")
    def create_user(email, name, membership, role):
        """Create a user record (accounts are normally provisioned by the auth service)."""
        email = email.strip().lower()
        if User.query.filter_by(email=email).first():
            click.echo("User already exists")
            return

        user = User(email=email, full_name=name, membership_level=membership)
        role_row = Role.query.filter_by(name=role.upper()).first()
        if role_row:
            user.roles.append(role_row)
        db.session.add(user)
        db.session.commit()
        click.echo(f"Created {user.email} (id {user.id})")

    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        admin_role = Role.query.filter_by(name="ADMIN").first()
        if not admin_role:
            admin_role = Role(name="ADMIN")
            db.session.add(admin_role)
            db.session.commit()

        if admin_role not in user.roles:
            user.roles.append(admin_role)
            db.session.commit()

        click.echo(f"{user.email} promoted to ADMIN")

    @app.cli.command("seed-venue")
    def seed_venue():
        """Insert the default courts and their price bands."""
        created = seed_courts()
        click.echo(f"Created {created} courts")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
