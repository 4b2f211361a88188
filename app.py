import logging
import sys

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from sqlalchemy import inspect

from config import Config
from models import db
from models.user import User
from routes import health_bp, auth_bp, rooms_bp, booking_bp, audit_bp
from security.csrf import csrf_protect
from services.errors import BookingError
from utils.auth_context import load_current_user
from utils.seed import seed_roles, grant_role
from utils.service_context import init_booking_service


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=str(app.config.get("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(rooms_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(audit_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    init_booking_service(app)

    with app.app_context():
        if app.config.get("AUTO_CREATE_TABLES"):
            db.create_all()
        # Seed default roles once the schema exists (idempotent)
        if inspect(db.engine).has_table("roles"):
            seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    app.before_request(csrf_protect)

    @app.errorhandler(BookingError)
    def _booking_error(exc):
        # already logged where it was raised
        return jsonify(error=exc.message), exc.status_code

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

def _promote(email: str, role_name: str):
    user = User.query.filter_by(email=email.strip().lower()).first()
    if not user:
        click.echo("User not found", err=True)
        raise SystemExit(1)

    if grant_role(user, role_name):
        click.echo(f"{user.email} promoted to {role_name}")
    else:
        click.echo(f"{user.email} already has role {role_name}")

def register_cli(app):
    @app.cli.command("seed-roles")
    def seed_roles_command():
        """Create the guest/manager/admin roles."""
        seed_roles()
        click.echo("Roles seeded")

    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to admin by email (bootstrap)."""
        _promote(email, "admin")

    @app.cli.command("make-manager")
    @click.argument("email")
    def make_manager(email):
        """Give a user the manager role."""
        _promote(email, "manager")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5000)
