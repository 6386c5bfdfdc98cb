import logging

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from sqlalchemy.exc import SQLAlchemyError

from config import Config
from routes import health_bp, auth_bp, admin_bp, booking_bp

from models import db
from services.clock import install_clock
from services.errors import BookingError, Unexpected
from services.notifier import install_sender
from utils.auth_context import load_current_user

logger = logging.getLogger(__name__)


def create_app(config_object=Config, clock=None, sender=None):
    app = Flask(__name__)
    app.config.from_object(config_object)

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

    # Reference-timezone clock and booking email sender
    install_clock(app, clock)
    if sender is not None:
        install_sender(app, sender)

    @app.before_request
    def _load_user():
        load_current_user()

    @app.errorhandler(BookingError)
    def _booking_error(exc):
        return jsonify(exc.to_dict()), exc.http_status

    @app.errorhandler(SQLAlchemyError)
    def _storage_error(exc):
        db.session.rollback()
        logger.exception("Unhandled storage error")
        err = Unexpected()
        return jsonify(err.to_dict()), err.http_status

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
from services.errors import NotFound
from services.users import promote_to_admin

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to admin by email (bootstrap)."""
        try:
            user = promote_to_admin(email)
        except NotFound:
            click.echo("User not found")
            return
        click.echo(f"{user.email} promoted to admin")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
