import logging

import click
from flask import Flask, request, g, jsonify
from flask_migrate import Migrate
from sqlalchemy import inspect
from werkzeug.exceptions import HTTPException

from config import Config
from routes import health_bp, auth_bp, facility_bp, booking_bp, users_bp, admin_bp, audit_bp

from models import db
from utils.seed import seed_roles
from utils.auth_context import load_current_user
from security.csrf import require_csrf
from services.errors import BookingError, NotFoundError, UnexpectedError


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(facility_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(audit_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    with app.app_context():
        if app.config.get("AUTO_CREATE_TABLES"):
            db.create_all()
        # Seed default roles once the schema exists (safe & idempotent)
        if inspect(db.engine).has_table("roles"):
            seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    CSRF_EXEMPT_PATHS = {
        "/auth/login",
        "/auth/register",
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

    register_error_handlers(app)

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


def register_error_handlers(app):
    @app.errorhandler(BookingError)
    def _booking_error(err):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def _http_error(err):
        return jsonify(success=False, message=err.description or err.name), err.code

    @app.errorhandler(Exception)
    def _unexpected(err):
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify(UnexpectedError().to_dict()), 500

#-------------------------
from models.user import User, Role
from services.bookings import BookingManager
from services.facilities import FacilityDirectory
from models.facility import Facility

def register_cli(app):
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

    @app.cli.command("recompute-ratings")
    @click.option("--facility-id", type=int, default=None, help="Only this facility.")
    def recompute_ratings(facility_id):
        """Rebuild facility rating/ratingCount from rated bookings."""
        manager = BookingManager(db.session, FacilityDirectory(db.session))
        if facility_id is not None:
            ids = [facility_id]
        else:
            ids = [fid for (fid,) in db.session.query(Facility.id).order_by(Facility.id).all()]

        for fid in ids:
            try:
                facility = manager.recompute_facility_rating(fid)
            except NotFoundError:
                click.echo(f"facility {fid}: not found")
                continue
            click.echo(f"facility {fid}: rating={facility.rating} count={facility.rating_count}")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5000)
