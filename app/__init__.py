import importlib
import logging

from flask import Flask, jsonify, redirect, request, url_for
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from .extensions import db, login_manager, rq
from .utils.errors import ServiceError

migrate = Migrate()

API_BLUEPRINTS = ("users", "locations", "library", "job_profiles", "workers",
                  "evaluations", "statistics", "settings")


def _wants_json():
    return request.path.startswith("/api/")


def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def handle_service_error(e):
        return jsonify({"error": e.message}), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        if _wants_json():
            return jsonify({"error": e.description}), e.code
        if e.code == 401:
            return redirect(url_for("auth.login", next=request.path))
        return e


def create_app(config_object="config.Config"):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    db.init_app(app)
    migrate.init_app(app, db, directory="alembic")
    login_manager.init_app(app)
    login_manager.login_view = "auth.login"
    rq.init_app(app)

    from .models.user import User

    @login_manager.user_loader
    def load_user(user_id):
        # profile (and so the role) is re-read on every request
        return db.session.get(User, int(user_id))

    from .blueprints.auth import bp as auth_bp
    from .blueprints.pages import bp as pages_bp
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(pages_bp)

    for name in API_BLUEPRINTS:
        module = importlib.import_module(f".blueprints.{name}", __name__)
        app.register_blueprint(module.bp, url_prefix="/api")

    register_error_handlers(app)
    return app
