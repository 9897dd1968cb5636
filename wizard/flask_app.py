"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the wizard's Flask application with all blueprints, middleware, and configuration.
"""
from __future__ import annotations
import hmac
import os
import secrets
from tempfile import gettempdir
from typing import Optional

from flask import Flask, session, request, g, abort
from flask_session import Session
from werkzeug.middleware.proxy_fix import ProxyFix

from wizard.config import WizardConfig, load_settings
from wizard.core.installation_data import load_installation_data
from wizard.core.purecloud import InstallationDataError

CSRF_SESSION_KEY = "_csrf_token"


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[WizardConfig] = None) -> Flask:
    """Create and configure Flask application."""
    cfg = cfg or load_settings()

    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg
    app.logger.setLevel(cfg.log_level)

    # Flask session configuration
    app.config["SECRET_KEY"] = cfg.secret_key
    app.config["SESSION_TYPE"] = os.environ.get("FLASK_SESSION_TYPE", "filesystem")
    if app.config["SESSION_TYPE"] == "filesystem":
        session_dir = os.environ.get("FLASK_SESSION_DIR") or os.path.join(gettempdir(), "premium_wizard_flask_session")
        os.makedirs(session_dir, exist_ok=True)
        app.config["SESSION_FILE_DIR"] = session_dir

    app.config["SESSION_COOKIE_HTTPONLY"] = True
    # The wizard runs inside the platform's iframe, so the cookie must be cross-site
    app.config["SESSION_COOKIE_SAMESITE"] = "None" if cfg.session_cookie_secure else "Lax"
    app.config["SESSION_COOKIE_SECURE"] = cfg.session_cookie_secure

    Session(app)

    # Trust X-Forwarded-* headers from the reverse proxy
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    try:
        app.config["INSTALLATION_DATA"] = load_installation_data(cfg.installation_data_path)
    except InstallationDataError as exc:
        app.logger.error("Installation data unavailable: %s", exc)
        app.config["INSTALLATION_DATA"] = None

    from wizard.api import auth
    auth.init_oauth(app)

    from wizard.api import health, errors, provisioning

    app.register_blueprint(auth.bp)
    app.register_blueprint(health.bp)
    app.register_blueprint(provisioning.bp)

    errors.register_error_handlers(app)
    _register_middleware(app)
    _register_context_processors(app)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    app.logger.info("[flask_app] Mode=%s prefix=%s app=%s", mode_label, cfg.prefix, cfg.app_name)
    if cfg.demo_mode:
        app.logger.warning("[flask_app] Demo mode active - generated secrets are not persisted")

    return app


def _register_middleware(app: Flask):
    """Register before_request middleware."""

    @app.before_request
    def enforce_csrf() -> None:
        """Validate CSRF token for state-changing requests."""
        g.csrf_token = _generate_csrf_token()
        if request.method not in {"POST", "PUT", "PATCH", "DELETE"}:
            return

        submitted_token = request.headers.get("X-CSRF-Token", "")
        if not submitted_token and not request.is_json:
            submitted_token = request.form.get("csrf_token", "")

        session_token = session.get(CSRF_SESSION_KEY, "")
        if not session_token or not submitted_token or not hmac.compare_digest(session_token, submitted_token):
            abort(400, description="CSRF validation failed")


def _register_context_processors(app: Flask):
    """Register context processors for templates."""

    @app.context_processor
    def inject_global_context():
        from wizard.api.auth import is_authenticated

        return {
            "csrf_token": g.get("csrf_token") or _generate_csrf_token(),
            "is_authenticated": is_authenticated(),
        }


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions
# ─────────────────────────────────────────────────────────────────────────────
def _generate_csrf_token() -> str:
    """Generate or retrieve CSRF token for current session."""
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session[CSRF_SESSION_KEY] = token
    return token


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)
