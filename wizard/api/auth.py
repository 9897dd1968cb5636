"""Authentication routes: delegate login to the platform's hosted login page.

Environment selection:
- The app host launches the wizard with ?pcEnvironment=<env>&langTag=<tag>
  (older hosts send ?environment=<env>).
- Each environment has its own OAuth client id and its own login host, so one
  Authlib client is registered lazily per environment.
"""
from __future__ import annotations
import base64
import hashlib
import secrets
import string
import time

from flask import Blueprint, session, redirect, url_for, request, current_app, abort
from authlib.integrations.flask_client import OAuth

from wizard.core.launch import parse_launch_params
from wizard.core.purecloud import login_host
from wizard.core.purecloud.client import TOKEN_REFRESH_MARGIN

bp = Blueprint("auth", __name__)

# Module-level OAuth instance (will be initialized by create_app)
oauth: OAuth = None


def init_oauth(app):
    """Initialize the Authlib registry; environments are registered on first use."""
    global oauth
    oauth = OAuth(app)
    return oauth


def _registration_name(environment: str) -> str:
    return "purecloud_" + "".join(char if char.isalnum() else "_" for char in environment)


def get_oauth_client(environment: str):
    """Get (registering if needed) the hosted-login client for an environment.

    Raises:
        ValueError: If no OAuth client id is configured for the environment
    """
    if oauth is None:
        raise RuntimeError("OAuth not initialized. Call init_oauth first.")

    cfg = current_app.config["APP_CONFIG"]
    name = _registration_name(environment)
    client = oauth.create_client(name)
    if client is not None:
        return client

    host = login_host(environment)
    client_kwargs = {}
    if not cfg.client_secret:
        client_kwargs["token_endpoint_auth_method"] = "none"
    return oauth.register(
        name=name,
        client_id=cfg.client_id_for(environment),
        client_secret=cfg.client_secret or None,
        authorize_url=f"{host}/oauth/authorize",
        access_token_url=f"{host}/oauth/token",
        client_kwargs=client_kwargs,
    )


# ─────────────────────────────────────────────────────────────────────────────
# PKCE Helpers
# ─────────────────────────────────────────────────────────────────────────────
def _generate_code_verifier(length: int = 64) -> str:
    """Generate PKCE code verifier."""
    alphabet = string.ascii_letters + string.digits + "-._~"
    return "".join(secrets.choice(alphabet) for _ in range(length))


def _build_code_challenge(code_verifier: str) -> str:
    """Build PKCE code challenge from verifier."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def token_seconds_left() -> int:
    """Seconds until the session's hosted-login token expires (0 when unknown)."""
    expires_at = (session.get("token") or {}).get("expires_at")
    if not expires_at:
        return 0
    return max(0, int(expires_at - time.time()))


def is_authenticated() -> bool:
    """True while the session holds a token that is not about to expire; an expired token is dropped."""
    token = session.get("token") or {}
    if not token.get("access_token"):
        return False
    if token_seconds_left() <= TOKEN_REFRESH_MARGIN:
        current_app.logger.info("[auth] Session token expired")
        session.pop("token", None)
        return False
    return True


def current_environment() -> str:
    cfg = current_app.config["APP_CONFIG"]
    return session.get("pc_environment") or cfg.default_environment


def current_language() -> str:
    cfg = current_app.config["APP_CONFIG"]
    return session.get("language") or cfg.default_language


# ─────────────────────────────────────────────────────────────────────────────
# Routes
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/login")
def login():
    """Record the launch parameters and redirect to the hosted login (code + PKCE)."""
    cfg = current_app.config["APP_CONFIG"]
    params = parse_launch_params(
        request.query_string.decode("utf-8", "replace"),
        default_environment=session.get("pc_environment") or cfg.default_environment,
        default_language=session.get("language") or cfg.default_language,
    )
    session["pc_environment"] = params.environment
    session["language"] = params.language

    try:
        client = get_oauth_client(params.environment)
    except ValueError as exc:
        current_app.logger.warning("Login rejected: %s", exc)
        abort(400, description=str(exc))

    code_verifier = _generate_code_verifier()
    session["pkce_code_verifier"] = code_verifier

    return client.authorize_redirect(
        redirect_uri=cfg.redirect_uri,
        code_challenge=_build_code_challenge(code_verifier),
        code_challenge_method="S256",
    )


@bp.route("/callback")
def callback():
    """Exchange the authorization code for a platform access token."""
    code_verifier = session.pop("pkce_code_verifier", None)
    if not code_verifier:
        return redirect(url_for("auth.login"))

    environment = current_environment()
    client = get_oauth_client(environment)
    token = client.authorize_access_token(code_verifier=code_verifier)
    expires_in = int(token.get("expires_in") or 3600)
    session["token"] = {
        "access_token": token.get("access_token"),
        "expires_in": expires_in,
        "expires_at": int(token.get("expires_at") or time.time() + expires_in),
    }
    current_app.logger.info("[auth] Logged in to %s", environment)
    return redirect(url_for("provisioning.index"))


@bp.route("/logout", methods=["POST"])
def logout():
    """Forget the platform token; launch parameters are kept for the next login."""
    environment = session.get("pc_environment")
    language = session.get("language")
    session.clear()
    if environment:
        session["pc_environment"] = environment
    if language:
        session["language"] = language
    return redirect(url_for("provisioning.index"))
