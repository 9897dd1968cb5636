"""Wizard pages and JSON endpoints: status, install, clear."""
from __future__ import annotations
from functools import wraps

from flask import Blueprint, current_app, jsonify, redirect, render_template, request, session, url_for, abort

from wizard.api.auth import current_environment, current_language, is_authenticated, token_seconds_left
from wizard.core.i18n import load_language
from wizard.core.provisioning_service import PremiumAppWizard, wizard_from_config
from wizard.core.purecloud import PureCloudAPIError, create_client_with_token
from scripts import audit

bp = Blueprint("provisioning", __name__)


def login_required(view):
    """Redirect pages to the hosted login; reject API calls with 401."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not is_authenticated():
            if request.path.startswith("/api/"):
                abort(401)
            query = request.query_string.decode("utf-8", "replace")
            return redirect(url_for("auth.login") + (f"?{query}" if query else ""))
        return view(*args, **kwargs)
    return wrapper


def get_wizard() -> PremiumAppWizard:
    """Build a wizard bound to the logged-in user's token."""
    cfg = current_app.config["APP_CONFIG"]
    installation_data = current_app.config.get("INSTALLATION_DATA")
    if installation_data is None:
        abort(503, description="Installation data is not available")
    token = session["token"]
    client = create_client_with_token(
        current_environment(),
        token["access_token"],
        token_seconds_left(),
    )
    return wizard_from_config(client, cfg, installation_data=installation_data)


def _force_requested() -> bool:
    if request.is_json:
        return bool((request.get_json(silent=True) or {}).get("force"))
    return request.form.get("force", "").lower() in ("1", "true", "on", "yes")


@bp.route("/")
@login_required
def index():
    """Landing page: is the product available and is anything already installed."""
    cfg = current_app.config["APP_CONFIG"]
    wiz = get_wizard()
    try:
        product_available = wiz.validate_product_availability()
        existing = wiz.existing_objects() if product_available else {}
    except PureCloudAPIError as exc:
        if exc.status_code == 401:
            session.pop("token", None)
            return redirect(url_for("auth.login"))
        raise

    return render_template(
        "index.html",
        text=load_language(current_language(), cfg.languages_dir),
        environment=current_environment(),
        prefix=cfg.prefix,
        product_available=product_available,
        existing={kind: len(entities) for kind, entities in existing.items()},
        is_existing=any(existing.values()),
        installation=current_app.config["INSTALLATION_DATA"],
    )


@bp.route("/api/status")
@login_required
def status():
    wiz = get_wizard()
    product_available = wiz.validate_product_availability()
    existing = wiz.existing_objects()
    return jsonify({
        "environment": current_environment(),
        "prefix": wiz.prefix,
        "product_available": product_available,
        "existing": any(existing.values()),
        "counts": {kind: len(entities) for kind, entities in existing.items()},
    })


@bp.route("/api/install", methods=["POST"])
@login_required
def install():
    """Run the full install; refuse if the product is missing or objects already exist."""
    wiz = get_wizard()
    wiz.require_product()
    if not _force_requested() and wiz.is_existing():
        return jsonify({
            "error": "Conflict",
            "message": f"Objects prefixed '{wiz.prefix}' already exist; clear them first",
        }), 409

    report = wiz.install()
    audit.safe_log_provisioning_event(
        "install",
        wiz.prefix,
        operator="wizard-ui",
        environment=current_environment(),
        details=report.to_dict(),
        success=report.success,
    )
    return jsonify(report.to_dict()), (200 if report.success else 207)


@bp.route("/api/clear", methods=["POST"])
@login_required
def clear():
    """Delete every object carrying the prefix."""
    wiz = get_wizard()
    report = wiz.clear_configurations()
    audit.safe_log_provisioning_event(
        "clear",
        wiz.prefix,
        operator="wizard-ui",
        environment=current_environment(),
        details=report.to_dict(),
        success=report.success,
    )
    return jsonify(report.to_dict()), (200 if report.success else 207)
