"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import json
import logging
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_INSTALLATION_DATA = PACKAGE_ROOT / "data" / "installation.yaml"
DEFAULT_LANGUAGES_DIR = PACKAGE_ROOT / "languages"


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.info("Loaded %s from /run/secrets", secret_name)
                return secret_value
        except OSError as e:
            logger.warning("Failed to read /run/secrets/%s: %s", secret_name, e)

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def parse_client_ids(raw: str) -> dict[str, str]:
    """Parse the per-environment OAuth client id map.

    Accepts a JSON object (``{"mypurecloud.com": "abc"}``) or a comma separated
    ``env=id`` list.

    Raises:
        ValueError: If the value is neither form
    """
    raw = (raw or "").strip()
    if not raw:
        return {}
    if raw.startswith("{"):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"PURECLOUD_CLIENT_IDS is not valid JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise ValueError("PURECLOUD_CLIENT_IDS must be a JSON object")
        return {str(env).strip().lower(): str(cid).strip() for env, cid in parsed.items()}

    client_ids = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        env, sep, cid = entry.partition("=")
        if not sep or not env.strip() or not cid.strip():
            raise ValueError(f"Invalid PURECLOUD_CLIENT_IDS entry '{entry}': expected env=client_id")
        client_ids[env.strip().lower()] = cid.strip()
    return client_ids


@dataclass
class WizardConfig:
    """Wizard configuration container."""
    # Mode
    demo_mode: bool

    # Flask
    secret_key: str
    session_cookie_secure: bool = True

    # Platform
    default_environment: str = "mypurecloud.com"
    client_ids: dict[str, str] = field(default_factory=dict)
    client_secret: str = ""
    redirect_uri: str = "http://localhost:5000/callback"

    # Provisioning
    prefix: str = "PREMIUM_EXAMPLE_"
    app_name: str = "premium-app-example"
    installation_data_path: Path = DEFAULT_INSTALLATION_DATA
    max_workers: int = 4

    # Presentation
    languages_dir: Path = DEFAULT_LANGUAGES_DIR
    default_language: str = "en-us"

    # Logging
    log_level: str = "INFO"

    def client_id_for(self, environment: Optional[str] = None) -> str:
        """Return the OAuth client id registered for an environment.

        Raises:
            ValueError: If no client id is configured for the environment
        """
        env = (environment or self.default_environment).strip().lower()
        client_id = self.client_ids.get(env)
        if not client_id:
            raise ValueError(
                f"No OAuth client id configured for environment '{env}'. "
                "Set PURECLOUD_CLIENT_IDS."
            )
        return client_id


def _get_or_default(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Get environment variable or use demo default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        logger.info("[demo-mode] Using default for %s", var_name)
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def load_settings() -> WizardConfig:
    """Load wizard settings from environment and /run/secrets."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    secret_key = _load_secret_from_file("flask_secret_key", "FLASK_SECRET_KEY")
    if not secret_key:
        if not demo_mode:
            raise RuntimeError("FLASK_SECRET_KEY not found in /run/secrets or environment")
        secret_key = secrets.token_urlsafe(48)
        logger.info("[demo-mode] Generated temporary FLASK_SECRET_KEY")

    client_secret = _load_secret_from_file("purecloud_client_secret", "PURECLOUD_CLIENT_SECRET") or ""

    session_cookie_secure = os.environ.get("FLASK_SESSION_COOKIE_SECURE", "false" if demo_mode else "true").lower() == "true"

    default_environment = os.environ.get("PURECLOUD_ENVIRONMENT", "mypurecloud.com").strip().lower()
    client_ids = parse_client_ids(os.environ.get("PURECLOUD_CLIENT_IDS", ""))

    redirect_uri = _get_or_default(
        "WIZARD_REDIRECT_URI",
        demo_default="http://localhost:5000/callback",
        required=False,
        demo_mode=demo_mode,
    ) or "http://localhost:5000/callback"

    prefix = os.environ.get("WIZARD_PREFIX", "PREMIUM_EXAMPLE_")
    if not prefix.strip():
        raise RuntimeError("WIZARD_PREFIX must not be empty; an empty prefix would match every object in the org.")

    app_name = os.environ.get("WIZARD_APP_NAME", "premium-app-example").strip()

    installation_data_path = Path(os.environ.get("WIZARD_INSTALLATION_DATA") or DEFAULT_INSTALLATION_DATA)
    languages_dir = Path(os.environ.get("WIZARD_LANGUAGES_DIR") or DEFAULT_LANGUAGES_DIR)
    default_language = os.environ.get("WIZARD_DEFAULT_LANGUAGE", "en-us").strip() or "en-us"

    try:
        max_workers = int(os.environ.get("WIZARD_MAX_WORKERS", "4"))
    except ValueError as exc:
        raise RuntimeError("WIZARD_MAX_WORKERS must be an integer") from exc
    max_workers = max(1, max_workers)

    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    logger.info("Mode=%s; environment=%s; prefix=%s; app=%s", mode_label, default_environment, prefix, app_name)

    return WizardConfig(
        demo_mode=demo_mode,
        secret_key=secret_key,
        session_cookie_secure=session_cookie_secure,
        default_environment=default_environment,
        client_ids=client_ids,
        client_secret=client_secret,
        redirect_uri=redirect_uri,
        prefix=prefix,
        app_name=app_name,
        installation_data_path=installation_data_path,
        max_workers=max_workers,
        languages_dir=languages_dir,
        default_language=default_language,
        log_level=log_level,
    )
