"""Gunicorn configuration for the premium app wizard.

Run with:
    gunicorn -c gunicorn.conf.py "wizard.flask_app:create_app()"
"""
import os

bind = os.environ.get("WIZARD_BIND", "0.0.0.0:5000")
workers = int(os.environ.get("WEB_CONCURRENCY", "2"))
# Install/clear runs fan out many platform calls; allow them to finish
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "120"))
accesslog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()


def post_fork(server, worker):
    """Report where the worker will read its secrets from."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"
    if demo_mode and os.environ.get("FLASK_SESSION_TYPE", "filesystem") == "filesystem":
        worker.log.warning("DEMO_MODE=true generates a per-process FLASK_SECRET_KEY; sessions will not survive restarts")

    from pathlib import Path
    secrets_dir = Path("/run/secrets")
    if secrets_dir.is_dir():
        secret_files = list(secrets_dir.glob("*"))
        worker.log.info(f"Found {len(secret_files)} secrets in /run/secrets")
    else:
        worker.log.info("No /run/secrets mount; secrets come from the environment")
