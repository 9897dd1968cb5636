"""Tests for wizard settings loading."""
import os
from pathlib import Path

import pytest

from wizard.config import settings
from wizard.config.settings import WizardConfig, load_settings, parse_client_ids

SETTINGS_ENV = (
    "DEMO_MODE",
    "FLASK_SECRET_KEY",
    "FLASK_SESSION_COOKIE_SECURE",
    "PURECLOUD_ENVIRONMENT",
    "PURECLOUD_CLIENT_IDS",
    "PURECLOUD_CLIENT_SECRET",
    "WIZARD_REDIRECT_URI",
    "WIZARD_PREFIX",
    "WIZARD_APP_NAME",
    "WIZARD_INSTALLATION_DATA",
    "WIZARD_LANGUAGES_DIR",
    "WIZARD_DEFAULT_LANGUAGE",
    "WIZARD_MAX_WORKERS",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    # Never read a real /run/secrets mount from the test host
    monkeypatch.setattr(settings, "_load_secret_from_file", lambda name, env_var=None: os.environ.get(env_var or "") or None)


def test_demo_mode_generates_secret_key_and_defaults(monkeypatch):
    monkeypatch.setenv("DEMO_MODE", "true")

    cfg = load_settings()

    assert cfg.demo_mode is True
    assert len(cfg.secret_key) > 32
    assert cfg.session_cookie_secure is False
    assert cfg.prefix == "PREMIUM_EXAMPLE_"
    assert cfg.app_name == "premium-app-example"
    assert cfg.default_environment == "mypurecloud.com"
    assert cfg.redirect_uri == "http://localhost:5000/callback"
    assert cfg.installation_data_path == settings.DEFAULT_INSTALLATION_DATA
    assert cfg.max_workers == 4


def test_production_requires_secret_key(monkeypatch):
    monkeypatch.setenv("DEMO_MODE", "false")

    with pytest.raises(RuntimeError, match="FLASK_SECRET_KEY"):
        load_settings()


def test_production_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("FLASK_SECRET_KEY", "prod-secret")
    monkeypatch.setenv("PURECLOUD_ENVIRONMENT", "MyPureCloud.IE")
    monkeypatch.setenv("PURECLOUD_CLIENT_IDS", "mypurecloud.ie=abc,mypurecloud.com=def")
    monkeypatch.setenv("PURECLOUD_CLIENT_SECRET", "client-secret")
    monkeypatch.setenv("WIZARD_PREFIX", "ACME_")
    monkeypatch.setenv("WIZARD_INSTALLATION_DATA", str(tmp_path / "data.yaml"))
    monkeypatch.setenv("WIZARD_MAX_WORKERS", "8")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    cfg = load_settings()

    assert cfg.demo_mode is False
    assert cfg.secret_key == "prod-secret"
    assert cfg.session_cookie_secure is True
    assert cfg.default_environment == "mypurecloud.ie"
    assert cfg.client_ids == {"mypurecloud.ie": "abc", "mypurecloud.com": "def"}
    assert cfg.client_secret == "client-secret"
    assert cfg.prefix == "ACME_"
    assert cfg.installation_data_path == Path(tmp_path / "data.yaml")
    assert cfg.max_workers == 8
    assert cfg.log_level == "DEBUG"


def test_empty_prefix_is_rejected(monkeypatch):
    """An empty prefix would match every object in the org."""
    monkeypatch.setenv("DEMO_MODE", "true")
    monkeypatch.setenv("WIZARD_PREFIX", "   ")

    with pytest.raises(RuntimeError, match="WIZARD_PREFIX"):
        load_settings()


def test_max_workers_must_be_integer(monkeypatch):
    monkeypatch.setenv("DEMO_MODE", "true")
    monkeypatch.setenv("WIZARD_MAX_WORKERS", "many")

    with pytest.raises(RuntimeError, match="WIZARD_MAX_WORKERS"):
        load_settings()


def test_max_workers_is_at_least_one(monkeypatch):
    monkeypatch.setenv("DEMO_MODE", "true")
    monkeypatch.setenv("WIZARD_MAX_WORKERS", "0")

    assert load_settings().max_workers == 1


def test_parse_client_ids_accepts_json():
    assert parse_client_ids('{"MyPureCloud.com": " abc "}') == {"mypurecloud.com": "abc"}


def test_parse_client_ids_accepts_pairs_and_blanks():
    assert parse_client_ids("") == {}
    assert parse_client_ids("a.com=1, ,b.com=2") == {"a.com": "1", "b.com": "2"}


@pytest.mark.parametrize("raw", ["{not json", "[1, 2]", "mypurecloud.com", "=abc", "env="])
def test_parse_client_ids_rejects_malformed(raw):
    with pytest.raises(ValueError):
        parse_client_ids(raw)


def test_client_id_for_environment():
    cfg = WizardConfig(demo_mode=True, secret_key="x", client_ids={"mypurecloud.ie": "ie-client"})

    assert cfg.client_id_for("MyPureCloud.IE") == "ie-client"
    with pytest.raises(ValueError, match="mypurecloud.com"):
        cfg.client_id_for(None)
