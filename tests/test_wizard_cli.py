import json
import sys
from types import SimpleNamespace

import pytest

import scripts.wizard as wizard_cli
from scripts import audit
from wizard.core.purecloud import PureCloudClient, create_client_with_token

from conftest import PREFIX


@pytest.fixture(autouse=True)
def restore_sys_argv():
    """Make sure every test sees a clean CLI invocation."""
    original = sys.argv[:]
    yield
    sys.argv = original


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    for name in (
        "PURECLOUD_ENVIRONMENT",
        "PURECLOUD_CLIENT_ID",
        "PURECLOUD_CLIENT_SECRET",
        "PURECLOUD_ACCESS_TOKEN",
        "WIZARD_PREFIX",
        "WIZARD_APP_NAME",
        "WIZARD_INSTALLATION_DATA",
        "WIZARD_MAX_WORKERS",
    ):
        monkeypatch.delenv(name, raising=False)
    audit_dir = tmp_path / "audit"
    monkeypatch.setattr(audit, "AUDIT_LOG_DIR", audit_dir)
    monkeypatch.setattr(audit, "AUDIT_LOG_FILE", audit_dir / "provisioning-events.jsonl")
    monkeypatch.setattr(audit, "_get_signing_key", lambda: b"")


@pytest.fixture()
def fake_login(monkeypatch, platform):
    """Skip the token exchange; every command talks to the in-memory platform."""
    calls = SimpleNamespace(args=None)

    def fake_build_client(environment, client_id, client_secret, access_token):
        calls.args = (environment, client_id, client_secret, access_token)
        return create_client_with_token(environment, "cli-token")

    monkeypatch.setattr(wizard_cli, "build_client", fake_build_client)
    return calls


def run_cli(*args):
    sys.argv = ["wizard.py", "--environment", "mypurecloud.ie", "--access-token", "abc", *args]
    wizard_cli.main()


def test_no_command_prints_help(capsys):
    sys.argv = ["wizard.py"]

    wizard_cli.main()

    assert "usage" in capsys.readouterr().out


def test_credentials_are_required(monkeypatch):
    """CLI must abort before contacting the platform if no credentials are given."""
    def fail_if_called(*args, **kwargs):
        raise AssertionError("build_client should not be invoked without credentials")

    monkeypatch.setattr(wizard_cli, "build_client", fail_if_called)
    sys.argv = ["wizard.py", "--client-id", "cid", "status"]

    with pytest.raises(SystemExit) as excinfo:
        wizard_cli.main()
    assert excinfo.value.code == 2


def test_empty_prefix_is_rejected(fake_login):
    with pytest.raises(SystemExit):
        run_cli("--prefix", "", "status")
    assert fake_login.args is None


def test_invalid_installation_data_exits_2(fake_login, tmp_path):
    broken = tmp_path / "broken.yaml"
    broken.write_text("roles: {}\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        run_cli("--installation-data", str(broken), "status")
    assert excinfo.value.code == 2


def test_undecodable_installation_data_exits_2(fake_login, tmp_path):
    broken = tmp_path / "broken.yaml"
    broken.write_bytes(b"roles: [\xff]\n")

    with pytest.raises(SystemExit) as excinfo:
        run_cli("--installation-data", str(broken), "status")
    assert excinfo.value.code == 2


def test_build_client_with_access_token(platform):
    client = wizard_cli.build_client("mypurecloud.de", None, None, "abc")

    assert client.environment == "mypurecloud.de"
    assert client.is_authenticated
    assert platform.token_requests == []


def test_build_client_with_client_credentials(platform):
    client = wizard_cli.build_client("mypurecloud.de", "cid", "secret", None)

    assert isinstance(client, PureCloudClient)
    assert platform.token_requests[0]["host"] == "login.mypurecloud.de"


def test_status_lists_prefixed_objects(fake_login, platform, capsys):
    platform.groups["g1"] = {"id": "g1", "name": PREFIX + "Agents"}

    run_cli("status")

    output = json.loads(capsys.readouterr().out)
    assert output["group"] == [PREFIX + "Agents"]
    assert output["role"] == []
    assert fake_login.args == ("mypurecloud.ie", None, None, "abc")


def test_check_product(fake_login, platform, capsys):
    run_cli("check-product")
    assert capsys.readouterr().out.strip() == "available"

    platform.integration_types = []
    with pytest.raises(SystemExit) as excinfo:
        run_cli("check-product")
    assert excinfo.value.code == 1
    assert capsys.readouterr().out.strip() == "not available"


def test_install_creates_objects_and_audits(fake_login, platform, capsys):
    run_cli("--operator", "ops", "install")

    report = json.loads(capsys.readouterr().out)
    assert report["success"] is True
    assert len(platform.integrations) == 2
    event = json.loads(audit.AUDIT_LOG_FILE.read_text(encoding="utf-8"))
    assert event["event_type"] == "install"
    assert event["operator"] == "ops"
    assert event["environment"] == "mypurecloud.ie"


def test_install_refuses_when_objects_exist(fake_login, platform, capsys):
    platform.roles["r1"] = {"id": "r1", "name": PREFIX + "Role"}

    with pytest.raises(SystemExit) as excinfo:
        run_cli("install")

    assert excinfo.value.code == 1
    assert "already exist" in capsys.readouterr().err
    assert platform.calls_to("POST", "/api/v2/authorization/roles") == []


def test_install_force_ignores_existing_objects(fake_login, platform):
    platform.roles["r1"] = {"id": "r1", "name": PREFIX + "Old"}

    run_cli("install", "--force")

    assert len(platform.roles) == 2


def test_install_requires_product(fake_login, platform, capsys):
    platform.integration_types = [{"id": "another-app"}]

    with pytest.raises(SystemExit) as excinfo:
        run_cli("install")

    assert excinfo.value.code == 1
    assert "not available" in capsys.readouterr().err
    assert platform.roles == {}


def test_install_partial_failure_exits_1(fake_login, platform):
    platform.fail("POST", "/api/v2/groups", status=400)

    with pytest.raises(SystemExit) as excinfo:
        run_cli("install")
    assert excinfo.value.code == 1


def test_clear_with_yes(fake_login, platform, capsys):
    platform.groups["g1"] = {"id": "g1", "name": PREFIX + "Agents"}
    platform.groups["g2"] = {"id": "g2", "name": "Keep me"}

    run_cli("clear", "--yes")

    report = json.loads(capsys.readouterr().out)
    assert report["deleted"] == [{"kind": "group", "name": PREFIX + "Agents", "id": "g1"}]
    assert list(platform.groups) == ["g2"]


def test_clear_asks_for_confirmation(fake_login, platform, monkeypatch):
    platform.groups["g1"] = {"id": "g1", "name": PREFIX + "Agents"}
    monkeypatch.setattr("builtins.input", lambda prompt: "n")

    with pytest.raises(SystemExit) as excinfo:
        run_cli("clear")

    assert excinfo.value.code == 1
    assert list(platform.groups) == ["g1"]


def test_platform_error_exits_1(fake_login, platform, capsys):
    platform.fail("GET", "/api/v2/oauth/clients", status=403, message="missing permission")

    with pytest.raises(SystemExit) as excinfo:
        run_cli("status")

    assert excinfo.value.code == 1
    assert "403" in capsys.readouterr().err


def test_connection_error_exits_1(fake_login, platform, monkeypatch, capsys):
    import requests

    def unreachable(url, *args, **kwargs):
        raise requests.ConnectionError(f"cannot reach {url}")

    monkeypatch.setattr(requests, "get", unreachable)

    with pytest.raises(SystemExit) as excinfo:
        run_cli("status")

    assert excinfo.value.code == 1
    assert "[status] Error: cannot reach" in capsys.readouterr().err


def test_install_failed_user_lookup_is_audited(fake_login, platform, capsys):
    platform.fail("GET", "/api/v2/users/me", status=500, message="upstream down")

    with pytest.raises(SystemExit) as excinfo:
        run_cli("install")

    assert excinfo.value.code == 1
    report = json.loads(capsys.readouterr().out)
    assert report["errors"][0]["step"] == "get current user"
    event = json.loads(audit.AUDIT_LOG_FILE.read_text(encoding="utf-8"))
    assert event["success"] is False
