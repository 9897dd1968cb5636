"""Pytest shared fixtures: network guard, in-memory platform API, Flask client."""
import itertools
import json
import os
import pathlib
import sys
import threading
import time
from urllib.parse import urlparse

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DEMO_MODE", "true")

import pytest
import requests

from wizard.config.settings import WizardConfig, DEFAULT_INSTALLATION_DATA, DEFAULT_LANGUAGES_DIR

PREFIX = "PREMIUM_EXAMPLE_"
APP_NAME = "premium-app-example"


class StubResponse:
    def __init__(self, payload=None, status_code: int = 200, url: str = ""):
        self._payload = payload
        self.status_code = status_code
        self.url = url
        self.text = json.dumps(payload) if payload is not None else ""

    def json(self):
        return self._payload


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch):
    """Unit tests must never reach a real platform."""
    def _blocked(url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP call in unit test: {url}")

    for verb in ("get", "post", "put", "patch", "delete"):
        monkeypatch.setattr(requests, verb, _blocked)


# ─────────────────────────────────────────────────────────────────────────────
# In-memory Platform API
# ─────────────────────────────────────────────────────────────────────────────
class FakePlatform:
    """Just enough of the platform REST API for the wizard's calls."""

    def __init__(self):
        self.lock = threading.Lock()
        self.ids = itertools.count(1)
        self.me = {"id": "user-1", "name": "Wizard Admin"}
        self.home_division = {"id": "division-home", "name": "Home"}
        self.integration_types = [{"id": "embedded-client-app"}, {"id": APP_NAME}]
        self.roles = {}
        self.role_users = {}
        self.groups = {}
        self.integrations = {}
        self.oauth_clients = {}
        self.calls = []
        self.failures = {}
        self.token_requests = []

    def _new_id(self, kind):
        return f"{kind}-{next(self.ids)}"

    def fail(self, method, path, status=400, message="boom"):
        """Make the next matching calls fail with the given status."""
        self.failures[(method.upper(), path)] = (status, message)

    def install(self, monkeypatch):
        def _verb(method):
            def _call(url, *args, **kwargs):
                return self.handle(method, url, **kwargs)
            return _call

        for verb in ("get", "post", "put", "patch", "delete"):
            monkeypatch.setattr(requests, verb, _verb(verb.upper()))
        return self

    @staticmethod
    def _page(entities, params):
        page_size = int(params.get("pageSize", 25))
        page_number = int(params.get("pageNumber", 1))
        start = (page_number - 1) * page_size
        page_count = max(1, -(-len(entities) // page_size))
        return {
            "entities": entities[start:start + page_size],
            "pageSize": page_size,
            "pageNumber": page_number,
            "pageCount": page_count,
            "total": len(entities),
        }

    def handle(self, method, url, params=None, json=None, data=None, auth=None, **kwargs):
        parsed = urlparse(url)
        path = parsed.path
        params = params or {}
        with self.lock:
            self.calls.append((method, path, json))
            failure = self.failures.get((method, path))
            if failure:
                status, message = failure
                return StubResponse({"message": message}, status, url)

            if path == "/oauth/token":
                self.token_requests.append({"host": parsed.netloc, "data": data, "auth": auth})
                return StubResponse({"access_token": f"token-{len(self.token_requests)}", "expires_in": 86400}, 200, url)

            parts = path.strip("/").split("/")[2:]  # drop api/v2
            resource = "/".join(parts)

            if method == "GET" and resource == "users/me":
                return StubResponse(self.me, 200, url)

            if resource == "authorization/divisions/home":
                return StubResponse(self.home_division, 200, url)

            if parts[:2] == ["authorization", "roles"]:
                if method == "GET" and len(parts) == 2:
                    wanted = params.get("name", "").rstrip("*").lower()
                    found = [r for r in self.roles.values() if r["name"].lower().startswith(wanted)]
                    return StubResponse(self._page(found, params), 200, url)
                if method == "POST" and len(parts) == 2:
                    role = dict(json, id=self._new_id("role"))
                    self.roles[role["id"]] = role
                    return StubResponse(role, 200, url)
                if method == "PUT" and parts[3:] == ["users", "add"]:
                    self.role_users.setdefault(parts[2], []).extend(json)
                    return StubResponse(None, 200, url)
                if method == "DELETE":
                    self.roles.pop(parts[2])
                    return StubResponse(None, 204, url)

            if parts and parts[0] == "groups":
                if method == "POST" and resource == "groups/search":
                    wanted = json["query"][0]["value"].lower()
                    found = [g for g in self.groups.values() if g["name"].lower().startswith(wanted)]
                    page = self._page(found, json)
                    page["results"] = page.pop("entities")
                    return StubResponse(page, 200, url)
                if method == "POST" and len(parts) == 1:
                    group = dict(json, id=self._new_id("group"))
                    self.groups[group["id"]] = group
                    return StubResponse(group, 200, url)
                if method == "DELETE":
                    self.groups.pop(parts[1])
                    return StubResponse(None, 204, url)

            if parts and parts[0] == "integrations":
                if method == "GET" and resource == "integrations/types":
                    return StubResponse(self._page(self.integration_types, params), 200, url)
                if method == "GET" and len(parts) == 1:
                    return StubResponse(self._page(list(self.integrations.values()), params), 200, url)
                if method == "POST" and len(parts) == 1:
                    integration = {
                        "id": self._new_id("integration"),
                        "name": "Premium App Example",
                        "integrationType": json["integrationType"],
                        "intendedState": "DISABLED",
                    }
                    self.integrations[integration["id"]] = integration
                    return StubResponse(integration, 200, url)
                if method == "PUT" and parts[2:] == ["config", "current"]:
                    integration = self.integrations[parts[1]]
                    integration["name"] = json["name"]
                    integration["config"] = json
                    return StubResponse(json, 200, url)
                if method == "PATCH" and len(parts) == 2:
                    integration = self.integrations[parts[1]]
                    integration.update(json)
                    return StubResponse(integration, 200, url)
                if method == "DELETE" and len(parts) == 2:
                    self.integrations.pop(parts[1])
                    return StubResponse(None, 204, url)

            if parts[:2] == ["oauth", "clients"]:
                if method == "GET" and len(parts) == 2:
                    return StubResponse({"entities": list(self.oauth_clients.values())}, 200, url)
                if method == "POST" and len(parts) == 2:
                    created = dict(json, id=self._new_id("oauth"), secret="s3cr3t")
                    self.oauth_clients[created["id"]] = created
                    return StubResponse(created, 200, url)
                if method == "DELETE":
                    self.oauth_clients.pop(parts[2])
                    return StubResponse(None, 204, url)

        return StubResponse({"message": f"no route for {method} {path}"}, 404, url)

    def calls_to(self, method, path_prefix):
        return [call for call in self.calls if call[0] == method and call[1].startswith(path_prefix)]


@pytest.fixture()
def platform(monkeypatch):
    """In-memory platform API wired into requests."""
    return FakePlatform().install(monkeypatch)


@pytest.fixture()
def authed_client(platform):
    from wizard.core.purecloud import PureCloudClient

    client = PureCloudClient("mypurecloud.ie")
    client.set_access_token("test-token")
    return client


# ─────────────────────────────────────────────────────────────────────────────
# Configuration / Flask
# ─────────────────────────────────────────────────────────────────────────────
def make_config(**overrides) -> WizardConfig:
    base = dict(
        demo_mode=True,
        secret_key="test-secret-key",
        session_cookie_secure=False,
        default_environment="mypurecloud.com",
        client_ids={"mypurecloud.com": "client-us", "mypurecloud.ie": "client-ie"},
        client_secret="",
        redirect_uri="http://localhost:5000/callback",
        prefix=PREFIX,
        app_name=APP_NAME,
        installation_data_path=DEFAULT_INSTALLATION_DATA,
        max_workers=2,
        languages_dir=DEFAULT_LANGUAGES_DIR,
        default_language="en-us",
        log_level="INFO",
    )
    base.update(overrides)
    return WizardConfig(**base)


@pytest.fixture()
def app(monkeypatch, tmp_path):
    from wizard.flask_app import create_app

    monkeypatch.setenv("FLASK_SESSION_DIR", str(tmp_path / "sessions"))
    flask_app = create_app(make_config())
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture()
def client(app):
    with app.test_client() as client:
        yield client


def login_as(client, environment="mypurecloud.ie", language="en-us", expires_in=3600):
    """Put a hosted-login token expiring in ``expires_in`` seconds in the test client's session."""
    with client.session_transaction() as session:
        session["token"] = {
            "access_token": "session-token",
            "expires_in": expires_in,
            "expires_at": int(time.time()) + expires_in,
        }
        session["pc_environment"] = environment
        session["language"] = language


def get_csrf_token(client) -> str:
    client.get("/health")
    with client.session_transaction() as session:
        return session.get("_csrf_token", "")
