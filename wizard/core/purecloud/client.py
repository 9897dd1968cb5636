"""Low-level HTTP client for the PureCloud Platform API.

Handles region hosts, authentication, token management, and HTTP operations.
"""
from __future__ import annotations
import logging
import threading
from typing import Optional, Dict, Any, List
from datetime import datetime, timedelta

import requests

from .exceptions import PureCloudAPIError

REQUEST_TIMEOUT = 15
DEFAULT_ENVIRONMENT = "mypurecloud.com"
DEFAULT_PAGE_SIZE = 100
TOKEN_REFRESH_MARGIN = 30

logger = logging.getLogger(__name__)


def api_host(environment: str) -> str:
    """Return the API base URL for a platform environment (e.g. mypurecloud.ie)."""
    return f"https://api.{_normalize_environment(environment)}"


def login_host(environment: str) -> str:
    """Return the hosted login URL for a platform environment."""
    return f"https://login.{_normalize_environment(environment)}"


def _normalize_environment(environment: Optional[str]) -> str:
    env = (environment or DEFAULT_ENVIRONMENT).strip().lower()
    for scheme in ("https://", "http://"):
        if env.startswith(scheme):
            env = env[len(scheme):]
    for host_prefix in ("api.", "login.", "apps."):
        if env.startswith(host_prefix):
            env = env[len(host_prefix):]
    return env.rstrip("/") or DEFAULT_ENVIRONMENT


class PureCloudClient:
    """HTTP client for the PureCloud Platform API with automatic token management.

    Features:
    - Region-aware API and login hosts
    - Client credentials authentication with automatic refresh
    - Pre-issued tokens from the hosted login (no refresh)
    - Centralized error handling

    Usage:
        client = PureCloudClient("mypurecloud.ie")
        client.authenticate_client_credentials("client-id", "secret")
        response = client.get("/api/v2/users/me")
    """

    def __init__(self, environment: Optional[str] = None):
        """Initialize platform client.

        Args:
            environment: Platform environment domain (defaults to mypurecloud.com)
        """
        self.environment = _normalize_environment(environment)
        self.base_url = api_host(self.environment)
        self.login_url = login_host(self.environment)
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._auth_method: Optional[str] = None
        self._auth_params: Dict[str, Any] = {}
        self._refresh_lock = threading.Lock()

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token)

    def authenticate_client_credentials(self, client_id: str, client_secret: str) -> str:
        """Authenticate with the client credentials grant and store credentials for auto-refresh.

        Args:
            client_id: OAuth client ID
            client_secret: OAuth client secret

        Returns:
            Access token
        """
        self._auth_method = "client_credentials"
        self._auth_params = {"client_id": client_id, "client_secret": client_secret}
        token, expires_in = self._get_client_credentials_token(client_id, client_secret)
        self._token = token
        self._token_expires_at = datetime.now() + timedelta(seconds=expires_in)
        return token

    def set_access_token(self, token: str, expires_in: int = 3600) -> None:
        """Use a token issued by the hosted login (implicit or code grant).

        Such tokens cannot be refreshed by this client; once expired every
        request fails with 401 and the caller has to log in again.
        """
        self._auth_method = "token"
        self._auth_params = {}
        self._token = token
        self._token_expires_at = datetime.now() + timedelta(seconds=expires_in)

    def _ensure_authenticated(self) -> None:
        """Ensure we have a valid token, refreshing if necessary."""
        if not self._token or not self._token_expires_at:
            raise PureCloudAPIError(401, "Not authenticated - call authenticate_client_credentials or set_access_token first", "")

        # Refresh if token expired or expiring soon
        with self._refresh_lock:
            if datetime.now() < self._token_expires_at - timedelta(seconds=TOKEN_REFRESH_MARGIN):
                return
            if self._auth_method != "client_credentials":
                raise PureCloudAPIError(401, "Access token expired - log in again", "")
            logger.debug("Refreshing client credentials token for %s", self.environment)
            token, expires_in = self._get_client_credentials_token(
                self._auth_params["client_id"],
                self._auth_params["client_secret"],
            )
            self._token = token
            self._token_expires_at = datetime.now() + timedelta(seconds=expires_in)

    def _headers(self, kwargs: Dict[str, Any]) -> Dict[str, str]:
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request with automatic authentication.

        Raises:
            PureCloudAPIError: On HTTP error
        """
        self._ensure_authenticated()
        headers = self._headers(kwargs)
        resp = requests.get(f"{self.base_url}{path}", params=params, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        self._handle_error(resp)
        return resp

    def post(self, path: str, json: Any = None, **kwargs) -> requests.Response:
        """Execute POST request with automatic authentication.

        Raises:
            PureCloudAPIError: On HTTP error
        """
        self._ensure_authenticated()
        headers = self._headers(kwargs)
        resp = requests.post(f"{self.base_url}{path}", json=json, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        self._handle_error(resp)
        return resp

    def put(self, path: str, json: Any = None, **kwargs) -> requests.Response:
        """Execute PUT request with automatic authentication.

        Raises:
            PureCloudAPIError: On HTTP error
        """
        self._ensure_authenticated()
        headers = self._headers(kwargs)
        resp = requests.put(f"{self.base_url}{path}", json=json, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        self._handle_error(resp)
        return resp

    def patch(self, path: str, json: Any = None, **kwargs) -> requests.Response:
        """Execute PATCH request with automatic authentication.

        Raises:
            PureCloudAPIError: On HTTP error
        """
        self._ensure_authenticated()
        headers = self._headers(kwargs)
        resp = requests.patch(f"{self.base_url}{path}", json=json, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        self._handle_error(resp)
        return resp

    def delete(self, path: str, **kwargs) -> requests.Response:
        """Execute DELETE request with automatic authentication.

        Raises:
            PureCloudAPIError: On HTTP error
        """
        self._ensure_authenticated()
        headers = self._headers(kwargs)
        resp = requests.delete(f"{self.base_url}{path}", headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        self._handle_error(resp)
        return resp

    def get_paged(self, path: str, params: Optional[Dict] = None, page_size: int = DEFAULT_PAGE_SIZE) -> List[dict]:
        """Collect ``entities`` from every page of a paged listing endpoint.

        Args:
            path: API endpoint path
            params: Extra query parameters
            page_size: Page size requested from the API

        Returns:
            All entities across pages
        """
        entities: List[dict] = []
        page_number = 1
        while True:
            query = dict(params or {})
            query.update({"pageSize": page_size, "pageNumber": page_number})
            body = self.get(path, params=query).json() or {}
            entities.extend(body.get("entities") or [])
            page_count = body.get("pageCount") or 1
            if page_number >= page_count:
                return entities
            page_number += 1

    def _get_client_credentials_token(self, client_id: str, client_secret: str) -> tuple[str, int]:
        """Fetch a token using the client credentials flow against the region login host."""
        url = f"{self.login_url}/oauth/token"
        data = {"grant_type": "client_credentials"}
        resp = requests.post(url, data=data, auth=(client_id, client_secret), timeout=REQUEST_TIMEOUT)
        if resp.status_code != 200:
            raise PureCloudAPIError(resp.status_code, resp.text, url)
        payload = resp.json()
        token = payload.get("access_token")
        if not token:
            raise PureCloudAPIError(resp.status_code, "Token response missing access_token", url)
        return token, int(payload.get("expires_in") or 3600)

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            PureCloudAPIError: If response status indicates error
        """
        if resp.status_code >= 400:
            raise PureCloudAPIError(resp.status_code, resp.text, resp.url)


def create_client_with_token(environment: str, token: str, expires_in: int = 3600) -> PureCloudClient:
    """Create a pre-authenticated PureCloudClient from a hosted-login token."""
    client = PureCloudClient(environment)
    client.set_access_token(token, expires_in)
    return client
