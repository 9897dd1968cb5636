"""PureCloud OAuth client management operations."""
from __future__ import annotations
import logging
from typing import Iterable

from .client import PureCloudClient

logger = logging.getLogger(__name__)

CLIENT_CREDENTIALS = "CLIENT-CREDENTIALS"


class OAuthClientService:
    """Service for managing OAuth clients."""

    def __init__(self, client: PureCloudClient):
        self.client = client

    def list_clients(self) -> list[dict]:
        body = self.client.get("/api/v2/oauth/clients").json() or {}
        return body.get("entities") or []

    def get_by_prefix(self, prefix: str) -> list[dict]:
        """Return OAuth clients whose name starts with the prefix."""
        return [
            oauth_client for oauth_client in self.list_clients()
            if (oauth_client.get("name") or "").startswith(prefix)
        ]

    def create_client(
        self,
        name: str,
        role_ids: Iterable[str],
        division_id: str,
        *,
        description: str = "",
        grant_type: str = CLIENT_CREDENTIALS,
    ) -> dict:
        """Create an OAuth client bound to roles in one division.

        The calling user must hold every role being bound.

        Args:
            name: Full client name (already prefixed)
            role_ids: Role IDs granted to the client
            division_id: Division the roles apply to
            description: Client description
            grant_type: Authorized grant type

        Returns:
            Created OAuth client representation (includes the secret)
        """
        payload = {
            "name": name,
            "description": description,
            "authorizedGrantType": grant_type,
            "roleDivisions": [{"roleId": role_id, "divisionId": division_id} for role_id in role_ids],
        }
        created = self.client.post("/api/v2/oauth/clients", json=payload).json()
        logger.debug("OAuth client '%s' created (id=%s)", name, created.get("id"))
        return created

    def delete_client(self, client_id: str) -> None:
        self.client.delete(f"/api/v2/oauth/clients/{client_id}")
