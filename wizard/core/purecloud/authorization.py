"""PureCloud authorization role management operations."""
from __future__ import annotations
import logging
from typing import Iterable

from .client import PureCloudClient

logger = logging.getLogger(__name__)


class RoleService:
    """Service for managing authorization roles."""

    def __init__(self, client: PureCloudClient):
        """Initialize role service.

        Args:
            client: Authenticated platform client
        """
        self.client = client

    def get_roles_by_prefix(self, prefix: str) -> list[dict]:
        """Return roles whose name starts with the prefix.

        The API name filter accepts a trailing wildcard; results are filtered
        again locally because the server-side match is case-insensitive.

        Args:
            prefix: Naming prefix

        Returns:
            Role representations
        """
        params = {"name": f"{prefix}*", "userCount": "false"}
        return [
            role for role in self.client.get_paged("/api/v2/authorization/roles", params=params)
            if (role.get("name") or "").startswith(prefix)
        ]

    def create_role(self, name: str, permission_policies: list[dict], description: str = "") -> dict:
        """Create a role.

        Args:
            name: Full role name (already prefixed)
            permission_policies: Permission policy representations
            description: Role description

        Returns:
            Created role representation
        """
        payload = {
            "name": name,
            "description": description,
            "permissionPolicies": permission_policies,
        }
        role = self.client.post("/api/v2/authorization/roles", json=payload).json()
        logger.debug("Role '%s' created (id=%s)", name, role.get("id"))
        return role

    def add_users_to_role(self, role_id: str, user_ids: Iterable[str]) -> None:
        """Grant a role to users (required before binding the role to an OAuth client)."""
        self.client.put(f"/api/v2/authorization/roles/{role_id}/users/add", json=list(user_ids))

    def delete_role(self, role_id: str) -> None:
        self.client.delete(f"/api/v2/authorization/roles/{role_id}")

    def get_home_division(self) -> dict:
        """Return the org's home division."""
        return self.client.get("/api/v2/authorization/divisions/home").json()
