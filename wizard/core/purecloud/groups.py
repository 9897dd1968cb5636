"""PureCloud group management operations."""
from __future__ import annotations
import logging

from .client import DEFAULT_PAGE_SIZE, PureCloudClient

logger = logging.getLogger(__name__)


class GroupService:
    """Service for managing platform groups."""

    def __init__(self, client: PureCloudClient):
        """Initialize group service.

        Args:
            client: Authenticated platform client
        """
        self.client = client

    def search_by_prefix(self, prefix: str) -> list[dict]:
        """Search groups whose name starts with the prefix, following every result page.

        Args:
            prefix: Naming prefix

        Returns:
            Group representations
        """
        results: list[dict] = []
        page_number = 1
        while True:
            payload = {
                "query": [
                    {
                        "fields": ["name"],
                        "value": prefix,
                        "operator": "OR",
                        "type": "STARTS_WITH",
                    }
                ],
                "pageSize": DEFAULT_PAGE_SIZE,
                "pageNumber": page_number,
            }
            body = self.client.post("/api/v2/groups/search", json=payload).json() or {}
            results.extend(body.get("results") or [])
            if page_number >= (body.get("pageCount") or 1):
                break
            page_number += 1
        return [group for group in results if (group.get("name") or "").startswith(prefix)]

    def create_group(self, name: str, description: str = "") -> dict:
        """Create a public official group.

        Args:
            name: Full group name (already prefixed)
            description: Group description

        Returns:
            Created group representation
        """
        payload = {
            "name": name,
            "description": description,
            "type": "official",
            "rulesVisible": True,
            "visibility": "public",
        }
        group = self.client.post("/api/v2/groups", json=payload).json()
        logger.debug("Group '%s' created (id=%s)", name, group.get("id"))
        return group

    def delete_group(self, group_id: str) -> None:
        self.client.delete(f"/api/v2/groups/{group_id}")
