"""PureCloud integration (app instance) management operations."""
from __future__ import annotations
import logging
from typing import Iterable

from .client import PureCloudClient, DEFAULT_PAGE_SIZE

logger = logging.getLogger(__name__)

SANDBOX_PERMISSIONS = "allow-forms,allow-modals,allow-popups,allow-presentation,allow-same-origin,allow-scripts"
ENABLED = "ENABLED"


def build_instance_config(
    name: str,
    url: str,
    display_type: str,
    group_ids: Iterable[str],
    *,
    version: int = 1,
    feature_category: str = "",
    notes: str = "",
) -> dict:
    """Build the current-config body for a premium app instance.

    Args:
        name: Full instance name (already prefixed)
        url: Application URL loaded by the instance
        display_type: standalone, widget, or interaction
        group_ids: Group IDs the instance is visible to
        version: Config version being replaced

    Returns:
        Integration config representation
    """
    return {
        "name": name,
        "version": version,
        "properties": {
            "url": url,
            "sandbox": SANDBOX_PERMISSIONS,
            "displayType": display_type,
            "featureCategory": feature_category,
            "groupFilter": [gid for gid in group_ids if gid],
        },
        "advanced": {},
        "notes": notes,
        "credentials": {},
    }


class IntegrationService:
    """Service for managing integration types and instances."""

    def __init__(self, client: PureCloudClient):
        """Initialize integration service.

        Args:
            client: Authenticated platform client
        """
        self.client = client

    def list_types(self) -> list[dict]:
        """Return the integration types installed in the org."""
        return self.client.get_paged("/api/v2/integrations/types")

    def is_type_available(self, type_id: str) -> bool:
        """Check whether an integration type (the premium app) is available to the org."""
        return any(integration_type.get("id") == type_id for integration_type in self.list_types())

    def list_integrations(self, page_size: int = DEFAULT_PAGE_SIZE) -> list[dict]:
        return self.client.get_paged("/api/v2/integrations", page_size=page_size)

    def get_by_prefix(self, prefix: str) -> list[dict]:
        """Return integration instances whose name starts with the prefix."""
        return [
            integration for integration in self.list_integrations()
            if (integration.get("name") or "").startswith(prefix)
        ]

    def create_integration(self, type_id: str) -> dict:
        """Create a new, unconfigured instance of an integration type.

        Returns:
            Created integration representation
        """
        payload = {"integrationType": {"id": type_id}}
        integration = self.client.post("/api/v2/integrations", json=payload).json()
        logger.debug("Integration of type '%s' created (id=%s)", type_id, integration.get("id"))
        return integration

    def update_current_config(self, integration_id: str, config: dict) -> dict:
        """Replace the current configuration of an instance.

        Returns:
            Updated config representation
        """
        return self.client.put(f"/api/v2/integrations/{integration_id}/config/current", json=config).json()

    def set_intended_state(self, integration_id: str, state: str = ENABLED) -> dict:
        """Activate or deactivate an instance.

        Returns:
            Updated integration representation
        """
        return self.client.patch(f"/api/v2/integrations/{integration_id}", json={"intendedState": state}).json()

    def delete_integration(self, integration_id: str) -> None:
        self.client.delete(f"/api/v2/integrations/{integration_id}")
