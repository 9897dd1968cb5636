"""
Provisioning Service Layer: install and clear the premium app's platform objects

This module drives the platform API services in the fixed order the premium
app needs, used by both the Flask wizard and the CLI.

Architecture:
    Web wizard (/api/*) ──┐
                          ├──> provisioning_service.py ──> wizard.core.purecloud ──> Platform API
    CLI (scripts/wizard) ─┘

Install sequence:
    roles → assign roles to current user → groups → app instances
    → configure instances → activate instances → OAuth clients

Clear sequence (inverse):
    OAuth clients → app instances → groups → roles

Every object the wizard owns is named ``prefix + name``; the same
``startswith(prefix)`` rule scopes both the existence check and the cleanup.
"""

from __future__ import annotations
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

import requests

from wizard.core.installation_data import InstallationData
from wizard.core.purecloud import (
    PureCloudClient,
    PureCloudError,
    ProductNotAvailableError,
    UserService,
    RoleService,
    GroupService,
    IntegrationService,
    OAuthClientService,
    build_instance_config,
)
from wizard.core.purecloud.integrations import ENABLED

logger = logging.getLogger(__name__)

ROLE = "role"
GROUP = "group"
APP_INSTANCE = "appInstance"
OAUTH_CLIENT = "oauthClient"


@dataclass
class ProvisioningReport:
    """Outcome of an install or clear run."""
    created: list[tuple[str, str, str]] = field(default_factory=list)
    deleted: list[tuple[str, str, str]] = field(default_factory=list)
    errors: list[tuple[str, str, str]] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "created": [{"kind": k, "name": n, "id": i} for k, n, i in self.created],
            "deleted": [{"kind": k, "name": n, "id": i} for k, n, i in self.deleted],
            "errors": [{"step": s, "name": n, "message": m} for s, n, m in self.errors],
            "messages": list(self.messages),
        }


class PremiumAppWizard:
    """Creates and removes the premium app's roles, groups, instances and OAuth clients."""

    def __init__(
        self,
        client: PureCloudClient,
        prefix: str,
        app_name: str,
        installation_data: InstallationData,
        *,
        on_progress: Optional[Callable[[str], None]] = None,
        max_workers: int = 4,
    ):
        if not prefix:
            raise ValueError("prefix must not be empty")
        self.client = client
        self.prefix = prefix
        self.app_name = app_name
        self.installation_data = installation_data
        self.on_progress = on_progress
        self.max_workers = max(1, max_workers)

        self.users = UserService(client)
        self.roles = RoleService(client)
        self.groups = GroupService(client)
        self.integrations = IntegrationService(client)
        self.oauth_clients = OAuthClientService(client)

        self._lock = threading.Lock()
        self._user_id: Optional[str] = None

    # ─────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────
    def _progress(self, report: ProvisioningReport, message: str) -> None:
        logger.info(message)
        with self._lock:
            report.messages.append(message)
        if self.on_progress:
            self.on_progress(message)

    def _fail(self, report: ProvisioningReport, step: str, name: str, exc: Exception) -> None:
        logger.error("%s failed for '%s': %s", step, name, exc)
        with self._lock:
            report.errors.append((step, name, str(exc)))

    def _fan_out(self, func: Callable[[Any], Any], items: Iterable[Any]) -> list[tuple[Any, Any, Optional[Exception]]]:
        """Run independent calls in parallel; return (item, result, error) in input order."""
        items = list(items)
        if not items:
            return []

        def _call(item):
            try:
                return item, func(item), None
            except (PureCloudError, requests.RequestException) as exc:
                return item, None, exc

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(items))) as pool:
            return list(pool.map(_call, items))

    def _current_user_id(self) -> str:
        with self._lock:
            if self._user_id is None:
                self._user_id = self.users.get_me()["id"]
            return self._user_id

    # ─────────────────────────────────────────────────────────────────────
    # Existence checks
    # ─────────────────────────────────────────────────────────────────────
    def validate_product_availability(self) -> bool:
        """Check that the premium app's integration type is available in the org."""
        return self.integrations.is_type_available(self.app_name)

    def require_product(self) -> None:
        """Raise ProductNotAvailableError unless the premium app is available."""
        if not self.validate_product_availability():
            raise ProductNotAvailableError(f"Product '{self.app_name}' is not available in this org")

    def get_existing_roles(self) -> list[dict]:
        return self.roles.get_roles_by_prefix(self.prefix)

    def get_existing_groups(self) -> list[dict]:
        return self.groups.search_by_prefix(self.prefix)

    def get_existing_apps(self) -> list[dict]:
        return self.integrations.get_by_prefix(self.prefix)

    def get_existing_auth_clients(self) -> list[dict]:
        return self.oauth_clients.get_by_prefix(self.prefix)

    def existing_objects(self) -> dict[str, list[dict]]:
        """Look up every prefixed object type in parallel.

        Raises:
            PureCloudError: If any lookup fails
        """
        lookups = {
            ROLE: self.get_existing_roles,
            GROUP: self.get_existing_groups,
            APP_INSTANCE: self.get_existing_apps,
            OAUTH_CLIENT: self.get_existing_auth_clients,
        }
        results = {}
        for kind, found, error in self._fan_out(lambda kind: lookups[kind](), lookups):
            if error is not None:
                raise error
            results[kind] = found
        return results

    def is_existing(self) -> bool:
        """Return True if any object carrying the prefix is still in the org."""
        return any(self.existing_objects().values())

    # ─────────────────────────────────────────────────────────────────────
    # Install
    # ─────────────────────────────────────────────────────────────────────
    def add_roles(self, report: ProvisioningReport) -> dict[str, str]:
        """Create the roles and grant each to the current user.

        No role is created when the current user cannot be looked up, and a
        role whose assignment fails is left out of the result: OAuth clients
        can only be bound to roles the user holds.

        Returns:
            Mapping of unprefixed role name to role ID
        """
        if not self.installation_data.roles:
            return {}
        try:
            user_id = self._current_user_id()
        except (PureCloudError, requests.RequestException) as exc:
            self._fail(report, "get current user", "me", exc)
            return {}

        def _create(role_spec):
            role = self.roles.create_role(
                self.prefix + role_spec.name,
                list(role_spec.permission_policies),
                role_spec.description,
            )
            self._progress(report, f"Created role: {role_spec.name}")
            with self._lock:
                report.created.append((ROLE, role["name"], role["id"]))
            try:
                self.roles.add_users_to_role(role["id"], [user_id])
            except (PureCloudError, requests.RequestException) as exc:
                self._fail(report, "assign role", role_spec.name, exc)
                return None
            self._progress(report, f"Assigned {role_spec.name} to user")
            return role["id"]

        role_ids = {}
        for role_spec, role_id, error in self._fan_out(_create, self.installation_data.roles):
            if error is not None:
                self._fail(report, "create role", role_spec.name, error)
                continue
            if role_id is not None:
                role_ids[role_spec.name] = role_id
        return role_ids

    def add_groups(self, report: ProvisioningReport) -> dict[str, str]:
        """Create the groups.

        Returns:
            Mapping of unprefixed group name to group ID
        """
        def _create(group_spec):
            group = self.groups.create_group(self.prefix + group_spec.name, group_spec.description)
            self._progress(report, f"Created group: {group_spec.name}")
            with self._lock:
                report.created.append((GROUP, group["name"], group["id"]))
            return group["id"]

        group_ids = {}
        for group_spec, group_id, error in self._fan_out(_create, self.installation_data.groups):
            if error is not None:
                self._fail(report, "create group", group_spec.name, error)
                continue
            group_ids[group_spec.name] = group_id
        return group_ids

    def add_instances(self, group_ids: dict[str, str], report: ProvisioningReport) -> list[dict]:
        """Create, configure, then activate the app instances.

        Instances that fail to be created or configured are not activated.

        Returns:
            The configured integrations
        """
        def _create_and_configure(instance_spec):
            integration = self.integrations.create_integration(self.app_name)
            self._progress(report, f"Created instance: {instance_spec.name}")
            with self._lock:
                report.created.append((APP_INSTANCE, self.prefix + instance_spec.name, integration["id"]))
            config = build_instance_config(
                self.prefix + instance_spec.name,
                instance_spec.url,
                instance_spec.type,
                [group_ids[name] for name in instance_spec.groups if name in group_ids],
            )
            configured = self.integrations.update_current_config(integration["id"], config)
            self._progress(report, f"Configured instance: {configured.get('name', config['name'])}")
            return integration

        configured = []
        for instance_spec, integration, error in self._fan_out(_create_and_configure, self.installation_data.app_instances):
            if error is not None:
                self._fail(report, "create instance", instance_spec.name, error)
                continue
            configured.append(integration)

        def _activate(integration):
            enabled = self.integrations.set_intended_state(integration["id"], ENABLED)
            self._progress(report, f"Enabled instance: {enabled.get('name', integration['id'])}")

        for integration, _, error in self._fan_out(_activate, configured):
            if error is not None:
                self._fail(report, "enable instance", integration["id"], error)
        return configured

    def add_auth_clients(self, role_ids: dict[str, str], report: ProvisioningReport) -> list[dict]:
        """Create the OAuth clients, bound to the created roles in the home division."""
        specs = self.installation_data.oauth_clients
        if not specs:
            return []
        try:
            division_id = self.roles.get_home_division()["id"]
        except (PureCloudError, requests.RequestException) as exc:
            self._fail(report, "get home division", "home", exc)
            return []

        def _create(client_spec):
            missing = [name for name in client_spec.roles if name not in role_ids]
            if missing:
                raise PureCloudError(f"roles not created: {', '.join(missing)}")
            created = self.oauth_clients.create_client(
                self.prefix + client_spec.name,
                [role_ids[name] for name in client_spec.roles],
                division_id,
                description=client_spec.description,
                grant_type=client_spec.authorized_grant_type,
            )
            self._progress(report, f"Created OAuth client: {client_spec.name}")
            with self._lock:
                report.created.append((OAUTH_CLIENT, created["name"], created["id"]))
            return created

        created_clients = []
        for client_spec, created, error in self._fan_out(_create, specs):
            if error is not None:
                self._fail(report, "create oauth client", client_spec.name, error)
                continue
            created_clients.append(created)
        return created_clients

    def install(self) -> ProvisioningReport:
        """Create every object in the installation data, in dependency order."""
        report = ProvisioningReport()
        role_ids = self.add_roles(report)
        group_ids = self.add_groups(report)
        self.add_instances(group_ids, report)
        self.add_auth_clients(role_ids, report)
        if report.success:
            self._progress(report, "Installation Complete!")
        else:
            self._progress(report, f"Installation finished with {len(report.errors)} error(s)")
        return report

    # ─────────────────────────────────────────────────────────────────────
    # Clear
    # ─────────────────────────────────────────────────────────────────────
    def _delete_all(
        self,
        kind: str,
        lookup: Callable[[], list[dict]],
        delete: Callable[[str], None],
        report: ProvisioningReport,
    ) -> None:
        try:
            existing = lookup()
        except (PureCloudError, requests.RequestException) as exc:
            self._fail(report, f"list {kind}", self.prefix, exc)
            return

        def _delete(entity):
            delete(entity["id"])
            self._progress(report, f"Deleted {kind}: {entity.get('name', entity['id'])}")

        for entity, _, error in self._fan_out(_delete, existing):
            if error is not None:
                self._fail(report, f"delete {kind}", entity.get("name", entity["id"]), error)
                continue
            report.deleted.append((kind, entity.get("name", ""), entity["id"]))

    def delete_auth_clients(self, report: ProvisioningReport) -> None:
        self._delete_all(OAUTH_CLIENT, self.get_existing_auth_clients, self.oauth_clients.delete_client, report)

    def delete_apps(self, report: ProvisioningReport) -> None:
        self._delete_all(APP_INSTANCE, self.get_existing_apps, self.integrations.delete_integration, report)

    def delete_groups(self, report: ProvisioningReport) -> None:
        self._delete_all(GROUP, self.get_existing_groups, self.groups.delete_group, report)

    def delete_roles(self, report: ProvisioningReport) -> None:
        self._delete_all(ROLE, self.get_existing_roles, self.roles.delete_role, report)

    def clear_configurations(self) -> ProvisioningReport:
        """Delete every object carrying the prefix, dependents first."""
        report = ProvisioningReport()
        self.delete_auth_clients(report)
        self.delete_apps(report)
        self.delete_groups(report)
        self.delete_roles(report)
        self._progress(report, "Clear Complete!" if report.success else f"Clear finished with {len(report.errors)} error(s)")
        return report


def wizard_from_config(
    client: PureCloudClient,
    cfg,
    *,
    installation_data: Optional[InstallationData] = None,
    on_progress: Optional[Callable[[str], None]] = None,
) -> PremiumAppWizard:
    """Build a wizard from WizardConfig, loading the installation data when not given."""
    from wizard.core.installation_data import load_installation_data

    if installation_data is None:
        installation_data = load_installation_data(cfg.installation_data_path)
    return PremiumAppWizard(
        client,
        cfg.prefix,
        cfg.app_name,
        installation_data,
        on_progress=on_progress,
        max_workers=cfg.max_workers,
    )
