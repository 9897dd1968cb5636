"""Installation descriptor: the platform objects the wizard provisions.

The descriptor is a YAML (or JSON) document with four sections::

    roles:
      - name: Role
        description: Access to the premium app
        permissionPolicies: [...]
    groups:
      - name: Agents
        description: Agents who can see the app
    appInstances:
      - name: Agent Portal
        url: https://example.com/app?lang={{pcLangTag}}
        type: standalone
        groups: [Agents]
    oauthClients:          # optional
      - name: Backend
        roles: [Role]

Names are stored without the naming prefix; the wizard prepends it.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from wizard.core.purecloud.exceptions import InstallationDataError
from wizard.core.purecloud.oauth import CLIENT_CREDENTIALS

DISPLAY_TYPES = {"standalone", "widget", "interaction"}


@dataclass(frozen=True)
class RoleSpec:
    name: str
    permission_policies: tuple = ()
    description: str = ""


@dataclass(frozen=True)
class GroupSpec:
    name: str
    description: str = ""


@dataclass(frozen=True)
class AppInstanceSpec:
    name: str
    url: str
    type: str
    groups: tuple[str, ...] = ()


@dataclass(frozen=True)
class OAuthClientSpec:
    name: str
    roles: tuple[str, ...] = ()
    description: str = ""
    authorized_grant_type: str = CLIENT_CREDENTIALS


@dataclass(frozen=True)
class InstallationData:
    roles: tuple[RoleSpec, ...] = ()
    groups: tuple[GroupSpec, ...] = ()
    app_instances: tuple[AppInstanceSpec, ...] = ()
    oauth_clients: tuple[OAuthClientSpec, ...] = field(default_factory=tuple)


def _section(raw: dict, key: str, required: bool = True) -> list[dict]:
    value = raw.get(key)
    if value is None:
        if required:
            raise InstallationDataError(f"Installation data is missing the '{key}' section")
        return []
    if not isinstance(value, list):
        raise InstallationDataError(f"'{key}' must be a list")
    for index, entry in enumerate(value):
        if not isinstance(entry, dict):
            raise InstallationDataError(f"{key}[{index}] must be a mapping")
    return value


def _required_str(entry: dict, key: str, where: str) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value.strip():
        raise InstallationDataError(f"{where}: '{key}' is required")
    return value.strip()


def _str_list(entry: dict, key: str, where: str) -> tuple[str, ...]:
    value = entry.get(key) or []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise InstallationDataError(f"{where}: '{key}' must be a list of names")
    return tuple(item.strip() for item in value)


def _unique(names: list[str], section: str) -> set[str]:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise InstallationDataError(f"Duplicate name '{name}' in {section}")
        seen.add(name)
    return seen


def parse_installation_data(raw: Any) -> InstallationData:
    """Validate a decoded descriptor and build the typed representation.

    Raises:
        InstallationDataError: If a section or entry is invalid
    """
    if not isinstance(raw, dict):
        raise InstallationDataError("Installation data must be a mapping")

    roles = []
    for index, entry in enumerate(_section(raw, "roles")):
        where = f"roles[{index}]"
        policies = entry.get("permissionPolicies") or []
        if not isinstance(policies, list):
            raise InstallationDataError(f"{where}: 'permissionPolicies' must be a list")
        roles.append(RoleSpec(
            name=_required_str(entry, "name", where),
            permission_policies=tuple(policies),
            description=str(entry.get("description") or ""),
        ))

    groups = [
        GroupSpec(
            name=_required_str(entry, "name", f"groups[{index}]"),
            description=str(entry.get("description") or ""),
        )
        for index, entry in enumerate(_section(raw, "groups"))
    ]

    role_names = _unique([role.name for role in roles], "roles")
    group_names = _unique([group.name for group in groups], "groups")

    instances = []
    for index, entry in enumerate(_section(raw, "appInstances")):
        where = f"appInstances[{index}]"
        display_type = _required_str(entry, "type", where)
        if display_type not in DISPLAY_TYPES:
            raise InstallationDataError(
                f"{where}: type '{display_type}' must be one of {', '.join(sorted(DISPLAY_TYPES))}"
            )
        instance_groups = _str_list(entry, "groups", where)
        unknown = [name for name in instance_groups if name not in group_names]
        if unknown:
            raise InstallationDataError(f"{where}: unknown groups {', '.join(unknown)}")
        instances.append(AppInstanceSpec(
            name=_required_str(entry, "name", where),
            url=_required_str(entry, "url", where),
            type=display_type,
            groups=instance_groups,
        ))
    _unique([instance.name for instance in instances], "appInstances")

    oauth_clients = []
    for index, entry in enumerate(_section(raw, "oauthClients", required=False)):
        where = f"oauthClients[{index}]"
        client_roles = _str_list(entry, "roles", where)
        unknown = [name for name in client_roles if name not in role_names]
        if unknown:
            raise InstallationDataError(f"{where}: unknown roles {', '.join(unknown)}")
        oauth_clients.append(OAuthClientSpec(
            name=_required_str(entry, "name", where),
            roles=client_roles,
            description=str(entry.get("description") or ""),
            authorized_grant_type=str(entry.get("authorizedGrantType") or CLIENT_CREDENTIALS),
        ))
    _unique([oauth_client.name for oauth_client in oauth_clients], "oauthClients")

    return InstallationData(
        roles=tuple(roles),
        groups=tuple(groups),
        app_instances=tuple(instances),
        oauth_clients=tuple(oauth_clients),
    )


def load_installation_data(path: Path) -> InstallationData:
    """Read and validate an installation descriptor file.

    Raises:
        InstallationDataError: If the file is missing, unparsable, or invalid
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle)
    except OSError as exc:
        raise InstallationDataError(f"Cannot read installation data {path}: {exc}") from exc
    except (UnicodeDecodeError, yaml.YAMLError) as exc:
        raise InstallationDataError(f"Invalid installation data {path}: {exc}") from exc
    return parse_installation_data(raw)
