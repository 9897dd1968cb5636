"""PureCloud Platform API client library.

This package provides a modular, testable interface to the platform REST API
operations the wizard needs.

Architecture:
- client.py: HTTP client with region hosts, authentication and auto-refresh
- users.py: Current user lookup
- authorization.py: Role creation, assignment and deletion
- groups.py: Group search, creation and deletion
- integrations.py: Integration types and premium app instances
- oauth.py: OAuth client creation and deletion
- exceptions.py: Typed exceptions for error handling

Usage:
    from wizard.core.purecloud import PureCloudClient, RoleService

    client = PureCloudClient("mypurecloud.ie")
    client.authenticate_client_credentials("client-id", "secret")

    roles = RoleService(client).get_roles_by_prefix("PREMIUM_EXAMPLE_")
"""
from .client import (
    PureCloudClient,
    create_client_with_token,
    api_host,
    login_host,
    REQUEST_TIMEOUT,
    DEFAULT_ENVIRONMENT,
)
from .exceptions import (
    PureCloudError,
    PureCloudAPIError,
    ProductNotAvailableError,
    InstallationDataError,
)
from .users import UserService
from .authorization import RoleService
from .groups import GroupService
from .integrations import IntegrationService, build_instance_config, SANDBOX_PERMISSIONS
from .oauth import OAuthClientService

__all__ = [
    # Client
    "PureCloudClient",
    "create_client_with_token",
    "api_host",
    "login_host",
    "REQUEST_TIMEOUT",
    "DEFAULT_ENVIRONMENT",

    # Exceptions
    "PureCloudError",
    "PureCloudAPIError",
    "ProductNotAvailableError",
    "InstallationDataError",

    # Services
    "UserService",
    "RoleService",
    "GroupService",
    "IntegrationService",
    "OAuthClientService",

    # Helpers
    "build_instance_config",
    "SANDBOX_PERMISSIONS",
]
