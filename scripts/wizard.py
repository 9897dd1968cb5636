"""Command-line premium app wizard: check, install and clear the app's platform objects.

This module serves as a CLI wrapper around wizard.core.provisioning_service.
"""
from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from pathlib import Path

import requests

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from wizard.config.settings import DEFAULT_INSTALLATION_DATA
from wizard.core.installation_data import load_installation_data
from wizard.core.provisioning_service import PremiumAppWizard
from wizard.core.purecloud import (
    PureCloudClient,
    PureCloudAPIError,
    ProductNotAvailableError,
    InstallationDataError,
)
from scripts import audit


def build_client(environment: str, client_id: str | None, client_secret: str | None, access_token: str | None) -> PureCloudClient:
    """Create an authenticated platform client from CLI credentials."""
    client = PureCloudClient(environment)
    if access_token:
        client.set_access_token(access_token)
    else:
        client.authenticate_client_credentials(client_id, client_secret)
    return client


def _progress(tag: str):
    def _emit(message: str) -> None:
        print(f"[{tag}] {message}", file=sys.stderr)
    return _emit


def main() -> None:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Premium app provisioning wizard")
    parser.add_argument("--environment", default=os.environ.get("PURECLOUD_ENVIRONMENT", "mypurecloud.com"),
                        help="Platform environment, e.g. mypurecloud.ie")
    parser.add_argument("--prefix", default=os.environ.get("WIZARD_PREFIX", "PREMIUM_EXAMPLE_"))
    parser.add_argument("--app-name", default=os.environ.get("WIZARD_APP_NAME", "premium-app-example"),
                        help="Integration type id of the premium app")
    parser.add_argument("--client-id", default=os.environ.get("PURECLOUD_CLIENT_ID"))
    parser.add_argument("--client-secret", default=os.environ.get("PURECLOUD_CLIENT_SECRET"))
    parser.add_argument("--access-token", default=os.environ.get("PURECLOUD_ACCESS_TOKEN"),
                        help="Token from the hosted login, used instead of client credentials")
    parser.add_argument("--installation-data",
                        default=os.environ.get("WIZARD_INSTALLATION_DATA") or str(DEFAULT_INSTALLATION_DATA))
    parser.add_argument("--max-workers", type=int, default=int(os.environ.get("WIZARD_MAX_WORKERS", "4")))
    parser.add_argument("--operator", default="automation",
                        help="Operator identifier for audit logs (default: automation)")
    parser.add_argument("--log-level", default=os.environ.get("LOG_LEVEL", "WARNING"))

    sub = parser.add_subparsers(dest="cmd")

    sub.add_parser("status", help="List objects carrying the prefix")
    sub.add_parser("check-product", help="Check the premium app is available in the org")

    si = sub.add_parser("install", help="Create roles, groups, app instances and OAuth clients")
    si.add_argument("--force", action="store_true", help="Install even if prefixed objects already exist")

    sc = sub.add_parser("clear", help="Delete every object carrying the prefix")
    sc.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")

    args = parser.parse_args()

    if not args.cmd:
        parser.print_help()
        return

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if not args.prefix:
        parser.error("--prefix must not be empty")
    if not args.access_token and not (args.client_id and args.client_secret):
        parser.error("Provide --access-token or both --client-id and --client-secret")

    try:
        installation_data = load_installation_data(args.installation_data)
    except InstallationDataError as e:
        print(f"[wizard] Error: {e}", file=sys.stderr)
        sys.exit(2)

    if args.cmd == "clear" and not args.yes:
        answer = input(f"Delete every object whose name starts with '{args.prefix}'? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("[clear] Aborted", file=sys.stderr)
            sys.exit(1)

    try:
        client = build_client(args.environment, args.client_id, args.client_secret, args.access_token)
        wizard = PremiumAppWizard(
            client,
            args.prefix,
            args.app_name,
            installation_data,
            on_progress=_progress(args.cmd),
            max_workers=args.max_workers,
        )

        if args.cmd == "status":
            existing = wizard.existing_objects()
            print(json.dumps({
                kind: [entity.get("name") for entity in entities]
                for kind, entities in existing.items()
            }, indent=2))
        elif args.cmd == "check-product":
            available = wizard.validate_product_availability()
            print("available" if available else "not available")
            if not available:
                sys.exit(1)
        elif args.cmd == "install":
            wizard.require_product()
            if not args.force and wizard.is_existing():
                print(f"[install] Error: objects prefixed '{args.prefix}' already exist; run clear first or pass --force",
                      file=sys.stderr)
                sys.exit(1)
            report = wizard.install()
            audit.safe_log_provisioning_event(
                "install",
                args.prefix,
                operator=args.operator,
                environment=client.environment,
                details=report.to_dict(),
                success=report.success,
            )
            print(json.dumps(report.to_dict(), indent=2))
            if not report.success:
                sys.exit(1)
        elif args.cmd == "clear":
            report = wizard.clear_configurations()
            audit.safe_log_provisioning_event(
                "clear",
                args.prefix,
                operator=args.operator,
                environment=client.environment,
                details=report.to_dict(),
                success=report.success,
            )
            print(json.dumps(report.to_dict(), indent=2))
            if not report.success:
                sys.exit(1)
        else:
            parser.print_help()
    except (PureCloudAPIError, ProductNotAvailableError, requests.RequestException) as e:
        print(f"[{args.cmd}] Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
