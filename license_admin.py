#!/usr/bin/env python3
"""
Command-line license administration for NextCap.

Talks to the admin API of a running license server.

Usage:
    export ADMIN_PASSWORD="..."
    python license_admin.py list
    python license_admin.py create --holder "Ada Lovelace" --email ada@example.com \\
        --expires 2027-01-31T23:59:59Z
    python license_admin.py deactivate 12
    python license_admin.py activate 12
    python license_admin.py delete 12
"""

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

import requests

from capture_client.utils.api_client import AdminClient, describe_http_error
from config import get_config

logger = logging.getLogger(__name__)


def _format_row(row: dict) -> str:
    active = "active" if row.get("is_active") else "inactive"
    expires = row.get("expires_at") or "never"
    return (
        f"{row.get('id'):>5}  {row.get('key')}  {active:<8}  "
        f"expires {expires}  {row.get('holder_name')} <{row.get('email')}>"
    )


def build_parser() -> argparse.ArgumentParser:
    config = get_config()
    parser = argparse.ArgumentParser(
        description="Manage NextCap license keys",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Issue a license that never expires
  python license_admin.py create --holder "Acme Corp" --email ops@acme.test

  # Machine-readable listing
  python license_admin.py list --json
        """,
    )
    parser.add_argument(
        "--server",
        default=config.client.server_url,
        help=f"License server URL (default: {config.client.server_url})",
    )
    parser.add_argument(
        "--password",
        default=os.environ.get("ADMIN_PASSWORD", ""),
        help="Admin password (or set ADMIN_PASSWORD env var)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="output_json",
        help="Output as JSON",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("list", help="List licenses, newest first")

    create = commands.add_parser("create", help="Issue a new license")
    create.add_argument("--holder", required=True, help="Holder name")
    create.add_argument("--email", required=True, help="Contact email")
    create.add_argument("--expires", help="Expiry instant, ISO 8601 (default: never)")

    for name, help_text in (
        ("activate", "Re-enable a license"),
        ("deactivate", "Disable a license without deleting it"),
        ("delete", "Delete a license permanently"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("license_id", type=int, help="License id as shown by 'list'")

    return parser


def run(args: argparse.Namespace) -> int:
    client = AdminClient(args.server, args.password, timeout=get_config().client.timeout)

    if args.command == "list":
        rows = client.list_licenses()
        if args.output_json:
            print(json.dumps(rows, indent=2))
        else:
            for row in rows:
                print(_format_row(row))
            print(f"{len(rows)} license(s)", file=sys.stderr)
    elif args.command == "create":
        record = client.create_license(args.holder, args.email, expires_at=args.expires)
        print(json.dumps(record, indent=2) if args.output_json else record["key"])
    elif args.command in ("activate", "deactivate"):
        client.set_active(args.license_id, args.command == "activate")
        print(f"License {args.license_id} {args.command}d", file=sys.stderr)
    elif args.command == "delete":
        client.delete_license(args.license_id)
        print(f"License {args.license_id} deleted", file=sys.stderr)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    args = build_parser().parse_args(argv)

    if not args.password:
        print(
            "ERROR: No admin password provided. Use --password or set "
            "ADMIN_PASSWORD environment variable.",
            file=sys.stderr,
        )
        return 1

    try:
        return run(args)
    except requests.RequestException as e:
        print(f"ERROR: {describe_http_error(e)}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
