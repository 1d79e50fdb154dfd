"""Operational helpers for the user store and metadata write-back.

This module serves as a CLI wrapper around usersync.core services.
"""
from __future__ import annotations
import argparse
import os
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from usersync.config.settings import DEFAULT_DATABASE_URL, DEFAULT_IDENTITY_API_URL
from usersync.core import audit
from usersync.core.exceptions import PublishError, StoreError
from usersync.core.identity import IdentityProviderClient
from usersync.core.publisher import MetadataPublisher
from usersync.core.store import UserStore


def publish_metadata(store: UserStore, publisher: MetadataPublisher, external_id: str | None) -> int:
    """Re-run metadata write-back for one user (or all users).

    Returns:
        Number of failed publishes
    """
    if external_id:
        record = store.get(external_id)
        if record is None:
            print(f"[publish] Error: no user with external id '{external_id}'", file=sys.stderr)
            return 1
        records = [record]
    else:
        records = store.list_users()

    failures = 0
    for record in records:
        try:
            publisher.publish(record.id, record.external_id)
            audit.safe_log_sync_event(
                "metadata_published",
                record.external_id,
                details={"user_id": record.id, "operator": "cli"},
            )
            print(f"[publish] {record.external_id} -> {record.id}", file=sys.stderr)
        except PublishError as e:
            failures += 1
            audit.safe_log_sync_event(
                "metadata_publish_failed",
                record.external_id,
                details={"user_id": record.id, "operator": "cli", "error": e.message},
                success=False,
            )
            print(f"[publish] Error: {e.message}", file=sys.stderr)
    return failures


def main() -> None:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="usersync maintenance helper")
    parser.add_argument("--database-url", default=os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL))
    parser.add_argument("--api-url", default=os.environ.get("CLERK_API_URL", DEFAULT_IDENTITY_API_URL))
    parser.add_argument("--secret-key", default=os.environ.get("CLERK_SECRET_KEY"))
    parser.add_argument("--metadata-key", default=os.environ.get("CLERK_METADATA_KEY", "userId"))

    sub = parser.add_subparsers(dest="cmd")

    sub.add_parser("init-db")

    sp = sub.add_parser("publish-metadata")
    target = sp.add_mutually_exclusive_group(required=True)
    target.add_argument("--external-id")
    target.add_argument("--all", action="store_true")

    sub.add_parser("verify-audit")

    args = parser.parse_args()

    if not args.cmd:
        parser.print_help()
        return

    if args.cmd == "verify-audit":
        total, valid = audit.verify_audit_log()
        print(f"Audit log: {valid}/{total} events with valid signatures")
        sys.exit(0 if total == valid else 1)

    if args.cmd == "publish-metadata" and not args.secret_key:
        parser.error("Missing identity provider secret key (--secret-key or CLERK_SECRET_KEY)")

    store = UserStore(args.database_url)

    try:
        if args.cmd == "init-db":
            store.create_schema()
            print("[init-db] users table ready", file=sys.stderr)
        elif args.cmd == "publish-metadata":
            client = IdentityProviderClient(args.api_url, args.secret_key)
            publisher = MetadataPublisher(client, metadata_key=args.metadata_key)
            failures = publish_metadata(store, publisher, None if args.all else args.external_id)
            if failures:
                sys.exit(1)
        else:
            parser.print_help()
    except StoreError as e:
        print(f"[{args.cmd}] Error: {e.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
