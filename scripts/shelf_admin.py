#!/usr/bin/env python3
"""
Maintenance commands for one user's library in Firestore.

Usage:
    python scripts/shelf_admin.py migrate USER_ID path/to/local_state.json
    python scripts/shelf_admin.py backup USER_ID
    python scripts/shelf_admin.py list-backups USER_ID
    python scripts/shelf_admin.py export USER_ID [--out library.json]

Examples:
    python scripts/shelf_admin.py migrate aB3dE9 data/bibliotecaLibrosState_v1_0.json
    python scripts/shelf_admin.py export aB3dE9 --out aB3dE9.json
"""

import sys
import argparse
import asyncio
import json
import logging
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def build_coordinator(user_id: str):
    """Connect to Firestore with the configured credentials."""
    from dotenv import load_dotenv

    load_dotenv(project_root / ".env")

    from shelfsync.config import get_settings
    from shelfsync.services import FirestoreGateway, SyncCoordinator, BackupStore, init_logger

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    app_logger = init_logger(settings=settings)
    gateway = FirestoreGateway.from_settings(settings, logger=app_logger)
    gateway.initialize()

    coordinator = SyncCoordinator(
        user_id,
        gateway,
        backups=BackupStore(gateway, page_size=settings.backup_page_size),
        logger=app_logger,
        backup_version=settings.backup_version,
    )
    return gateway, coordinator


async def cmd_migrate(coordinator, args):
    from shelfsync.services import LegacyStateStore, has_migratable_data

    state = LegacyStateStore(args.file).load()
    if not has_migratable_data(state):
        print(f"Nothing to migrate in {args.file}")
        return 1

    if await coordinator.has_data() and not args.force:
        print("User already has books in Firestore; use --force to overwrite")
        return 1

    await coordinator.migrate_from_local_storage(state)
    print(f"Migrated {len(state['books'])} books and {len(state['sagas'])} sagas")
    return 0


async def cmd_backup(coordinator, args):
    state = await coordinator.load_all_data()
    backup_id = await coordinator.create_backup(state)
    print(f"Backup created: {backup_id}")
    return 0


async def cmd_list_backups(coordinator, args):
    backups = await coordinator.get_backups()
    if not backups:
        print("No backups found")
        return 0

    print(f"{'ID':<24} {'CREATED':<26} {'VERSION':<8} BOOKS")
    for backup in backups:
        books = len(backup.state.get("books") or [])
        print(f"{backup.id:<24} {backup.created_at.isoformat():<26} {backup.version:<8} {books}")
    return 0


async def cmd_export(coordinator, args):
    state = await coordinator.load_all_data()
    payload = json.dumps(state, indent=2, ensure_ascii=False, default=str)
    if args.out:
        Path(args.out).write_text(payload, encoding="utf-8")
        print(f"Exported {len(state['books'])} books to {args.out}")
    else:
        print(payload)
    return 0


COMMANDS = {
    "migrate": cmd_migrate,
    "backup": cmd_backup,
    "list-backups": cmd_list_backups,
    "export": cmd_export,
}


def main():
    parser = argparse.ArgumentParser(description="Shelf Sync maintenance commands")
    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate = subparsers.add_parser("migrate", help="Copy a local state file into Firestore")
    migrate.add_argument("user_id")
    migrate.add_argument("file", help="Local JSON state file")
    migrate.add_argument("--force", action="store_true", help="Overwrite existing cloud data")

    backup = subparsers.add_parser("backup", help="Snapshot the current cloud state")
    backup.add_argument("user_id")

    list_backups = subparsers.add_parser("list-backups", help="Show the newest backups")
    list_backups.add_argument("user_id")

    export = subparsers.add_parser("export", help="Dump the cloud state as JSON")
    export.add_argument("user_id")
    export.add_argument("--out", help="Output file (default: stdout)")

    args = parser.parse_args()

    gateway, coordinator = build_coordinator(args.user_id)
    try:
        exit_code = asyncio.run(COMMANDS[args.command](coordinator, args))
    finally:
        gateway.shutdown()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
