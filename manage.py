#!/usr/bin/env python3
"""
Workshop ledger management CLI.

Usage:
    python manage.py migrate              Apply pending schema migrations
    python manage.py migrate --status     Show applied and pending migrations
    python manage.py migrate --verify     Check schema, triggers and integrity
    python manage.py serve                Start the API server
    python manage.py check-consistency    Compare cached stock with the ledger
    python manage.py sync-purchases       Book missing receipts for received purchases
"""

import argparse
import asyncio
import sys
from pathlib import Path

from workshop.config import configure_logging, get_settings


def cmd_migrate(args: argparse.Namespace) -> None:
    """Apply migrations, or report status / verify integrity."""
    from workshop.infrastructure.storage.sqlite.migrations import (
        get_migration_status,
        initialize_database,
        verify_schema_integrity,
    )

    async def run() -> int:
        if args.status:
            status = await get_migration_status(args.db_path)
            print(f"Database exists: {status['exists']}")
            print(f"Current version: {status.get('current_version') or 'N/A'}")
            print(f"Applied migrations: {status.get('applied_migrations', [])}")
            print(f"Pending migrations: {status.get('pending_migrations', [])}")
            return 0

        if args.verify:
            checks = await verify_schema_integrity(args.db_path)
            failed = 0
            for check in checks:
                print(f"[{check['status']}] {check['check']}")
                if check["status"] != "PASS":
                    failed += 1
                    for key, value in check.items():
                        if key not in ("check", "status"):
                            print(f"       {key}: {value}")
            return 1 if failed else 0

        results = await initialize_database(
            args.db_path,
            create_backup_before=not args.no_backup,
        )
        if not results:
            print("Database is up to date.")
        for result in results:
            status = "SUCCESS" if result.success else "FAILED"
            print(f"[{status}] v{result.version}: {result.name} ({result.execution_time_ms}ms)")
            if result.error:
                print(f"         Error: {result.error}")
        return 0 if all(r.success for r in results) else 1

    sys.exit(asyncio.run(run()))


def cmd_serve(args: argparse.Namespace) -> None:
    """Start uvicorn in this process. SQLite allows one writer process, so no workers."""
    import uvicorn

    print(f"Starting server on {args.host}:{args.port}...")
    uvicorn.run(
        "workshop.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


def cmd_check_consistency(args: argparse.Namespace) -> None:
    """Print drifted materials and exit non-zero if any were found."""
    from workshop.application.use_cases import CheckStockConsistencyUseCase
    from workshop.infrastructure.storage.sqlite import close_pool

    async def run() -> int:
        try:
            use_case = CheckStockConsistencyUseCase()
            result = await use_case.execute(args.material_id)
        finally:
            await close_pool()

        shown = result.reports if args.all else result.drifted
        for report in shown:
            state = "OK" if report.in_sync(result.tolerance) else "DRIFT"
            print(
                f"[{state}] material {report.material_id}: "
                f"cached={report.cached} ledger={report.computed} diff={report.difference}"
            )
        print(f"Checked {len(result.reports)} material(s), {len(result.drifted)} drifted.")
        return 0 if result.ok else 1

    sys.exit(asyncio.run(run()))


def cmd_sync_purchases(args: argparse.Namespace) -> None:
    """Create ledger movements for received purchases that lack one."""
    from workshop.application.use_cases import SyncPurchaseReceiptsUseCase
    from workshop.infrastructure.storage.sqlite import close_pool

    async def run() -> int:
        try:
            result = await SyncPurchaseReceiptsUseCase().execute()
        finally:
            await close_pool()

        print(
            f"Received purchases: {result.total}, created: {result.created}, "
            f"already booked: {result.skipped}, errors: {len(result.errors)}"
        )
        for error in result.errors:
            print(f"  purchase {error['purchase_id']}: [{error['error']}] {error['message']}")
        return 1 if result.errors else 0

    sys.exit(asyncio.run(run()))


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Workshop ledger management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # migrate
    p_migrate = sub.add_parser("migrate", help="Apply schema migrations")
    p_migrate.add_argument("--db-path", type=Path, help="Database path (default from settings)")
    p_migrate.add_argument("--status", action="store_true", help="Show migration status")
    p_migrate.add_argument("--verify", action="store_true", help="Verify schema integrity")
    p_migrate.add_argument("--no-backup", action="store_true", help="Skip backup before migrations")
    p_migrate.set_defaults(func=cmd_migrate)

    # serve
    settings = get_settings()
    p_serve = sub.add_parser("serve", help="Start the API server")
    p_serve.add_argument("--host", default=settings.api.host, help=f"Bind host (default: {settings.api.host})")
    p_serve.add_argument("--port", type=int, default=settings.api.port, help=f"Bind port (default: {settings.api.port})")
    p_serve.add_argument("--reload", action="store_true", help="Reload on code changes")
    p_serve.set_defaults(func=cmd_serve)

    # check-consistency
    p_check = sub.add_parser("check-consistency", help="Compare cached stock with the ledger")
    p_check.add_argument("--material-id", type=int, help="Check a single material")
    p_check.add_argument("--all", action="store_true", help="Also list materials that are in sync")
    p_check.set_defaults(func=cmd_check_consistency)

    # sync-purchases
    p_sync = sub.add_parser("sync-purchases", help="Book missing receipts for received purchases")
    p_sync.set_defaults(func=cmd_sync_purchases)

    args = parser.parse_args()
    configure_logging()
    args.func(args)


if __name__ == "__main__":
    main()
