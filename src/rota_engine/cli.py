"""Rota engine command line interface.

Provides operational tools for:
- Pay run CSV export
- Weekly schedule conflict reports
- Schema creation for development databases

Usage:
    python -m rota_engine.cli export-run --tenant-id X --run-id Y --output run.csv
    python -m rota_engine.cli conflicts --tenant-id X --week-start 2026-01-05
    python -m rota_engine.cli create-tables
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import date
from pathlib import Path
from typing import Callable
from uuid import UUID

from rota_engine.config import configure_logging
from rota_engine.database import dispose_db, get_engine, get_session
from rota_engine.models import Base
from rota_engine.services.authorization import Actor, AuthorizationError
from rota_engine.services.errors import ServiceError
from rota_engine.services.export_service import ExportService, parse_export_csv
from rota_engine.services.schedule_service import ScheduleService
from rota_engine.services.state_machine import InvalidTransitionError


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


def parse_date(s: str) -> date:
    """Parse YYYY-MM-DD date string."""
    return date.fromisoformat(s)


class RotaCli:
    """Rota engine command line interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m rota_engine.cli",
            description="Rota engine operational tools",
        )
        parser.add_argument(
            "--log-level",
            default=None,
            help="Override LOG_LEVEL for this invocation",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # export-run command
        export = subparsers.add_parser(
            "export-run",
            help="Export a pay run's included lines as CSV",
        )
        export.add_argument("--tenant-id", type=parse_uuid, required=True)
        export.add_argument("--run-id", type=parse_uuid, required=True)
        export.add_argument(
            "--output",
            type=Path,
            help="Write to this file (default: the run's export filename)",
        )
        export.add_argument(
            "--role",
            default="admin",
            help="Role to act as (default: admin)",
        )

        # conflicts command
        conflicts = subparsers.add_parser(
            "conflicts",
            help="Report schedule conflicts for a week",
        )
        conflicts.add_argument("--tenant-id", type=parse_uuid, required=True)
        conflicts.add_argument(
            "--week-start",
            type=parse_date,
            required=True,
            help="First day of the week (YYYY-MM-DD)",
        )
        conflicts.add_argument("--role", default="manager")
        conflicts.add_argument(
            "--json",
            action="store_true",
            help="Print conflicts as JSON",
        )
        conflicts.add_argument(
            "--errors-only",
            action="store_true",
            help="Only report blocking conflicts",
        )

        # create-tables command
        create = subparsers.add_parser(
            "create-tables",
            help="Create all tables (development databases only)",
        )
        create.add_argument(
            "--database-url",
            help="Database URL (default: DATABASE_URL)",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)
        configure_logging(parsed.log_level)

        if not parsed.command:
            self.parser.print_help()
            return 1

        # Dispatch to command handler
        handlers: dict[str, Callable[..., int]] = {
            "export-run": self._cmd_export_run,
            "conflicts": self._cmd_conflicts,
            "create-tables": self._cmd_create_tables,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return handler(parsed)
        except (ServiceError, AuthorizationError, InvalidTransitionError) as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    def _cmd_export_run(self, args: argparse.Namespace) -> int:
        """Export a pay run to CSV."""
        actor = Actor(tenant_id=args.tenant_id, role=args.role)

        async def _export() -> tuple[str, bytes]:
            try:
                async with get_session() as session:
                    return await ExportService(session).export_run(actor, args.run_id)
            finally:
                await dispose_db()

        filename, content = asyncio.run(_export())
        output: Path = args.output or Path(filename)
        output.write_bytes(content)

        rows = parse_export_csv(content)
        total = sum((row["gross_pay"] for row in rows if row["gross_pay"] is not None), start=0)
        print(f"Exported {len(rows)} lines to {output}")
        print(f"  Total gross: {total:,.2f}")
        return 0

    def _cmd_conflicts(self, args: argparse.Namespace) -> int:
        """Print conflicts for a week. Exit status 2 when any conflict blocks."""
        actor = Actor(tenant_id=args.tenant_id, role=args.role)

        async def _load():
            try:
                async with get_session() as session:
                    return await ScheduleService(session).conflicts_for_week(actor, args.week_start)
            finally:
                await dispose_db()

        conflicts = asyncio.run(_load())
        if args.errors_only:
            conflicts = [c for c in conflicts if c.is_blocking]

        if args.json:
            print(json.dumps([c.to_dict() for c in conflicts], indent=2))
        else:
            print(f"Week of {args.week_start.isoformat()}: {len(conflicts)} conflict(s)")
            for conflict in conflicts:
                print(
                    f"  [{conflict.severity.value:<7}] {conflict.type.value:<20} "
                    f"shift {conflict.shift_id}: {conflict.message}"
                )

        return 2 if any(c.is_blocking for c in conflicts) else 0

    def _cmd_create_tables(self, args: argparse.Namespace) -> int:
        """Create every table defined by the ORM models."""

        async def _create() -> None:
            engine = get_engine(args.database_url)
            try:
                async with engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
            finally:
                await engine.dispose()

        asyncio.run(_create())
        print(f"Created {len(Base.metadata.tables)} tables")
        return 0


def main() -> int:
    """CLI entry point."""
    cli = RotaCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
