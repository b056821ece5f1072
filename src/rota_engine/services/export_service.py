"""Pay run CSV export."""

from __future__ import annotations

import csv
import io
import logging
from decimal import Decimal
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from rota_engine.calculators.types import LineStatus
from rota_engine.models import PayRun, PayRunLine
from rota_engine.services.authorization import WRITE_ROLES, Actor, require_role
from rota_engine.services.pay_run_service import PayRunService

logger = logging.getLogger(__name__)

EXPORT_COLUMNS: list[tuple[str, str]] = [
    ("Employee Number", "employee_number"),
    ("Staff Name", "staff_name"),
    ("Regular Hours", "regular_hours"),
    ("Overtime Hours", "overtime_hours"),
    ("Total Hours", "total_hours"),
    ("Hourly Rate", "hourly_rate"),
    ("Overtime Rate", "overtime_rate"),
    ("Regular Pay", "regular_pay"),
    ("Overtime Pay", "overtime_pay"),
    ("Adjustments", "adjustments"),
    ("Gross Pay", "gross_pay"),
]

_DECIMAL_FIELDS = {attr for _, attr in EXPORT_COLUMNS[2:]}


def export_filename(run: PayRun) -> str:
    return f"pay-run-{run.pay_period_start.isoformat()}-to-{run.pay_period_end.isoformat()}.csv"


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def export_run_csv(run: PayRun, lines: Iterable[PayRunLine]) -> bytes:
    """Render the included lines of a run as CSV.

    The header row is unquoted; every data cell is quoted. Rows are ordered
    by staff name. Works in any run status and never modifies the run.
    """
    included = sorted(
        (line for line in lines if line.status == LineStatus.INCLUDED.value),
        key=lambda line: (line.staff_name or "", str(line.staff_id)),
    )

    output = io.StringIO()
    csv.writer(output, lineterminator="\n").writerow(
        [header for header, _ in EXPORT_COLUMNS]
    )
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for line in included:
        writer.writerow([_cell(getattr(line, attr)) for _, attr in EXPORT_COLUMNS])

    logger.debug("Rendered %d lines for pay run %s", len(included), run.id)
    return output.getvalue().encode("utf-8")


def parse_export_csv(content: bytes | str) -> list[dict[str, Any]]:
    """Read an exported CSV back into rows keyed by line attribute name.

    Numeric columns come back as Decimal (or None when empty).
    """
    text = content.decode("utf-8") if isinstance(content, bytes) else content
    reader = csv.DictReader(io.StringIO(text))
    header_to_attr = dict(EXPORT_COLUMNS)

    rows: list[dict[str, Any]] = []
    for raw in reader:
        row: dict[str, Any] = {}
        for header, value in raw.items():
            attr = header_to_attr.get(header)
            if attr is None:
                continue
            if attr in _DECIMAL_FIELDS:
                row[attr] = Decimal(value) if value else None
            else:
                row[attr] = value
        rows.append(row)
    return rows


class ExportService:
    """Loads a run for the caller's tenant and renders it for download."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.pay_runs = PayRunService(session)

    async def export_run(self, actor: Actor, run_id: UUID) -> tuple[str, bytes]:
        """Return (filename, csv bytes) for a run."""
        require_role(actor, WRITE_ROLES)
        run = await self.pay_runs.get_run(actor, run_id, load_lines=True)
        content = export_run_csv(run, run.lines)
        logger.info("Exported pay run %s (tenant %s)", run.id, actor.tenant_id)
        return export_filename(run), content
