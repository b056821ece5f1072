"""Overtime policy resolution and overtime rate calculation."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from rota_engine.calculators.types import OvertimeBasis, OvertimePolicy, OvertimeRuleType

if TYPE_CHECKING:
    from rota_engine.models import Staff, TenantPayrollSettings


# Monthly uses a fixed x4 rather than average weeks per month, which keeps
# thresholds whole and matches common payroll practice.
PERIOD_THRESHOLD_FACTORS: dict[str, int] = {
    "weekly": 1,
    "fortnightly": 2,
    "semi_monthly": 2,
    "monthly": 4,
}


def contracted_threshold(
    weekly_hours: Decimal | None,
    pay_frequency: str | None,
) -> Decimal | None:
    """Scale a weekly contracted-hours figure to a whole pay period."""
    if weekly_hours is None or weekly_hours <= 0:
        return None
    factor = PERIOD_THRESHOLD_FACTORS.get(pay_frequency or "weekly", 1)
    return weekly_hours * factor


def resolve_overtime_policy(
    staff: Staff,
    settings: TenantPayrollSettings | None,
    default_multiplier: Decimal = Decimal("1.5"),
) -> OvertimePolicy:
    """Combine tenant payroll settings with a staff member's overrides.

    Staff contracted hours win over the tenant threshold, and a staff
    multiplier or flat extra wins over the tenant multiplier.
    """
    basis = OvertimeBasis(settings.overtime_basis) if settings else OvertimeBasis.WEEKLY
    pay_frequency = settings.pay_frequency if settings else "weekly"
    week_starts_on = settings.week_starts_on if settings else 0
    tenant_multiplier = (
        Decimal(settings.overtime_multiplier) if settings else default_multiplier
    )

    weekly_threshold = staff.contracted_weekly_hours
    if weekly_threshold is None and settings is not None:
        weekly_threshold = settings.overtime_threshold_hours

    threshold: Decimal | None
    if basis == OvertimeBasis.PERIOD:
        threshold = contracted_threshold(weekly_threshold, pay_frequency)
    else:
        threshold = weekly_threshold if weekly_threshold and weekly_threshold > 0 else None

    rule_type = OvertimeRuleType(staff.overtime_rule_type or OvertimeRuleType.MULTIPLIER.value)
    multiplier = tenant_multiplier
    if rule_type == OvertimeRuleType.MULTIPLIER and staff.overtime_multiplier is not None:
        multiplier = Decimal(staff.overtime_multiplier)

    flat_extra: Decimal | None = None
    if staff.overtime_flat_extra is not None:
        flat_extra = Decimal(staff.overtime_flat_extra)
    elif rule_type == OvertimeRuleType.FLAT_EXTRA:
        # Flat-extra staff with no amount set are paid overtime at base rate
        flat_extra = Decimal("0")

    return OvertimePolicy(
        enabled=bool(staff.overtime_enabled),
        threshold_hours=Decimal(threshold) if threshold is not None else None,
        basis=basis,
        rule_type=rule_type,
        multiplier=multiplier,
        flat_extra=flat_extra,
        week_starts_on=week_starts_on,
    )
