"""Tests for overtime policy resolution."""

from decimal import Decimal
from types import SimpleNamespace

from rota_engine.calculators.line_builder import PayLineCalculator
from rota_engine.calculators.overtime import contracted_threshold, resolve_overtime_policy
from rota_engine.calculators.types import OvertimeBasis, OvertimeRuleType


def _staff(**kwargs):
    defaults = {
        "contracted_weekly_hours": None,
        "overtime_enabled": True,
        "overtime_rule_type": None,
        "overtime_multiplier": None,
        "overtime_flat_extra": None,
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def _settings(**kwargs):
    defaults = {
        "overtime_basis": "weekly",
        "pay_frequency": "weekly",
        "week_starts_on": 0,
        "overtime_multiplier": Decimal("1.5"),
        "overtime_threshold_hours": Decimal("40"),
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


class TestContractedThreshold:
    def test_scales_by_frequency(self):
        assert contracted_threshold(Decimal("37.5"), "weekly") == Decimal("37.5")
        assert contracted_threshold(Decimal("37.5"), "fortnightly") == Decimal("75.0")
        assert contracted_threshold(Decimal("40"), "semi_monthly") == Decimal("80")
        assert contracted_threshold(Decimal("40"), "monthly") == Decimal("160")

    def test_missing_or_zero_hours(self):
        assert contracted_threshold(None, "weekly") is None
        assert contracted_threshold(Decimal("0"), "monthly") is None


class TestResolveOvertimePolicy:
    def test_tenant_defaults(self):
        policy = resolve_overtime_policy(_staff(), _settings())

        assert policy.applies
        assert policy.threshold_hours == Decimal("40")
        assert policy.multiplier == Decimal("1.5")
        assert policy.basis == OvertimeBasis.WEEKLY

    def test_staff_contracted_hours_override_tenant_threshold(self):
        policy = resolve_overtime_policy(
            _staff(contracted_weekly_hours=Decimal("30")), _settings()
        )

        assert policy.threshold_hours == Decimal("30")

    def test_period_basis_scales_threshold(self):
        policy = resolve_overtime_policy(
            _staff(contracted_weekly_hours=Decimal("30")),
            _settings(overtime_basis="period", pay_frequency="fortnightly"),
        )

        assert policy.threshold_hours == Decimal("60")
        assert policy.basis == OvertimeBasis.PERIOD

    def test_staff_multiplier_override(self):
        policy = resolve_overtime_policy(
            _staff(overtime_rule_type="multiplier", overtime_multiplier=Decimal("2.0")),
            _settings(),
        )

        assert policy.multiplier == Decimal("2.0")
        assert policy.rule_type == OvertimeRuleType.MULTIPLIER

    def test_flat_extra_rule(self):
        policy = resolve_overtime_policy(
            _staff(overtime_rule_type="flat_extra", overtime_flat_extra=Decimal("3.00")),
            _settings(),
        )

        assert policy.rule_type == OvertimeRuleType.FLAT_EXTRA
        assert policy.flat_extra == Decimal("3.00")

    def test_flat_extra_rule_without_amount_pays_base_rate(self):
        policy = resolve_overtime_policy(_staff(overtime_rule_type="flat_extra"), _settings())

        assert policy.flat_extra == Decimal("0")
        assert PayLineCalculator.overtime_rate_for(
            Decimal("12.00"), policy.multiplier, policy.flat_extra
        ) == Decimal("12.0000")

    def test_no_settings_uses_default_multiplier_and_no_threshold(self):
        policy = resolve_overtime_policy(_staff(), None, Decimal("1.75"))

        assert policy.multiplier == Decimal("1.75")
        assert policy.threshold_hours is None
        assert not policy.applies

    def test_disabled_staff(self):
        policy = resolve_overtime_policy(_staff(overtime_enabled=False), _settings())

        assert not policy.applies
