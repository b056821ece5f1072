"""Tests for effective-dated rate resolution."""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from rota_engine.calculators.rate_resolver import RateResolver, group_rates, resolve_rate
from rota_engine.calculators.types import RateRecord


def _history(staff_id, *pairs):
    return [
        RateRecord(staff_id=staff_id, hourly_rate=Decimal(rate), effective_date=day)
        for rate, day in pairs
    ]


class TestResolveRate:
    """Test the pure resolver over a sorted history."""

    def test_picks_latest_rate_on_or_before_date(self):
        staff_id = uuid4()
        rates = _history(
            staff_id,
            ("12.00", date(2025, 1, 1)),
            ("13.50", date(2025, 6, 1)),
            ("15.00", date(2026, 1, 1)),
        )

        assert resolve_rate(rates, date(2025, 3, 15)) == Decimal("12.00")
        assert resolve_rate(rates, date(2025, 6, 1)) == Decimal("13.50")
        assert resolve_rate(rates, date(2025, 12, 31)) == Decimal("13.50")
        assert resolve_rate(rates, date(2026, 2, 1)) == Decimal("15.00")

    def test_none_before_first_rate(self):
        """Dates before the earliest record never fall back to zero."""
        rates = _history(uuid4(), ("12.00", date(2025, 1, 1)))

        assert resolve_rate(rates, date(2024, 12, 31)) is None

    def test_empty_history(self):
        assert resolve_rate([], date(2025, 1, 1)) is None

    def test_accepts_datetime(self):
        rates = _history(uuid4(), ("12.00", date(2025, 1, 1)), ("14.00", date(2025, 2, 1)))

        shift_start = datetime(2025, 2, 1, 9, 0, tzinfo=timezone.utc)
        assert resolve_rate(rates, shift_start) == Decimal("14.00")

    def test_group_rates_keeps_order_per_staff(self):
        alice, bob = uuid4(), uuid4()
        records = _history(alice, ("10", date(2025, 1, 1)), ("11", date(2025, 2, 1))) + _history(
            bob, ("20", date(2025, 1, 1))
        )

        grouped = group_rates(records)

        assert [r.hourly_rate for r in grouped[alice]] == [Decimal("10"), Decimal("11")]
        assert [r.hourly_rate for r in grouped[bob]] == [Decimal("20")]


class TestRateResolverBatch:
    """Test batch loading from the database."""

    async def test_batch_loads_histories_up_to_ceiling(self, session, seed):
        alice = await seed.staff("Alice")
        bob = await seed.staff("Bob")
        await seed.rate(alice, "12.00", date(2025, 1, 1))
        await seed.rate(alice, "13.00", date(2025, 7, 1))
        await seed.rate(alice, "99.00", date(2026, 1, 1))
        await seed.rate(bob, "20.00", date(2025, 3, 1))

        histories = await RateResolver(session).resolve_rates_batch(
            [alice.id, bob.id], date(2025, 12, 31)
        )

        assert [r.effective_date for r in histories[alice.id]] == [
            date(2025, 1, 1),
            date(2025, 7, 1),
        ]
        assert len(histories[bob.id]) == 1

    async def test_empty_input_returns_empty_mapping(self, session):
        assert await RateResolver(session).resolve_rates_batch([], date(2025, 1, 1)) == {}

    async def test_resolve_for_staff(self, session, seed):
        alice = await seed.staff("Alice")
        await seed.rate(alice, "12.00", date(2025, 1, 1))
        await seed.rate(alice, "13.00", date(2025, 7, 1))

        resolver = RateResolver(session)

        assert await resolver.resolve_for_staff(alice.id, date(2025, 6, 30)) == Decimal("12.00")
        assert await resolver.resolve_for_staff(alice.id, date(2025, 7, 1)) == Decimal("13.00")
        assert await resolver.resolve_for_staff(uuid4(), date(2025, 7, 1)) is None
