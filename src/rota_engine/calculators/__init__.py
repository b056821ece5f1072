"""Payroll calculation pipeline."""

from rota_engine.calculators.aggregator import TimesheetAggregator, aggregate_entries
from rota_engine.calculators.engine import GeneratedRun, PayRunGenerator, build_run_name
from rota_engine.calculators.line_builder import PayLineCalculator
from rota_engine.calculators.rate_resolver import RateResolver, resolve_rate

__all__ = [
    "GeneratedRun",
    "PayLineCalculator",
    "PayRunGenerator",
    "RateResolver",
    "TimesheetAggregator",
    "aggregate_entries",
    "build_run_name",
    "resolve_rate",
]
