"""Payroll and scheduling services."""

from rota_engine.services.authorization import Actor, AuthorizationError
from rota_engine.services.errors import (
    DuplicatePayRunError,
    DuplicateRateError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from rota_engine.services.export_service import ExportService, export_run_csv, parse_export_csv
from rota_engine.services.pay_run_service import PayRunPreview, PayRunService
from rota_engine.services.rate_history_service import RateHistoryService
from rota_engine.services.schedule_service import ScheduleService
from rota_engine.services.state_machine import (
    InvalidTransitionError,
    PayRunNotEditableError,
    PayRunStateMachine,
    PayRunStatus,
)

__all__ = [
    "Actor",
    "AuthorizationError",
    "DuplicatePayRunError",
    "DuplicateRateError",
    "ExportService",
    "InvalidTransitionError",
    "NotFoundError",
    "PayRunNotEditableError",
    "PayRunPreview",
    "PayRunService",
    "PayRunStateMachine",
    "PayRunStatus",
    "RateHistoryService",
    "ScheduleService",
    "ServiceError",
    "ValidationError",
    "export_run_csv",
    "parse_export_csv",
]
