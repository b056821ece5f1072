"""Schedule consistency checks."""

from rota_engine.scheduling.conflict_detector import (
    AvailabilityWindow,
    Conflict,
    ConflictSeverity,
    ConflictType,
    ShiftRecord,
    WorkingTimeRules,
    detect_availability_conflicts,
    detect_conflicts,
    detect_working_time_conflicts,
)
from rota_engine.scheduling.role_validation import DropDecision, DropReason, can_drop_shift

__all__ = [
    "AvailabilityWindow",
    "Conflict",
    "ConflictSeverity",
    "ConflictType",
    "DropDecision",
    "DropReason",
    "ShiftRecord",
    "WorkingTimeRules",
    "can_drop_shift",
    "detect_availability_conflicts",
    "detect_conflicts",
    "detect_working_time_conflicts",
]
