"""Role-based validation for moving a shift onto another staff member.

Every reassignment path goes through can_drop_shift so the rule lives in one
place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Collection
from uuid import UUID


class DropReason(str, Enum):
    SAME_STAFF = "SAME_STAFF"
    MISSING_ROLE = "MISSING_ROLE"
    NO_ROLES = "NO_ROLES"
    ROLE_MISMATCH = "ROLE_MISMATCH"


@dataclass(frozen=True)
class DropDecision:
    allowed: bool
    reason: DropReason | None = None


def can_drop_shift(
    shift_role_id: UUID | str | None,
    source_staff_id: UUID | str,
    target_staff_id: UUID | str,
    target_staff_role_ids: Collection[UUID | str],
    role_exists: bool | None = None,
) -> DropDecision:
    """Decide whether a shift may be reassigned to target_staff_id.

    Rules, first match wins:
    1. Same staff member: allowed (SAME_STAFF)
    2. Shift has no role: allowed
    3. Shift role deleted or inactive (role_exists is False): allowed (MISSING_ROLE)
    4. Target has no roles: refused (NO_ROLES)
    5. Allowed only if the target holds the shift's role, else ROLE_MISMATCH
    """
    if source_staff_id == target_staff_id:
        return DropDecision(True, DropReason.SAME_STAFF)

    if not shift_role_id:
        return DropDecision(True)

    if role_exists is False:
        return DropDecision(True, DropReason.MISSING_ROLE)

    if not target_staff_role_ids:
        return DropDecision(False, DropReason.NO_ROLES)

    if shift_role_id in target_staff_role_ids:
        return DropDecision(True)
    return DropDecision(False, DropReason.ROLE_MISMATCH)
