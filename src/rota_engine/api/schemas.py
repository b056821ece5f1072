"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Pay Run schemas
# ============================================================================


class PayPeriodRequest(BaseModel):
    """Period bounds for preview and create. Presence is checked by the service."""

    pay_period_start: date | None = None
    pay_period_end: date | None = None


class PayRunCreate(PayPeriodRequest):
    """Schema for creating a new pay run."""

    notes: str | None = None


class PreviewResponse(BaseModel):
    period_start: date
    period_end: date
    staff_count: int
    total_hours: Decimal
    estimated_gross: Decimal
    unapproved_count: int


class PayRunResponse(BaseModel):
    """Schema for pay run response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    name: str
    notes: str | None = None
    pay_period_start: date
    pay_period_end: date
    status: str
    staff_count: int
    total_hours: Decimal
    total_gross_pay: Decimal
    created_by: UUID | None = None
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    finalised_by: UUID | None = None
    finalised_at: datetime | None = None
    created_at: datetime | None = None


class PayRunLineResponse(BaseModel):
    """Schema for pay run line response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    staff_id: UUID
    employee_number: str
    staff_name: str
    regular_hours: Decimal
    overtime_hours: Decimal
    total_hours: Decimal
    hourly_rate: Decimal | None = None
    overtime_rate: Decimal | None = None
    regular_pay: Decimal
    overtime_pay: Decimal
    adjustments: Decimal
    adjustment_reason: str | None = None
    gross_pay: Decimal
    status: str
    issue: str | None = None
    timesheet_ids: list[str] = Field(default_factory=list)


class PayRunDetailResponse(PayRunResponse):
    lines: list[PayRunLineResponse] = Field(default_factory=list)


class PayRunListResponse(BaseModel):
    """Schema for listing pay runs."""

    items: list[PayRunResponse]
    total: int
    page: int
    page_size: int


class PayRunUpdate(BaseModel):
    """Target status and/or notes. Only fields sent are applied."""

    status: str | None = None
    notes: str | None = None
    reason: str | None = None


class PayRunLineUpdate(BaseModel):
    """Line edit. Only fields sent are applied."""

    adjustments: Decimal | None = None
    adjustment_reason: str | None = None
    status: str | None = None
    hourly_rate: Decimal | None = None
    reason: str | None = None


class PayRunChangeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    pay_run_id: UUID
    pay_run_line_id: UUID | None = None
    field_changed: str
    old_value: str | None = None
    new_value: str | None = None
    reason: str | None = None
    changed_by: UUID | None = None
    created_at: datetime | None = None


class PayRunChangeListResponse(BaseModel):
    items: list[PayRunChangeResponse]
    total: int


class SuggestedPeriodResponse(BaseModel):
    period_start: date
    period_end: date


# ============================================================================
# Schedule schemas
# ============================================================================


class ConflictResponse(BaseModel):
    shift_id: str
    type: str
    severity: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ConflictListResponse(BaseModel):
    week_start: date
    conflicts: list[ConflictResponse]


class ShiftReassign(BaseModel):
    target_staff_id: UUID


class DropCheckRequest(BaseModel):
    shift_id: UUID
    target_staff_id: UUID


class DropDecisionResponse(BaseModel):
    allowed: bool
    reason: str | None = None


class ShiftReassignResponse(DropDecisionResponse):
    shift_id: UUID
    staff_id: UUID


class ShiftCostResponse(BaseModel):
    shift_id: UUID
    staff_id: UUID
    paid_hours: Decimal
    cost: Decimal | None = None


class WeekCostResponse(BaseModel):
    week_start: date
    shifts: list[ShiftCostResponse]
    total_cost: Decimal
    unpriced_count: int


# ============================================================================
# Rate history schemas
# ============================================================================


class RateCreate(BaseModel):
    hourly_rate: Decimal | None = None
    effective_date: date | None = None
    notes: str | None = None


class RateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    staff_id: UUID
    hourly_rate: Decimal
    effective_date: date
    notes: str | None = None
    created_by: UUID | None = None
    created_at: datetime | None = None


class RateHistoryResponse(BaseModel):
    history: list[RateResponse]


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
