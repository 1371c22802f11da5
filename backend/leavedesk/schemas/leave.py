from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from leavedesk.models.enums import DecisionAction, LeaveStatus, LeaveType
from leavedesk.schemas.base import ORMModel
from leavedesk.schemas.user import UserSummary


class LeaveApplyRequest(BaseModel):
    # Semantic checks (date order, reason length, past dates) live in the
    # workflow so direct callers get the same errors as the API.
    leave_type: str
    start_date: date
    end_date: date
    reason: str


class LeaveDecisionRequest(BaseModel):
    action: DecisionAction
    comments: Optional[str] = Field(default=None, max_length=500)


class LeaveRequestRead(ORMModel):
    id: int
    user_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    days_requested: int
    reason: str
    status: LeaveStatus
    approver_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    user: Optional[UserSummary] = None
    approver: Optional[UserSummary] = None


class LeaveBalanceRead(ORMModel):
    id: int
    user_id: int
    leave_type: LeaveType
    year: int
    total_days: int
    used_days: int
    remaining_days: int


class OnLeaveCount(BaseModel):
    count: int
    date: dt.date
