from __future__ import annotations

import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from leavedesk.core.deps import get_current_user
from leavedesk.core.errors import LeaveError
from leavedesk.db.session import get_db
from leavedesk.models.user import User
from leavedesk.schemas.base import ApiResponse
from leavedesk.schemas.leave import (
    LeaveApplyRequest,
    LeaveBalanceRead,
    LeaveDecisionRequest,
    LeaveRequestRead,
    OnLeaveCount,
)
from leavedesk.schemas.summary import MonthlySummary
from leavedesk.services.balances import get_leave_balances
from leavedesk.services.leave import (
    apply_leave,
    count_on_leave,
    decide_leave,
    get_leave_request,
    list_pending_requests,
    list_user_requests,
)
from leavedesk.services.summary import monthly_summary

router = APIRouter(prefix="/api/v1/leave", tags=["leave"])


@router.post("/apply", response_model=ApiResponse[LeaveRequestRead], status_code=status.HTTP_201_CREATED)
def apply(
    leave_in: LeaveApplyRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse[LeaveRequestRead]:
    try:
        leave = apply_leave(
            db,
            user_id=current_user.id,
            leave_type=leave_in.leave_type,
            start_date=leave_in.start_date,
            end_date=leave_in.end_date,
            reason=leave_in.reason,
        )
    except LeaveError:
        db.rollback()
        raise
    db.commit()
    leave = get_leave_request(db, leave.id)
    return ApiResponse(
        message="Leave request submitted successfully",
        data=LeaveRequestRead.model_validate(leave),
    )


@router.get("/pending", response_model=ApiResponse[List[LeaveRequestRead]])
def pending(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse[List[LeaveRequestRead]]:
    leaves = list_pending_requests(db, actor=current_user)
    return ApiResponse(data=[LeaveRequestRead.model_validate(leave) for leave in leaves])


@router.post("/approve/{leave_id}", response_model=ApiResponse[LeaveRequestRead])
def approve(
    leave_id: int,
    decision: LeaveDecisionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse[LeaveRequestRead]:
    try:
        leave = decide_leave(
            db,
            request_id=leave_id,
            actor=current_user,
            action=decision.action,
            comments=decision.comments,
        )
    except LeaveError:
        db.rollback()
        raise
    db.commit()
    leave = get_leave_request(db, leave.id)
    return ApiResponse(
        message=f"Leave request {leave.status.value} successfully",
        data=LeaveRequestRead.model_validate(leave),
    )


@router.get("/balances", response_model=ApiResponse[List[LeaveBalanceRead]])
def balances(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse[List[LeaveBalanceRead]]:
    rows = get_leave_balances(db, current_user.id)
    return ApiResponse(data=[LeaveBalanceRead.model_validate(row) for row in rows])


@router.get("/requests", response_model=ApiResponse[List[LeaveRequestRead]])
def my_requests(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse[List[LeaveRequestRead]]:
    leaves = list_user_requests(db, current_user.id)
    return ApiResponse(data=[LeaveRequestRead.model_validate(leave) for leave in leaves])


@router.get("/on-leave-today", response_model=ApiResponse[OnLeaveCount])
def on_leave_today(
    on_date: Optional[dt.date] = Query(None, alias="date", description="Day to check, defaults to today"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse[OnLeaveCount]:
    day = on_date or dt.datetime.now(dt.timezone.utc).date()
    count = count_on_leave(db, actor=current_user, on_date=day)
    return ApiResponse(data=OnLeaveCount(count=count, date=day))


@router.get("/summary", response_model=ApiResponse[MonthlySummary])
def summary(
    month: Optional[str] = Query(None, description="Month as YYYY-MM, defaults to the current month"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse[MonthlySummary]:
    return ApiResponse(data=monthly_summary(db, month))
