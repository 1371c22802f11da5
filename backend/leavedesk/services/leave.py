from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Set

from sqlalchemy.orm import Session, selectinload

from leavedesk.core import rbac
from leavedesk.core.errors import (
    AlreadyProcessed,
    InsufficientBalanceError,
    LeaveError,
    NotFound,
    OverlapError,
    PastDateError,
    ValidationError,
)
from leavedesk.core.observability import leave_decisions_total, leave_rejections_total, leave_requests_submitted_total
from leavedesk.core.settings import settings
from leavedesk.db.base import utcnow
from leavedesk.models.enums import DecisionAction, LeaveStatus, LeaveType
from leavedesk.models.leave import LeaveRequest
from leavedesk.models.user import User
from leavedesk.services.leave_validation import (
    as_date,
    balance_covers,
    get_balance,
    has_overlap,
    inclusive_day_count,
    validate_date_range,
)

logger = logging.getLogger("leavedesk.leave")


def _today() -> date:
    return datetime.now(timezone.utc).date()


def resolve_balance_year(start_date: date, today: Optional[date] = None) -> int:
    """Year of the balance a request is charged against.

    The default ``current`` policy uses the calendar year at evaluation
    time, so a request spanning New Year is checked against this year only.
    """
    if settings.leave_balance_year_policy == "request_start":
        return start_date.year
    return (today or _today()).year


def _refuse(exc: LeaveError, **extra) -> LeaveError:
    leave_rejections_total.labels(kind=exc.kind).inc()
    logger.info("leave_refused", extra={"kind": exc.kind, **extra})
    return exc


def _coerce_leave_type(value: LeaveType | str | None) -> Optional[LeaveType]:
    if isinstance(value, LeaveType):
        return value
    try:
        return LeaveType(value)
    except ValueError:
        return None


def _coerce_action(value: DecisionAction | str) -> DecisionAction:
    if isinstance(value, DecisionAction):
        return value
    try:
        return DecisionAction(value)
    except ValueError:
        raise ValidationError(errors={"action": ["The selected action is invalid."]})


def _validate_application(
    leave_type: LeaveType | str | None,
    start_date: Optional[date],
    end_date: Optional[date],
    reason: Optional[str],
) -> tuple[LeaveType, date, date, str]:
    errors: Dict[str, List[str]] = {}

    coerced_type = _coerce_leave_type(leave_type)
    if coerced_type is None:
        errors["leave_type"] = ["The selected leave type is invalid."]

    # datetime is a date subclass; compare calendar days only.
    start_day = as_date(start_date) if isinstance(start_date, date) else None
    end_day = as_date(end_date) if isinstance(end_date, date) else None
    if start_day is None:
        errors["start_date"] = ["The start date field must be a valid date."]
    if end_day is None:
        errors["end_date"] = ["The end date field must be a valid date."]
    elif start_day is not None and end_day < start_day:
        errors["end_date"] = ["The end date must be a date after or equal to start date."]

    cleaned_reason = (reason or "").strip()
    max_length = settings.leave_reason_max_length
    if not cleaned_reason:
        errors["reason"] = ["The reason field is required."]
    elif len(cleaned_reason) > max_length:
        errors["reason"] = [f"The reason field must not be greater than {max_length} characters."]

    if errors:
        raise ValidationError(errors=errors)
    return coerced_type, start_day, end_day, cleaned_reason


def _lock_requester(db: Session, user_id: int) -> Optional[User]:
    # Serialises submissions per user so concurrent applies cannot both pass the overlap check.
    user = (
        db.query(User)
        .filter(User.id == user_id)
        .with_for_update()
        .one_or_none()
    )
    if user is None or not user.is_active:
        return None
    return user


def apply_leave(
    db: Session,
    *,
    user_id: int,
    leave_type: LeaveType | str,
    start_date: date,
    end_date: date,
    reason: str,
    today: Optional[date] = None,
) -> LeaveRequest:
    """Validate and record a pending leave request.

    Checks run in order: input shape, past dates, overlap with the user's
    pending/approved requests, then balance sufficiency. The balance is not
    debited here; only approval does that.
    """
    today = today or _today()
    try:
        leave_type, start_date, end_date, reason = _validate_application(leave_type, start_date, end_date, reason)
    except ValidationError as exc:
        raise _refuse(exc, user_id=user_id)

    days_requested = inclusive_day_count(start_date, end_date)
    requester = _lock_requester(db, user_id)
    if requester is None:
        raise _refuse(ValidationError(errors={"user_id": ["Unknown or inactive user."]}), user_id=user_id)

    if not validate_date_range(start_date, end_date, today=today):
        raise _refuse(PastDateError(), user_id=user_id)

    if has_overlap(db, user_id, start_date, end_date):
        raise _refuse(OverlapError(), user_id=user_id)

    year = resolve_balance_year(start_date, today)
    balance = get_balance(db, user_id, leave_type, year)
    if not balance_covers(balance, days_requested):
        remaining = balance.remaining_days if balance else 0
        raise _refuse(InsufficientBalanceError(remaining_days=remaining), user_id=user_id, leave_type=leave_type.value)

    leave = LeaveRequest(
        user_id=requester.id,
        leave_type=leave_type,
        start_date=start_date,
        end_date=end_date,
        days_requested=days_requested,
        reason=reason,
        status=LeaveStatus.PENDING,
    )
    db.add(leave)
    db.flush()

    leave_requests_submitted_total.labels(leave_type=leave_type.value).inc()
    logger.info(
        "leave_submitted",
        extra={"user_id": user_id, "leave_request_id": leave.id, "leave_type": leave_type.value},
    )
    return leave


def _lock_leave(db: Session, request_id: int) -> Optional[LeaveRequest]:
    # populate_existing re-reads the row so the pending check sees committed state.
    return (
        db.query(LeaveRequest)
        .filter(LeaveRequest.id == request_id)
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )


def decide_leave(
    db: Session,
    *,
    request_id: int,
    actor: User,
    action: DecisionAction | str,
    comments: Optional[str] = None,
    today: Optional[date] = None,
) -> LeaveRequest:
    """Approve or reject a pending request.

    The request row and, on approval, the balance row are locked for the
    rest of the transaction. Nothing is written unless every check passes,
    and the caller commits the balance debit and the status change together.
    """
    try:
        rbac.require_capability(actor, rbac.REVIEW_LEAVE)
        action = _coerce_action(action)
    except LeaveError as exc:
        raise _refuse(exc, user_id=getattr(actor, "id", None))

    leave = _lock_leave(db, request_id)
    if leave is None:
        raise _refuse(NotFound(), user_id=actor.id, leave_request_id=request_id)
    if leave.status != LeaveStatus.PENDING:
        raise _refuse(AlreadyProcessed(), user_id=actor.id, leave_request_id=request_id)

    if action == DecisionAction.APPROVE:
        year = resolve_balance_year(leave.start_date, today)
        balance = get_balance(db, leave.user_id, leave.leave_type, year, for_update=True)
        if not balance_covers(balance, leave.days_requested):
            remaining = balance.remaining_days if balance else 0
            raise _refuse(
                InsufficientBalanceError("Employee has insufficient leave balance", remaining_days=remaining),
                user_id=actor.id,
                leave_request_id=request_id,
            )
        balance.debit(leave.days_requested)
        db.add(balance)
        leave.status = LeaveStatus.APPROVED
    else:
        leave.status = LeaveStatus.REJECTED

    leave.approver_id = actor.id
    leave.approved_at = utcnow()
    db.add(leave)
    db.flush()

    leave_decisions_total.labels(action=action.value).inc()
    logger.info(
        "leave_decided",
        extra={
            "user_id": actor.id,
            "leave_request_id": leave.id,
            "action": action.value,
            "comments": comments,
        },
    )
    return leave


def get_leave_request(db: Session, request_id: int) -> LeaveRequest:
    leave = (
        db.query(LeaveRequest)
        .options(selectinload(LeaveRequest.user), selectinload(LeaveRequest.approver))
        .filter(LeaveRequest.id == request_id)
        .one_or_none()
    )
    if leave is None:
        raise NotFound()
    return leave


def list_pending_requests(db: Session, *, actor: User) -> List[LeaveRequest]:
    rbac.require_capability(actor, rbac.REVIEW_LEAVE)
    return (
        db.query(LeaveRequest)
        .options(selectinload(LeaveRequest.user), selectinload(LeaveRequest.approver))
        .filter(LeaveRequest.status == LeaveStatus.PENDING)
        .order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
        .all()
    )


def list_user_requests(db: Session, user_id: int) -> List[LeaveRequest]:
    return (
        db.query(LeaveRequest)
        .options(selectinload(LeaveRequest.user), selectinload(LeaveRequest.approver))
        .filter(LeaveRequest.user_id == user_id)
        .order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
        .all()
    )


def users_on_leave(db: Session, on_date: Optional[date] = None) -> Set[int]:
    day = on_date or _today()
    rows = (
        db.query(LeaveRequest.user_id)
        .filter(
            LeaveRequest.status == LeaveStatus.APPROVED,
            LeaveRequest.start_date <= day,
            LeaveRequest.end_date >= day,
        )
        .distinct()
        .all()
    )
    return {user_id for (user_id,) in rows}


def count_on_leave(db: Session, *, actor: User, on_date: Optional[date] = None) -> int:
    rbac.require_capability(actor, rbac.VIEW_TEAM_LEAVE)
    return len(users_on_leave(db, on_date))

