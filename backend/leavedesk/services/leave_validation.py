"""Checks run against the request and balance stores before a leave
request is created or approved.

Polarity note: ``has_overlap`` answers "does a conflicting request exist"
(``True`` means the range is taken). ``is_range_available`` is the
inverse, "safe to insert", for callers that prefer that reading.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from leavedesk.models.enums import ACTIVE_LEAVE_STATUSES, LeaveType
from leavedesk.models.leave import LeaveBalance, LeaveRequest


def _today() -> date:
    return datetime.now(timezone.utc).date()


def as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def inclusive_day_count(start: date, end: date) -> int:
    return (as_date(end) - as_date(start)).days + 1


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Closed-interval intersection: true when the ranges share a day."""
    return not (a_end < b_start or b_end < a_start)


def validate_date_range(start: date | datetime, end: date | datetime, today: Optional[date] = None) -> bool:
    """True when neither end of the range lies before ``today``.

    Does not check ``end >= start``; the apply workflow enforces ordering
    as part of input validation.
    """
    today = as_date(today) if today else _today()
    return as_date(start) >= today and as_date(end) >= today


def find_overlapping_requests(
    db: Session,
    user_id: int,
    start: date,
    end: date,
    *,
    exclude_id: Optional[int] = None,
) -> List[LeaveRequest]:
    query = db.query(LeaveRequest).filter(
        LeaveRequest.user_id == user_id,
        LeaveRequest.status.in_(ACTIVE_LEAVE_STATUSES),
        LeaveRequest.start_date <= as_date(end),
        LeaveRequest.end_date >= as_date(start),
    )
    if exclude_id is not None:
        query = query.filter(LeaveRequest.id != exclude_id)
    return query.order_by(LeaveRequest.start_date.asc()).all()


def has_overlap(db: Session, user_id: int, start: date, end: date) -> bool:
    """True when a pending or approved request of the user shares a day with the range."""
    return bool(find_overlapping_requests(db, user_id, start, end))


def is_range_available(db: Session, user_id: int, start: date, end: date) -> bool:
    return not has_overlap(db, user_id, start, end)


def get_balance(
    db: Session,
    user_id: int,
    leave_type: LeaveType,
    year: int,
    *,
    for_update: bool = False,
) -> Optional[LeaveBalance]:
    query = db.query(LeaveBalance).filter(
        LeaveBalance.user_id == user_id,
        LeaveBalance.leave_type == leave_type,
        LeaveBalance.year == year,
    )
    if for_update:
        query = query.with_for_update().populate_existing()
    return query.one_or_none()


def balance_covers(balance: Optional[LeaveBalance], days_requested: int) -> bool:
    # No balance row means no entitlement.
    if balance is None:
        return False
    return balance.remaining_days >= days_requested


def has_sufficient_balance(
    db: Session,
    user_id: int,
    leave_type: LeaveType,
    year: int,
    days_requested: int,
) -> bool:
    return balance_covers(get_balance(db, user_id, leave_type, year), days_requested)
