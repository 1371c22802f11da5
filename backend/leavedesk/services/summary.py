"""Monthly leave report over every request that touches a calendar month."""
from __future__ import annotations

import calendar
import re
from collections import Counter, defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterator, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from leavedesk.core.errors import ValidationError
from leavedesk.models.enums import LeaveStatus, LeaveType
from leavedesk.models.leave import LeaveRequest
from leavedesk.schemas.summary import DailyBreakdown, MonthlySummary, SummaryBucket, TeamStats

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def parse_month(value: Optional[str], today: Optional[date] = None) -> Tuple[date, date]:
    """Return the first and last day of a ``YYYY-MM`` month (default: current month)."""
    if value is None or not str(value).strip():
        today = today or datetime.now(timezone.utc).date()
        year, month = today.year, today.month
    else:
        match = _MONTH_RE.match(str(value).strip())
        if not match:
            raise ValidationError(errors={"month": ["The month must match the format YYYY-MM."]})
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12 or year < 1:
            raise ValidationError(errors={"month": ["The month must be a valid calendar month."]})
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def requests_in_range(db: Session, first: date, last: date) -> List[LeaveRequest]:
    # Starts in the range, ends in it, or spans it entirely.
    return (
        db.query(LeaveRequest)
        .options(selectinload(LeaveRequest.user))
        .filter(LeaveRequest.start_date <= last, LeaveRequest.end_date >= first)
        .order_by(LeaveRequest.start_date.asc(), LeaveRequest.id.asc())
        .all()
    )


def _bucket(requests: List[LeaveRequest], key) -> Dict[str, SummaryBucket]:
    buckets: Dict[str, SummaryBucket] = {}
    for leave in requests:
        name = key(leave).value
        bucket = buckets.setdefault(name, SummaryBucket())
        bucket.count += 1
        bucket.total_days += leave.days_requested
    return buckets


def _days(first: date, last: date) -> Iterator[date]:
    # Offsets from the start so the walk never steps past date.max.
    for offset in range((last - first).days + 1):
        yield first + timedelta(days=offset)


def _daily_breakdown(requests: List[LeaveRequest], first: date, last: date) -> List[DailyBreakdown]:
    approved = [leave for leave in requests if leave.status == LeaveStatus.APPROVED]
    on_leave: Dict[date, Dict[int, str]] = defaultdict(dict)
    for leave in approved:
        start = max(leave.start_date, first)
        end = min(leave.end_date, last)
        for day in _days(start, end):
            on_leave[day].setdefault(leave.user_id, leave.user.name if leave.user else f"User {leave.user_id}")

    breakdown: List[DailyBreakdown] = []
    for day in _days(first, last):
        names = list(on_leave.get(day, {}).values())
        breakdown.append(
            DailyBreakdown(
                date=day,
                day_name=day.strftime("%A"),
                on_leave_count=len(names),
                on_leave_employees=names,
            )
        )
    return breakdown


def _team_stats(db: Session, requests: List[LeaveRequest]) -> TeamStats:
    total_employees = db.query(func.count(func.distinct(LeaveRequest.user_id))).scalar() or 0
    type_counts = Counter(leave.leave_type for leave in requests)
    # Counter.most_common keeps first-seen order among equal counts.
    most_common: Optional[LeaveType] = type_counts.most_common(1)[0][0] if type_counts else None
    total_days = sum(leave.days_requested for leave in requests)
    average = round(total_days / len(requests), 2) if requests else 0
    return TeamStats(
        total_employees=int(total_employees),
        employees_with_leave=len({leave.user_id for leave in requests}),
        most_common_leave_type=most_common.value if most_common else None,
        average_days_per_request=average,
    )


def monthly_summary(db: Session, month: Optional[str] = None, *, today: Optional[date] = None) -> MonthlySummary:
    first, last = parse_month(month, today=today)
    requests = requests_in_range(db, first, last)
    return MonthlySummary(
        month=first.strftime("%Y-%m"),
        status_summary=_bucket(requests, lambda leave: leave.status),
        type_summary=_bucket(requests, lambda leave: leave.leave_type),
        daily_breakdown=_daily_breakdown(requests, first, last),
        team_stats=_team_stats(db, requests),
        total_requests=len(requests),
        total_days_requested=sum(leave.days_requested for leave in requests),
    )
