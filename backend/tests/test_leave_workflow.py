"""Tests for the apply and approve/reject workflow."""
from datetime import date, datetime, timedelta

import pytest
from prometheus_client import REGISTRY

from leavedesk.core.errors import (
    AlreadyProcessed,
    InsufficientBalanceError,
    NotFound,
    OverlapError,
    PastDateError,
    Unauthorized,
    ValidationError,
)
from leavedesk.core.settings import settings
from leavedesk.models.enums import DecisionAction, LeaveStatus, LeaveType
from leavedesk.models.leave import LeaveRequest
from leavedesk.services.leave import (
    apply_leave,
    count_on_leave,
    decide_leave,
    list_pending_requests,
    list_user_requests,
    resolve_balance_year,
)


def _apply(db, user, start, end, leave_type="vacation", reason="Trip", today=None):
    leave = apply_leave(
        db,
        user_id=user.id,
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        reason=reason,
        today=today,
    )
    db.commit()
    return leave


def test_apply_creates_pending_request_without_touching_balance(db, employee, tomorrow, make_balance):
    balance = make_balance(employee, total=20, used=5)

    leave = _apply(db, employee, tomorrow, tomorrow + timedelta(days=2))

    assert leave.id is not None
    assert leave.status == LeaveStatus.PENDING
    assert leave.days_requested == 3
    assert leave.leave_type == LeaveType.VACATION
    assert leave.user.name == "Erin Employee"
    db.refresh(balance)
    assert (balance.used_days, balance.remaining_days) == (5, 15)


def test_apply_beyond_balance_fails_and_creates_nothing(db, employee, tomorrow, make_balance):
    make_balance(employee, total=20, used=5)
    _apply(db, employee, tomorrow, tomorrow + timedelta(days=2))

    with pytest.raises(InsufficientBalanceError) as exc_info:
        _apply(db, employee, tomorrow + timedelta(days=10), tomorrow + timedelta(days=29))

    assert exc_info.value.remaining_days == 15
    assert exc_info.value.kind == "insufficient_balance"
    db.rollback()
    assert db.query(LeaveRequest).count() == 1


def test_apply_without_balance_record_fails(db, employee, tomorrow):
    with pytest.raises(InsufficientBalanceError) as exc_info:
        _apply(db, employee, tomorrow, tomorrow)
    assert exc_info.value.remaining_days == 0


def test_apply_rejects_past_dates(db, employee, today, make_balance):
    make_balance(employee)

    with pytest.raises(PastDateError):
        _apply(db, employee, today - timedelta(days=1), today + timedelta(days=1))


def test_apply_allows_today(db, employee, today, make_balance):
    make_balance(employee)

    leave = _apply(db, employee, today, today)

    assert leave.days_requested == 1


def test_apply_rejects_overlap_with_pending_request(db, employee, tomorrow, make_balance):
    make_balance(employee)
    _apply(db, employee, tomorrow, tomorrow + timedelta(days=4))

    with pytest.raises(OverlapError):
        _apply(db, employee, tomorrow + timedelta(days=4), tomorrow + timedelta(days=6))


def test_apply_same_range_as_rejected_request_succeeds(db, employee, tomorrow, make_balance, make_request):
    make_balance(employee)
    make_request(employee, tomorrow, tomorrow + timedelta(days=2), status=LeaveStatus.REJECTED)

    leave = _apply(db, employee, tomorrow, tomorrow + timedelta(days=2))

    assert leave.status == LeaveStatus.PENDING


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"leave_type": "sabbatical"}, "leave_type"),
        ({"leave_type": " VACATION "}, "leave_type"),
        ({"leave_type": "Vacation"}, "leave_type"),
        ({"reason": "   "}, "reason"),
        ({"reason": "x" * 501}, "reason"),
        ({"end_offset": -1}, "end_date"),
    ],
)
def test_apply_validates_input_shape(db, employee, tomorrow, make_balance, overrides, field):
    make_balance(employee)
    overrides = dict(overrides)
    end = tomorrow + timedelta(days=overrides.pop("end_offset", 1))
    kwargs = {"leave_type": "vacation", "reason": "Trip", **overrides}

    with pytest.raises(ValidationError) as exc_info:
        _apply(db, employee, tomorrow, end, **kwargs)

    assert field in exc_info.value.errors


def test_pending_requests_may_overcommit_balance(db, employee, tomorrow, manager, make_balance):
    make_balance(employee, total=5)
    first = _apply(db, employee, tomorrow, tomorrow + timedelta(days=3))
    second = _apply(db, employee, tomorrow + timedelta(days=10), tomorrow + timedelta(days=13))

    decide_leave(db, request_id=first.id, actor=manager, action="approve")
    db.commit()

    with pytest.raises(InsufficientBalanceError) as exc_info:
        decide_leave(db, request_id=second.id, actor=manager, action="approve")
    db.rollback()

    assert exc_info.value.remaining_days == 1
    db.refresh(second)
    assert second.status == LeaveStatus.PENDING
    assert second.approver_id is None


def test_approve_debits_balance_and_records_approver(db, employee, manager, tomorrow, make_balance):
    balance = make_balance(employee, total=20, used=5)
    leave = _apply(db, employee, tomorrow, tomorrow + timedelta(days=2))

    decided = decide_leave(db, request_id=leave.id, actor=manager, action=DecisionAction.APPROVE)
    db.commit()

    assert decided.status == LeaveStatus.APPROVED
    assert decided.approver_id == manager.id
    assert decided.approved_at is not None
    db.refresh(balance)
    assert (balance.total_days, balance.used_days, balance.remaining_days) == (20, 8, 12)


def test_reject_leaves_balance_untouched(db, employee, manager, tomorrow, make_balance):
    balance = make_balance(employee, total=20, used=5)
    leave = _apply(db, employee, tomorrow, tomorrow + timedelta(days=2))

    decided = decide_leave(db, request_id=leave.id, actor=manager, action="reject", comments="Busy week")
    db.commit()

    assert decided.status == LeaveStatus.REJECTED
    assert decided.approver_id == manager.id
    assert decided.approved_at is not None
    db.refresh(balance)
    assert (balance.used_days, balance.remaining_days) == (5, 15)


@pytest.mark.parametrize("first_action", ["approve", "reject"])
@pytest.mark.parametrize("second_action", ["approve", "reject"])
def test_terminal_states_are_final(db, employee, manager, tomorrow, make_balance, first_action, second_action):
    balance = make_balance(employee, total=20)
    leave = _apply(db, employee, tomorrow, tomorrow + timedelta(days=1))
    decide_leave(db, request_id=leave.id, actor=manager, action=first_action)
    db.commit()
    db.refresh(balance)
    used_before = balance.used_days

    with pytest.raises(AlreadyProcessed):
        decide_leave(db, request_id=leave.id, actor=manager, action=second_action)
    db.rollback()

    db.refresh(balance)
    db.refresh(leave)
    assert balance.used_days == used_before
    assert leave.status.value == ("approved" if first_action == "approve" else "rejected")


def test_approve_requires_manager(db, employee, other_employee, tomorrow, make_balance):
    make_balance(employee)
    leave = _apply(db, employee, tomorrow, tomorrow)

    with pytest.raises(Unauthorized):
        decide_leave(db, request_id=leave.id, actor=other_employee, action="approve")


def test_approve_unknown_request(db, manager):
    with pytest.raises(NotFound):
        decide_leave(db, request_id=999, actor=manager, action="approve")


def test_approve_rejects_unknown_action(db, employee, manager, tomorrow, make_balance):
    make_balance(employee)
    leave = _apply(db, employee, tomorrow, tomorrow)

    with pytest.raises(ValidationError):
        decide_leave(db, request_id=leave.id, actor=manager, action="escalate")


def test_approve_fails_closed_without_balance_row(db, employee, manager, tomorrow, make_request):
    leave = make_request(employee, tomorrow, tomorrow + timedelta(days=1))

    with pytest.raises(InsufficientBalanceError):
        decide_leave(db, request_id=leave.id, actor=manager, action="approve")
    db.rollback()

    db.refresh(leave)
    assert leave.status == LeaveStatus.PENDING


def test_balance_year_defaults_to_current_year(today):
    assert resolve_balance_year(date(today.year + 1, 1, 5), today) == today.year


def test_balance_year_can_follow_request_start(db, employee, manager, today, make_balance, make_request, monkeypatch):
    monkeypatch.setattr(settings, "leave_balance_year_policy", "request_start")
    next_year_start = today.replace(year=today.year + 1, month=1, day=5)
    make_balance(employee, total=3, year=today.year)
    next_year = make_balance(employee, total=10, year=today.year + 1)

    leave = _apply(db, employee, next_year_start, next_year_start + timedelta(days=4), today=today)
    decide_leave(db, request_id=leave.id, actor=manager, action="approve", today=today)
    db.commit()

    db.refresh(next_year)
    assert (next_year.used_days, next_year.remaining_days) == (5, 5)


def test_list_pending_requires_manager(db, employee, manager, tomorrow, make_request):
    make_request(employee, tomorrow, tomorrow)
    make_request(employee, tomorrow + timedelta(days=3), tomorrow + timedelta(days=3), status=LeaveStatus.APPROVED)

    pending = list_pending_requests(db, actor=manager)

    assert len(pending) == 1
    assert pending[0].user.email == "employee@example.com"
    with pytest.raises(Unauthorized):
        list_pending_requests(db, actor=employee)


def test_list_user_requests_newest_first(db, employee, other_employee, tomorrow, make_request):
    first = make_request(employee, tomorrow, tomorrow)
    second = make_request(employee, tomorrow + timedelta(days=5), tomorrow + timedelta(days=5))
    make_request(other_employee, tomorrow, tomorrow)

    requests = list_user_requests(db, employee.id)

    assert [leave.id for leave in requests] == [second.id, first.id]


def test_count_on_leave_counts_approved_users(db, employee, other_employee, manager, today, make_request):
    make_request(employee, today - timedelta(days=1), today + timedelta(days=1), status=LeaveStatus.APPROVED)
    make_request(other_employee, today, today, status=LeaveStatus.PENDING)

    assert count_on_leave(db, actor=manager, on_date=today) == 1
    assert count_on_leave(db, actor=manager, on_date=today + timedelta(days=2)) == 0
    with pytest.raises(Unauthorized):
        count_on_leave(db, actor=employee, on_date=today)


def test_apply_accepts_datetime_bounds_as_calendar_days(db, employee, tomorrow, make_balance):
    make_balance(employee)
    start = datetime(tomorrow.year, tomorrow.month, tomorrow.day, 9, 0)

    leave = _apply(db, employee, start, tomorrow)

    assert leave.start_date == tomorrow
    assert leave.days_requested == 1


def test_apply_reversed_mixed_date_types_is_a_field_error(db, employee, tomorrow, make_balance):
    make_balance(employee)
    later = tomorrow + timedelta(days=2)
    start = datetime(later.year, later.month, later.day, 9, 0)

    with pytest.raises(ValidationError) as exc_info:
        _apply(db, employee, start, tomorrow)

    assert "end_date" in exc_info.value.errors


def test_rejections_are_counted_by_kind(db, employee, today, make_balance):
    make_balance(employee)
    labels = {"kind": "past_date"}
    before = REGISTRY.get_sample_value("leave_rejections_total", labels) or 0

    with pytest.raises(PastDateError):
        _apply(db, employee, today - timedelta(days=1), today)

    assert REGISTRY.get_sample_value("leave_rejections_total", labels) == before + 1
