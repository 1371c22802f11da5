import pytest

from leavedesk.core.errors import ValidationError
from leavedesk.models.enums import LeaveType
from leavedesk.seed import DEMO_USERS, seed
from leavedesk.services.balances import get_leave_balances, provision_balances


def test_provision_uses_default_entitlements(db, employee, today):
    provision_balances(db, user_id=employee.id)
    db.commit()

    balances = get_leave_balances(db, employee.id)

    assert [(b.leave_type, b.total_days, b.remaining_days, b.year) for b in balances] == [
        (LeaveType.VACATION, 20, 20, today.year),
        (LeaveType.SICK, 10, 10, today.year),
        (LeaveType.PERSONAL, 5, 5, today.year),
    ]


def test_provision_keeps_used_days(db, employee, today, make_balance):
    make_balance(employee, total=20, used=5)

    provision_balances(db, user_id=employee.id, entitlements={"vacation": 25})
    db.commit()

    vacation = get_leave_balances(db, employee.id)[0]
    assert (vacation.total_days, vacation.used_days, vacation.remaining_days) == (25, 5, 20)


def test_provision_reset_clears_used_days(db, employee, make_balance):
    make_balance(employee, total=20, used=5)

    provision_balances(db, user_id=employee.id, reset=True)
    db.commit()

    vacation = get_leave_balances(db, employee.id)[0]
    assert (vacation.used_days, vacation.remaining_days) == (0, 20)


def test_provision_refuses_total_below_used(db, employee, make_balance):
    make_balance(employee, total=20, used=12)

    with pytest.raises(ValidationError) as exc_info:
        provision_balances(db, user_id=employee.id, entitlements={LeaveType.VACATION: 10})

    assert "vacation" in exc_info.value.errors


@pytest.mark.parametrize("entitlements", [{"sabbatical": 5}, {"sick": -1}])
def test_provision_rejects_bad_entitlements(db, employee, entitlements):
    with pytest.raises(ValidationError):
        provision_balances(db, user_id=employee.id, entitlements=entitlements)


def test_balances_are_scoped_to_year(db, employee, today, make_balance):
    make_balance(employee, total=20, year=today.year - 1)

    assert get_leave_balances(db, employee.id) == []
    assert len(get_leave_balances(db, employee.id, year=today.year - 1)) == 1


def test_seed_is_idempotent(db):
    first = seed(db)
    second = seed(db)

    assert [user.id for user in first] == [user.id for user in second]
    assert len(first) == len(DEMO_USERS)
    assert len(get_leave_balances(db, first[0].id)) == len(LeaveType)
