from __future__ import annotations

import enum


class Role(str, enum.Enum):
    EMPLOYEE = "employee"
    MANAGER = "manager"


class LeaveType(str, enum.Enum):
    VACATION = "vacation"
    SICK = "sick"
    PERSONAL = "personal"


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DecisionAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"


# Statuses that occupy calendar days for overlap purposes.
ACTIVE_LEAVE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED)


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Persist enums by value so the stored strings match the API."""
    return [member.value for member in enum_cls]
