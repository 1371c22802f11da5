"""Import all models so SQLAlchemy metadata is fully registered."""

from leavedesk.db.base import Base

from leavedesk.models.enums import DecisionAction, LeaveStatus, LeaveType, Role
from leavedesk.models.leave import LeaveBalance, LeaveRequest
from leavedesk.models.user import User

__all__ = [
    "Base",
    "DecisionAction",
    "LeaveBalance",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveType",
    "Role",
    "User",
]
