from __future__ import annotations

from typing import List

from sqlalchemy import Boolean, Enum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leavedesk.db.base import Base, IDMixin, TimestampMixin
from leavedesk.models.enums import Role, enum_values


class User(IDMixin, TimestampMixin, Base):
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Role] = mapped_column(
        Enum(Role, name="role", values_callable=enum_values),
        default=Role.EMPLOYEE,
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    leave_balances: Mapped[List["LeaveBalance"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    leave_requests: Mapped[List["LeaveRequest"]] = relationship(
        back_populates="user",
        foreign_keys="LeaveRequest.user_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    leave_approvals: Mapped[List["LeaveRequest"]] = relationship(
        back_populates="approver",
        foreign_keys="LeaveRequest.approver_id",
    )
