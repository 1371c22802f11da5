from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import CheckConstraint, Date, DateTime, Enum, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leavedesk.db.base import Base, IDMixin, TimestampMixin
from leavedesk.models.enums import LeaveStatus, LeaveType, enum_values


class LeaveBalance(IDMixin, TimestampMixin, Base):
    """Annual day counters for one user and leave type."""

    __tablename__ = "leave_balances"
    __table_args__ = (
        UniqueConstraint("user_id", "leave_type", "year", name="uq_leave_balances_user_type_year"),
        CheckConstraint("total_days >= 0", name="total_days_non_negative"),
        CheckConstraint("used_days >= 0", name="used_days_non_negative"),
        CheckConstraint("remaining_days >= 0", name="remaining_days_non_negative"),
    )

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type: Mapped[LeaveType] = mapped_column(
        Enum(LeaveType, name="leave_type", values_callable=enum_values),
        nullable=False,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    total_days: Mapped[int] = mapped_column(Integer, nullable=False)
    used_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    remaining_days: Mapped[int] = mapped_column(Integer, nullable=False)

    user: Mapped["User"] = relationship(back_populates="leave_balances")

    def debit(self, days: int) -> None:
        self.used_days += days
        self.remaining_days = self.total_days - self.used_days


class LeaveRequest(IDMixin, TimestampMixin, Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        CheckConstraint("days_requested >= 1", name="days_requested_positive"),
        Index("ix_leave_requests_user_status", "user_id", "status"),
    )

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type: Mapped[LeaveType] = mapped_column(
        Enum(LeaveType, name="leave_type", values_callable=enum_values),
        nullable=False,
        index=True,
    )

    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    days_requested: Mapped[int] = mapped_column(Integer, nullable=False)

    reason: Mapped[str] = mapped_column(String(500), nullable=False)

    status: Mapped[LeaveStatus] = mapped_column(
        Enum(LeaveStatus, name="leave_status", values_callable=enum_values),
        default=LeaveStatus.PENDING,
        nullable=False,
        index=True,
    )
    approver_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped["User"] = relationship(back_populates="leave_requests", foreign_keys=[user_id])
    approver: Mapped[Optional["User"]] = relationship(back_populates="leave_approvals", foreign_keys=[approver_id])

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date
