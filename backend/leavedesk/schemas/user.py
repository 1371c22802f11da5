from __future__ import annotations

from datetime import datetime

from leavedesk.models.enums import Role
from leavedesk.schemas.base import ORMModel


class UserSummary(ORMModel):
    id: int
    name: str
    email: str
    role: Role


class UserRead(UserSummary):
    is_active: bool
    created_at: datetime
    updated_at: datetime
