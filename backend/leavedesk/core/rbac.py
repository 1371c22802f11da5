from __future__ import annotations

from typing import Dict, Optional

from leavedesk.core.errors import Unauthorized
from leavedesk.models.enums import Role


APPLY_LEAVE = "apply_leave"
REVIEW_LEAVE = "review_leave"
VIEW_TEAM_LEAVE = "view_team_leave"

ROLE_CAPABILITIES: dict[Role, Dict[str, bool]] = {
    Role.EMPLOYEE: {
        APPLY_LEAVE: True,
        REVIEW_LEAVE: False,
        VIEW_TEAM_LEAVE: False,
    },
    Role.MANAGER: {
        APPLY_LEAVE: True,
        REVIEW_LEAVE: True,
        VIEW_TEAM_LEAVE: True,
    },
}

_DENIED_MESSAGES = {
    REVIEW_LEAVE: "Unauthorized. Only managers can review leave requests.",
    VIEW_TEAM_LEAVE: "Unauthorized. Only managers can view team leave.",
}


def _coerce_role(value: Role | str | None) -> Optional[Role]:
    if value is None:
        return None
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value))
    except ValueError:
        return None


def get_capabilities(role: Role | str | None) -> Dict[str, bool]:
    coerced = _coerce_role(role)
    if coerced is None:
        return {}
    return dict(ROLE_CAPABILITIES.get(coerced, {}))


def user_has_capability(user, capability: str) -> bool:
    if user is None or not getattr(user, "is_active", True):
        return False
    return get_capabilities(getattr(user, "role", None)).get(capability, False)


def require_capability(user, capability: str) -> None:
    """Raise ``Unauthorized`` unless the user's role grants ``capability``."""
    if not user_has_capability(user, capability):
        raise Unauthorized(_DENIED_MESSAGES.get(capability))
