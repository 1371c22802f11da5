from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from leavedesk.core.errors import ValidationError
from leavedesk.core.settings import settings
from leavedesk.models.enums import LeaveType
from leavedesk.models.leave import LeaveBalance

logger = logging.getLogger("leavedesk.balances")


def _current_year() -> int:
    return datetime.now(timezone.utc).date().year


def get_leave_balances(db: Session, user_id: int, year: Optional[int] = None) -> List[LeaveBalance]:
    year = year or _current_year()
    balances = (
        db.query(LeaveBalance)
        .filter(LeaveBalance.user_id == user_id, LeaveBalance.year == year)
        .all()
    )
    order = {leave_type: idx for idx, leave_type in enumerate(LeaveType)}
    return sorted(balances, key=lambda balance: order[balance.leave_type])


def _entitlements(overrides: Optional[Mapping[str, int]]) -> Dict[LeaveType, int]:
    raw = dict(settings.default_entitlements)
    if overrides:
        raw.update({str(key.value if isinstance(key, LeaveType) else key): value for key, value in overrides.items()})
    resolved: Dict[LeaveType, int] = {}
    for key, days in raw.items():
        try:
            leave_type = LeaveType(key)
        except ValueError:
            raise ValidationError(errors={"leave_type": [f"Unknown leave type: {key}"]})
        if days < 0:
            raise ValidationError(errors={key: ["Entitlement cannot be negative."]})
        resolved[leave_type] = int(days)
    return resolved


def provision_balances(
    db: Session,
    *,
    user_id: int,
    year: Optional[int] = None,
    entitlements: Optional[Mapping[str, int]] = None,
    reset: bool = False,
) -> List[LeaveBalance]:
    """Create or refresh one balance row per leave type for ``year``.

    Existing rows keep their used days and get their remaining days
    recomputed against the new total; ``reset`` zeroes used days.
    """
    year = year or _current_year()
    provisioned: List[LeaveBalance] = []
    for leave_type, total in _entitlements(entitlements).items():
        balance = (
            db.query(LeaveBalance)
            .filter(
                LeaveBalance.user_id == user_id,
                LeaveBalance.leave_type == leave_type,
                LeaveBalance.year == year,
            )
            .with_for_update()
            .one_or_none()
        )
        if balance is None:
            balance = LeaveBalance(user_id=user_id, leave_type=leave_type, year=year, used_days=0)
        if reset:
            balance.used_days = 0
        if balance.used_days > total:
            raise ValidationError(
                errors={leave_type.value: [f"Total of {total} days is below the {balance.used_days} already used."]}
            )
        balance.total_days = total
        balance.remaining_days = total - balance.used_days
        db.add(balance)
        provisioned.append(balance)
    db.flush()
    logger.info("balances_provisioned", extra={"user_id": user_id})
    return provisioned
