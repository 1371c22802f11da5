from __future__ import annotations

import argparse
import logging
from typing import Optional

from sqlalchemy.orm import Session

from leavedesk.core.logging import configure_logging
from leavedesk.core.security import get_password_hash
from leavedesk.core.settings import settings
from leavedesk.db.base import Base
from leavedesk.db.session import SessionLocal, engine
from leavedesk.models.enums import Role
from leavedesk.models.user import User
from leavedesk.services.balances import provision_balances

logger = logging.getLogger("leavedesk.seed")

DEMO_PASSWORD = "password"

DEMO_USERS = [
    {"email": "manager@leavedesk.test", "name": "Morgan Manager", "role": Role.MANAGER},
    {"email": "alex@leavedesk.test", "name": "Alex Employee", "role": Role.EMPLOYEE},
    {"email": "sam@leavedesk.test", "name": "Sam Employee", "role": Role.EMPLOYEE},
]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the LeaveDesk database with demo users and balances")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables before seeding")
    parser.add_argument("--year", type=int, default=None, help="Balance year to provision (default: current year)")
    return parser.parse_args()


def reset_db() -> None:
    if settings.is_production:
        raise RuntimeError("Refusing to reset the database in production.")
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def get_or_create_user(db: Session, *, email: str, name: str, role: Role, password: str) -> User:
    user = db.query(User).filter(User.email == email).first()
    if user:
        return user
    user = User(
        email=email,
        name=name,
        role=role,
        hashed_password=get_password_hash(password),
        is_active=True,
    )
    db.add(user)
    db.flush()
    return user


def seed(db: Session, *, year: Optional[int] = None) -> list[User]:
    users = []
    for demo in DEMO_USERS:
        user = get_or_create_user(db, password=DEMO_PASSWORD, **demo)
        provision_balances(db, user_id=user.id, year=year)
        users.append(user)
    db.commit()
    return users


def main() -> None:
    configure_logging(level=settings.log_level)
    args = parse_args()
    if args.reset:
        reset_db()
    else:
        Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        users = seed(db, year=args.year)
    finally:
        db.close()
    logger.info("seed_complete", extra={"user_id": [user.id for user in users]})


if __name__ == "__main__":
    main()
