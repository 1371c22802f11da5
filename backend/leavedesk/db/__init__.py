from leavedesk.db.base import Base, IDMixin, TimestampMixin, utcnow
from leavedesk.db.session import SessionLocal, engine, get_db

__all__ = [
    "Base",
    "IDMixin",
    "TimestampMixin",
    "utcnow",
    "engine",
    "SessionLocal",
    "get_db",
]
