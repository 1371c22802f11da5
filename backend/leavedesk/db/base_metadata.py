"""Metadata and context options shared by Alembic's env.py."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from sqlalchemy.engine import make_url

from leavedesk.core.settings import settings
from leavedesk.db.base import Base
import leavedesk.models  # noqa: F401

target_metadata = Base.metadata


def migration_url(x_args: Optional[Mapping[str, str]] = None) -> str:
    """Database URL for a migration run; ``alembic -x db_url=...`` wins over settings."""
    if x_args and x_args.get("db_url"):
        return x_args["db_url"]
    return settings.database_url


def migration_options(dialect_name: str) -> Dict[str, Any]:
    # SQLite cannot ALTER constraints in place, so it needs batch mode.
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": dialect_name == "sqlite",
    }


def redacted(url: str) -> str:
    return make_url(url).render_as_string(hide_password=True)
