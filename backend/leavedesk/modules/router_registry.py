"""Central router registry for module-oriented composition."""
from __future__ import annotations

from fastapi import FastAPI

from leavedesk.modules.auth.router import ROUTERS as AUTH_ROUTERS
from leavedesk.modules.leave.router import ROUTERS as LEAVE_ROUTERS

ALL_ROUTERS = AUTH_ROUTERS + LEAVE_ROUTERS


def include_all_routers(app: FastAPI) -> None:
    for router in ALL_ROUTERS:
        app.include_router(router)
