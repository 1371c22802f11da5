"""Leave module router aggregation."""
from leavedesk.routers import leave

ROUTERS = [leave.router]
