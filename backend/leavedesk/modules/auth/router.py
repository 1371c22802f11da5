"""Auth module router aggregation."""
from leavedesk.routers import auth

ROUTERS = [auth.router]
