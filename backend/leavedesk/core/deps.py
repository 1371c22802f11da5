from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from leavedesk.core.security import decode_token
from leavedesk.db.session import get_db
from leavedesk.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)
logger = logging.getLogger("security")


def _log_auth_event(event: str, *, request: Request, extra: Optional[dict] = None) -> None:
    payload = {
        "event": event,
        "request_id": request.headers.get("x-request-id"),
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else None,
    }
    if extra:
        payload.update(extra)
    logger.info(json.dumps(payload, default=str))


def get_current_user(
    request: Request,
    token: Optional[str] = Security(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthenticated.",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        _log_auth_event("token_missing", request=request)
        raise credentials_exception

    try:
        payload = decode_token(token)
        raw_user_id: Optional[int | str] = payload.get("sub")
        if raw_user_id is None:
            _log_auth_event("token_missing_sub", request=request)
            raise credentials_exception
        user_id = int(raw_user_id)
    except (JWTError, ValueError, TypeError):
        _log_auth_event("token_invalid", request=request)
        raise credentials_exception

    user = db.get(User, user_id)
    if not user or not user.is_active:
        _log_auth_event("user_inactive_or_missing", request=request, extra={"user_id": user_id})
        raise credentials_exception
    return user
