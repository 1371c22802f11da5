from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from leavedesk.core.deps import get_current_user
from leavedesk.core.security import create_access_token, verify_password
from leavedesk.db.session import get_db
from leavedesk.models.user import User
from leavedesk.schemas.auth import LoginRequest, TokenRead
from leavedesk.schemas.base import ApiResponse
from leavedesk.schemas.user import UserRead

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])
logger = logging.getLogger("security")


@router.post("/login", response_model=ApiResponse[TokenRead])
def login(credentials: LoginRequest, db: Session = Depends(get_db)) -> ApiResponse[TokenRead]:
    email = credentials.email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if not user or not user.is_active or not verify_password(credentials.password, user.hashed_password):
        logger.info("login_failed", extra={"path": "/api/v1/auth/login"})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = create_access_token({"sub": user.id, "role": user.role.value})
    return ApiResponse(
        message="Login successful",
        data=TokenRead(access_token=token, user=UserRead.model_validate(user)),
    )


@router.get("/me", response_model=ApiResponse[UserRead])
def me(current_user: User = Depends(get_current_user)) -> ApiResponse[UserRead]:
    return ApiResponse(data=UserRead.model_validate(current_user))
