from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from gatehouse.api.flash import FlashMessages
from gatehouse.core.settings import Settings
from gatehouse.db.models import User
from gatehouse.services.audit_service import AuditService
from gatehouse.services.auth_service import AuthService
from gatehouse.services.session_manager import SessionManager


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request):
    SessionLocal = request.app.state.db_sessionmaker
    db: Session = SessionLocal()  # type: ignore
    try:
        yield db
    finally:
        db.close()


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_audit_service(request: Request) -> AuditService:
    return request.app.state.audit_service


def get_flash(request: Request) -> FlashMessages:
    return request.app.state.flash


def get_session_token(request: Request, settings: Settings = Depends(get_settings)) -> str:
    return request.cookies.get(settings.session_cookie_name, "")


def get_current_user_optional(
    request: Request,
    token: str = Depends(get_session_token),
    db: Session = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
) -> Optional[User]:
    user = sessions.resolve(db, token) if token else None
    request.state.user = user
    return user


def require_user(user: Optional[User] = Depends(get_current_user_optional)) -> User:
    if user is None:
        raise HTTPException(status_code=303, headers={"Location": "/login"})
    return user
