from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session

from gatehouse.api.deps import (
    get_audit_service,
    get_auth_service,
    get_current_user_optional,
    get_db,
    get_flash,
    get_session_manager,
    get_session_token,
    get_settings,
)
from gatehouse.api.flash import FlashMessages
from gatehouse.api.templating import render
from gatehouse.core.settings import Settings
from gatehouse.db.models import User
from gatehouse.services.audit_service import AuditService
from gatehouse.services.auth_service import AuthService, CredentialError, ValidationError
from gatehouse.services.credential_store import DuplicateUsername, StoreUnavailable
from gatehouse.services.session_manager import SessionManager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

REGISTRATION_FAILED = "Error registering user."


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _audit(audit: AuditService, db: Session, **kwargs) -> None:
    try:
        audit.log(db, **kwargs)
    except Exception:
        db.rollback()
        logger.warning("Failed to write audit entry %s", kwargs.get("action"), exc_info=True)


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request, flash: FlashMessages = Depends(get_flash)):
    messages = flash.consume(request, "error")
    resp = render(request, "login.html", {"title": "Login", "message": messages[0] if messages else ""})
    flash.clear(request, resp)
    return resp


@router.post("/login")
def login(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    prior_token: str = Depends(get_session_token),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    sessions: SessionManager = Depends(get_session_manager),
    audit: AuditService = Depends(get_audit_service),
    flash: FlashMessages = Depends(get_flash),
    settings: Settings = Depends(get_settings),
):
    ip = _client_ip(request)
    outcome = auth.authenticate(db, username=username, password=password)
    if not outcome.accepted:
        if isinstance(outcome.error, CredentialError):
            _audit(audit, db, action="auth.login.failure", user_id=None, client_ip=ip, resource=username)
        resp = _redirect("/login")
        flash.flash(resp, "error", [outcome.message])
        return resp

    user = outcome.user
    # A fresh token on every login; the previous one (if any) is retired.
    if prior_token:
        sessions.terminate(db, prior_token)
    token = sessions.establish(db, user)
    _audit(audit, db, action="auth.login.success", user_id=user.id, client_ip=ip, resource=user.username)

    resp = _redirect("/dashboard")
    resp.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=sessions.ttl_s or None,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )
    return resp


@router.post("/logout")
def logout(
    request: Request,
    token: str = Depends(get_session_token),
    user: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
    audit: AuditService = Depends(get_audit_service),
    settings: Settings = Depends(get_settings),
):
    if token:
        sessions.terminate(db, token)
    if user is not None:
        _audit(audit, db, action="auth.logout", user_id=user.id, client_ip=_client_ip(request))

    resp = _redirect("/login")
    resp.delete_cookie(settings.session_cookie_name)
    return resp


@router.get("/register", response_class=HTMLResponse)
def register_form(request: Request, flash: FlashMessages = Depends(get_flash)):
    errors = flash.consume(request, "errors")
    resp = render(request, "register.html", {"title": "Register", "errors": errors})
    flash.clear(request, resp)
    return resp


@router.post("/register")
def register(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form("", alias="confirmPassword"),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    audit: AuditService = Depends(get_audit_service),
    flash: FlashMessages = Depends(get_flash),
):
    ip = _client_ip(request)
    try:
        user = auth.register(db, username=username, password=password, confirm_password=confirm_password)
    except ValidationError as e:
        resp = _redirect("/register")
        flash.flash(resp, "errors", e.messages)
        return resp
    except DuplicateUsername:
        # Same user-facing message as any other store failure: no username enumeration.
        logger.info("Registration rejected: username already taken")
        _audit(audit, db, action="auth.register.failure", user_id=None, client_ip=ip, resource=username)
        resp = _redirect("/register")
        flash.flash(resp, "errors", [REGISTRATION_FAILED])
        return resp
    except StoreUnavailable:
        logger.exception("Registration failed: credential store unavailable")
        resp = _redirect("/register")
        flash.flash(resp, "errors", [REGISTRATION_FAILED])
        return resp

    _audit(audit, db, action="auth.register", user_id=user.id, client_ip=ip, resource=user.username)
    return _redirect("/login")
