"""Google sign-in and session endpoints."""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse

from biancu.api.dependencies import get_current_user, get_database
from biancu.api.schemas import Envelope, envelope
from biancu.auth import UserContext, get_auth_manager
from biancu.auth.google import GoogleAuthError, GoogleOAuthService
from biancu.config import CONFIG
from biancu.db import DatabaseClient
from biancu.db.models import Company, CompanyUser
from biancu.services.companies import resolve_google_login
from biancu.services.errors import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")
google_service = GoogleOAuthService()


def _issue_token(user: UserContext) -> str:
    return get_auth_manager().issue_token(
        user_id=user.user_id,
        email=user.email or "",
        company_id=user.company_id,
        role=user.role,
        name=user.name,
    )


@router.get("/google")
def google_login() -> RedirectResponse:
    """Redirect the browser to the Google consent screen."""

    try:
        url, _ = google_service.generate_authorization_url()
    except GoogleAuthError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


@router.get("/google/callback")
def google_callback(
    code: str = Query(default=""),
    state: str = Query(default=""),
    error: str = Query(default=""),
    db: DatabaseClient = Depends(get_database),
) -> RedirectResponse:
    """
    Finish the Google sign-in.

    Success redirects to the front end with the platform token in the query
    string; any failure lands on the login page with ``error=auth_failed``.
    """

    failure = RedirectResponse(f"{CONFIG.frontend_url}/login?error=auth_failed", status_code=status.HTTP_302_FOUND)
    if error:
        logger.info("Google sign-in cancelled: %s", error)
        return failure

    try:
        profile = google_service.exchange_code(state, code)
        member = resolve_google_login(db, profile)
    except (GoogleAuthError, ServiceError) as exc:
        logger.warning("Google sign-in failed: %s", exc)
        return failure

    token = _issue_token(
        UserContext(
            user_id=member.id,
            company_id=member.company_id,
            email=member.email,
            name=member.name,
            role=member.role,
        )
    )
    logger.info("User %s signed in", member.email)
    return RedirectResponse(
        f"{CONFIG.frontend_url}/auth/callback?{urlencode({'token': token})}",
        status_code=status.HTTP_302_FOUND,
    )


@router.get("/me", response_model=Envelope, response_model_exclude_none=True)
def me(user: UserContext = Depends(get_current_user), db: DatabaseClient = Depends(get_database)) -> Envelope:
    record = db.get_user(user.user_id)
    if not record:
        return envelope({"user": user.to_dict(), "company": None})

    member = CompanyUser.from_record(record).to_record()
    company_record = db.get_company(user.company_id)
    company = Company.from_record(company_record).to_record() if company_record else None
    return envelope({"user": member, "company": company})


@router.post("/logout", response_model=Envelope, response_model_exclude_none=True)
def logout(user: UserContext = Depends(get_current_user)) -> Envelope:
    """Tokens are stateless; the client discards its copy."""

    logger.info("User %s signed out", user.user_id)
    return envelope(message="Session closed")


@router.post("/refresh", response_model=Envelope, response_model_exclude_none=True)
def refresh(user: UserContext = Depends(get_current_user)) -> Envelope:
    return envelope({"token": _issue_token(user)}, message="Token refreshed")
