"""Company administration endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from biancu.api.dependencies import get_admin_user, get_current_user, get_database
from biancu.api.schemas import CompanyUpdateRequest, Envelope, RoleUpdateRequest, StatusUpdateRequest, envelope
from biancu.auth import UserContext
from biancu.db import DatabaseClient
from biancu.db.models import CompanyUser
from biancu.services import companies as service

router = APIRouter(prefix="/companies")


def _member_summary(member: CompanyUser) -> Dict[str, Any]:
    return {
        "user_id": member.id,
        "name": member.name,
        "email": member.email,
        "role": member.role,
        "is_active": member.is_active,
    }


@router.get("/current", response_model=Envelope, response_model_exclude_none=True)
def get_current_company(
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    return envelope(service.get_current_company(db, user).to_record())


@router.put("/current", response_model=Envelope, response_model_exclude_none=True)
def update_current_company(
    request: CompanyUpdateRequest,
    user: UserContext = Depends(get_admin_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    company = service.update_current_company(db, user, request.model_dump(exclude_none=True))
    return envelope(company.to_record(), message="Company updated")


@router.get("/current/users", response_model=Envelope, response_model_exclude_none=True)
def list_company_users(
    user: UserContext = Depends(get_admin_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    users = [member.to_record() for member in service.list_company_users(db, user)]
    return envelope(users, count=len(users))


@router.put("/current/users/{user_id}/role", response_model=Envelope, response_model_exclude_none=True)
def set_user_role(
    user_id: str,
    request: RoleUpdateRequest,
    user: UserContext = Depends(get_admin_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    member = service.set_user_role(db, user, user_id, request.role)
    return envelope(_member_summary(member), message="User role updated")


@router.put("/current/users/{user_id}/status", response_model=Envelope, response_model_exclude_none=True)
def set_user_status(
    user_id: str,
    request: StatusUpdateRequest,
    user: UserContext = Depends(get_admin_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    member = service.set_user_status(db, user, user_id, request.is_active)
    return envelope(_member_summary(member), message="User status updated")
