"""Companies, their members and Google sign-in account resolution."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from biancu.auth.google import GoogleProfile
from biancu.auth.user_context import UserContext
from biancu.config import CONFIG
from biancu.db.client import DatabaseClient
from biancu.db.models import COMPANY_FEATURES, USER_ROLES, Company, CompanyUser, utcnow
from biancu.services.errors import NotFoundError, PermissionDeniedError, ServiceError, ValidationError

logger = logging.getLogger(__name__)


def _require_admin(user: UserContext, action: str) -> None:
    if not user.is_admin:
        raise PermissionDeniedError(f"Not authorised to {action}")


def get_company(db: DatabaseClient, company_id: str) -> Company:
    record = db.get_company(company_id)
    if not record:
        raise NotFoundError("Company not found")
    return Company.from_record(record)


def get_current_company(db: DatabaseClient, user: UserContext) -> Company:
    return get_company(db, user.company_id)


def update_current_company(db: DatabaseClient, user: UserContext, changes: Dict[str, Any]) -> Company:
    """Apply an admin's edits to the caller's company; ``settings`` keys are merged."""

    _require_admin(user, "update the company")
    company = get_current_company(db, user)

    updates: Dict[str, Any] = {}
    if changes.get("name") is not None:
        updates["name"] = str(changes["name"]).strip()
    if "description" in changes and changes["description"] is not None:
        updates["description"] = changes["description"]

    settings_changes = changes.get("settings") or {}
    if settings_changes:
        settings = asdict(company.settings)
        if settings_changes.get("allowed_domains") is not None:
            settings["allowed_domains"] = sorted(
                {str(domain).strip().lower() for domain in settings_changes["allowed_domains"] if str(domain).strip()}
            )
        if settings_changes.get("max_users") is not None:
            settings["max_users"] = int(settings_changes["max_users"])
        if settings_changes.get("max_use_cases") is not None:
            settings["max_use_cases"] = int(settings_changes["max_use_cases"])
        if settings_changes.get("features") is not None:
            unknown = [f for f in settings_changes["features"] if f not in COMPANY_FEATURES]
            if unknown:
                raise ValidationError(f"Unknown features: {', '.join(unknown)}")
            settings["features"] = list(dict.fromkeys(settings_changes["features"]))
        updates["settings"] = settings

    if not updates:
        return company

    record = db.update_company(company.id, updates)
    if not record:
        raise ServiceError("Could not update the company")
    logger.info("Company %s updated by %s", company.id, user.user_id)
    return Company.from_record(record)


def list_company_users(db: DatabaseClient, user: UserContext) -> List[CompanyUser]:
    _require_admin(user, "list company users")
    return [CompanyUser.from_record(row) for row in db.list_company_users(user.company_id)]


def _target_user(db: DatabaseClient, user: UserContext, target_id: str) -> CompanyUser:
    record = db.get_user(target_id)
    if not record or record.get("company_id") != user.company_id:
        raise NotFoundError("User not found in the company")
    return CompanyUser.from_record(record)


def _active_admin_count(db: DatabaseClient, company_id: str) -> int:
    return sum(
        1
        for row in db.list_company_users(company_id)
        if row.get("role") == "admin" and row.get("is_active", True)
    )


def set_user_role(db: DatabaseClient, user: UserContext, target_id: str, role: str) -> CompanyUser:
    _require_admin(user, "change user roles")
    if role not in USER_ROLES:
        raise ValidationError("Role must be admin or user")
    target = _target_user(db, user, target_id)

    if target.id == user.user_id and role == "user" and _active_admin_count(db, user.company_id) <= 1:
        raise ValidationError("You cannot drop the admin role while you are the only admin")

    record = db.update_user(target.id, {"role": role})
    if not record:
        raise ServiceError("Could not update the user role")
    logger.info("User %s role set to %s by %s", target.id, role, user.user_id)
    return CompanyUser.from_record(record)


def set_user_status(db: DatabaseClient, user: UserContext, target_id: str, is_active: bool) -> CompanyUser:
    _require_admin(user, "change user status")
    target = _target_user(db, user, target_id)

    if (
        target.id == user.user_id
        and not is_active
        and target.role == "admin"
        and _active_admin_count(db, user.company_id) <= 1
    ):
        raise ValidationError("You cannot deactivate yourself while you are the only active admin")

    record = db.update_user(target.id, {"is_active": bool(is_active)})
    if not record:
        raise ServiceError("Could not update the user status")
    logger.info("User %s active=%s set by %s", target.id, is_active, user.user_id)
    return CompanyUser.from_record(record)


def _create_company_for_domain(db: DatabaseClient, domain: str) -> Company:
    record = db.create_company(
        {
            "name": f"{domain.split('.')[0]} Company",
            "description": None,
            "domain": domain,
            "is_active": True,
            "settings": {
                "features": list(CONFIG.default_features),
                "allowed_domains": [domain],
                "max_users": CONFIG.default_max_users,
                "max_use_cases": CONFIG.default_max_use_cases,
            },
        }
    )
    if not record:
        raise ServiceError("Could not create a company for the e-mail domain")
    company = Company.from_record(record)
    logger.info("Company created automatically: %s", company.name)
    return company


def resolve_google_login(db: DatabaseClient, profile: GoogleProfile) -> CompanyUser:
    """
    Find or create the account behind a Google sign-in.

    Lookup order is Google id, then e-mail (linking the Google id), then a new
    user in the company owning the e-mail domain. Unknown domains get a new
    company whose first user is its admin.
    """

    now = utcnow().isoformat()

    record = db.get_user_by_google_id(profile.google_id)
    if record:
        return _finish_login(db, record, {"last_login": now})

    record = db.get_user_by_email(profile.email)
    if record:
        return _finish_login(
            db,
            record,
            {"google_id": profile.google_id, "picture": profile.picture, "last_login": now},
        )

    domain = profile.email.rsplit("@", 1)[-1].lower()
    created_company = False
    company_record = db.find_company_for_domain(domain)
    if company_record:
        company = Company.from_record(company_record)
    else:
        company = _create_company_for_domain(db, domain)
        created_company = True

    members = [row for row in db.list_company_users(company.id) if row.get("is_active", True)]
    if len(members) >= company.settings.max_users:
        raise PermissionDeniedError("The company has reached its maximum number of users")

    created = db.create_user(
        {
            "google_id": profile.google_id,
            "email": profile.email,
            "name": profile.name,
            "picture": profile.picture,
            "company_id": company.id,
            "role": "admin" if created_company else "user",
            "is_active": True,
            "last_login": now,
        }
    )
    if not created:
        raise ServiceError("Could not register the user")
    logger.info("New user registered: %s", profile.email)
    return CompanyUser.from_record(created)


def _finish_login(db: DatabaseClient, record: Dict[str, Any], updates: Dict[str, Any]) -> CompanyUser:
    user = CompanyUser.from_record(record)
    if not user.is_active:
        raise PermissionDeniedError("The account is deactivated")
    refreshed = db.update_user(user.id, updates)
    return CompanyUser.from_record(refreshed or record)


def load_user_context(db: DatabaseClient, user_id: str) -> Optional[UserContext]:
    """Context for an active user, or ``None`` when the account is missing or disabled."""

    record = db.get_user(user_id)
    if not record:
        return None
    user = CompanyUser.from_record(record)
    if not user.is_active:
        return None
    return UserContext(
        user_id=user.id,
        company_id=user.company_id,
        email=user.email,
        name=user.name,
        role=user.role,
    )


__all__ = [
    "get_company",
    "get_current_company",
    "list_company_users",
    "load_user_context",
    "resolve_google_login",
    "set_user_role",
    "set_user_status",
    "update_current_company",
]
