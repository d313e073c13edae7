"""Per-user API customization endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from biancu.api.dependencies import get_current_user, get_database
from biancu.api.schemas import ApiCustomizationRequest, CustomizedApiTestRequest, Envelope, envelope
from biancu.auth import UserContext
from biancu.db import DatabaseClient
from biancu.services import api_customizations as service

router = APIRouter(prefix="/api-customizations")


@router.get("/{use_case_id}", response_model=Envelope, response_model_exclude_none=True)
def list_customizations(
    use_case_id: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    items = [item.to_record() for item in service.list_customizations(db, user, use_case_id)]
    return envelope(items, count=len(items))


@router.get("/{use_case_id}/{api_name}", response_model=Envelope, response_model_exclude_none=True)
def get_customization(
    use_case_id: str,
    api_name: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    customization = service.get_customization(db, user, use_case_id, api_name)
    if customization is None:
        return envelope(None, message="No customization found for this API")
    return envelope(customization.to_record())


@router.post("", response_model=Envelope, response_model_exclude_none=True)
def save_customization(
    request: ApiCustomizationRequest,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    data = request.model_dump(exclude={"use_case_id", "api_name"})
    customization, created = service.save_customization(db, user, request.use_case_id, request.api_name, data)
    message = "Customization created successfully" if created else "Customization updated successfully"
    return envelope(customization.to_record(), message=message)


@router.post("/{use_case_id}/{api_name}/test", response_model=Envelope, response_model_exclude_none=True)
def test_customized_api(
    use_case_id: str,
    api_name: str,
    request: CustomizedApiTestRequest,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    """Call the API with the saved customization; HTTP failures are reported in ``data``."""

    result = service.test_customized_api(
        db,
        user,
        use_case_id,
        api_name,
        method=request.method,
        endpoint=request.endpoint,
        use_custom_data=request.use_custom_data,
        override_payload=request.override_payload,
        override_headers=request.override_headers,
    )
    return envelope(result)


@router.post("/{use_case_id}/{api_name}/reset", response_model=Envelope, response_model_exclude_none=True)
def reset_customization(
    use_case_id: str,
    api_name: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    customization = service.reset_customization(db, user, use_case_id, api_name)
    return envelope(customization.to_record(), message="Customization reset to defaults")


@router.delete("/{use_case_id}/{api_name}", response_model=Envelope, response_model_exclude_none=True)
def delete_customization(
    use_case_id: str,
    api_name: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    service.delete_customization(db, user, use_case_id, api_name)
    return envelope(message="Customization deleted successfully")
