"""Family registry API endpoints."""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from familyhub.api.deps import get_registry
from familyhub.errors import ValidationError, from_schema_error
from familyhub.schemas.family import (
    FamilyAction,
    FamilyActionResponse,
    FamilyCreateRequest,
    FamilyEnvelope,
    FamilyListResponse,
    FamilyReplaceRequest,
    JoinAction,
    LeaveAction,
    RegenerateAction,
    UpdateMemberRoleAction,
)
from familyhub.schemas.user import UserResponse
from familyhub.services.family_service import FamilyRegistry

router = APIRouter(prefix="/families", tags=["families"])

_action_adapter = TypeAdapter(FamilyAction)


@router.get("", response_model=FamilyListResponse)
def list_families(
    member: Optional[str] = Query(default=None),
    registry: FamilyRegistry = Depends(get_registry),
):
    """List families, optionally only those `member` belongs to."""
    return FamilyListResponse(families=registry.list_families(member))


@router.get("/by-code/{code}", response_model=FamilyEnvelope)
def get_family_by_code(code: str, registry: FamilyRegistry = Depends(get_registry)):
    return FamilyEnvelope(family=registry.get_by_code(code))


@router.get("/{family_id}", response_model=FamilyEnvelope)
def get_family(family_id: str, registry: FamilyRegistry = Depends(get_registry)):
    return FamilyEnvelope(family=registry.get_family(family_id))


@router.post("", response_model=FamilyEnvelope, status_code=status.HTTP_201_CREATED)
def create_family(request: FamilyCreateRequest, registry: FamilyRegistry = Depends(get_registry)):
    return FamilyEnvelope(family=registry.create_family(request.name, request.owner))


@router.put("/{family_id}", response_model=FamilyEnvelope)
def replace_family(
    family_id: str,
    request: FamilyReplaceRequest,
    registry: FamilyRegistry = Depends(get_registry),
):
    """Whole-document replace. Last write wins."""
    if request.family.id != family_id:
        raise ValidationError("Family id in path and body differ")
    return FamilyEnvelope(family=registry.replace_family(request.family))


@router.patch("", response_model=FamilyActionResponse)
def family_action(
    payload: dict = Body(...),
    registry: FamilyRegistry = Depends(get_registry),
):
    """Targeted mutations: join, regenerate, updateMemberRole, leave."""
    try:
        action = _action_adapter.validate_python(payload)
    except SchemaError as e:
        raise from_schema_error(e) from e

    if isinstance(action, JoinAction):
        family, user = registry.join_by_code(action.username, action.code, action.role)
    elif isinstance(action, RegenerateAction):
        return FamilyActionResponse(family=registry.regenerate_code(action.family_id))
    elif isinstance(action, UpdateMemberRoleAction):
        family, user = registry.update_member_role(action.family_id, action.username, action.role)
    elif isinstance(action, LeaveAction):
        family, user = registry.leave_family(action.family_id, action.username)
    else:
        raise ValidationError("Unsupported action")
    return FamilyActionResponse(family=family, user=UserResponse.from_record(user))
