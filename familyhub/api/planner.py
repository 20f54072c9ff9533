"""Planner API endpoints."""

from fastapi import APIRouter, Depends

from familyhub.api.deps import get_planner_service
from familyhub.schemas.planner import PlannerReplaceRequest, PlannerResponse, SharedEntryResponse
from familyhub.services.planner_service import PlannerService

router = APIRouter(prefix="/planner", tags=["planner"])


@router.get("/share/{code}", response_model=SharedEntryResponse)
def get_shared_entry(code: str, planner: PlannerService = Depends(get_planner_service)):
    owner, entry = planner.find_by_share_code(code)
    return SharedEntryResponse(owner=owner, entry=entry)


@router.get("/{username}", response_model=PlannerResponse)
def get_planner(username: str, planner: PlannerService = Depends(get_planner_service)):
    return PlannerResponse(entries=planner.get_planner(username))


@router.put("/{username}", response_model=PlannerResponse)
def replace_planner(
    username: str,
    request: PlannerReplaceRequest,
    planner: PlannerService = Depends(get_planner_service),
):
    return PlannerResponse(entries=planner.replace_planner(username, request.entries))
