"""Common API dependencies: service lookup from application state."""

from fastapi import Request

from familyhub.services.assistant_service import AssistantGateway
from familyhub.services.directory_service import DirectoryService
from familyhub.services.family_service import FamilyRegistry
from familyhub.services.planner_service import PlannerService


def get_directory(request: Request) -> DirectoryService:
    return request.app.state.directory


def get_registry(request: Request) -> FamilyRegistry:
    return request.app.state.registry


def get_planner_service(request: Request) -> PlannerService:
    return request.app.state.planner


def get_assistant(request: Request) -> AssistantGateway:
    return request.app.state.assistant
