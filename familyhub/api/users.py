"""User directory API endpoints."""

from fastapi import APIRouter, Depends, status

from familyhub.api.deps import get_directory
from familyhub.errors import NotFound
from familyhub.schemas.user import (
    LoginRequest,
    UserCreateRequest,
    UserEnvelope,
    UserListResponse,
    UserResponse,
    UserUpdateRequest,
)
from familyhub.services.directory_service import DirectoryService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=UserListResponse)
def list_users(directory: DirectoryService = Depends(get_directory)):
    return UserListResponse(users=[UserResponse.from_record(u) for u in directory.list_users()])


@router.get("/by-email/{email}", response_model=UserEnvelope)
def get_user_by_email(email: str, directory: DirectoryService = Depends(get_directory)):
    user = directory.find_by_email(email)
    if user is None:
        raise NotFound("User not found")
    return UserEnvelope(user=UserResponse.from_record(user))


@router.get("/{username}", response_model=UserEnvelope)
def get_user(username: str, directory: DirectoryService = Depends(get_directory)):
    return UserEnvelope(user=UserResponse.from_record(directory.get_user(username)))


@router.post("", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
def create_user(request: UserCreateRequest, directory: DirectoryService = Depends(get_directory)):
    """Sign up. Duplicate usernames are rejected; duplicate emails are allowed."""
    user = directory.create_user(request)
    return UserEnvelope(user=UserResponse.from_record(user))


@router.post("/login", response_model=UserEnvelope)
def login(request: LoginRequest, directory: DirectoryService = Depends(get_directory)):
    user = directory.login(
        request.username,
        request.password,
        device_id=request.device_id,
        device_label=request.device_label,
    )
    return UserEnvelope(user=UserResponse.from_record(user))


@router.put("/{username}", response_model=UserEnvelope)
def update_user(
    username: str,
    request: UserUpdateRequest,
    directory: DirectoryService = Depends(get_directory),
):
    user = directory.update_user(username, request.updates)
    return UserEnvelope(user=UserResponse.from_record(user))
