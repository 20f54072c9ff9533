"""User directory request/response schemas."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import AwareDatetime, BaseModel, Field

UserRole = Literal["solo", "owner", "adult", "kid", "demo"]


class UserRecord(BaseModel):
    """Stored user document. `password` holds a bcrypt hash."""

    model_config = {"str_strip_whitespace": True}

    username: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str
    role: UserRole = "solo"
    family_id: Optional[str] = None
    verified: bool = True
    created_at: AwareDatetime
    last_login: Optional[AwareDatetime] = None
    last_device_id: Optional[str] = None
    last_device_label: Optional[str] = None


class UserResponse(BaseModel):
    username: str
    email: str
    role: UserRole
    family_id: Optional[str]
    verified: bool
    created_at: datetime
    last_login: Optional[datetime]
    last_device_id: Optional[str]
    last_device_label: Optional[str]

    @classmethod
    def from_record(cls, record: UserRecord) -> "UserResponse":
        return cls(**record.model_dump(exclude={"password"}))


class UserCreateRequest(BaseModel):
    model_config = {"str_strip_whitespace": True}

    username: str = Field(min_length=1, max_length=64)
    email: str = Field(min_length=3, pattern=r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
    password: str = Field(min_length=1)
    role: UserRole = "solo"


class UserUpdate(BaseModel):
    """Fields a caller may change. Anything else is dropped on parse."""

    model_config = {"extra": "ignore", "str_strip_whitespace": True}

    family_id: Optional[str] = None
    role: Optional[UserRole] = None
    last_login: Optional[AwareDatetime] = None
    email: Optional[str] = None
    password: Optional[str] = None
    verified: Optional[bool] = None
    last_device_id: Optional[str] = None
    last_device_label: Optional[str] = None


class UserUpdateRequest(BaseModel):
    updates: dict[str, Any]


class LoginRequest(BaseModel):
    username: str
    password: str
    device_id: Optional[str] = None
    device_label: Optional[str] = None


class UserEnvelope(BaseModel):
    user: UserResponse


class UserListResponse(BaseModel):
    users: list[UserResponse]
