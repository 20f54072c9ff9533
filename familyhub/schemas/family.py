"""Family document and family API schemas."""

import datetime as dt
from typing import Annotated, Literal, Optional, Union

from pydantic import AwareDatetime, BaseModel, Field, field_validator

from familyhub.schemas.user import UserResponse

MemberRole = Literal["owner", "adult", "kid"]
JoinRole = Literal["adult", "kid"]
Priority = Literal["low", "normal", "high"]


class Member(BaseModel):
    username: str = Field(min_length=1)
    role: MemberRole


class Reminder(BaseModel):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    notes: str = ""
    priority: Priority = "normal"
    date: Optional[dt.date] = None
    time: str = Field(default="", pattern=r"^(\d{2}:\d{2})?$")
    assigned_to: list[str] = Field(default_factory=list)  # empty = everyone
    created_by: str
    created_at: AwareDatetime


class ChatMessage(BaseModel):
    id: str = Field(min_length=1)
    username: str = Field(min_length=1)
    message: str
    created_at: AwareDatetime

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value):
        return "" if value is None else str(value)


class FamilyDocument(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    code: str
    owner: str
    created_at: AwareDatetime
    regenerated_at: Optional[AwareDatetime] = None
    members: list[Member] = Field(default_factory=list)
    reminders: list[Reminder] = Field(default_factory=list)
    chat: list[ChatMessage] = Field(default_factory=list)

    @field_validator("members")
    @classmethod
    def _unique_members(cls, members: list[Member]) -> list[Member]:
        seen = set()
        for m in members:
            if m.username in seen:
                raise ValueError(f"Duplicate member: {m.username}")
            seen.add(m.username)
        return members

    def member(self, username: str) -> Optional[Member]:
        return next((m for m in self.members if m.username == username), None)


# --- Requests / responses ---

class FamilyCreateRequest(BaseModel):
    model_config = {"str_strip_whitespace": True}

    name: str = Field(min_length=1, max_length=100)
    owner: str = Field(min_length=1)


class FamilyReplaceRequest(BaseModel):
    family: FamilyDocument


class JoinAction(BaseModel):
    action: Literal["join"]
    username: str = Field(min_length=1)
    code: str = Field(min_length=1)
    role: JoinRole = "adult"


class RegenerateAction(BaseModel):
    action: Literal["regenerate"]
    family_id: str = Field(min_length=1)


class UpdateMemberRoleAction(BaseModel):
    action: Literal["updateMemberRole"]
    family_id: str = Field(min_length=1)
    username: str = Field(min_length=1)
    role: MemberRole


class LeaveAction(BaseModel):
    action: Literal["leave"]
    family_id: str = Field(min_length=1)
    username: str = Field(min_length=1)


FamilyAction = Annotated[
    Union[JoinAction, RegenerateAction, UpdateMemberRoleAction, LeaveAction],
    Field(discriminator="action"),
]


class FamilyEnvelope(BaseModel):
    family: FamilyDocument


class FamilyListResponse(BaseModel):
    families: list[FamilyDocument]


class FamilyActionResponse(BaseModel):
    family: FamilyDocument
    user: Optional[UserResponse] = None
