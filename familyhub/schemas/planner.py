"""Planner entry schemas."""

from datetime import date, datetime, timezone
from typing import Literal, Optional

from pydantic import AwareDatetime, BaseModel, Field, model_validator

from familyhub.schemas.family import Priority

EntryType = Literal["task", "event"]


class PlannerEntry(BaseModel):
    id: str = Field(min_length=1)
    type: EntryType = "task"
    title: str = Field(min_length=1)
    notes: str = ""
    priority: Priority = "normal"
    start_date: date
    end_date: Optional[date] = None
    start_time: str = Field(default="", pattern=r"^(\d{2}:\d{2})?$")
    end_time: str = Field(default="", pattern=r"^(\d{2}:\d{2})?$")
    share_code: Optional[str] = None
    imported_from: Optional[str] = None  # share code this entry was copied from
    created_at: AwareDatetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def _check_dates(self) -> "PlannerEntry":
        if self.type == "task":
            self.end_date = self.start_date
        elif self.end_date is None:
            self.end_date = self.start_date
        elif self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date.")
        return self


class PlannerResponse(BaseModel):
    entries: list[PlannerEntry]


class PlannerReplaceRequest(BaseModel):
    entries: list[PlannerEntry]


class SharedEntryResponse(BaseModel):
    owner: str
    entry: PlannerEntry
