# backend/app/models/job_models.py

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    ValidationInfo,
    field_validator,
    model_validator,
)


class JobStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TIME_SLOTS = ("Morning", "Afternoon", "Evening")


# ----------------------------------------------------------
# ITINERARY (the LLM output contract)
# ----------------------------------------------------------
class Activity(BaseModel):
    time: Literal["Morning", "Afternoon", "Evening"]
    description: StrictStr = Field(min_length=1)
    location: StrictStr = Field(min_length=1)


class Day(BaseModel):
    day: StrictInt = Field(ge=1)
    theme: StrictStr = Field(min_length=1)
    activities: List[Activity] = Field(min_length=3, max_length=3)

    @field_validator("activities")
    @classmethod
    def _one_activity_per_slot(cls, activities: List[Activity]) -> List[Activity]:
        slots = sorted(a.time for a in activities)
        if slots != sorted(TIME_SLOTS):
            raise ValueError("activities must cover Morning, Afternoon and Evening once each")
        return activities


class ItineraryPayload(BaseModel):
    """
    Top-level object the model must return.

    Pass `context={"duration_days": n}` to also require one day per
    requested day. Extra keys (destination, durationDays echo) are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    itinerary: List[Day] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_days(self, info: ValidationInfo):
        numbers = [d.day for d in self.itinerary]
        if len(set(numbers)) != len(numbers):
            raise ValueError("day numbers must be unique")

        expected = (info.context or {}).get("duration_days")
        if expected is not None and len(self.itinerary) != expected:
            raise ValueError(f"expected {expected} days, got {len(self.itinerary)}")

        self.itinerary.sort(key=lambda d: d.day)
        return self


# ----------------------------------------------------------
# JOB SNAPSHOT (what is stored and served)
# ----------------------------------------------------------
class JobSnapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    status: JobStatus
    destination: str
    duration_days: int = Field(alias="durationDays")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")
    itinerary: List[Day] = Field(default_factory=list)
    error: Optional[str] = None

    def to_response(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ----------------------------------------------------------
# HTTP BODIES
# ----------------------------------------------------------
class CreateJobIn(BaseModel):
    destination: StrictStr
    durationDays: StrictInt = Field(ge=1)

    @field_validator("destination")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("destination must not be empty")
        return value


class JobCreatedOut(BaseModel):
    jobId: str
