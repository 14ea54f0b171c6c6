"""Job domain schemas - canonical Job type, request models and boundary mappings"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.validators import parse_price, price_from_title, validate_us_phone


class JobType(str, Enum):
    MOWING = "mowing"
    HEDGE = "hedge"


JOB_TYPE_LABELS = {
    JobType.MOWING: "Mowing",
    JobType.HEDGE: "Hedge Trimming",
}


class JobStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = {JobStatus.DONE, JobStatus.CANCELLED}


class Frequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class RecurrencePattern(BaseModel):
    frequency: Frequency
    interval_days: int = Field(gt=0)


class Job(BaseModel):
    """One dated occurrence of a lawn job, in the shape of a `jobs` table row"""

    id: Optional[int] = None
    title: str
    start_time: datetime
    job_type: JobType
    notes: Optional[str] = None
    price: Optional[Decimal] = None
    address: Optional[str] = None
    client_phone: Optional[str] = None
    status: JobStatus = JobStatus.PENDING
    recurring_id: Optional[str] = None
    is_recurring: bool = False
    recurrence_pattern: Optional[RecurrencePattern] = None
    occurrence_number: int = 1
    google_event_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("start_time")
    @classmethod
    def strip_timezone(cls, v: datetime) -> datetime:
        # Local wall-clock time; an offset from the store is dropped, not converted
        return v.replace(tzinfo=None) if v.tzinfo else v

    @field_validator("price", mode="before")
    @classmethod
    def validate_price(cls, v):
        return parse_price(v)

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v):
        return v or JobStatus.PENDING

    @field_validator("is_recurring", mode="before")
    @classmethod
    def default_is_recurring(cls, v):
        return bool(v)

    @field_validator("occurrence_number", mode="before")
    @classmethod
    def default_occurrence_number(cls, v):
        return v or 1

    @model_validator(mode="after")
    def fill_legacy_price(self):
        if self.price is None:
            self.price = price_from_title(self.title)
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class JobCreate(BaseModel):
    """Schema for the new-job form (one-off or recurring series)"""

    clientName: str
    jobType: JobType
    startTime: datetime
    phone: Optional[str] = None
    address: Optional[str] = None
    price: Optional[Decimal] = None
    notes: Optional[str] = None
    isRecurring: bool = False
    frequency: Optional[Frequency] = None
    occurrenceCount: int = Field(default=1, ge=1)

    @field_validator("clientName")
    @classmethod
    def validate_client_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Please enter client name")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v or None

    @field_validator("price", mode="before")
    @classmethod
    def validate_price(cls, v):
        return parse_price(v)

    @model_validator(mode="after")
    def require_frequency(self):
        if self.isRecurring and self.frequency is None:
            raise ValueError("Please pick how often the job repeats")
        return self


class JobUpdate(BaseModel):
    """Schema for editing a job or a range of a series"""

    title: Optional[str] = None
    startTime: Optional[datetime] = None
    jobType: Optional[JobType] = None
    notes: Optional[str] = None
    price: Optional[Decimal] = None
    address: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v

    @field_validator("startTime")
    @classmethod
    def strip_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return v.replace(tzinfo=None) if v is not None and v.tzinfo else v

    @field_validator("price", mode="before")
    @classmethod
    def validate_price(cls, v):
        return parse_price(v)

    def to_updates(self, include_schedule: bool = True) -> dict[str, Any]:
        """Map set fields onto row columns.

        Bulk edits pass include_schedule=False so occurrence dates are kept.
        """
        updates = {}
        if self.title is not None:
            updates["title"] = self.title
        if self.startTime is not None and include_schedule:
            updates["start_time"] = self.startTime
        if self.jobType is not None:
            updates["job_type"] = self.jobType
        if self.notes is not None:
            updates["notes"] = self.notes
        if self.price is not None:
            updates["price"] = self.price
        if self.address is not None:
            updates["address"] = self.address
        if self.phone is not None:
            updates["client_phone"] = self.phone
        return updates


class ScopeChoiceResponse(BaseModel):
    jobId: int
    state: str
    scopes: list[str]
    recurringId: Optional[str] = None


class JobStats(BaseModel):
    totalJobs: int
    completedJobs: int
    cancelledJobs: int
    activeJobs: int
    jobsByType: dict[str, int]
    completedRevenue: Decimal
    jobsLast7Days: int
    jobsLast30Days: int
    source: str


# ============================================================================
# BOUNDARY MAPPINGS
# ============================================================================


def job_to_row(job: Job, include_id: bool = True) -> dict[str, Any]:
    """Serialize a Job into a JSON-ready `jobs` row"""
    exclude = {name for name in ("created_at", "updated_at") if getattr(job, name) is None}
    if not include_id:
        exclude = exclude | {"id"}
    return job.model_dump(mode="json", exclude=exclude)


def serialize_updates(updates: dict[str, Any]) -> dict[str, Any]:
    """JSON-encode a partial update (datetimes, decimals and enums)"""
    out = {}
    for key, value in updates.items():
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, Decimal):
            value = str(value)
        elif isinstance(value, Enum):
            value = value.value
        out[key] = value
    return out


# Older device-local entries were stored in the calendar widget's shape
LEGACY_MIRROR_KEYS = {"start": "start_time", "type": "job_type", "phone": "client_phone"}


def job_from_mirror(entry: dict[str, Any]) -> Job:
    """Read a local mirror entry, accepting the legacy widget-shaped keys"""
    data = {k: v for k, v in entry.items() if k != "classNames"}
    for legacy, column in LEGACY_MIRROR_KEYS.items():
        if legacy in data:
            value = data.pop(legacy)
            data.setdefault(column, value)
    if isinstance(data.get("id"), str) and data["id"].isdigit():
        data["id"] = int(data["id"])
    start = data.get("start_time")
    if isinstance(start, str) and len(start) == 10:
        # All-day legacy entries carry a bare date
        data["start_time"] = f"{start}T00:00:00"
    return Job.model_validate(data)
