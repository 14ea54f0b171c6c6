"""Recurring job expansion - turns one recurrence rule into dated occurrences"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .exceptions import RecurrenceError
from .schemas import JOB_TYPE_LABELS, Frequency, Job, JobCreate, JobStatus, JobType, RecurrencePattern

# Fixed-day approximation; "monthly" drifts against calendar months
INTERVAL_DAYS = {
    Frequency.WEEKLY: 7,
    Frequency.BIWEEKLY: 14,
    Frequency.MONTHLY: 30,
}

MIN_SERIES_OCCURRENCES = 2


@dataclass(frozen=True)
class Occurrence:
    start_time: datetime
    occurrence_number: int
    recurring_id: Optional[str]


def interval_days(frequency: Frequency) -> int:
    return INTERVAL_DAYS[Frequency(frequency)]


def new_series_id() -> str:
    return uuid.uuid4().hex


def expand_occurrences(
    start_time: datetime,
    frequency: Optional[Frequency] = None,
    occurrence_count: int = 1,
    recurring: bool = False,
) -> list[Occurrence]:
    """
    Expand a recurrence rule into ordered occurrences.

    Occurrence i (0-based) starts at start_time + i * interval_days(frequency)
    and is numbered i + 1. All occurrences of a multi-occurrence series share
    one fresh series id; a single occurrence has none.

    Raises:
        RecurrenceError: recurrence requested with fewer than 2 occurrences,
            or no frequency given for a series
    """
    if not recurring:
        return [Occurrence(start_time=start_time, occurrence_number=1, recurring_id=None)]

    if occurrence_count < MIN_SERIES_OCCURRENCES:
        raise RecurrenceError(
            f"Recurring jobs need at least {MIN_SERIES_OCCURRENCES} occurrences"
        )
    if frequency is None:
        raise RecurrenceError("Recurring jobs need a frequency")

    step = timedelta(days=interval_days(frequency))
    series_id = new_series_id()
    return [
        Occurrence(start_time=start_time + i * step, occurrence_number=i + 1, recurring_id=series_id)
        for i in range(occurrence_count)
    ]


def build_title(client_name: str, job_type: JobType) -> str:
    """Client name plus the job type label, unless the name already says it"""
    label = JOB_TYPE_LABELS[JobType(job_type)]
    if label.lower() in client_name.lower():
        return client_name
    return f"{client_name} - {label}"


def build_jobs(form: JobCreate) -> list[Job]:
    """Materialize the unsaved Job records for a submitted job form"""
    occurrences = expand_occurrences(
        form.startTime,
        frequency=form.frequency,
        occurrence_count=form.occurrenceCount,
        recurring=form.isRecurring,
    )
    is_series = len(occurrences) > 1
    pattern = (
        RecurrencePattern(frequency=form.frequency, interval_days=interval_days(form.frequency))
        if is_series
        else None
    )
    title = build_title(form.clientName, form.jobType)

    return [
        Job(
            title=title,
            start_time=occ.start_time,
            job_type=form.jobType,
            notes=form.notes,
            price=form.price,
            address=form.address,
            client_phone=form.phone,
            status=JobStatus.PENDING,
            recurring_id=occ.recurring_id,
            is_recurring=is_series,
            recurrence_pattern=pattern,
            occurrence_number=occ.occurrence_number,
        )
        for occ in occurrences
    ]
