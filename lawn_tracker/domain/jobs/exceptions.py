"""Job domain errors, mapped to HTTP responses in main.py"""

from typing import Optional


class JobError(Exception):
    """Base class for job domain errors"""


class RecurrenceError(JobError):
    """Recurrence request cannot be expanded (e.g. fewer than 2 occurrences)"""


class JobNotFoundError(JobError):
    def __init__(self, job_id):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class JobStateError(JobError):
    """Action not allowed for the job's current status"""


class ScopeRequiredError(JobError):
    """A recurring job was given no scope (single, future or series)"""


class StoreError(JobError):
    """Base class for job store failures"""


class RemoteStoreError(StoreError):
    """Remote store request failed (network error, missing credentials, non-2xx)"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LocalStoreError(StoreError):
    """The device-local mirror could not be read or written"""
