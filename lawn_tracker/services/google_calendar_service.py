"""
Google Calendar Service
Mirrors lawn jobs into a shared Google Calendar.

Every call is best-effort: failures are logged and reported as None/False,
never raised, so calendar problems cannot block a job save or delete.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional

import httpx

from ..config import (
    BUSINESS_NAME,
    CALENDAR_TIMEZONE,
    DEFAULT_JOB_DURATION_MINUTES,
    GOOGLE_CALENDAR_ID,
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    GOOGLE_REFRESH_TOKEN,
)
from ..domain.jobs.schemas import Job, JobType

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"

JOB_TYPE_EMOJI = {JobType.MOWING: "🌿", JobType.HEDGE: "🌳"}

# Google Calendar palette: 10 = basil (green), 6 = tangerine (brown-ish)
JOB_TYPE_COLOR_IDS = {JobType.MOWING: "10", JobType.HEDGE: "6"}


def job_to_calendar_event(
    job: Job,
    time_zone: str = CALENDAR_TIMEZONE,
    duration_minutes: int = DEFAULT_JOB_DURATION_MINUTES,
) -> Dict[str, Any]:
    """Convert a lawn job into a Google Calendar event body"""
    start_datetime = job.start_time
    end_datetime = start_datetime + timedelta(minutes=duration_minutes)

    description = f"{BUSINESS_NAME} Job\n\n"
    description += f"Type: {job.job_type.value}\n"
    if job.price is not None:
        description += f"Price: ${job.price}\n"
    if job.client_phone:
        description += f"Phone: {job.client_phone}\n"
    if job.notes:
        description += f"Notes: {job.notes}\n"
    description += f"Status: {job.status.value}\n"

    return {
        "summary": f"{JOB_TYPE_EMOJI.get(job.job_type, '')} {job.title or 'Lawn Job'}".strip(),
        "description": description,
        "location": job.address or "",
        # Naive wall-clock time interpreted in the calendar's zone
        "start": {"dateTime": start_datetime.isoformat(), "timeZone": time_zone},
        "end": {"dateTime": end_datetime.isoformat(), "timeZone": time_zone},
        "colorId": JOB_TYPE_COLOR_IDS.get(job.job_type, "10"),
    }


class GoogleCalendarSync:
    """Google Calendar client authenticated with an OAuth refresh token"""

    def __init__(
        self,
        client_id: Optional[str] = GOOGLE_CLIENT_ID,
        client_secret: Optional[str] = GOOGLE_CLIENT_SECRET,
        refresh_token: Optional[str] = GOOGLE_REFRESH_TOKEN,
        calendar_id: str = GOOGLE_CALENDAR_ID,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.calendar_id = calendar_id or "primary"
        self.transport = transport
        self._access_token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None

    @property
    def enabled(self) -> bool:
        return bool(self.client_id and self.client_secret and self.refresh_token)

    @property
    def events_url(self) -> str:
        return f"{GOOGLE_CALENDAR_API}/calendars/{self.calendar_id}/events"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=15.0)

    async def get_access_token(self) -> Optional[str]:
        """
        Get a valid access token, refreshing if necessary
        Returns None if refresh fails
        """
        # Reuse the cached token unless it expires within 5 minutes
        if (
            self._access_token
            and self._token_expires_at
            and self._token_expires_at > datetime.utcnow() + timedelta(minutes=5)
        ):
            return self._access_token

        try:
            logger.info("🔄 Refreshing Google Calendar access token...")
            async with self._client() as client:
                response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "refresh_token": self.refresh_token,
                        "grant_type": "refresh_token",
                    },
                )

            if response.status_code != 200:
                logger.error(f"❌ Token refresh failed: {response.text}")
                return None

            tokens = response.json()
            access_token = tokens.get("access_token")
            if not access_token:
                logger.error("❌ No access token in refresh response")
                return None

            self._access_token = access_token
            self._token_expires_at = datetime.utcnow() + timedelta(
                seconds=tokens.get("expires_in", 3600)
            )
            return access_token

        except Exception as e:
            logger.error(f"❌ Error getting valid access token: {str(e)}")
            return None

    async def _authorized_headers(self) -> Optional[Dict[str, str]]:
        if not self.enabled:
            logger.info("ℹ️ Google Calendar not configured, skipping sync")
            return None
        access_token = await self.get_access_token()
        if not access_token:
            logger.error("❌ Failed to get valid access token")
            return None
        return {"Authorization": f"Bearer {access_token}"}

    async def create_event(self, job: Job) -> Optional[str]:
        """
        Create a calendar event for a job
        Returns the Google Calendar event ID if successful, None otherwise
        """
        try:
            headers = await self._authorized_headers()
            if not headers:
                return None

            async with self._client() as client:
                response = await client.post(
                    self.events_url, headers=headers, json=job_to_calendar_event(job)
                )

            if response.status_code not in [200, 201]:
                logger.error(f"❌ Failed to create calendar event for job {job.id}: {response.text}")
                return None

            event_id = response.json().get("id")
            logger.info(f"✅ Google Calendar event created: {event_id}")
            return event_id

        except Exception as e:
            logger.error(f"❌ Error creating calendar event: {str(e)}")
            return None

    async def update_event(self, job: Job) -> bool:
        """Update the event linked to a job; False if it has none or the call fails"""
        if not job.google_event_id:
            return False
        try:
            headers = await self._authorized_headers()
            if not headers:
                return False

            async with self._client() as client:
                response = await client.put(
                    f"{self.events_url}/{job.google_event_id}",
                    headers=headers,
                    json=job_to_calendar_event(job),
                )

            if response.status_code != 200:
                logger.error(f"❌ Failed to update calendar event: {response.text}")
                return False

            logger.info(f"✅ Google Calendar event updated: {job.google_event_id}")
            return True

        except Exception as e:
            logger.error(f"❌ Error updating calendar event: {str(e)}")
            return False

    async def delete_event(self, google_event_id: str) -> bool:
        """
        Delete a Google Calendar event
        Returns True if successful, False otherwise
        """
        try:
            headers = await self._authorized_headers()
            if not headers:
                return False

            async with self._client() as client:
                response = await client.delete(
                    f"{self.events_url}/{google_event_id}", headers=headers
                )

            # 410 Gone: already deleted on the calendar side
            if response.status_code not in [200, 204, 410]:
                logger.error(f"❌ Failed to delete calendar event: {response.text}")
                return False

            logger.info(f"✅ Google Calendar event deleted: {google_event_id}")
            return True

        except Exception as e:
            logger.error(f"❌ Error deleting calendar event: {str(e)}")
            return False

    async def test_connection(self) -> bool:
        try:
            headers = await self._authorized_headers()
            if not headers:
                return False
            async with self._client() as client:
                response = await client.get(
                    self.events_url, headers=headers, params={"maxResults": 1}
                )
            return response.status_code == 200
        except Exception as e:
            logger.error(f"❌ Google Calendar connection test failed: {str(e)}")
            return False


# ============================================================================
# BACKGROUND TASKS
# ============================================================================


async def sync_created_jobs(calendar: GoogleCalendarSync, store, jobs: Iterable[Job]) -> None:
    """Create an event per job and store the event id back on the job"""
    for job in jobs:
        event_id = await calendar.create_event(job)
        if not event_id or job.id is None:
            continue
        try:
            await store.update(job.id, {"google_event_id": event_id})
        except Exception as e:
            logger.error(f"⚠️ Failed to save Google Calendar event id on job {job.id}: {str(e)}")


async def sync_updated_job(calendar: GoogleCalendarSync, job: Job) -> None:
    await calendar.update_event(job)


async def sync_deleted_jobs(calendar: GoogleCalendarSync, jobs: Iterable[Job]) -> None:
    for job in jobs:
        if job.google_event_id:
            await calendar.delete_event(job.google_event_id)
