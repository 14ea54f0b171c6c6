import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Remote job store (Supabase / PostgREST)
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY")
JOBS_TABLE = os.getenv("JOBS_TABLE", "jobs")
ARCHIVE_TABLE = os.getenv("ARCHIVE_TABLE", "job_archives")

# Reachability probe runs once at startup; list reads fall back to the mirror on timeout
REMOTE_PROBE_TIMEOUT_SECONDS = float(os.getenv("REMOTE_PROBE_TIMEOUT_SECONDS", "5"))
REMOTE_LIST_TIMEOUT_SECONDS = float(os.getenv("REMOTE_LIST_TIMEOUT_SECONDS", "8"))

# Local mirror used when the remote store is unreachable
LOCAL_DATABASE_URL = os.getenv("LOCAL_DATABASE_URL", "sqlite:///./jls_local.db")
LOCAL_STORAGE_KEY = os.getenv("LOCAL_STORAGE_KEY", "jls_local_jobs")

# Google Calendar sync (OAuth refresh-token grant)
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_REFRESH_TOKEN = os.getenv("GOOGLE_REFRESH_TOKEN")
GOOGLE_CALENDAR_ID = os.getenv("GOOGLE_CALENDAR_ID", "primary")
CALENDAR_TIMEZONE = os.getenv("CALENDAR_TIMEZONE", "America/New_York")
DEFAULT_JOB_DURATION_MINUTES = int(os.getenv("DEFAULT_JOB_DURATION_MINUTES", "60"))

BUSINESS_NAME = os.getenv("BUSINESS_NAME", "JLS Lawn Maintenance")

# CORS - comma separated list of frontend origins
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000,http://localhost:8888",
).split(",")
