import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401 - registers the local mirror table
from .config import ALLOWED_ORIGINS, SUPABASE_SERVICE_KEY, SUPABASE_URL
from .database import Base, SessionLocal, engine
from .domain.jobs.exceptions import (
    JobNotFoundError,
    JobStateError,
    LocalStoreError,
    RecurrenceError,
    RemoteStoreError,
    ScopeRequiredError,
)
from .domain.jobs.repository import JobStore, LocalJobMirror, RemoteJobStore
from .domain.jobs.router import router as jobs_router
from .routes.stats import router as stats_router
from .services.google_calendar_service import GoogleCalendarSync

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_job_store() -> JobStore:
    remote = None
    if SUPABASE_URL and SUPABASE_SERVICE_KEY:
        remote = RemoteJobStore(SUPABASE_URL, SUPABASE_SERVICE_KEY)
    return JobStore(LocalJobMirror(SessionLocal), remote=remote)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Local mirror tables ready")
    except Exception as e:
        logger.error(f"Failed to create local mirror tables: {e}")

    app.state.job_store = build_job_store()
    # Mode is decided once here and not re-checked per request
    await app.state.job_store.probe()

    app.state.calendar = GoogleCalendarSync()
    if not app.state.calendar.enabled:
        logger.info("Google Calendar sync disabled (credentials not set)")

    yield

    await app.state.job_store.aclose()
    logger.info("Application shutting down...")


app = FastAPI(title="JLS Lawn Tracker API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RecurrenceError)
async def recurrence_exception_handler(request: Request, exc: RecurrenceError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(ScopeRequiredError)
async def scope_required_exception_handler(request: Request, exc: ScopeRequiredError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(JobNotFoundError)
async def job_not_found_exception_handler(request: Request, exc: JobNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(JobStateError)
async def job_state_exception_handler(request: Request, exc: JobStateError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(RemoteStoreError)
async def remote_store_exception_handler(request: Request, exc: RemoteStoreError):
    logger.error(f"{request.method} {request.url.path} - Remote store error: {exc}")
    return JSONResponse(status_code=502, content={"detail": f"Error saving to cloud: {exc}"})


@app.exception_handler(LocalStoreError)
async def local_store_exception_handler(request: Request, exc: LocalStoreError):
    logger.error(f"{request.method} {request.url.path} - Local store error: {exc}")
    return JSONResponse(
        status_code=503, content={"detail": "Could not save. Please try again."}
    )


# Log CORS configuration for debugging
logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(jobs_router)
app.include_router(stats_router)


@app.get("/")
def root():
    return {"message": "JLS Lawn Tracker API is running"}


@app.get("/health")
def health(request: Request):
    store = getattr(request.app.state, "job_store", None)
    return {"status": "healthy", "store": store.mode if store else "unknown"}


@app.get("/health/calendar")
async def calendar_health_check(request: Request):
    """Check Google Calendar connectivity for monitoring"""
    calendar = getattr(request.app.state, "calendar", None)
    if calendar is None or not calendar.enabled:
        return {"status": "disabled", "calendar": {"connected": False}}

    connected = await calendar.test_connection()
    return {
        "status": "healthy" if connected else "unhealthy",
        "calendar": {"connected": connected, "calendarId": calendar.calendar_id},
    }
