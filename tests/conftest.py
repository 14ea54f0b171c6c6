import os

# Keep the module-level engine off the developer's mirror file
os.environ["LOCAL_DATABASE_URL"] = "sqlite://"
os.environ.pop("SUPABASE_URL", None)
os.environ.pop("SUPABASE_SERVICE_KEY", None)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lawn_tracker.database import Base
from lawn_tracker.domain.jobs.repository import JobStore, LocalJobMirror, RemoteJobStore

from .fakes import FakePostgrest


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def mirror(session_factory):
    return LocalJobMirror(session_factory)


@pytest.fixture
def local_store(mirror):
    # remote_available stays False: every call goes to the mirror
    return JobStore(mirror)


@pytest.fixture
def supabase():
    return FakePostgrest()


@pytest.fixture
def remote_store(mirror, supabase):
    remote = RemoteJobStore("https://example.supabase.co", "service-key", transport=supabase.transport())
    store = JobStore(mirror, remote=remote)
    store.remote_available = True
    return store

