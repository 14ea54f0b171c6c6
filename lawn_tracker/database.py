import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import LOCAL_DATABASE_URL

logger = logging.getLogger(__name__)

# SQLite connections are shared across the threadpool
connect_args = {"check_same_thread": False} if LOCAL_DATABASE_URL.startswith("sqlite") else {}

try:
    engine = create_engine(
        LOCAL_DATABASE_URL,
        connect_args=connect_args,
        pool_pre_ping=True,
        echo=False,
    )
    logger.info("✅ Local mirror engine created successfully")
except Exception as e:
    logger.error(f"❌ Failed to create local mirror engine: {e}")
    raise

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()
