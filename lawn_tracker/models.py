from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from .database import Base


class LocalStorageEntry(Base):
    """Device-local key/value storage backing the job mirror.

    Each value is a whole JSON document, read and written in one piece.
    """

    __tablename__ = "local_storage"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False, default="[]")

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
