"""LocalEntry model backing the local key-value fallback storage."""

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from database import Base


class LocalEntry(Base):
    """One key of the local storage area; value is raw text (usually JSON)."""

    __tablename__ = "local_storage"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
