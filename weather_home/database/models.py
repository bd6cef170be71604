from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import declarative_base

# Base class for every table of the app
Base = declarative_base()


class StoredValue(Base):
    """
    Persistent key/value pairs.
    Holds the last selected city and the last weather snapshot as JSON text.
    """
    __tablename__ = "stored_values"

    key = Column(String(100), primary_key=True)

    value = Column(Text, nullable=False)

    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
