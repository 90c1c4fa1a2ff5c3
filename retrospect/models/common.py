from datetime import datetime, timezone
from sqlalchemy import Column, DateTime
from sqlmodel import Field


def utcnow() -> datetime:
    """Current UTC time without tzinfo; every timestamp column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def timestamp_field():
    return Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False))


def optional_timestamp_field():
    return Field(default=None, sa_column=Column(DateTime, nullable=True))
