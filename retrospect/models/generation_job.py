from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum
from sqlmodel import SQLModel, Field
from sqlalchemy import JSON, Column

from retrospect.models.common import optional_timestamp_field, timestamp_field


class JobStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"


class GenerationJob(SQLModel, table=True):
    __tablename__ = "generation_job"

    id: str = Field(primary_key=True)
    kind: str = Field(index=True)
    status: JobStatus = Field(default=JobStatus.PENDING, index=True)
    payload: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    result: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    raw: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime = timestamp_field()
    completed_at: Optional[datetime] = optional_timestamp_field()
