from typing import Optional
from datetime import datetime
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

from retrospect.models.common import timestamp_field
from retrospect.models.profile_hours import Role


class ChangeRequest(SQLModel, table=True):
    __tablename__ = "change_request"

    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="project.id", index=True)
    description: str
    amount: float = 0
    created_at: datetime = timestamp_field()


class ChangeRequestHours(SQLModel, table=True):
    """Actual hours logged against a change request; there is no estimate side."""

    __tablename__ = "change_request_hours"
    __table_args__ = (UniqueConstraint("change_request_id", "role"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    change_request_id: int = Field(foreign_key="change_request.id", index=True)
    role: Role
    actual_hours: float = 0
