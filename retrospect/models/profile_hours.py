from typing import Optional
from enum import Enum
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class Role(str, Enum):
    UX = "UX"
    UI = "UI"
    DESIGN = "DESIGN"
    DEV = "DEV"
    PM = "PM"
    CONTENT = "CONTENT"
    ANALYTICS = "ANALYTICS"


class ProfileHours(SQLModel, table=True):
    __tablename__ = "profile_hours"
    __table_args__ = (UniqueConstraint("project_id", "role"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="project.id", index=True)
    role: Role
    estimated_hours: float = 0
    actual_hours: float = 0
