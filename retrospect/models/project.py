from typing import Optional
from sqlmodel import SQLModel, Field
from enum import Enum
from datetime import datetime

from retrospect.models.common import timestamp_field


class ProjectStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"


class ProjectOutcome(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class Project(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = "New Project"
    client: str = ""
    project_type: str = ""
    cms: str = ""
    integrations: str = ""
    offer_value: float = 0
    estimated_profit_margin: float = 30
    status: ProjectStatus = Field(default=ProjectStatus.DRAFT, index=True)

    # Retrospective
    went_well: str = ""
    went_wrong: str = ""
    scope_creep: bool = False
    scope_creep_notes: str = ""
    project_outcome: Optional[ProjectOutcome] = None

    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()
