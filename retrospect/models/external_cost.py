from typing import Optional
from enum import Enum
from sqlmodel import SQLModel, Field


class CostType(str, Enum):
    CONTRACTOR = "contractor"
    TOOL_LICENSE = "tool_license"


class ExternalCost(SQLModel, table=True):
    __tablename__ = "external_cost"

    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="project.id", index=True)
    description: str
    cost_type: CostType = CostType.CONTRACTOR
    estimated_cost: float = 0
    actual_cost: float = 0
    notes: str = ""
