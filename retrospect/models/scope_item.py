from typing import Optional
from enum import Enum
from sqlmodel import SQLModel, Field


class ScopeItemType(str, Enum):
    WIREFRAME = "Wireframe"
    COMPONENT = "Component"
    PAGE = "Page"
    TEMPLATE = "Template"
    INTEGRATION = "Integration"
    CONTENT = "Content"
    CUSTOM = "Custom"


class ScopeItem(SQLModel, table=True):
    __tablename__ = "scope_item"

    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="project.id", index=True)
    name: str
    type: ScopeItemType = ScopeItemType.CUSTOM
    planned_count: int = 0
    actual_count: int = 0
    notes: str = ""
