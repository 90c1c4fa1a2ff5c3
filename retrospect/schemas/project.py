from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from retrospect.models.project import ProjectStatus, ProjectOutcome
from retrospect.models.profile_hours import Role
from retrospect.models.scope_item import ScopeItemType
from retrospect.models.external_cost import CostType
from retrospect.services.metrics import Health


class ProjectCreate(BaseModel):
    name: str = "New Project"
    client: str = ""
    project_type: str = ""
    cms: str = ""
    integrations: str = ""
    offer_value: float = Field(default=0, ge=0)
    estimated_profit_margin: float = 30


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    client: Optional[str] = None
    project_type: Optional[str] = None
    cms: Optional[str] = None
    integrations: Optional[str] = None
    offer_value: Optional[float] = Field(default=None, ge=0)
    estimated_profit_margin: Optional[float] = None
    status: Optional[ProjectStatus] = None
    went_well: Optional[str] = None
    went_wrong: Optional[str] = None
    scope_creep: Optional[bool] = None
    scope_creep_notes: Optional[str] = None
    project_outcome: Optional[ProjectOutcome] = None


class ProjectRead(BaseModel):
    id: int
    name: str
    client: str
    project_type: str
    cms: str
    integrations: str
    offer_value: float
    estimated_profit_margin: float
    status: ProjectStatus
    went_well: str
    went_wrong: str
    scope_creep: bool
    scope_creep_notes: str
    project_outcome: Optional[ProjectOutcome]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProfileHoursWrite(BaseModel):
    role: Role
    estimated_hours: float = Field(default=0, ge=0)
    actual_hours: float = Field(default=0, ge=0)


class ProfileHoursRead(ProfileHoursWrite):
    id: int
    project_id: int

    model_config = ConfigDict(from_attributes=True)


class ScopeItemCreate(BaseModel):
    name: str
    type: ScopeItemType = ScopeItemType.CUSTOM
    planned_count: int = Field(default=0, ge=0)
    actual_count: int = Field(default=0, ge=0)
    notes: str = ""


class ScopeItemUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[ScopeItemType] = None
    planned_count: Optional[int] = Field(default=None, ge=0)
    actual_count: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class ScopeItemRead(ScopeItemCreate):
    id: int
    project_id: int

    model_config = ConfigDict(from_attributes=True)


class ExternalCostCreate(BaseModel):
    description: str
    cost_type: CostType = CostType.CONTRACTOR
    estimated_cost: float = Field(default=0, ge=0)
    actual_cost: float = Field(default=0, ge=0)
    notes: str = ""


class ExternalCostUpdate(BaseModel):
    description: Optional[str] = None
    cost_type: Optional[CostType] = None
    estimated_cost: Optional[float] = Field(default=None, ge=0)
    actual_cost: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


class ExternalCostRead(ExternalCostCreate):
    id: int
    project_id: int

    model_config = ConfigDict(from_attributes=True)


class ChangeRequestHoursWrite(BaseModel):
    role: Role
    actual_hours: float = Field(default=0, ge=0)


class ChangeRequestHoursUpdate(BaseModel):
    actual_hours: float = Field(ge=0)


class ChangeRequestHoursRead(ChangeRequestHoursWrite):
    id: int
    change_request_id: int

    model_config = ConfigDict(from_attributes=True)


class ChangeRequestCreate(BaseModel):
    description: str
    amount: float = 0
    hours: List[ChangeRequestHoursWrite] = []


class ChangeRequestUpdate(BaseModel):
    description: Optional[str] = None
    amount: Optional[float] = None


class ChangeRequestRead(BaseModel):
    id: int
    project_id: int
    description: str
    amount: float
    created_at: datetime
    hours: List[ChangeRequestHoursRead] = []


class ScopeItemSave(ScopeItemCreate):
    id: Optional[int] = None


class ExternalCostSave(ExternalCostCreate):
    id: Optional[int] = None


class ChangeRequestSave(ChangeRequestCreate):
    """Hours are upserted by role; roles left out keep their stored rows."""

    id: Optional[int] = None


class ProjectSave(BaseModel):
    """The whole project form, written in one transaction.

    Rows with an ``id`` update that record, rows without one are created.
    Records missing from the lists are left alone; deletes go through
    their own endpoints.
    """

    project: ProjectUpdate
    profile_hours: List[ProfileHoursWrite] = []
    scope_items: List[ScopeItemSave] = []
    external_costs: List[ExternalCostSave] = []
    change_requests: List[ChangeRequestSave] = []


class MetricsRead(BaseModel):
    total_value: float
    estimated_hours: float
    actual_hours: float
    hours_variance: float
    hours_variance_percent: float
    estimated_external_cost: float
    actual_external_cost: float
    estimated_internal_cost: float
    actual_internal_cost: float
    estimated_total_cost: float
    actual_total_cost: float
    estimated_profit: float
    actual_profit: float
    estimated_margin: float
    actual_margin: float
    margin_delta: float
    estimated_hourly_rate: float
    actual_hourly_rate: float
    health: Health

    model_config = ConfigDict(from_attributes=True)


class ProjectWithMetricsRead(ProjectRead):
    metrics: MetricsRead


class ProjectDetailRead(ProjectWithMetricsRead):
    profile_hours: List[ProfileHoursRead]
    scope_items: List[ScopeItemRead]
    external_costs: List[ExternalCostRead]
    change_requests: List[ChangeRequestRead]


def project_with_metrics(project, metrics) -> ProjectWithMetricsRead:
    return ProjectWithMetricsRead(**project.model_dump(), metrics=MetricsRead.model_validate(metrics))


def change_request_read(detail) -> ChangeRequestRead:
    return ChangeRequestRead(
        **detail.change_request.model_dump(),
        hours=[ChangeRequestHoursRead.model_validate(h) for h in detail.hours],
    )


def project_detail_read(detail, metrics) -> ProjectDetailRead:
    return ProjectDetailRead(
        **detail.project.model_dump(),
        metrics=MetricsRead.model_validate(metrics),
        profile_hours=[ProfileHoursRead.model_validate(ph) for ph in detail.profile_hours],
        scope_items=[ScopeItemRead.model_validate(i) for i in detail.scope_items],
        external_costs=[ExternalCostRead.model_validate(c) for c in detail.external_costs],
        change_requests=[change_request_read(cr) for cr in detail.change_requests],
    )
