from typing import Dict, List
from pydantic import BaseModel

from retrospect.models.profile_hours import Role
from retrospect.schemas.project import ProjectWithMetricsRead


class RoleStatsRead(BaseModel):
    role: Role
    estimated: float
    actual: float
    variance: float
    variance_percent: float
    projects_with_role: int
    accurate_projects: int
    accuracy_rate: float


class PortfolioRead(BaseModel):
    total_projects: int
    active_projects: int
    completed_projects: int
    total_revenue: float
    total_estimated_hours: float
    total_actual_hours: float
    avg_hours_variance_percent: float
    avg_margin_delta: float
    avg_actual_margin: float
    success_rate: float
    scope_creep_rate: float
    role_stats: List[RoleStatsRead]
    margin_distribution: Dict[str, int]
    variance_distribution: Dict[str, int]
    projects: List[ProjectWithMetricsRead]
