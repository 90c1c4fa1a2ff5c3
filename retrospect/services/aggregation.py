"""Portfolio statistics folded over per-project metrics.

Every figure is derived from :func:`compute_project_metrics` output so the
dashboard and the per-project views can never disagree.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from retrospect.models.profile_hours import Role
from retrospect.models.project import ProjectStatus
from retrospect.services.metrics import (
    MetricsConfig,
    ProjectDetail,
    ProjectMetrics,
    compute_project_metrics,
    percent_of,
)

# |variance| at or under this counts as an accurate estimate for a role
ACCURACY_TOLERANCE_PERCENT = 10

# (label, lower bound inclusive, upper bound exclusive); None = unbounded
VARIANCE_BUCKETS = [
    ("<-10%", None, -10),
    ("-10-0%", -10, 0),
    ("0-10%", 0, 10),
    ("10-20%", 10, 20),
    (">20%", 20, None),
]


@dataclass
class RoleStats:
    role: Role
    estimated: float = 0
    actual: float = 0
    projects_with_role: int = 0
    accurate_projects: int = 0

    @property
    def variance(self) -> float:
        return self.actual - self.estimated

    @property
    def variance_percent(self) -> float:
        return percent_of(self.variance, self.estimated)

    @property
    def accuracy_rate(self) -> float:
        return percent_of(self.accurate_projects, self.projects_with_role)


@dataclass
class PortfolioSummary:
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
    role_stats: Dict[Role, RoleStats] = field(default_factory=dict)
    margin_distribution: Dict[str, int] = field(default_factory=dict)
    variance_distribution: Dict[str, int] = field(default_factory=dict)
    projects: List[Tuple[ProjectDetail, ProjectMetrics]] = field(default_factory=list)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _in_bucket(value: float, low: Optional[float], high: Optional[float]) -> bool:
    if low is not None and value < low:
        return False
    if high is not None and value >= high:
        return False
    return True


def role_statistics(details: Sequence[ProjectDetail]) -> Dict[Role, RoleStats]:
    stats: Dict[Role, RoleStats] = {}
    for detail in details:
        for ph in detail.profile_hours:
            entry = stats.setdefault(ph.role, RoleStats(role=ph.role))
            entry.estimated += ph.estimated_hours
            entry.actual += ph.actual_hours
            if ph.estimated_hours > 0 or ph.actual_hours > 0:
                entry.projects_with_role += 1
                if abs(percent_of(ph.actual_hours - ph.estimated_hours, ph.estimated_hours)) <= ACCURACY_TOLERANCE_PERCENT:
                    entry.accurate_projects += 1
    # keep the canonical role order
    return {role: stats[role] for role in Role if role in stats}


def margin_distribution(metrics: Sequence[ProjectMetrics], config: MetricsConfig) -> Dict[str, int]:
    floor, low, high = config.at_risk_floor, config.target_margin_min, config.target_margin_max
    buckets = {
        f"<{floor:g}%": 0,
        f"{floor:g}-{low:g}%": 0,
        f"{low:g}-{high:g}%": 0,
        f">{high:g}%": 0,
    }
    labels = list(buckets)
    for m in metrics:
        if m.actual_margin < floor:
            buckets[labels[0]] += 1
        elif m.actual_margin < low:
            buckets[labels[1]] += 1
        elif m.actual_margin <= high:
            buckets[labels[2]] += 1
        else:
            buckets[labels[3]] += 1
    return buckets


def variance_distribution(metrics: Sequence[ProjectMetrics]) -> Dict[str, int]:
    return {
        label: sum(1 for m in metrics if _in_bucket(m.hours_variance_percent, low, high))
        for label, low, high in VARIANCE_BUCKETS
    }


def summarize_portfolio(details: Sequence[ProjectDetail], config: Optional[MetricsConfig] = None) -> PortfolioSummary:
    config = config or MetricsConfig()
    pairs = [(detail, compute_project_metrics(detail, config)) for detail in details]
    all_metrics = [m for _, m in pairs]

    # Projects with no logged time would dilute the variance/delta averages with zeros.
    delivered = [
        m for d, m in pairs
        if d.project.status == ProjectStatus.COMPLETED or m.actual_hours > 0
    ]
    with_hours = [m for m in all_metrics if m.actual_hours > 0]
    successful = [m for m in with_hours if m.actual_margin >= config.target_margin_min]

    total = len(pairs)
    return PortfolioSummary(
        total_projects=total,
        active_projects=sum(1 for d, _ in pairs if d.project.status == ProjectStatus.ACTIVE),
        completed_projects=sum(1 for d, _ in pairs if d.project.status == ProjectStatus.COMPLETED),
        total_revenue=sum(m.total_value for m in all_metrics),
        total_estimated_hours=sum(m.estimated_hours for m in all_metrics),
        total_actual_hours=sum(m.actual_hours for m in all_metrics),
        avg_hours_variance_percent=_mean([m.hours_variance_percent for m in delivered]),
        avg_margin_delta=_mean([m.margin_delta for m in delivered]),
        avg_actual_margin=_mean([m.actual_margin for m in with_hours]),
        success_rate=percent_of(len(successful), len(with_hours)),
        scope_creep_rate=percent_of(sum(1 for d, _ in pairs if d.project.scope_creep), total),
        role_stats=role_statistics(details),
        margin_distribution=margin_distribution(with_hours, config),
        variance_distribution=variance_distribution(all_metrics),
        projects=pairs,
    )
