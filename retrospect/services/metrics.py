"""Per-project margin, variance and health figures.

Everything here is pure arithmetic over records that are already in memory:
no I/O, no access to ``settings``. Callers pass a :class:`MetricsConfig`,
usually built with :meth:`MetricsConfig.from_settings`.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from retrospect.models.change_request import ChangeRequest, ChangeRequestHours
from retrospect.models.external_cost import ExternalCost
from retrospect.models.profile_hours import ProfileHours
from retrospect.models.project import Project
from retrospect.models.scope_item import ScopeItem


class Health(str, Enum):
    ON_TRACK = "on-track"
    AT_RISK = "at-risk"
    OVER_BUDGET = "over-budget"


@dataclass(frozen=True)
class MetricsConfig:
    internal_hourly_cost: float = 30
    target_margin_min: float = 50
    target_margin_max: float = 55
    # below target_margin_min by more than this -> over-budget
    at_risk_band: float = 5

    @property
    def at_risk_floor(self) -> float:
        return self.target_margin_min - self.at_risk_band

    @classmethod
    def from_settings(cls, settings) -> "MetricsConfig":
        return cls(
            internal_hourly_cost=settings.INTERNAL_HOURLY_COST,
            target_margin_min=settings.TARGET_MARGIN_MIN,
            target_margin_max=settings.TARGET_MARGIN_MAX,
        )


@dataclass
class ChangeRequestDetail:
    change_request: ChangeRequest
    hours: List[ChangeRequestHours] = field(default_factory=list)

    @property
    def amount(self) -> float:
        return self.change_request.amount

    @property
    def actual_hours(self) -> float:
        return sum(h.actual_hours for h in self.hours)


@dataclass
class ProjectDetail:
    """One project's full record graph as fetched from the record store."""

    project: Project
    profile_hours: List[ProfileHours] = field(default_factory=list)
    scope_items: List[ScopeItem] = field(default_factory=list)
    external_costs: List[ExternalCost] = field(default_factory=list)
    change_requests: List[ChangeRequestDetail] = field(default_factory=list)


@dataclass(frozen=True)
class ProjectMetrics:
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


def percent_of(part: float, whole: float) -> float:
    """``part / whole * 100``, or 0 when ``whole`` is 0."""
    if whole == 0:
        return 0.0
    return part / whole * 100


def classify_health(actual_margin: float, actual_hours: float, config: Optional[MetricsConfig] = None) -> Health:
    """Band the actual margin against the target range.

    Shortfall is penalized in two tiers; any margin at or above the target
    minimum is on-track, however high. Projects without logged hours have
    no signal and default to on-track.
    """
    config = config or MetricsConfig()
    if actual_hours <= 0:
        return Health.ON_TRACK
    if actual_margin < config.at_risk_floor:
        return Health.OVER_BUDGET
    if actual_margin < config.target_margin_min:
        return Health.AT_RISK
    return Health.ON_TRACK


def compute_metrics(
    project: Project,
    profile_hours: Sequence[ProfileHours],
    external_costs: Sequence[ExternalCost],
    change_requests: Sequence[ChangeRequestDetail],
    config: Optional[MetricsConfig] = None,
) -> ProjectMetrics:
    config = config or MetricsConfig()

    total_value = project.offer_value + sum(cr.amount for cr in change_requests)

    # Change-request hours are unplanned work: actual side only.
    estimated_hours = sum(ph.estimated_hours for ph in profile_hours)
    actual_hours = sum(ph.actual_hours for ph in profile_hours) + sum(cr.actual_hours for cr in change_requests)

    hours_variance = actual_hours - estimated_hours
    hours_variance_percent = percent_of(hours_variance, estimated_hours)

    estimated_external_cost = sum(ec.estimated_cost for ec in external_costs)
    actual_external_cost = sum(ec.actual_cost for ec in external_costs)

    estimated_internal_cost = estimated_hours * config.internal_hourly_cost
    actual_internal_cost = actual_hours * config.internal_hourly_cost

    estimated_total_cost = estimated_internal_cost + estimated_external_cost
    actual_total_cost = actual_internal_cost + actual_external_cost

    estimated_profit = total_value - estimated_total_cost
    actual_profit = total_value - actual_total_cost

    estimated_margin = percent_of(estimated_profit, total_value)
    actual_margin = percent_of(actual_profit, total_value)

    # What the agency's own time earns per hour once pass-through costs are removed
    estimated_hourly_rate = (total_value - estimated_external_cost) / estimated_hours if estimated_hours else 0.0
    actual_hourly_rate = (total_value - actual_external_cost) / actual_hours if actual_hours else 0.0

    return ProjectMetrics(
        total_value=total_value,
        estimated_hours=estimated_hours,
        actual_hours=actual_hours,
        hours_variance=hours_variance,
        hours_variance_percent=hours_variance_percent,
        estimated_external_cost=estimated_external_cost,
        actual_external_cost=actual_external_cost,
        estimated_internal_cost=estimated_internal_cost,
        actual_internal_cost=actual_internal_cost,
        estimated_total_cost=estimated_total_cost,
        actual_total_cost=actual_total_cost,
        estimated_profit=estimated_profit,
        actual_profit=actual_profit,
        estimated_margin=estimated_margin,
        actual_margin=actual_margin,
        margin_delta=actual_margin - estimated_margin,
        estimated_hourly_rate=estimated_hourly_rate,
        actual_hourly_rate=actual_hourly_rate,
        health=classify_health(actual_margin, actual_hours, config),
    )


def compute_project_metrics(detail: ProjectDetail, config: Optional[MetricsConfig] = None) -> ProjectMetrics:
    return compute_metrics(
        detail.project,
        detail.profile_hours,
        detail.external_costs,
        detail.change_requests,
        config,
    )
