"""Render portfolio data as text for the assistant prompts."""
import json

from retrospect.services.aggregation import PortfolioSummary
from retrospect.services.metrics import MetricsConfig


def build_projects_context(summary: PortfolioSummary, config: MetricsConfig) -> str:
    if not summary.projects:
        return "No projects in the system yet."

    blocks = []
    for detail, m in summary.projects:
        p = detail.project
        profile_hours = ", ".join(
            f"{ph.role.value}: {ph.estimated_hours:g}h est / {ph.actual_hours:g}h actual"
            for ph in detail.profile_hours
        )
        scope_creep = f"Yes - {p.scope_creep_notes}" if p.scope_creep else "No"
        blocks.append(
            f"""
PROJECT: {p.name}
- Client: {p.client}
- Type: {p.project_type}, CMS: {p.cms}
- Status: {p.status.value if hasattr(p.status, 'value') else p.status}
- Value: €{m.total_value:,.0f}
- Hours: {m.estimated_hours:g}h estimated, {m.actual_hours:g}h actual ({m.hours_variance_percent:.0f}% variance)
- Margin: {m.estimated_margin:.0f}% est, {m.actual_margin:.0f}% actual
- Health: {m.health.value}
- Scope Creep: {scope_creep}
- Went Well: {p.went_well or 'Not documented'}
- Went Wrong: {p.went_wrong or 'Not documented'}
- Hours by Profile: {profile_hours}
"""
        )

    return f"""AGGREGATE STATS:
- Total Projects: {summary.total_projects}
- Average Actual Margin: {summary.avg_actual_margin:.0f}%
- Scope Creep Rate: {summary.scope_creep_rate:.0f}%
- Target Margin: {config.target_margin_min:g}-{config.target_margin_max:g}%

INDIVIDUAL PROJECTS:
{'---'.join(blocks)}"""


def build_historical_data(summary: PortfolioSummary) -> str:
    rows = [
        {
            "name": detail.project.name,
            "type": detail.project.project_type,
            "cms": detail.project.cms,
            "value": m.total_value,
            "hours": m.actual_hours,
            "margin": round(m.actual_margin, 1),
            "hoursVariance": round(m.hours_variance_percent, 1),
            "profileHours": {
                ph.role.value: {"est": ph.estimated_hours, "act": ph.actual_hours}
                for ph in detail.profile_hours
            },
        }
        for detail, m in summary.projects
    ]
    return json.dumps(rows, indent=2, ensure_ascii=False)


def build_profile_stats(summary: PortfolioSummary) -> str:
    rows = [
        {
            "profile": role.value,
            "estimated": stats.estimated,
            "actual": stats.actual,
            "variance": f"{stats.variance_percent:.0f}%" if stats.estimated > 0 else "N/A",
        }
        for role, stats in summary.role_stats.items()
    ]
    return json.dumps(rows, indent=2)
