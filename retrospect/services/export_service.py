import io
import csv

from retrospect.services.aggregation import PortfolioSummary

OVERVIEW_COLUMNS = [
    "Project Name", "Client", "Type", "Status", "Outcome",
    "Total Value", "Est. Hours", "Actual Hours", "Hours Variance (%)",
    "Est. Margin (%)", "Actual Margin (%)", "Margin Delta (%)",
    "Planned Rate (per h)", "Actual Rate (per h)", "Health", "Scope Creep",
]


def _enum_value(value) -> str:
    if value is None:
        return ""
    return getattr(value, "value", value)


def export_projects_csv(summary: PortfolioSummary) -> bytes:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(OVERVIEW_COLUMNS)
    for detail, m in summary.projects:
        p = detail.project
        writer.writerow([
            p.name,
            p.client,
            p.project_type,
            _enum_value(p.status),
            _enum_value(p.project_outcome),
            round(m.total_value, 1),
            round(m.estimated_hours, 1),
            round(m.actual_hours, 1),
            round(m.hours_variance_percent, 1),
            round(m.estimated_margin, 1),
            round(m.actual_margin, 1),
            round(m.margin_delta, 1),
            round(m.estimated_hourly_rate, 1),
            round(m.actual_hourly_rate, 1),
            m.health.value,
            "Yes" if p.scope_creep else "No",
        ])
    return buf.getvalue().encode("utf-8")
