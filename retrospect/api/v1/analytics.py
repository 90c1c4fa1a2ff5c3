import io
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from retrospect.api.deps import get_metrics_config
from retrospect.core.database import get_session
from retrospect.schemas.analytics import PortfolioRead, RoleStatsRead
from retrospect.schemas.project import project_with_metrics
from retrospect.services.aggregation import PortfolioSummary, summarize_portfolio
from retrospect.services.export_service import export_projects_csv
from retrospect.services.metrics import MetricsConfig
from retrospect.services.project_service import list_project_details

router = APIRouter(prefix="/analytics", tags=["analytics"])


def portfolio_read(summary: PortfolioSummary) -> PortfolioRead:
    return PortfolioRead(
        total_projects=summary.total_projects,
        active_projects=summary.active_projects,
        completed_projects=summary.completed_projects,
        total_revenue=summary.total_revenue,
        total_estimated_hours=summary.total_estimated_hours,
        total_actual_hours=summary.total_actual_hours,
        avg_hours_variance_percent=summary.avg_hours_variance_percent,
        avg_margin_delta=summary.avg_margin_delta,
        avg_actual_margin=summary.avg_actual_margin,
        success_rate=summary.success_rate,
        scope_creep_rate=summary.scope_creep_rate,
        role_stats=[
            RoleStatsRead(
                role=s.role,
                estimated=s.estimated,
                actual=s.actual,
                variance=s.variance,
                variance_percent=s.variance_percent,
                projects_with_role=s.projects_with_role,
                accurate_projects=s.accurate_projects,
                accuracy_rate=s.accuracy_rate,
            )
            for s in summary.role_stats.values()
        ],
        margin_distribution=summary.margin_distribution,
        variance_distribution=summary.variance_distribution,
        projects=[project_with_metrics(d.project, m) for d, m in summary.projects],
    )


async def load_portfolio(session: AsyncSession, config: MetricsConfig) -> PortfolioSummary:
    details = await list_project_details(session)
    return summarize_portfolio(details, config)


@router.get("/portfolio", response_model=PortfolioRead)
async def get_portfolio(
    session: AsyncSession = Depends(get_session),
    config: MetricsConfig = Depends(get_metrics_config),
):
    return portfolio_read(await load_portfolio(session, config))


@router.get("/export.csv")
async def export_csv(
    session: AsyncSession = Depends(get_session),
    config: MetricsConfig = Depends(get_metrics_config),
):
    data = export_projects_csv(await load_portfolio(session, config))
    return StreamingResponse(
        io.BytesIO(data),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=projects_overview.csv"},
    )
