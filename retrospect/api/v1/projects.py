from typing import List, Optional
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from retrospect.api.deps import get_metrics_config
from retrospect.core.database import get_session
from retrospect.core.security import require_edit_capability
from retrospect.models.project import ProjectStatus
from retrospect.schemas.project import (
    ChangeRequestCreate,
    ChangeRequestHoursRead,
    ChangeRequestHoursUpdate,
    ChangeRequestHoursWrite,
    ChangeRequestRead,
    ChangeRequestUpdate,
    ExternalCostCreate,
    ExternalCostRead,
    ExternalCostUpdate,
    MetricsRead,
    ProfileHoursRead,
    ProfileHoursWrite,
    ProjectCreate,
    ProjectDetailRead,
    ProjectSave,
    ProjectUpdate,
    ProjectWithMetricsRead,
    ScopeItemCreate,
    ScopeItemRead,
    ScopeItemUpdate,
    change_request_read,
    project_detail_read,
    project_with_metrics,
)
from retrospect.services import project_service
from retrospect.services.metrics import MetricsConfig, ProjectDetail, compute_project_metrics

router = APIRouter(prefix="/projects", tags=["projects"])

edit = [Depends(require_edit_capability)]


@router.get("", response_model=List[ProjectWithMetricsRead])
async def get_projects(
    q: Optional[str] = None,
    status: Optional[ProjectStatus] = None,
    session: AsyncSession = Depends(get_session),
    config: MetricsConfig = Depends(get_metrics_config),
):
    details = await project_service.list_project_details(session, q=q, status=status)
    return [project_with_metrics(d.project, compute_project_metrics(d, config)) for d in details]


@router.post("", response_model=ProjectDetailRead, status_code=status.HTTP_201_CREATED, dependencies=edit)
async def create_project(
    payload: ProjectCreate,
    session: AsyncSession = Depends(get_session),
    config: MetricsConfig = Depends(get_metrics_config),
):
    project = await project_service.create_project(session, payload)
    detail = ProjectDetail(project=project)
    return project_detail_read(detail, compute_project_metrics(detail, config))


@router.get("/{project_id}", response_model=ProjectDetailRead)
async def get_project(
    project_id: int,
    session: AsyncSession = Depends(get_session),
    config: MetricsConfig = Depends(get_metrics_config),
):
    detail = await project_service.fetch_project_detail(session, project_id)
    return project_detail_read(detail, compute_project_metrics(detail, config))


@router.get("/{project_id}/metrics", response_model=MetricsRead)
async def get_project_metrics(
    project_id: int,
    session: AsyncSession = Depends(get_session),
    config: MetricsConfig = Depends(get_metrics_config),
):
    detail = await project_service.fetch_project_detail(session, project_id)
    return MetricsRead.model_validate(compute_project_metrics(detail, config))


@router.patch("/{project_id}", response_model=ProjectWithMetricsRead, dependencies=edit)
async def update_project(
    project_id: int,
    payload: ProjectUpdate,
    session: AsyncSession = Depends(get_session),
    config: MetricsConfig = Depends(get_metrics_config),
):
    await project_service.update_project(session, project_id, payload)
    detail = await project_service.fetch_project_detail(session, project_id)
    return project_with_metrics(detail.project, compute_project_metrics(detail, config))


@router.put("/{project_id}", response_model=ProjectDetailRead, dependencies=edit)
async def save_project(
    project_id: int,
    payload: ProjectSave,
    session: AsyncSession = Depends(get_session),
    config: MetricsConfig = Depends(get_metrics_config),
):
    """Save the project form and role hours together."""
    detail = await project_service.save_project(session, project_id, payload)
    return project_detail_read(detail, compute_project_metrics(detail, config))


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=edit)
async def delete_project(project_id: int, session: AsyncSession = Depends(get_session)):
    await project_service.delete_project(session, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Profile hours

@router.put("/{project_id}/profile-hours", response_model=List[ProfileHoursRead], dependencies=edit)
async def upsert_profile_hours(
    project_id: int,
    rows: List[ProfileHoursWrite],
    session: AsyncSession = Depends(get_session),
):
    return await project_service.upsert_profile_hours(session, project_id, rows)


@router.delete("/{project_id}/profile-hours/{record_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=edit)
async def delete_profile_hours(project_id: int, record_id: int, session: AsyncSession = Depends(get_session)):
    await project_service.delete_profile_hours(session, project_id, record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Scope items

@router.post("/{project_id}/scope-items", response_model=ScopeItemRead, status_code=status.HTTP_201_CREATED, dependencies=edit)
async def create_scope_item(project_id: int, payload: ScopeItemCreate, session: AsyncSession = Depends(get_session)):
    return await project_service.create_scope_item(session, project_id, payload)


@router.patch("/{project_id}/scope-items/{record_id}", response_model=ScopeItemRead, dependencies=edit)
async def update_scope_item(
    project_id: int, record_id: int, payload: ScopeItemUpdate, session: AsyncSession = Depends(get_session)
):
    return await project_service.update_scope_item(session, project_id, record_id, payload)


@router.delete("/{project_id}/scope-items/{record_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=edit)
async def delete_scope_item(project_id: int, record_id: int, session: AsyncSession = Depends(get_session)):
    await project_service.delete_scope_item(session, project_id, record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# External costs

@router.post("/{project_id}/external-costs", response_model=ExternalCostRead, status_code=status.HTTP_201_CREATED, dependencies=edit)
async def create_external_cost(project_id: int, payload: ExternalCostCreate, session: AsyncSession = Depends(get_session)):
    return await project_service.create_external_cost(session, project_id, payload)


@router.patch("/{project_id}/external-costs/{record_id}", response_model=ExternalCostRead, dependencies=edit)
async def update_external_cost(
    project_id: int, record_id: int, payload: ExternalCostUpdate, session: AsyncSession = Depends(get_session)
):
    return await project_service.update_external_cost(session, project_id, record_id, payload)


@router.delete("/{project_id}/external-costs/{record_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=edit)
async def delete_external_cost(project_id: int, record_id: int, session: AsyncSession = Depends(get_session)):
    await project_service.delete_external_cost(session, project_id, record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Change requests

@router.get("/{project_id}/change-requests", response_model=List[ChangeRequestRead])
async def list_change_requests(project_id: int, session: AsyncSession = Depends(get_session)):
    await project_service.get_project(session, project_id)
    return [change_request_read(cr) for cr in await project_service.list_change_requests(session, project_id)]


@router.post("/{project_id}/change-requests", response_model=ChangeRequestRead, status_code=status.HTTP_201_CREATED, dependencies=edit)
async def create_change_request(project_id: int, payload: ChangeRequestCreate, session: AsyncSession = Depends(get_session)):
    detail = await project_service.create_change_request(session, project_id, payload)
    return change_request_read(detail)


@router.patch("/{project_id}/change-requests/{change_request_id}", response_model=ChangeRequestRead, dependencies=edit)
async def update_change_request(
    project_id: int, change_request_id: int, payload: ChangeRequestUpdate, session: AsyncSession = Depends(get_session)
):
    await project_service.update_change_request(session, project_id, change_request_id, payload)
    details = await project_service.list_change_requests(session, project_id)
    return next(change_request_read(cr) for cr in details if cr.change_request.id == change_request_id)


@router.delete("/{project_id}/change-requests/{change_request_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=edit)
async def delete_change_request(project_id: int, change_request_id: int, session: AsyncSession = Depends(get_session)):
    await project_service.delete_change_request(session, project_id, change_request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{project_id}/change-requests/{change_request_id}/hours",
    response_model=ChangeRequestHoursRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=edit,
)
async def create_change_request_hours(
    project_id: int, change_request_id: int, payload: ChangeRequestHoursWrite, session: AsyncSession = Depends(get_session)
):
    return await project_service.create_change_request_hours(session, project_id, change_request_id, payload)


@router.patch(
    "/{project_id}/change-requests/{change_request_id}/hours/{record_id}",
    response_model=ChangeRequestHoursRead,
    dependencies=edit,
)
async def update_change_request_hours(
    project_id: int,
    change_request_id: int,
    record_id: int,
    payload: ChangeRequestHoursUpdate,
    session: AsyncSession = Depends(get_session),
):
    return await project_service.update_change_request_hours(
        session, project_id, change_request_id, record_id, payload.actual_hours
    )


@router.delete(
    "/{project_id}/change-requests/{change_request_id}/hours/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=edit,
)
async def delete_change_request_hours(
    project_id: int, change_request_id: int, record_id: int, session: AsyncSession = Depends(get_session)
):
    await project_service.delete_change_request_hours(session, project_id, change_request_id, record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
