import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from retrospect.core.exceptions import DuplicateRole, RecordNotFound
from retrospect.models.change_request import ChangeRequest, ChangeRequestHours
from retrospect.models.common import utcnow
from retrospect.models.external_cost import CostType, ExternalCost
from retrospect.models.profile_hours import ProfileHours
from retrospect.models.project import Project, ProjectStatus
from retrospect.models.scope_item import ScopeItem
from retrospect.schemas.project import (
    ChangeRequestCreate,
    ChangeRequestHoursWrite,
    ChangeRequestSave,
    ChangeRequestUpdate,
    ExternalCostCreate,
    ExternalCostUpdate,
    ProfileHoursWrite,
    ProjectCreate,
    ProjectSave,
    ProjectUpdate,
    ScopeItemCreate,
    ScopeItemUpdate,
)
from retrospect.services.metrics import ChangeRequestDetail, ProjectDetail

logger = logging.getLogger(__name__)


# Projects

async def create_project(session: AsyncSession, payload: ProjectCreate) -> Project:
    project = Project(**payload.model_dump(), status=ProjectStatus.DRAFT)
    session.add(project)
    await session.commit()
    await session.refresh(project)
    logger.info("Project created", extra={"project_id": project.id})
    return project


async def list_projects(session: AsyncSession, q: Optional[str] = None, status: Optional[ProjectStatus] = None) -> List[Project]:
    stmt = select(Project)
    if q:
        like = f"%{q}%"
        stmt = stmt.where((Project.name.ilike(like)) | (Project.client.ilike(like)))
    if status:
        stmt = stmt.where(Project.status == status)
    stmt = stmt.order_by(Project.created_at.desc(), Project.id.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_project(session: AsyncSession, project_id: int) -> Project:
    project = await session.get(Project, project_id)
    if not project:
        raise RecordNotFound("Project", project_id)
    return project


NULLABLE_PROJECT_FIELDS = {"project_outcome"}


def _apply_project_update(project: Project, payload: ProjectUpdate) -> None:
    for key, value in payload.model_dump(exclude_unset=True).items():
        if value is None and key not in NULLABLE_PROJECT_FIELDS:
            continue
        setattr(project, key, value)
    project.updated_at = utcnow()


async def update_project(session: AsyncSession, project_id: int, payload: ProjectUpdate) -> Project:
    project = await get_project(session, project_id)
    _apply_project_update(project, payload)
    session.add(project)
    await session.commit()
    await session.refresh(project)
    return project


async def delete_project(session: AsyncSession, project_id: int) -> None:
    """Delete a project and every record it owns in one transaction."""
    project = await get_project(session, project_id)
    cr_ids = select(ChangeRequest.id).where(ChangeRequest.project_id == project_id)
    await session.execute(delete(ChangeRequestHours).where(ChangeRequestHours.change_request_id.in_(cr_ids)))
    for model in (ChangeRequest, ProfileHours, ScopeItem, ExternalCost):
        await session.execute(delete(model).where(model.project_id == project_id))
    await session.delete(project)
    await session.commit()
    logger.info("Project deleted", extra={"project_id": project_id})


# Profile hours

async def list_profile_hours(session: AsyncSession, project_id: int) -> List[ProfileHours]:
    result = await session.execute(select(ProfileHours).where(ProfileHours.project_id == project_id))
    return list(result.scalars().all())


def _reject_duplicate_roles(rows) -> None:
    roles = [row.role for row in rows]
    duplicates = {r for r in roles if roles.count(r) > 1}
    if duplicates:
        raise DuplicateRole(sorted(duplicates)[0].value)


async def _stage_profile_hours(session: AsyncSession, project_id: int, rows: Sequence[ProfileHoursWrite]) -> None:
    _reject_duplicate_roles(rows)
    existing = {ph.role: ph for ph in await list_profile_hours(session, project_id)}
    for row in rows:
        current = existing.get(row.role)
        if current is None:
            # absent role is implicitly zero on both sides; don't persist empty rows
            if row.estimated_hours == 0 and row.actual_hours == 0:
                continue
            current = ProfileHours(project_id=project_id, role=row.role)
            existing[row.role] = current
        current.estimated_hours = row.estimated_hours
        current.actual_hours = row.actual_hours
        session.add(current)


async def upsert_profile_hours(session: AsyncSession, project_id: int, rows: Sequence[ProfileHoursWrite]) -> List[ProfileHours]:
    await get_project(session, project_id)
    await _stage_profile_hours(session, project_id, rows)
    await session.commit()
    return await list_profile_hours(session, project_id)


async def delete_profile_hours(session: AsyncSession, project_id: int, record_id: int) -> None:
    await _delete_child(session, ProfileHours, project_id, record_id)


# Scope items

async def list_scope_items(session: AsyncSession, project_id: int) -> List[ScopeItem]:
    result = await session.execute(select(ScopeItem).where(ScopeItem.project_id == project_id).order_by(ScopeItem.id))
    return list(result.scalars().all())


async def create_scope_item(session: AsyncSession, project_id: int, payload: ScopeItemCreate) -> ScopeItem:
    await get_project(session, project_id)
    item = ScopeItem(project_id=project_id, **payload.model_dump())
    session.add(item)
    await session.commit()
    await session.refresh(item)
    return item


async def update_scope_item(session: AsyncSession, project_id: int, record_id: int, payload: ScopeItemUpdate) -> ScopeItem:
    item = await _get_child(session, ScopeItem, project_id, record_id)
    for key, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(item, key, value)
    session.add(item)
    await session.commit()
    await session.refresh(item)
    return item


async def delete_scope_item(session: AsyncSession, project_id: int, record_id: int) -> None:
    await _delete_child(session, ScopeItem, project_id, record_id)


# External costs

def _mirror_tool_license(cost: ExternalCost) -> None:
    # tool/license costs carry a single figure: the actual one
    if cost.cost_type == CostType.TOOL_LICENSE:
        cost.estimated_cost = cost.actual_cost


async def list_external_costs(session: AsyncSession, project_id: int) -> List[ExternalCost]:
    result = await session.execute(select(ExternalCost).where(ExternalCost.project_id == project_id).order_by(ExternalCost.id))
    return list(result.scalars().all())


async def create_external_cost(session: AsyncSession, project_id: int, payload: ExternalCostCreate) -> ExternalCost:
    await get_project(session, project_id)
    cost = ExternalCost(project_id=project_id, **payload.model_dump())
    _mirror_tool_license(cost)
    session.add(cost)
    await session.commit()
    await session.refresh(cost)
    return cost


async def update_external_cost(session: AsyncSession, project_id: int, record_id: int, payload: ExternalCostUpdate) -> ExternalCost:
    cost = await _get_child(session, ExternalCost, project_id, record_id)
    for key, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(cost, key, value)
    _mirror_tool_license(cost)
    session.add(cost)
    await session.commit()
    await session.refresh(cost)
    return cost


async def delete_external_cost(session: AsyncSession, project_id: int, record_id: int) -> None:
    await _delete_child(session, ExternalCost, project_id, record_id)


# Change requests

async def list_change_requests(session: AsyncSession, project_id: int) -> List[ChangeRequestDetail]:
    result = await session.execute(
        select(ChangeRequest).where(ChangeRequest.project_id == project_id).order_by(ChangeRequest.created_at, ChangeRequest.id)
    )
    change_requests = list(result.scalars().all())
    hours = await _hours_by_change_request(session, [cr.id for cr in change_requests])
    return [ChangeRequestDetail(cr, hours.get(cr.id, [])) for cr in change_requests]


async def get_change_request(session: AsyncSession, project_id: int, change_request_id: int) -> ChangeRequest:
    return await _get_child(session, ChangeRequest, project_id, change_request_id)


async def create_change_request(session: AsyncSession, project_id: int, payload: ChangeRequestCreate) -> ChangeRequestDetail:
    await get_project(session, project_id)
    _reject_duplicate_roles(payload.hours)

    cr = ChangeRequest(project_id=project_id, description=payload.description, amount=payload.amount)
    session.add(cr)
    await session.flush()
    hours = [ChangeRequestHours(change_request_id=cr.id, role=h.role, actual_hours=h.actual_hours) for h in payload.hours]
    session.add_all(hours)
    await session.commit()
    await session.refresh(cr)
    for h in hours:
        await session.refresh(h)
    return ChangeRequestDetail(cr, hours)


async def update_change_request(session: AsyncSession, project_id: int, change_request_id: int, payload: ChangeRequestUpdate) -> ChangeRequest:
    cr = await get_change_request(session, project_id, change_request_id)
    for key, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(cr, key, value)
    session.add(cr)
    await session.commit()
    await session.refresh(cr)
    return cr


async def delete_change_request(session: AsyncSession, project_id: int, change_request_id: int) -> None:
    cr = await get_change_request(session, project_id, change_request_id)
    await session.execute(delete(ChangeRequestHours).where(ChangeRequestHours.change_request_id == cr.id))
    await session.delete(cr)
    await session.commit()


async def create_change_request_hours(
    session: AsyncSession, project_id: int, change_request_id: int, payload: ChangeRequestHoursWrite
) -> ChangeRequestHours:
    cr = await get_change_request(session, project_id, change_request_id)
    existing = await session.execute(
        select(ChangeRequestHours).where(
            ChangeRequestHours.change_request_id == cr.id, ChangeRequestHours.role == payload.role
        )
    )
    if existing.scalars().first():
        raise DuplicateRole(payload.role.value)
    hours = ChangeRequestHours(change_request_id=cr.id, role=payload.role, actual_hours=payload.actual_hours)
    session.add(hours)
    await session.commit()
    await session.refresh(hours)
    return hours


async def _get_change_request_hours(session: AsyncSession, project_id: int, change_request_id: int, record_id: int) -> ChangeRequestHours:
    await get_change_request(session, project_id, change_request_id)
    hours = await session.get(ChangeRequestHours, record_id)
    if not hours or hours.change_request_id != change_request_id:
        raise RecordNotFound("ChangeRequestHours", record_id)
    return hours


async def update_change_request_hours(
    session: AsyncSession, project_id: int, change_request_id: int, record_id: int, actual_hours: float
) -> ChangeRequestHours:
    hours = await _get_change_request_hours(session, project_id, change_request_id, record_id)
    hours.actual_hours = actual_hours
    session.add(hours)
    await session.commit()
    await session.refresh(hours)
    return hours


async def delete_change_request_hours(session: AsyncSession, project_id: int, change_request_id: int, record_id: int) -> None:
    hours = await _get_change_request_hours(session, project_id, change_request_id, record_id)
    await session.delete(hours)
    await session.commit()


# Detail graphs

async def _hours_by_change_request(session: AsyncSession, change_request_ids: Iterable[int]) -> Dict[int, List[ChangeRequestHours]]:
    ids = list(change_request_ids)
    grouped: Dict[int, List[ChangeRequestHours]] = defaultdict(list)
    if not ids:
        return grouped
    result = await session.execute(select(ChangeRequestHours).where(ChangeRequestHours.change_request_id.in_(ids)))
    for h in result.scalars().all():
        grouped[h.change_request_id].append(h)
    return grouped


async def fetch_project_detail(session: AsyncSession, project_id: int) -> ProjectDetail:
    project = await get_project(session, project_id)
    # AsyncSession is not safe for concurrent use, so the child fetches run in turn;
    # change-request hours need the change-request ids first either way.
    return ProjectDetail(
        project=project,
        profile_hours=await list_profile_hours(session, project_id),
        scope_items=await list_scope_items(session, project_id),
        external_costs=await list_external_costs(session, project_id),
        change_requests=await list_change_requests(session, project_id),
    )


async def _group_children(session: AsyncSession, model, project_ids: List[int], order_by) -> Dict[int, list]:
    grouped: Dict[int, list] = defaultdict(list)
    result = await session.execute(select(model).where(model.project_id.in_(project_ids)).order_by(*order_by))
    for row in result.scalars().all():
        grouped[row.project_id].append(row)
    return grouped


async def list_project_details(session: AsyncSession, q: Optional[str] = None, status: Optional[ProjectStatus] = None) -> List[ProjectDetail]:
    """Every project's record graph, loaded with one query per entity kind."""
    projects = await list_projects(session, q=q, status=status)
    if not projects:
        return []
    ids = [p.id for p in projects]

    profile_hours = await _group_children(session, ProfileHours, ids, [ProfileHours.id])
    scope_items = await _group_children(session, ScopeItem, ids, [ScopeItem.id])
    external_costs = await _group_children(session, ExternalCost, ids, [ExternalCost.id])
    change_requests = await _group_children(session, ChangeRequest, ids, [ChangeRequest.created_at, ChangeRequest.id])

    cr_ids = [cr.id for crs in change_requests.values() for cr in crs]
    cr_hours = await _hours_by_change_request(session, cr_ids)

    return [
        ProjectDetail(
            project=p,
            profile_hours=profile_hours.get(p.id, []),
            scope_items=scope_items.get(p.id, []),
            external_costs=external_costs.get(p.id, []),
            change_requests=[ChangeRequestDetail(cr, cr_hours.get(cr.id, [])) for cr in change_requests.get(p.id, [])],
        )
        for p in projects
    ]


async def _stage_children(session: AsyncSession, model, project_id: int, rows, prepare=None) -> None:
    for row in rows:
        data = row.model_dump(exclude={"id"})
        if row.id is None:
            record = model(project_id=project_id, **data)
        else:
            record = await _get_child(session, model, project_id, row.id)
            for key, value in data.items():
                setattr(record, key, value)
        if prepare:
            prepare(record)
        session.add(record)


async def _stage_change_requests(session: AsyncSession, project_id: int, rows: Sequence[ChangeRequestSave]) -> None:
    for row in rows:
        _reject_duplicate_roles(row.hours)
        if row.id is None:
            cr = ChangeRequest(project_id=project_id, description=row.description, amount=row.amount)
            session.add(cr)
            await session.flush()
            existing = {}
        else:
            cr = await get_change_request(session, project_id, row.id)
            cr.description = row.description
            cr.amount = row.amount
            session.add(cr)
            stored = await _hours_by_change_request(session, [cr.id])
            existing = {h.role: h for h in stored.get(cr.id, [])}
        for h in row.hours:
            current = existing.get(h.role) or ChangeRequestHours(change_request_id=cr.id, role=h.role)
            current.actual_hours = h.actual_hours
            session.add(current)


async def save_project(session: AsyncSession, project_id: int, payload: ProjectSave) -> ProjectDetail:
    """Write the whole project form in one transaction.

    Covers the project fields, role hours, scope items, external costs and
    change requests with their hours. Nothing is kept if any step fails,
    including an id that belongs to another project.
    """
    project = await get_project(session, project_id)
    try:
        _apply_project_update(project, payload.project)
        session.add(project)
        await _stage_profile_hours(session, project_id, payload.profile_hours)
        await _stage_children(session, ScopeItem, project_id, payload.scope_items)
        await _stage_children(session, ExternalCost, project_id, payload.external_costs, prepare=_mirror_tool_license)
        await _stage_change_requests(session, project_id, payload.change_requests)
        await session.commit()
    except Exception:
        await session.rollback()
        logger.exception("Project save failed", extra={"project_id": project_id})
        raise
    return await fetch_project_detail(session, project_id)


# Helpers

async def _get_child(session: AsyncSession, model, project_id: int, record_id: int):
    record = await session.get(model, record_id)
    if not record or record.project_id != project_id:
        raise RecordNotFound(model.__name__, record_id)
    return record


async def _delete_child(session: AsyncSession, model, project_id: int, record_id: int) -> None:
    record = await _get_child(session, model, project_id, record_id)
    await session.delete(record)
    await session.commit()
