from typing import List, Optional
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from retrospect.api.deps import TASKS_JOB_KIND, get_job_queue
from retrospect.core.database import get_session
from retrospect.core.exceptions import RecordNotFound
from retrospect.core.security import require_edit_capability
from retrospect.models.assistant import TaskTemplate
from retrospect.models.generation_job import JobStatus
from retrospect.schemas.assistant import (
    JobRead,
    JobSubmitted,
    TaskGenerationCreate,
    TaskGenerationRead,
    TaskGenerationRequest,
    TaskTemplateCreate,
    TaskTemplateRead,
)
from retrospect.services import history_service
from retrospect.services.jobs import DatabaseJobQueue

router = APIRouter(prefix="/tasks", tags=["tasks"])

edit = [Depends(require_edit_capability)]


@router.post("/jobs", response_model=JobSubmitted, status_code=status.HTTP_202_ACCEPTED)
async def submit_task_job(payload: TaskGenerationRequest, queue: DatabaseJobQueue = Depends(get_job_queue)):
    """Start a task breakdown; poll ``GET /tasks/jobs/{job_id}`` for the result."""
    job_id = await queue.submit(TASKS_JOB_KIND, payload.model_dump())
    return JobSubmitted(job_id=job_id, status=JobStatus.PENDING)


@router.get("/jobs", response_model=List[JobRead])
async def list_task_jobs(limit: int = 50, queue: DatabaseJobQueue = Depends(get_job_queue)):
    return await queue.list_recent(kind=TASKS_JOB_KIND, limit=limit)


@router.get("/jobs/{job_id}", response_model=JobRead)
async def get_task_job(job_id: str, queue: DatabaseJobQueue = Depends(get_job_queue)):
    return await queue.poll(job_id)


@router.post("/generations", response_model=TaskGenerationRead, status_code=status.HTTP_201_CREATED, dependencies=edit)
async def save_generation(payload: TaskGenerationCreate, session: AsyncSession = Depends(get_session)):
    """Keep a task breakdown, usually after it was edited."""
    return await history_service.save_generation(session, payload)


@router.get("/generations", response_model=List[TaskGenerationRead])
async def list_generations(limit: int = 50, session: AsyncSession = Depends(get_session)):
    return await history_service.list_generations(session, limit=limit)


@router.delete("/generations/{generation_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=edit)
async def delete_generation(generation_id: int, session: AsyncSession = Depends(get_session)):
    await history_service.delete_generation(session, generation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/templates", response_model=TaskTemplateRead, status_code=status.HTTP_201_CREATED, dependencies=edit)
async def create_template(payload: TaskTemplateCreate, session: AsyncSession = Depends(get_session)):
    template = TaskTemplate(**payload.model_dump())
    session.add(template)
    await session.commit()
    await session.refresh(template)
    return template


@router.get("/templates", response_model=List[TaskTemplateRead])
async def list_templates(project_type: Optional[str] = None, session: AsyncSession = Depends(get_session)):
    stmt = select(TaskTemplate).order_by(TaskTemplate.created_at.desc())
    if project_type:
        stmt = stmt.where(TaskTemplate.project_type == project_type)
    result = await session.execute(stmt)
    return result.scalars().all()


@router.delete("/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=edit)
async def delete_template(template_id: int, session: AsyncSession = Depends(get_session)):
    template = await session.get(TaskTemplate, template_id)
    if not template:
        raise RecordNotFound("TaskTemplate", template_id)
    await session.delete(template)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
