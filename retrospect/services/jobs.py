"""Polled job records for completions that outlive a request.

A job is written as ``pending``, the work runs in a detached asyncio task,
and the same row is moved to ``completed`` or ``error``. Callers poll.
There is no cancellation: once submitted a job runs to the end.
"""
import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from retrospect.core.config import settings
from retrospect.core.exceptions import RecordNotFound
from retrospect.models.common import utcnow
from retrospect.models.generation_job import GenerationJob, JobStatus
from retrospect.services.completion import StructuredCompletion

logger = logging.getLogger(__name__)

JobHandler = Callable[[Dict[str, Any]], Awaitable[StructuredCompletion]]

OUTCOME_WRITE_FAILED = "Could not record job result"


class JobTimeout(Exception):
    """The caller gave up polling; the job itself may still finish later."""

    def __init__(self, job_id: str, attempts: int):
        self.job_id = job_id
        self.attempts = attempts
        super().__init__(f"Timed out waiting for job {job_id} after {attempts} polls")


class JobQueue(ABC):
    @abstractmethod
    async def submit(self, kind: str, payload: Dict[str, Any]) -> str:
        """Record a pending job, start it, and return its id."""

    @abstractmethod
    async def poll(self, job_id: str) -> GenerationJob:
        """Current state of a job. Raises RecordNotFound for unknown ids."""


class DatabaseJobQueue(JobQueue):
    """Job queue backed by the ``generation_job`` table."""

    def __init__(self, session_factory: Callable[[], AsyncSession], handlers: Dict[str, JobHandler]):
        self.session_factory = session_factory
        self.handlers = handlers
        self._tasks: Set[asyncio.Task] = set()

    async def submit(self, kind: str, payload: Dict[str, Any]) -> str:
        if kind not in self.handlers:
            raise ValueError(f"No handler registered for job kind {kind!r}")

        job = GenerationJob(id=uuid.uuid4().hex, kind=kind, payload=payload)
        async with self.session_factory() as session:
            session.add(job)
            await session.commit()

        task = asyncio.create_task(self._run(job.id, kind, payload))
        # hold a reference until done so the task isn't garbage collected mid-flight
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("Job submitted", extra={"job_id": job.id, "kind": kind})
        return job.id

    async def _run(self, job_id: str, kind: str, payload: Dict[str, Any]) -> None:
        try:
            outcome = await self.handlers[kind](payload)
        except Exception as exc:
            logger.exception("Job failed", extra={"job_id": job_id, "kind": kind})
            await self._finish(job_id, JobStatus.ERROR, error=str(exc) or exc.__class__.__name__)
            return
        await self._finish(
            job_id,
            JobStatus.COMPLETED,
            result=outcome.parsed,
            raw=outcome.raw,
            error=outcome.error,
        )

    async def _finish(self, job_id: str, status: JobStatus, result=None, raw=None, error=None) -> None:
        try:
            await self._write_outcome(job_id, status, result=result, raw=raw, error=error)
        except Exception:
            logger.exception("Could not record job outcome", extra={"job_id": job_id})
            # retry once on a fresh session, recording the job as failed
            try:
                await self._write_outcome(job_id, JobStatus.ERROR, error=OUTCOME_WRITE_FAILED)
            except Exception:
                # nobody is awaiting this task; the job stays pending
                logger.exception("Could not mark job as failed", extra={"job_id": job_id})
            return
        logger.info("Job finished", extra={"job_id": job_id, "status": status.value})

    async def _write_outcome(self, job_id: str, status: JobStatus, result=None, raw=None, error=None) -> None:
        async with self.session_factory() as session:
            job = await session.get(GenerationJob, job_id)
            if job is None:
                logger.error("Job record vanished before completion", extra={"job_id": job_id})
                return
            job.status = status
            job.result = result
            job.raw = raw
            job.error = error
            job.completed_at = utcnow()
            session.add(job)
            await session.commit()

    async def poll(self, job_id: str) -> GenerationJob:
        async with self.session_factory() as session:
            job = await session.get(GenerationJob, job_id)
        if job is None:
            raise RecordNotFound("Job", job_id)
        return job

    async def list_recent(self, kind: Optional[str] = None, limit: int = 50) -> List[GenerationJob]:
        stmt = select(GenerationJob).order_by(GenerationJob.created_at.desc()).limit(limit)
        if kind:
            stmt = stmt.where(GenerationJob.kind == kind)
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def wait_idle(self) -> None:
        """Wait for every in-flight job of this queue to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


async def wait_for_job(
    queue: JobQueue,
    job_id: str,
    interval: Optional[float] = None,
    max_attempts: Optional[int] = None,
) -> GenerationJob:
    """Poll until the job leaves ``pending``.

    Raises :class:`JobTimeout` after ``max_attempts`` polls; that is a
    client-side condition, distinct from a job in the ``error`` state.
    Unset arguments fall back to the configured polling policy.
    """
    interval = settings.JOB_POLL_INTERVAL_SECONDS if interval is None else interval
    max_attempts = settings.JOB_MAX_POLL_ATTEMPTS if max_attempts is None else max_attempts
    for attempt in range(max_attempts):
        job = await queue.poll(job_id)
        if job.status != JobStatus.PENDING:
            return job
        if attempt < max_attempts - 1:
            await asyncio.sleep(interval)
    raise JobTimeout(job_id, max_attempts)
