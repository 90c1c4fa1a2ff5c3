from datetime import datetime, timezone

import pytest
from sqlalchemy import DateTime

from retrospect.models.assistant import AIConversation, AIEstimate, AIFeedback, TaskGeneration, TaskTemplate
from retrospect.models.change_request import ChangeRequest
from retrospect.models.common import utcnow
from retrospect.models.generation_job import GenerationJob
from retrospect.models.project import Project


@pytest.mark.parametrize(
    "model, column",
    [
        (Project, "created_at"),
        (Project, "updated_at"),
        (ChangeRequest, "created_at"),
        (GenerationJob, "created_at"),
        (GenerationJob, "completed_at"),
        (AIConversation, "updated_at"),
        (AIFeedback, "created_at"),
        (AIEstimate, "created_at"),
        (TaskGeneration, "created_at"),
        (TaskTemplate, "created_at"),
    ],
)
def test_timestamp_columns_are_naive(model, column):
    col_type = model.__table__.c[column].type
    assert isinstance(col_type, DateTime)
    assert col_type.timezone is False


def test_utcnow_is_naive():
    now = utcnow()
    assert now.tzinfo is None
    assert abs((datetime.now(timezone.utc) - now.replace(tzinfo=timezone.utc)).total_seconds()) < 5


@pytest.mark.asyncio
async def test_timestamps_round_trip(session):
    project = Project(name="Bank site")
    session.add(project)
    await session.commit()

    project.updated_at = utcnow()
    session.add(project)
    await session.commit()
    await session.refresh(project)

    assert project.created_at.tzinfo is None
    assert project.updated_at >= project.created_at
