import json

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

import retrospect.models  # noqa: F401
from retrospect.api.deps import TASKS_JOB_KIND, get_completion_gateway, get_job_queue
from retrospect.core.database import get_session
from retrospect.core.security import create_edit_token
from retrospect.main import app
from retrospect.services.ai_service import task_generation_handler
from retrospect.services.completion import CompletionGateway
from retrospect.services.jobs import DatabaseJobQueue


class FakeProvider:
    """Stands in for the chat-completion endpoint behind an httpx.MockTransport."""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.content = "{}"
        # raw 2xx body sent instead of a chat completion when set
        self.body = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append({
            "url": str(request.url),
            "headers": dict(request.headers),
            "body": json.loads(request.content),
        })
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"error": {"message": "provider failure"}})
        if self.body is not None:
            return httpx.Response(200, content=self.body)
        return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": self.content}}]})

    @property
    def last_body(self) -> dict:
        return self.requests[-1]["body"]


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def gateway(provider):
    return CompletionGateway(
        api_key="test-key",
        base_url="https://llm.test/v1",
        transport=httpx.MockTransport(provider),
    )


@pytest_asyncio.fixture
async def job_queue(session_factory, gateway):
    queue = DatabaseJobQueue(session_factory, {TASKS_JOB_KIND: task_generation_handler(gateway)})
    yield queue
    await queue.wait_idle()


@pytest_asyncio.fixture
async def client(session_factory, gateway, job_queue):
    async def override_session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_completion_gateway] = lambda: gateway
    app.dependency_overrides[get_job_queue] = lambda: job_queue

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def edit_headers():
    return {"Authorization": f"Bearer {create_edit_token()}"}
