"""Shared fixtures for quest player tests.

Testing strategy:
1. Progress store: in-memory implementation of the store protocol with failure injection
2. Block catalog: fixed in-memory lessons built with the block factories
3. HTTP: the real FastAPI app over httpx's ASGI transport, with store and catalog overridden
"""

import os


# Must be set before the app is imported so the lifespan (DB init) is skipped
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("AUTH_PROVIDER", "none")

from collections.abc import AsyncGenerator, Awaitable, Callable
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from quest_player.blocks.schemas import BlockType
from quest_player.config import DEFAULT_USER_ID, get_settings
from quest_player.main import app
from quest_player.quest.dependencies import get_block_catalog, get_progress_store
from tests.fixtures.blocks import VIDEO_URL, make_lesson, survey_content
from tests.fixtures.stores import InMemoryBlockCatalog, InMemoryProgressStore


@pytest.fixture
def learner_id() -> UUID:
    return DEFAULT_USER_ID


@pytest.fixture
def lesson_id() -> UUID:
    return uuid4()


@pytest.fixture
def store() -> InMemoryProgressStore:
    return InMemoryProgressStore()


@pytest.fixture
def quest_blocks():
    """A full quest lesson: survey, role description, video, Point A, text, Point B.

    Headings and dividers are decorative and are not steps.
    """
    return make_lesson(
        (BlockType.HEADING, "title", {"text": "Your path"}),
        (BlockType.QUIZ_SURVEY, "quiz", survey_content()),
        (BlockType.ROLE_DESCRIPTION, "role"),
        (BlockType.VIDEO_UNSKIPPABLE, "video", {"url": VIDEO_URL}),
        (BlockType.DIVIDER, "divider"),
        (BlockType.DIAGNOSTIC_TABLE, "point_a"),
        (BlockType.TEXT, "text", {"html": "<p>Halfway there</p>"}),
        (
            BlockType.SEQUENTIAL_FORM,
            "point_b",
            {"steps": [{"id": "1", "required": True}, {"id": "2", "required": False}]},
        ),
    )


@pytest.fixture
def catalog(lesson_id, quest_blocks) -> InMemoryBlockCatalog:
    return InMemoryBlockCatalog({lesson_id: quest_blocks})


@pytest.fixture
def settings_env(monkeypatch):
    """Change settings through the environment for one test."""

    def apply(**values: str) -> None:
        for key, value in values.items():
            monkeypatch.setenv(key, value)
        get_settings.cache_clear()

    yield apply
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def client_factory(
    store, catalog
) -> AsyncGenerator[Callable[..., Awaitable[AsyncClient]], None]:
    """Create API clients bound to the in-memory store and catalog.

    Pass ``learner_id`` to send it in the ``X-User-Id`` header.
    """
    app.dependency_overrides[get_progress_store] = lambda: store
    app.dependency_overrides[get_block_catalog] = lambda: catalog
    clients: list[AsyncClient] = []

    async def _make(learner_id: UUID | None = None) -> AsyncClient:
        headers = {"X-User-Id": str(learner_id)} if learner_id else {}
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test", headers=headers)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()
    app.dependency_overrides.clear()
