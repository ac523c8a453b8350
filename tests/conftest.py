"""Shared fixtures: a throwaway SQLite database per test and an API client bound to it."""

import os
import tempfile
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from pathlib import Path

# Keep the module-level engine away from the real data directory.
os.environ.setdefault(
    "TREEDECK_DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(tempfile.mkdtemp()) / 'treedeck-test.db'}",
)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402

from backend.database import get_session, make_engine  # noqa: E402
from backend.main import app  # noqa: E402
from backend.models import Base, Deck, Item  # noqa: E402

OWNER = "owner-1"


@dataclass
class Node:
    """Minimal stand-in for an Item row in pure tree tests."""

    id: int
    title: str
    parent_id: int | None = None
    order: int = 0
    level: int = 0


@dataclass
class FakeCard:
    id: int
    item_id: int
    front: str = "front"
    back: str = "back"
    is_tree_generated: bool = False
    due_date: object = None


@pytest_asyncio.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport, base_url="http://test", headers={"X-Owner-Id": OWNER}
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@dataclass
class SeededTree:
    deck: Deck
    root: Item
    a: Item
    b: Item
    a1: Item
    a2: Item


@pytest_asyncio.fixture
async def seeded(db: AsyncSession) -> SeededTree:
    """Deck with Root -> [A, B] and A -> [A1, A2]."""
    deck = Deck(title="History", owner_id=OWNER)
    db.add(deck)
    await db.flush()

    def item(title: str, parent: Item | None, order: int) -> Item:
        node = Item(
            title=title,
            deck_id=deck.id,
            parent_id=parent.id if parent else None,
            order=order,
            level=0 if parent is None else parent.level + 1,
            owner_id=OWNER,
        )
        db.add(node)
        return node

    root = item("Root", None, 0)
    await db.flush()
    a = item("A", root, 0)
    b = item("B", root, 1)
    await db.flush()
    a1 = item("A1", a, 0)
    a2 = item("A2", a, 1)
    await db.commit()
    return SeededTree(deck=deck, root=root, a=a, b=b, a1=a1, a2=a2)
