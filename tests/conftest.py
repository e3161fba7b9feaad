import os

# Keep the app's own engine off disk; tests use test_engine below
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import random  # noqa: E402
from typing import Callable, List, Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine, select  # noqa: E402

from courtside.database import get_session  # noqa: E402
from courtside.main import app  # noqa: E402
from courtside.models.category import Category, CategoryFormat  # noqa: E402
from courtside.models.court import Court  # noqa: E402
from courtside.models.match import Match  # noqa: E402
from courtside.models.tournament import Tournament  # noqa: E402
from courtside.services.seeding import Participant  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. Use sqlite:///:memory: with StaticPool so ALL sessions share same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. App dependency overridden to use test_engine (see client_fixture)
# 4. Tables created per test and dropped afterwards
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# Domain fixtures
# ============================================================================


def make_participants(count: int) -> List[Participant]:
    return [Participant(id=f"p{i}", name=f"Player {i}") for i in range(1, count + 1)]


@pytest.fixture
def rng() -> random.Random:
    return random.Random(20260115)


@pytest.fixture
def tournament(session: Session) -> Tournament:
    t = Tournament(name="Spring Open")
    session.add(t)
    session.commit()
    session.refresh(t)
    return t


@pytest.fixture
def make_category(session: Session, tournament: Tournament) -> Callable[..., Category]:
    def _make(
        name: str = "Open Singles",
        format: CategoryFormat = CategoryFormat.knockout_only,
        **fields,
    ) -> Category:
        category = Category(tournament_id=tournament.id, name=name, format=format.value, **fields)
        session.add(category)
        session.commit()
        session.refresh(category)
        return category

    return _make


@pytest.fixture
def make_courts(session: Session, tournament: Tournament) -> Callable[[int], List[Court]]:
    def _make(count: int) -> List[Court]:
        courts = [Court(tournament_id=tournament.id, name=f"Court {i}", order=i) for i in range(1, count + 1)]
        session.add_all(courts)
        session.commit()
        for court in courts:
            session.refresh(court)
        return courts

    return _make


def category_matches(session: Session, category_id: int, stage: Optional[str] = None) -> List[Match]:
    session.expire_all()
    query = select(Match).where(Match.category_id == category_id)
    if stage is not None:
        query = query.where(Match.stage == stage)
    return list(session.exec(query.order_by(Match.round, Match.match_order)).all())
