import os
import sqlite3

# Keep the module-level engine away from the developer database.
os.environ.setdefault("STATS_DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_AUTO_CREATE", "false")
os.environ.setdefault("DB_AUTO_UPGRADE", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from viewerstats.app import create_app
from viewerstats.core import get_session, upgrade_schema
from viewerstats.services.achievements import get_achievement_awarder
from viewerstats.services.cache import ResponseCache, get_leaderboard_cache, get_meta_cache
from viewerstats.services.capabilities import SchemaCapabilities, get_capabilities
from viewerstats.services.seasons import SeasonDirectory, get_season_directory
from viewerstats.services.twitch import TwitchUser, require_streamer

from .helpers import RecordingAwarder


def _memory_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def engine():
    engine = _memory_engine()
    SQLModel.metadata.create_all(engine)
    upgrade_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def legacy_engine():
    """Schema as it was before the bot flag and map baseline columns existed."""

    engine = _memory_engine()
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def empty_engine():
    engine = _memory_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def unreachable_engine():
    """An engine whose every connection attempt fails."""

    def refuse():
        raise sqlite3.OperationalError("unable to open database file")

    engine = create_engine("sqlite://", creator=refuse)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def legacy_session(legacy_engine):
    with Session(legacy_engine) as session:
        yield session


@pytest.fixture
def capabilities():
    return SchemaCapabilities()


@pytest.fixture
def leaderboard_cache():
    return ResponseCache(30)


@pytest.fixture
def meta_cache():
    return ResponseCache(300)


@pytest.fixture
def awarder():
    return RecordingAwarder()


@pytest.fixture
def streamer():
    return TwitchUser(user_id="1001", login="streamer")


@pytest.fixture
def build_client(capabilities, leaderboard_cache, meta_cache, awarder, streamer):
    """Return a factory producing a TestClient bound to the given engine."""

    def _build(engine):
        app = create_app()

        def _session():
            with Session(engine) as session:
                yield session

        app.dependency_overrides[get_session] = _session
        app.dependency_overrides[get_capabilities] = lambda: capabilities
        app.dependency_overrides[get_leaderboard_cache] = lambda: leaderboard_cache
        app.dependency_overrides[get_meta_cache] = lambda: meta_cache
        app.dependency_overrides[get_achievement_awarder] = lambda: awarder
        app.dependency_overrides[get_season_directory] = lambda: SeasonDirectory()
        app.dependency_overrides[require_streamer] = lambda: streamer
        return TestClient(app)

    return _build


@pytest.fixture
def client(build_client, engine):
    return build_client(engine)


@pytest.fixture
def legacy_client(build_client, legacy_engine):
    return build_client(legacy_engine)
