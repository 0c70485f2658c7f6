# tests/conftest.py
import itertools

import pytest
from faker import Faker
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from eventlink.domain.grouping import MatchingOptions
from eventlink.infrastructure.db.session import Base, get_db, unit_of_work
from eventlink.infrastructure.repositories.profile_repo import ProfileRepo
from eventlink.services.group_service import GroupService
import eventlink.infrastructure.models  # noqa: F401

FAKE = Faker()
OPTIONS = MatchingOptions()


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def make_profile(db):
    """Create and commit an unassigned profile; ids sort in creation order."""
    counter = itertools.count(1)

    def _make(interests, levels=(5,), profile_id=None):
        pid = profile_id or f"p{next(counter):03d}"
        p = ProfileRepo(db).create(
            pid,
            display_name=FAKE.name(),
            interests=list(interests),
            expertise_levels=list(levels),
        )
        db.commit()
        return p

    return _make


@pytest.fixture
def make_group(db, make_profile):
    """Seed an active group directly, bypassing the builder's size policy."""

    def _make(size, interests, levels=None):
        members = [
            make_profile(interests, levels=[levels[i]] if levels else [5])
            for i in range(size)
        ]
        with unit_of_work(db):
            g = GroupService(db, options=OPTIONS).place_members(
                members,
                name=f"Seed {'/'.join(interests)}",
                description="seeded",
                interests=interests,
            )
        return g

    return _make


@pytest.fixture
def client(session_factory):
    from main import app

    def override_get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
