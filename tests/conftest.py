from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from recoverymatch.adapters.sqlalchemy import start_mappers
from recoverymatch.adapters.sqlalchemy.migrations import upgrade_head
from recoverymatch.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, shutdown, startup
from recoverymatch.domain.model import Role
from tests.helpers.connections import (
    FakeUnitOfWorkFactory,
    InMemoryStore,
    StepClock,
    make_profile,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from recoverymatch.domain.model import Profile


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True, expire_on_commit=False)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def fake_unit_of_work(store: InMemoryStore) -> FakeUnitOfWorkFactory:
    return FakeUnitOfWorkFactory(store)


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def applicant() -> Profile:
    return make_profile("Alex Applicant", Role.APPLICANT, email="alex@example.org")


@pytest.fixture
def second_applicant() -> Profile:
    return make_profile("Blair Applicant", Role.APPLICANT, email="blair@example.org")


@pytest.fixture
def peer() -> Profile:
    return make_profile("Pat Peer", Role.PEER, phone="555-0100")


@pytest.fixture
def employer() -> Profile:
    return make_profile("Eden Employer", Role.EMPLOYER, email="hiring@example.org")


@pytest.fixture
def landlord() -> Profile:
    return make_profile("Lee Landlord", Role.LANDLORD, phone="555-0199")
