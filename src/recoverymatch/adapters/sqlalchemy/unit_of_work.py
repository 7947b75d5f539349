"""SQLAlchemy-backed unit of work for the connection engine."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from recoverymatch.adapters.sqlalchemy.errors import translate_store_errors
from recoverymatch.adapters.sqlalchemy.mappings import start_mappers
from recoverymatch.adapters.sqlalchemy.migrations import upgrade_head
from recoverymatch.adapters.sqlalchemy.repositories import (
    SqlAlchemyConnectionRequestRepository,
    SqlAlchemyMatchGroupRepository,
    SqlAlchemyProfileRepository,
)
from recoverymatch.config import StoreConfig, get_database_config, get_store_config
from recoverymatch.domain.ports.unit_of_work import (
    ConnectionRepositories,
    RepositoryCollection,
)

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call recoverymatch.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def build_engine(database_uri: str, *, store: StoreConfig | None = None) -> Engine:
    """Create an engine whose connects and pool checkouts are bounded by the store timeout."""

    timeout = (store or get_store_config()).timeout_seconds
    if database_uri.startswith("sqlite"):
        # pysqlite's busy timeout bounds waits on a locked database file
        return create_engine(database_uri, future=True, connect_args={"timeout": timeout})
    return create_engine(
        database_uri,
        future=True,
        pool_timeout=timeout,
        pool_pre_ping=True,
    )


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    store: StoreConfig | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, schema and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or build_engine(
        database_uri or get_database_config().uri,
        store=store,
    )
    start_mappers()
    with translate_store_errors():
        upgrade_head(engine=resolved_engine)

    log.info("Record store ready at %s", resolved_engine.url.render_as_string(hide_password=True))
    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections.

    One session, one transaction: ``commit`` writes everything staged through the
    repositories; leaving the ``with`` block without committing discards it.
    """

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None
        self._repositories: TRepositories | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            # a failed rollback must not mask the error already propagating
            try:
                self.session.rollback()
            except SQLAlchemyError:
                log.warning(
                    "Rollback failed while handling %s", exc_type.__name__, exc_info=True
                )
        self.session.close()
        self.session = None
        self._repositories = None
        return False

    def commit(self) -> None:
        with translate_store_errors():
            self.session.commit()

    def rollback(self) -> None:
        with translate_store_errors():
            self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None or self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyUnitOfWork(BaseSqlAlchemyUnitOfWork[ConnectionRepositories]):
    """Unit of work over connection requests, match groups and profiles."""

    def _build_repositories(self, session: Session) -> ConnectionRepositories:
        return ConnectionRepositories(
            connection_requests=SqlAlchemyConnectionRequestRepository(session),
            match_groups=SqlAlchemyMatchGroupRepository(session),
            profiles=SqlAlchemyProfileRepository(session),
        )


if TYPE_CHECKING:
    from recoverymatch.domain.ports.unit_of_work import ConnectionUnitOfWork

    _uow_check: ConnectionUnitOfWork = SqlAlchemyUnitOfWork()
