"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from recoverymatch.domain.ports.persistence import (
        ConnectionRequestRepository,
        MatchGroupRepository,
        ProfileRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Atomic boundary around a repository collection.

    Everything staged inside one ``with`` block is written by ``commit`` or not
    at all; leaving the block through an exception rolls back.
    """

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class ConnectionRepositories(RepositoryCollection):
    """Repositories the connection engine works with."""

    connection_requests: ConnectionRequestRepository
    match_groups: MatchGroupRepository
    profiles: ProfileRepository


type ConnectionUnitOfWork = UnitOfWork[ConnectionRepositories]
