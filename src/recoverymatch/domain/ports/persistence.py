"""Ports for persisting connection requests, match groups and reading profiles."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from recoverymatch.domain.model import ConnectionRequest, MatchGroup, Profile

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from recoverymatch.domain.model import RequestType


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent record collection.

    ``get`` returns ``None`` for unknown ids. Changes to records obtained from a
    repository are tracked by the enclosing unit of work and written on commit.
    """

    def get(self, entity_id: UUID) -> TEntity | None: ...

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class ConnectionRequestRepository(Repository[ConnectionRequest], Protocol):
    """Persistence contract for the ``connection_requests`` collection."""

    def find_open(
        self,
        *,
        requester_id: UUID,
        target_id: UUID,
        request_type: RequestType,
    ) -> ConnectionRequest | None: ...

    def for_user(self, user_id: UUID) -> Sequence[ConnectionRequest]: ...


@runtime_checkable
class MatchGroupRepository(Repository[MatchGroup], Protocol):
    """Persistence contract for the ``match_groups`` collection."""

    def for_user(self, user_id: UUID) -> Sequence[MatchGroup]: ...


@runtime_checkable
class ProfileRepository(Repository[Profile], Protocol):
    """Read access to profiles; ``add`` exists for seeding only."""
