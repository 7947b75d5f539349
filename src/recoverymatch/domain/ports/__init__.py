"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    ConnectionRequestRepository,
    MatchGroupRepository,
    ProfileRepository,
    Repository,
)
from .unit_of_work import (
    ConnectionRepositories,
    ConnectionUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "ConnectionRepositories",
    "ConnectionRequestRepository",
    "ConnectionUnitOfWork",
    "MatchGroupRepository",
    "ProfileRepository",
    "Repository",
    "RepositoryCollection",
    "UnitOfWork",
]
