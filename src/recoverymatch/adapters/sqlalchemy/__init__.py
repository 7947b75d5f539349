"""SQLAlchemy adapter package for the connection engine."""

from __future__ import annotations

from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyConnectionRequestRepository,
    SqlAlchemyMatchGroupRepository,
    SqlAlchemyProfileRepository,
)
from .unit_of_work import SqlAlchemyUnitOfWork, is_started, shutdown, startup

__all__ = [
    "SqlAlchemyConnectionRequestRepository",
    "SqlAlchemyMatchGroupRepository",
    "SqlAlchemyProfileRepository",
    "SqlAlchemyUnitOfWork",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
