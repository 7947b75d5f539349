"""SQLAlchemy mapping metadata for the connection engine's records."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from enum import StrEnum
from functools import cache
from typing import Any, Final, cast

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
    text,
)
from sqlalchemy.orm import configure_mappers, relationship

from recoverymatch.domain.model import (
    ContactRecord,
    ContactSource,
    ConnectionRequest,
    GroupKind,
    GroupStatus,
    MatchGroup,
    Profile,
    RequestStatus,
    RequestType,
    Role,
)

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]

# statuses covered by the one-open-request-per-pair index; keep in sync with
# recoverymatch.domain.model.OPEN_REQUEST_STATUSES
OPEN_STATUS_SQL: Final[str] = "status IN ('pending', 'approved', 'matched')"


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class RoleSetType(TypeDecorator[frozenset[Role]]):
    """Stores a role set as a sorted JSON list of role values."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value: frozenset[Role] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(sorted(Role(role).value for role in value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> frozenset[Role]:
        _ = dialect
        if value is None:
            return frozenset()
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return frozenset()
        items = cast(list[Any], loaded)
        return frozenset(Role(item) for item in items if isinstance(item, str))


def _value_enum(enum_cls: type[StrEnum]) -> Enum:
    """Non-native enum persisting member values (``"pending"``), not names."""

    return Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [member.value for member in members],
    )


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Tables ----------------------------------------------------------------------

profile_table = Table(
    "profile",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("display_name", String, nullable=False),
    Column("email", String, nullable=True),
    Column("phone", String, nullable=True),
    Column("roles", RoleSetType(), nullable=False, default=frozenset),
)

profile_contact_table = Table(
    "profile_contact",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "profile_id",
        UUIDColumnType,
        ForeignKey("profile.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("source", _value_enum(ContactSource), nullable=False),
    Column("phone", String, nullable=True),
    Column("email", String, nullable=True),
    UniqueConstraint("profile_id", "source", name="uq_profile_contact_source"),
)

match_group_table = Table(
    "match_group",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("kind", _value_enum(GroupKind), nullable=False),
    Column("status", _value_enum(GroupStatus), nullable=False),
    Column("applicant_1_id", UUIDColumnType, nullable=True, index=True),
    Column("applicant_2_id", UUIDColumnType, nullable=True, index=True),
    Column("peer_support_id", UUIDColumnType, nullable=True, index=True),
    Column("employer_id", UUIDColumnType, nullable=True, index=True),
    Column("landlord_id", UUIDColumnType, nullable=True, index=True),
    Column("property_id", UUIDColumnType, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("activated_at", UTCDateTime(), nullable=True),
    Column("ended_at", UTCDateTime(), nullable=True),
    Column("ended_by", UUIDColumnType, nullable=True),
    Column("end_reason", String, nullable=True),
    Column("version", Integer, nullable=False),
)

connection_request_table = Table(
    "connection_request",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("requester_id", UUIDColumnType, nullable=False, index=True),
    Column("target_id", UUIDColumnType, nullable=False, index=True),
    Column("request_type", _value_enum(RequestType), nullable=False),
    Column("status", _value_enum(RequestStatus), nullable=False),
    Column("message", Text, nullable=True),
    Column("match_score", Integer, nullable=True),
    Column("target_approved", Boolean, nullable=False, default=False),
    Column(
        "match_group_id",
        UUIDColumnType,
        ForeignKey("match_group.id"),
        nullable=True,
    ),
    Column("rejection_reason", Text, nullable=True),
    Column("unmatched_by", UUIDColumnType, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("matched_at", UTCDateTime(), nullable=True),
    Column("rejected_at", UTCDateTime(), nullable=True),
    Column("cancelled_at", UTCDateTime(), nullable=True),
    Column("unmatched_at", UTCDateTime(), nullable=True),
    Column("version", Integer, nullable=False),
    Index(
        "uq_connection_request_open_pair",
        "requester_id",
        "target_id",
        "request_type",
        unique=True,
        sqlite_where=text(OPEN_STATUS_SQL),
        postgresql_where=text(OPEN_STATUS_SQL),
    ),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(
        Profile,
        profile_table,
        properties={
            "contact_records": relationship(
                ContactRecord,
                cascade="all, delete-orphan",
                lazy="selectin",
            ),
        },
    )

    mapper_registry.map_imperatively(
        ContactRecord,
        profile_contact_table,
    )

    mapper_registry.map_imperatively(
        MatchGroup,
        match_group_table,
        version_id_col=match_group_table.c.version,
    )

    mapper_registry.map_imperatively(
        ConnectionRequest,
        connection_request_table,
        version_id_col=connection_request_table.c.version,
    )

    configure_mappers()
    return mapper_registry
