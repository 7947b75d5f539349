"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError

from recoverymatch.adapters.sqlalchemy.errors import translate_store_errors
from recoverymatch.adapters.sqlalchemy.mappings import (
    connection_request_table,
    match_group_table,
)
from recoverymatch.domain.errors import DuplicateRequest
from recoverymatch.domain.model import (
    OPEN_REQUEST_STATUSES,
    ConnectionRequest,
    MatchGroup,
    Profile,
    RequestType,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.orm import Session


class SqlAlchemyConnectionRequestRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, entity_id: UUID) -> ConnectionRequest | None:
        with translate_store_errors():
            return self.session.get(ConnectionRequest, entity_id)

    def add(self, entity: ConnectionRequest) -> None:
        # flushed straight away so the open-pair unique index rejects a racing
        # duplicate here rather than at commit time
        self.session.add(entity)
        try:
            with translate_store_errors():
                self.session.flush()
        except IntegrityError as exc:
            raise DuplicateRequest(
                entity.requester_id, entity.target_id, RequestType(entity.request_type)
            ) from exc

    def find_open(
        self,
        *,
        requester_id: UUID,
        target_id: UUID,
        request_type: RequestType,
    ) -> ConnectionRequest | None:
        stmt = (
            select(ConnectionRequest)
            .where(connection_request_table.c.requester_id == requester_id)
            .where(connection_request_table.c.target_id == target_id)
            .where(connection_request_table.c.request_type == RequestType(request_type))
            .where(connection_request_table.c.status.in_(OPEN_REQUEST_STATUSES))
            .limit(1)
        )
        with translate_store_errors():
            return self.session.execute(stmt).scalar_one_or_none()

    def for_user(self, user_id: UUID) -> Sequence[ConnectionRequest]:
        stmt = (
            select(ConnectionRequest)
            .where(
                or_(
                    connection_request_table.c.requester_id == user_id,
                    connection_request_table.c.target_id == user_id,
                )
            )
            .order_by(connection_request_table.c.created_at.desc())
        )
        with translate_store_errors():
            return self.session.execute(stmt).scalars().all()


class SqlAlchemyMatchGroupRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, entity_id: UUID) -> MatchGroup | None:
        with translate_store_errors():
            return self.session.get(MatchGroup, entity_id)

    def add(self, entity: MatchGroup) -> None:
        # flushed before any request row can reference the group
        self.session.add(entity)
        with translate_store_errors():
            self.session.flush()

    def for_user(self, user_id: UUID) -> Sequence[MatchGroup]:
        slot_columns = (
            match_group_table.c.applicant_1_id,
            match_group_table.c.applicant_2_id,
            match_group_table.c.peer_support_id,
            match_group_table.c.employer_id,
            match_group_table.c.landlord_id,
        )
        stmt = (
            select(MatchGroup)
            .where(or_(*(column == user_id for column in slot_columns)))
            .order_by(match_group_table.c.created_at.desc())
        )
        with translate_store_errors():
            return self.session.execute(stmt).scalars().all()


class SqlAlchemyProfileRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, entity_id: UUID) -> Profile | None:
        with translate_store_errors():
            return self.session.get(Profile, entity_id)

    def add(self, entity: Profile) -> None:
        self.session.add(entity)


if TYPE_CHECKING:
    from recoverymatch.domain.ports.persistence import (
        ConnectionRequestRepository,
        MatchGroupRepository,
        ProfileRepository,
    )

    _session_stub = cast("Session", object())
    _request_repo: ConnectionRequestRepository = SqlAlchemyConnectionRequestRepository(
        _session_stub
    )
    _group_repo: MatchGroupRepository = SqlAlchemyMatchGroupRepository(_session_stub)
    _profile_repo: ProfileRepository = SqlAlchemyProfileRepository(_session_stub)
