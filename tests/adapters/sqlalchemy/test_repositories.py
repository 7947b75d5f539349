"""Tests for SQLAlchemy repositories."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy import text
from sqlalchemy.orm import Session  # noqa: TC002

from recoverymatch.adapters.sqlalchemy.repositories import (
    SqlAlchemyConnectionRequestRepository,
    SqlAlchemyMatchGroupRepository,
    SqlAlchemyProfileRepository,
)
from recoverymatch.domain.errors import DuplicateRequest
from recoverymatch.domain.model import (
    ConnectionRequest,
    ContactSource,
    GroupKind,
    MatchGroup,
    RequestStatus,
    RequestType,
    Role,
)
from recoverymatch.domain.shapes import GroupShape, resolve_group_shape
from tests.helpers.connections import make_profile

BASE_TIME = datetime(2025, 2, 1, 8, 0, tzinfo=UTC)


def _request(
    requester_id: object,
    target_id: object,
    request_type: RequestType = RequestType.ROOMMATE,
    *,
    at: datetime = BASE_TIME,
) -> ConnectionRequest:
    return ConnectionRequest.submit(
        requester_id=requester_id,  # type: ignore[arg-type]
        target_id=target_id,  # type: ignore[arg-type]
        request_type=request_type,
        message=None,
        at=at,
    )


def test_profile_round_trip_keeps_roles_and_contacts(sqlite_session: Session) -> None:
    repository = SqlAlchemyProfileRepository(sqlite_session)
    profile = make_profile(
        "Lee",
        Role.LANDLORD,
        Role.PEER,
        email="lee@example.org",
        contacts={ContactSource.PROPERTY: ("555-0300", None)},
    )

    repository.add(profile)
    sqlite_session.commit()
    sqlite_session.expunge_all()

    loaded = repository.get(profile.id)
    assert loaded is not None
    assert loaded.roles == frozenset({Role.LANDLORD, Role.PEER})
    record = loaded.contact_record(ContactSource.PROPERTY)
    assert record is not None
    assert record.phone == "555-0300"


def test_enums_are_stored_by_value(sqlite_session: Session) -> None:
    repository = SqlAlchemyConnectionRequestRepository(sqlite_session)
    request = _request(uuid4(), uuid4(), RequestType.PEER_SUPPORT)

    repository.add(request)
    sqlite_session.commit()

    row = sqlite_session.execute(
        text("SELECT status, request_type, version FROM connection_request")
    ).one()
    assert tuple(row) == ("pending", "peer_support", 1)


def test_find_open_ignores_closed_requests(sqlite_session: Session) -> None:
    repository = SqlAlchemyConnectionRequestRepository(sqlite_session)
    requester, target = uuid4(), uuid4()
    cancelled = _request(requester, target)
    cancelled.cancel(requester, at=BASE_TIME)
    repository.add(cancelled)
    sqlite_session.commit()

    assert (
        repository.find_open(
            requester_id=requester, target_id=target, request_type=RequestType.ROOMMATE
        )
        is None
    )

    pending = _request(requester, target)
    repository.add(pending)
    sqlite_session.commit()

    found = repository.find_open(
        requester_id=requester, target_id=target, request_type=RequestType.ROOMMATE
    )
    assert found is not None
    assert found.id == pending.id


def test_open_pair_index_rejects_racing_duplicate(sqlite_session: Session) -> None:
    repository = SqlAlchemyConnectionRequestRepository(sqlite_session)
    requester, target = uuid4(), uuid4()
    repository.add(_request(requester, target))
    sqlite_session.commit()

    with pytest.raises(DuplicateRequest) as excinfo:
        repository.add(_request(requester, target))

    assert excinfo.value.code == "duplicate_request"
    sqlite_session.rollback()
    assert len(repository.for_user(requester)) == 1


def test_for_user_returns_both_directions_newest_first(sqlite_session: Session) -> None:
    repository = SqlAlchemyConnectionRequestRepository(sqlite_session)
    user, other_a, other_b = uuid4(), uuid4(), uuid4()
    sent = _request(user, other_a, at=BASE_TIME)
    received = _request(other_b, user, at=BASE_TIME + timedelta(hours=1))
    unrelated = _request(other_a, other_b, at=BASE_TIME + timedelta(hours=2))
    for request in (sent, received, unrelated):
        repository.add(request)
    sqlite_session.commit()

    listed = repository.for_user(user)

    assert [request.id for request in listed] == [received.id, sent.id]
    assert listed[0].created_at == BASE_TIME + timedelta(hours=1)


def test_match_group_for_user_searches_every_slot(sqlite_session: Session) -> None:
    repository = SqlAlchemyMatchGroupRepository(sqlite_session)
    applicant, employer = uuid4(), uuid4()
    shape = resolve_group_shape(
        RequestType.EMPLOYMENT,
        {Role.APPLICANT},
        {Role.EMPLOYER},
        requester_id=applicant,
        target_id=employer,
    )
    assert isinstance(shape, GroupShape)
    group = MatchGroup.from_shape(shape, at=BASE_TIME)

    repository.add(group)
    sqlite_session.commit()
    sqlite_session.expunge_all()

    by_employer = repository.for_user(employer)
    assert [found.id for found in by_employer] == [group.id]
    assert by_employer[0].kind is GroupKind.EMPLOYMENT
    assert by_employer[0].employer_id == employer
    assert repository.for_user(uuid4()) == []


def test_request_references_existing_group(sqlite_session: Session) -> None:
    groups = SqlAlchemyMatchGroupRepository(sqlite_session)
    requests = SqlAlchemyConnectionRequestRepository(sqlite_session)
    requester, target = uuid4(), uuid4()
    shape = resolve_group_shape(
        RequestType.ROOMMATE,
        {Role.APPLICANT},
        {Role.APPLICANT},
        requester_id=requester,
        target_id=target,
    )
    assert isinstance(shape, GroupShape)
    group = MatchGroup.from_shape(shape, at=BASE_TIME)
    request = _request(requester, target)
    requests.add(request)

    groups.add(group)
    request.approve(target)
    request.mark_matched(group.id, at=BASE_TIME)
    sqlite_session.commit()
    sqlite_session.expunge_all()

    loaded = requests.get(request.id)
    assert loaded is not None
    assert loaded.status is RequestStatus.MATCHED
    assert loaded.match_group_id == group.id
    assert loaded.version == 2
