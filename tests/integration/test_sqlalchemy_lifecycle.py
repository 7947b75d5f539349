from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from recoverymatch.adapters.sqlalchemy import unit_of_work as uow_module
from recoverymatch.app import build_services, create_profile
from recoverymatch.domain.disclosure import ContactInfo, Denied, DenialReason
from recoverymatch.domain.errors import DuplicateRequest, StoreUnavailable
from recoverymatch.domain.model import (
    ContactSource,
    GroupKind,
    GroupStatus,
    RequestStatus,
    RequestType,
    Role,
    Slot,
)
from tests.helpers.connections import StepClock

if TYPE_CHECKING:
    from collections.abc import Callable

    from recoverymatch.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork
    from recoverymatch.app import ConnectionServices


@pytest.fixture
def services(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> ConnectionServices:
    return build_services(unit_of_work_factory=sqlite_unit_of_work, clock=StepClock())


def test_housing_connection_end_to_end(services: ConnectionServices) -> None:
    factory = services.unit_of_work_factory
    applicant = create_profile(
        factory,
        display_name="Dana",
        roles=[Role.APPLICANT, Role.PEER],
        email="dana@example.org",
    )
    landlord = create_profile(
        factory,
        display_name="Lee",
        roles=[Role.LANDLORD],
        phone="555-0000",
        contacts={ContactSource.PROPERTY: ("555-0300", None)},
    )

    request = services.lifecycle.submit(applicant.id, landlord.id, RequestType.HOUSING, "hi")
    with pytest.raises(DuplicateRequest):
        services.lifecycle.submit(applicant.id, landlord.id, RequestType.HOUSING)

    approval = services.lifecycle.approve(request.id, landlord.id)
    assert approval.group.kind is GroupKind.HOUSING

    group = services.queries.get_group(approval.group.id)
    assert group.occupants == {Slot.APPLICANT_1: applicant.id, Slot.LANDLORD: landlord.id}
    stored = services.queries.get_request(request.id)
    assert stored.status is RequestStatus.MATCHED
    assert stored.match_group_id == group.id

    contact = services.disclosure.reveal(group.id, applicant.id)
    assert isinstance(contact, ContactInfo)
    assert contact.phone == "555-0300"
    assert contact.email is None

    services.lifecycle.activate_group(group.id, landlord.id)
    first = services.lifecycle.unmatch(request.id, applicant.id, "found another place")
    second = services.lifecycle.unmatch(request.id, landlord.id)

    assert first.changed is True
    assert second.changed is False
    ended = services.queries.get_group(group.id)
    assert ended.status is GroupStatus.ENDED
    assert ended.end_reason == "found another place"
    assert services.disclosure.reveal(group.id, applicant.id) == Denied(DenialReason.GROUP_ENDED)
    assert services.queries.list_groups(applicant.id, include_ended=False) == []


def test_failed_commit_leaves_request_pending(
    services: ConnectionServices,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    factory = services.unit_of_work_factory
    applicant = create_profile(factory, display_name="Alex", roles=[Role.APPLICANT])
    peer = create_profile(factory, display_name="Pat", roles=[Role.PEER])
    request = services.lifecycle.submit(applicant.id, peer.id, RequestType.PEER_SUPPORT)

    def failing_commit(self: SqlAlchemyUnitOfWork) -> None:
        self.session.flush()
        raise StoreUnavailable("commit timed out")

    monkeypatch.setattr(uow_module.BaseSqlAlchemyUnitOfWork, "commit", failing_commit)
    with pytest.raises(StoreUnavailable):
        services.lifecycle.approve(request.id, peer.id)
    monkeypatch.undo()

    stored = services.queries.get_request(request.id)
    assert stored.status is RequestStatus.PENDING
    assert stored.match_group_id is None
    assert services.queries.list_groups(peer.id) == []
