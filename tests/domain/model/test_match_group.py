from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from recoverymatch.domain.errors import InvalidTransition, Unauthorized
from recoverymatch.domain.model import (
    ContactSource,
    GroupKind,
    GroupStatus,
    MatchGroup,
    RequestType,
    Role,
    Slot,
)
from recoverymatch.domain.shapes import GroupShape, resolve_group_shape
from tests.helpers.connections import make_profile

NOW = datetime(2025, 3, 1, 9, 30, tzinfo=UTC)


def _peer_group() -> tuple[MatchGroup, object, object]:
    applicant_id, peer_id = uuid4(), uuid4()
    shape = resolve_group_shape(
        RequestType.PEER_SUPPORT,
        {Role.APPLICANT},
        {Role.PEER},
        requester_id=applicant_id,
        target_id=peer_id,
    )
    assert isinstance(shape, GroupShape)
    return MatchGroup.from_shape(shape, at=NOW), applicant_id, peer_id


def test_from_shape_populates_only_shape_slots() -> None:
    group, applicant_id, peer_id = _peer_group()

    assert group.kind is GroupKind.PEER_SUPPORT
    assert group.status is GroupStatus.FORMING
    assert group.occupants == {Slot.APPLICANT_1: applicant_id, Slot.PEER_SUPPORT: peer_id}
    assert group.applicant_2_id is None
    assert group.employer_id is None
    assert group.landlord_id is None
    assert group.created_at == NOW


def test_membership_helpers() -> None:
    group, applicant_id, peer_id = _peer_group()

    assert group.members == frozenset({applicant_id, peer_id})
    assert group.slot_of(peer_id) is Slot.PEER_SUPPORT
    assert group.slot_of(uuid4()) is None
    assert group.others(applicant_id) == {Slot.PEER_SUPPORT: peer_id}


def test_activate_requires_member_and_forming() -> None:
    group, applicant_id, _ = _peer_group()

    with pytest.raises(Unauthorized):
        group.activate(uuid4(), at=NOW)

    group.activate(applicant_id, at=NOW)
    assert group.status is GroupStatus.ACTIVE
    assert group.activated_at == NOW
    assert group.is_live

    with pytest.raises(InvalidTransition):
        group.activate(applicant_id, at=NOW)


def test_end_is_single_shot() -> None:
    group, _, peer_id = _peer_group()

    group.end(peer_id, reason="moved away", at=NOW)
    assert group.status is GroupStatus.ENDED
    assert group.ended_by == peer_id
    assert group.end_reason == "moved away"
    assert not group.is_live

    with pytest.raises(InvalidTransition):
        group.end(peer_id, reason="again", at=NOW)
    assert group.end_reason == "moved away"


def test_profile_contact_records_are_unique_per_source() -> None:
    profile = make_profile(
        "Pat",
        Role.PEER,
        contacts={ContactSource.PEER_PROFILE: ("555-0101", None)},
    )

    record = profile.contact_record(ContactSource.PEER_PROFILE)
    assert record is not None
    assert record.phone == "555-0101"
    assert profile.contact_record(ContactSource.PROPERTY) is None

    with pytest.raises(ValueError, match="already has"):
        profile.add_contact_record(ContactSource.PEER_PROFILE, phone="555-0102")
