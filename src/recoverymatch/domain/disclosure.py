"""Contact disclosure gate.

Contact details are only revealed to a member of a live (forming or active)
match group, and only for the other member of that group. A denial carries a
reason code and nothing else.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Final, Literal

from recoverymatch.domain.errors import NotFound
from recoverymatch.domain.model import ContactSource, Profile

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from uuid import UUID

    from recoverymatch.domain.model import Slot
    from recoverymatch.domain.ports.unit_of_work import ConnectionUnitOfWork

# role-specific sub-records consulted before the profile's own fields
CONTACT_LOOKUP_ORDER: Final[tuple[ContactSource, ...]] = (
    ContactSource.APPLICANT_FORM,
    ContactSource.PEER_PROFILE,
    ContactSource.PROPERTY,
    ContactSource.EMPLOYER_PROFILE,
)

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ContactInfo:
    profile_id: UUID
    slot: Slot
    display_name: str
    email: str | None
    phone: str | None


class DenialReason(StrEnum):
    GROUP_NOT_FOUND = "group_not_found"
    GROUP_ENDED = "group_ended"
    NOT_A_MEMBER = "not_a_member"


@dataclass(frozen=True, slots=True)
class Denied:
    reason: DenialReason


type Disclosure = ContactInfo | Denied


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _first_contact_value(
    profile: Profile,
    field_name: Literal["phone", "email"],
    order: Sequence[ContactSource],
) -> str | None:
    for source in order:
        record = profile.contact_record(source)
        if record is None:
            continue
        value = _clean(getattr(record, field_name))
        if value is not None:
            return value
    return _clean(getattr(profile, field_name))


def lookup_phone(
    profile: Profile, order: Sequence[ContactSource] = CONTACT_LOOKUP_ORDER
) -> str | None:
    return _first_contact_value(profile, "phone", order)


def lookup_email(
    profile: Profile, order: Sequence[ContactSource] = CONTACT_LOOKUP_ORDER
) -> str | None:
    return _first_contact_value(profile, "email", order)


class ContactDisclosureGate:
    def __init__(self, unit_of_work_factory: Callable[[], ConnectionUnitOfWork]) -> None:
        self._unit_of_work = unit_of_work_factory

    def reveal(self, group_id: UUID, viewer_id: UUID) -> Disclosure:
        with self._unit_of_work() as uow:
            repos = uow.repositories
            group = repos.match_groups.get(group_id)
            if group is None:
                return Denied(DenialReason.GROUP_NOT_FOUND)
            if not group.is_live:
                return Denied(DenialReason.GROUP_ENDED)
            if not group.has_member(viewer_id):
                log.info("Denied contact reveal on group %s to non-member %s", group_id, viewer_id)
                return Denied(DenialReason.NOT_A_MEMBER)

            others = group.others(viewer_id)
            if not others:
                return Denied(DenialReason.NOT_A_MEMBER)
            slot, other_id = next(iter(others.items()))
            profile = repos.profiles.get(other_id)
            if profile is None:
                raise NotFound(Profile.ENTITY_NAME, other_id)

            return ContactInfo(
                profile_id=profile.id,
                slot=slot,
                display_name=profile.display_name,
                email=lookup_email(profile),
                phone=lookup_phone(profile),
            )
