"""Match-group shape resolution.

A shape says which party fills which slot of a new match group. Resolution is
an ordered rule table: the first rule whose request types and role
requirements match wins. Ordering disambiguates parties holding several roles
(an applicant who is also a peer, say), and the request type always takes
part in the decision so that, for example, a housing request is never
resolved as a roommate pairing.

An unmatched pairing yields ``ShapeNotFound``; there is no default shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from recoverymatch.domain.model.enums import GroupKind, RequestType, Role, Slot

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from uuid import UUID


class Party(StrEnum):
    REQUESTER = "requester"
    TARGET = "target"


@dataclass(frozen=True, slots=True)
class GroupShape:
    """Resolved shape: the group kind and the party placed in each populated slot."""

    kind: GroupKind
    slots: Mapping[Slot, UUID]

    @property
    def populated(self) -> frozenset[Slot]:
        return frozenset(self.slots)


@dataclass(frozen=True, slots=True)
class ShapeNotFound:
    """No rule matched the request type and role pairing."""

    request_type: RequestType | None
    requester_roles: frozenset[Role]
    target_roles: frozenset[Role]


type ShapeResolution = GroupShape | ShapeNotFound


@dataclass(frozen=True, slots=True)
class ShapeRule:
    name: str
    kind: GroupKind
    request_types: frozenset[RequestType | None]
    requester_role: Role
    target_role: Role
    placement: Mapping[Slot, Party] = field(default_factory=dict["Slot", "Party"])

    def matches(
        self,
        request_type: RequestType | None,
        requester_roles: frozenset[Role],
        target_roles: frozenset[Role],
    ) -> bool:
        return (
            request_type in self.request_types
            and self.requester_role in requester_roles
            and self.target_role in target_roles
        )

    def build(self, requester_id: UUID, target_id: UUID) -> GroupShape:
        parties = {Party.REQUESTER: requester_id, Party.TARGET: target_id}
        slots = {slot: parties[party] for slot, party in self.placement.items()}
        return GroupShape(kind=self.kind, slots=MappingProxyType(slots))


_PEER_SUPPORT_TYPES: Final = frozenset({RequestType.PEER_SUPPORT, None})
_APPLICANT_PAIR_TYPES: Final = frozenset(
    {RequestType.ROOMMATE, RequestType.PEER_SUPPORT, None}
)

SHAPE_RULES: Final[tuple[ShapeRule, ...]] = (
    ShapeRule(
        name="applicant-to-peer",
        kind=GroupKind.PEER_SUPPORT,
        request_types=_PEER_SUPPORT_TYPES,
        requester_role=Role.APPLICANT,
        target_role=Role.PEER,
        placement={Slot.APPLICANT_1: Party.REQUESTER, Slot.PEER_SUPPORT: Party.TARGET},
    ),
    ShapeRule(
        name="peer-to-applicant",
        kind=GroupKind.PEER_SUPPORT,
        request_types=_PEER_SUPPORT_TYPES,
        requester_role=Role.PEER,
        target_role=Role.APPLICANT,
        placement={Slot.APPLICANT_1: Party.TARGET, Slot.PEER_SUPPORT: Party.REQUESTER},
    ),
    ShapeRule(
        name="applicant-pair",
        kind=GroupKind.ROOMMATE,
        request_types=_APPLICANT_PAIR_TYPES,
        requester_role=Role.APPLICANT,
        target_role=Role.APPLICANT,
        placement={Slot.APPLICANT_1: Party.REQUESTER, Slot.APPLICANT_2: Party.TARGET},
    ),
    ShapeRule(
        name="applicant-to-employer",
        kind=GroupKind.EMPLOYMENT,
        request_types=frozenset({RequestType.EMPLOYMENT}),
        requester_role=Role.APPLICANT,
        target_role=Role.EMPLOYER,
        placement={Slot.APPLICANT_1: Party.REQUESTER, Slot.EMPLOYER: Party.TARGET},
    ),
    ShapeRule(
        name="applicant-to-landlord",
        kind=GroupKind.HOUSING,
        request_types=frozenset({RequestType.HOUSING}),
        requester_role=Role.APPLICANT,
        target_role=Role.LANDLORD,
        placement={Slot.APPLICANT_1: Party.REQUESTER, Slot.LANDLORD: Party.TARGET},
    ),
)

SLOTS_BY_KIND: Final[Mapping[GroupKind, frozenset[Slot]]] = MappingProxyType(
    {rule.kind: frozenset(rule.placement) for rule in SHAPE_RULES}
)


def resolve_group_shape(
    request_type: RequestType | None,
    requester_roles: Iterable[Role],
    target_roles: Iterable[Role],
    *,
    requester_id: UUID,
    target_id: UUID,
    rules: tuple[ShapeRule, ...] = SHAPE_RULES,
) -> ShapeResolution:
    """Return the shape of the first matching rule, or ``ShapeNotFound``."""

    requester_set = frozenset(requester_roles)
    target_set = frozenset(target_roles)
    for rule in rules:
        if rule.matches(request_type, requester_set, target_set):
            return rule.build(requester_id, target_id)
    return ShapeNotFound(
        request_type=request_type,
        requester_roles=requester_set,
        target_roles=target_set,
    )
