"""Match groups: the relationship record created when a request is approved."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from recoverymatch.domain.errors import InvalidTransition, Unauthorized
from recoverymatch.domain.model.entity import Entity
from recoverymatch.domain.model.enums import LIVE_GROUP_STATUSES, GroupKind, GroupStatus, Slot

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from recoverymatch.domain.shapes import GroupShape


@dataclass(eq=False, kw_only=True)
class MatchGroup(Entity):
    """Slots are populated once, from a resolved shape, and never reshaped.

    Groups are never deleted; ending one keeps it as an audit record.
    """

    ENTITY_NAME: ClassVar[str] = "match group"

    kind: GroupKind
    status: GroupStatus = GroupStatus.FORMING

    applicant_1_id: UUID | None = None
    applicant_2_id: UUID | None = None
    peer_support_id: UUID | None = None
    employer_id: UUID | None = None
    landlord_id: UUID | None = None
    property_id: UUID | None = None

    created_at: datetime | None = None
    activated_at: datetime | None = None
    ended_at: datetime | None = None
    ended_by: UUID | None = None
    end_reason: str | None = None

    version: int | None = None

    @classmethod
    def from_shape(cls, shape: GroupShape, *, at: datetime) -> MatchGroup:
        slots = {slot.value: party_id for slot, party_id in shape.slots.items()}
        return cls(kind=shape.kind, created_at=at, **slots)

    # occupancy --------------------------------------------------------------

    def occupant(self, slot: Slot) -> UUID | None:
        return getattr(self, slot.value)

    @property
    def occupants(self) -> dict[Slot, UUID]:
        """Populated party slots, in slot declaration order."""
        occupied: dict[Slot, UUID] = {}
        for slot in Slot:
            party_id = self.occupant(slot)
            if party_id is not None:
                occupied[slot] = party_id
        return occupied

    @property
    def members(self) -> frozenset[UUID]:
        return frozenset(self.occupants.values())

    def has_member(self, party_id: UUID) -> bool:
        return party_id in self.members

    def slot_of(self, party_id: UUID) -> Slot | None:
        for slot, occupant in self.occupants.items():
            if occupant == party_id:
                return slot
        return None

    def others(self, party_id: UUID) -> dict[Slot, UUID]:
        return {slot: other for slot, other in self.occupants.items() if other != party_id}

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_GROUP_STATUSES

    # lifecycle --------------------------------------------------------------

    def activate(self, actor_id: UUID, *, at: datetime) -> None:
        if not self.has_member(actor_id):
            raise Unauthorized(actor_id, "activate", "group member")
        if self.status != GroupStatus.FORMING:
            raise InvalidTransition(self.ENTITY_NAME, self.id, self.status, "activate")
        self.status = GroupStatus.ACTIVE
        self.activated_at = at

    def end(self, ended_by: UUID, *, reason: str, at: datetime) -> None:
        if not self.is_live:
            raise InvalidTransition(self.ENTITY_NAME, self.id, self.status, "end")
        self.status = GroupStatus.ENDED
        self.ended_at = at
        self.ended_by = ended_by
        self.end_reason = reason
