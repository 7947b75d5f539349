"""Connection requests and their status state machine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Final

from recoverymatch.domain.errors import InvalidRequest, InvalidTransition, Unauthorized
from recoverymatch.domain.model.entity import Entity
from recoverymatch.domain.model.enums import RequestStatus, RequestType

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime
    from uuid import UUID

REQUEST_TRANSITIONS: Final[Mapping[RequestStatus, frozenset[RequestStatus]]] = {
    RequestStatus.PENDING: frozenset(
        {RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CANCELLED}
    ),
    RequestStatus.APPROVED: frozenset({RequestStatus.MATCHED}),
    RequestStatus.MATCHED: frozenset({RequestStatus.UNMATCHED}),
}

_APPROVED_STATUSES: Final = frozenset({RequestStatus.APPROVED, RequestStatus.MATCHED})


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    return target in REQUEST_TRANSITIONS.get(current, frozenset())


@dataclass(eq=False, kw_only=True)
class ConnectionRequest(Entity):
    """One party's directional interest in another.

    ``status`` is only ever changed through the transition methods below, which
    keep ``target_approved`` and the per-transition timestamps consistent. The
    ``approved`` status is transient: the lifecycle service moves an approved
    request on to ``matched`` inside the same unit of work.
    """

    ENTITY_NAME: ClassVar[str] = "connection request"

    requester_id: UUID
    target_id: UUID
    request_type: RequestType
    message: str | None = None
    # upstream compatibility percentage, informational only
    match_score: int | None = None

    status: RequestStatus = RequestStatus.PENDING
    target_approved: bool = False
    match_group_id: UUID | None = None
    rejection_reason: str | None = None
    unmatched_by: UUID | None = None

    created_at: datetime | None = None
    matched_at: datetime | None = None
    rejected_at: datetime | None = None
    cancelled_at: datetime | None = None
    unmatched_at: datetime | None = None

    # maintained by the store adapter for compare-and-set writes
    version: int | None = None

    @classmethod
    def submit(
        cls,
        *,
        requester_id: UUID,
        target_id: UUID,
        request_type: RequestType,
        message: str | None,
        at: datetime,
        match_score: int | None = None,
    ) -> ConnectionRequest:
        if requester_id == target_id:
            raise InvalidRequest("cannot send a connection request to yourself")
        if match_score is not None and not 0 <= match_score <= 100:
            raise InvalidRequest(f"match score must be between 0 and 100, got {match_score}")
        return cls(
            requester_id=requester_id,
            target_id=target_id,
            request_type=RequestType(request_type),
            message=message,
            match_score=match_score,
            created_at=at,
        )

    # parties ----------------------------------------------------------------

    def is_party(self, party_id: UUID) -> bool:
        return party_id in (self.requester_id, self.target_id)

    def other_party(self, party_id: UUID) -> UUID:
        if party_id == self.requester_id:
            return self.target_id
        if party_id == self.target_id:
            return self.requester_id
        raise Unauthorized(party_id, "act on this request", "requester or target")

    def require_target(self, actor_id: UUID, action: str) -> None:
        if actor_id != self.target_id:
            raise Unauthorized(actor_id, action, "target")

    def require_requester(self, actor_id: UUID, action: str) -> None:
        if actor_id != self.requester_id:
            raise Unauthorized(actor_id, action, "requester")

    def require_party(self, actor_id: UUID, action: str) -> None:
        if not self.is_party(actor_id):
            raise Unauthorized(actor_id, action, "requester or target")

    # transitions ------------------------------------------------------------

    def approve(self, approver_id: UUID) -> None:
        self.require_target(approver_id, "approve")
        self._move_to(RequestStatus.APPROVED, "approve")

    def mark_matched(self, match_group_id: UUID, *, at: datetime) -> None:
        self._move_to(RequestStatus.MATCHED, "match")
        self.match_group_id = match_group_id
        self.matched_at = at

    def reject(self, rejecter_id: UUID, reason: str, *, at: datetime) -> None:
        self.require_target(rejecter_id, "reject")
        self.ensure_transition(RequestStatus.REJECTED, "reject")
        cleaned = (reason or "").strip()
        if not cleaned:
            raise InvalidRequest("a rejection reason is required")
        self._move_to(RequestStatus.REJECTED, "reject")
        self.rejection_reason = cleaned
        self.rejected_at = at

    def cancel(self, canceller_id: UUID, *, at: datetime) -> None:
        self.require_requester(canceller_id, "cancel")
        self._move_to(RequestStatus.CANCELLED, "cancel")
        self.cancelled_at = at

    def unmatch(self, initiator_id: UUID, *, at: datetime) -> None:
        self.require_party(initiator_id, "unmatch")
        self._move_to(RequestStatus.UNMATCHED, "unmatch")
        self.unmatched_at = at
        self.unmatched_by = initiator_id

    def ensure_transition(self, target: RequestStatus, action: str) -> None:
        if not can_transition(self.status, target):
            raise InvalidTransition(self.ENTITY_NAME, self.id, self.status, action)

    def _move_to(self, target: RequestStatus, action: str) -> None:
        self.ensure_transition(target, action)
        self.status = target
        self.target_approved = target in _APPROVED_STATUSES
