"""Application service driving connection requests through their lifecycle.

Every operation writes inside exactly one unit of work. Approve and unmatch touch
two records (the request and its match group); both changes are staged in the
same unit and committed together, so a failure anywhere leaves neither written
and the whole operation can simply be retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from recoverymatch.domain.errors import (
    DuplicateRequest,
    InvalidTransition,
    NotFound,
    UnsupportedRolePairing,
    VersionConflict,
    parse_choice,
)
from recoverymatch.domain.model import (
    ConnectionRequest,
    MatchGroup,
    RequestStatus,
    RequestType,
    utcnow,
)
from recoverymatch.domain.roles import RoleResolver
from recoverymatch.domain.shapes import ShapeNotFound, resolve_group_shape

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from recoverymatch.domain.ports.unit_of_work import (
        ConnectionRepositories,
        ConnectionUnitOfWork,
    )

    type UnitOfWorkFactory = Callable[[], ConnectionUnitOfWork]
    type Clock = Callable[[], datetime]

DEFAULT_END_REASON: Final[str] = "unmatched"
RECONNECT_MESSAGE: Final[str] = "I'd like to reconnect with you."

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ApprovalResult:
    """Outcome of ``approve``; ``created`` is False when the request was already matched."""

    request: ConnectionRequest
    group: MatchGroup
    created: bool


@dataclass(slots=True, frozen=True)
class UnmatchResult:
    """Outcome of ``unmatch``; ``changed`` is False for a repeated call."""

    request: ConnectionRequest
    group: MatchGroup | None
    changed: bool


class ConnectionLifecycle:
    """Submit, approve, reject, cancel, unmatch and reconnect connection requests."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._unit_of_work = unit_of_work_factory
        self._clock = clock

    def submit(
        self,
        requester_id: UUID,
        target_id: UUID,
        request_type: RequestType | str,
        message: str | None = None,
        match_score: int | None = None,
    ) -> ConnectionRequest:
        with self._unit_of_work() as uow:
            request = self._stage_submission(
                uow.repositories,
                requester_id=requester_id,
                target_id=target_id,
                request_type=parse_choice(RequestType, request_type, "request type"),
                message=message,
                match_score=match_score,
            )
            uow.commit()

        log.info(
            "Submitted %s request %s: %s -> %s",
            request.request_type,
            request.id,
            requester_id,
            target_id,
        )
        return request

    def approve(self, request_id: UUID, approver_id: UUID) -> ApprovalResult:
        with self._unit_of_work() as uow:
            repos = uow.repositories
            request = _load_request(repos, request_id)
            request.require_target(approver_id, "approve")

            if request.status == RequestStatus.MATCHED:
                group = _load_group(repos, request.match_group_id)
                log.info("Request %s already matched to group %s", request.id, group.id)
                return ApprovalResult(request=request, group=group, created=False)

            request.ensure_transition(RequestStatus.APPROVED, "approve")

            roles = RoleResolver(repos.profiles)
            requester_roles, target_roles = roles.roles_of_pair(
                request.requester_id, request.target_id
            )
            shape = resolve_group_shape(
                request.request_type,
                requester_roles,
                target_roles,
                requester_id=request.requester_id,
                target_id=request.target_id,
            )
            if isinstance(shape, ShapeNotFound):
                raise UnsupportedRolePairing(
                    shape.request_type, shape.requester_roles, shape.target_roles
                )

            now = self._clock()
            group = MatchGroup.from_shape(shape, at=now)
            # the group is staged first so the request never points at a missing group
            repos.match_groups.add(group)
            request.approve(approver_id)
            request.mark_matched(group.id, at=now)
            uow.commit()

        log.info(
            "Approved request %s: %s group %s formed",
            request.id,
            group.kind,
            group.id,
        )
        return ApprovalResult(request=request, group=group, created=True)

    def reject(self, request_id: UUID, rejecter_id: UUID, reason: str) -> ConnectionRequest:
        with self._unit_of_work() as uow:
            request = _load_request(uow.repositories, request_id)
            request.reject(rejecter_id, reason, at=self._clock())
            uow.commit()

        log.info("Rejected request %s", request.id)
        return request

    def cancel(self, request_id: UUID, canceller_id: UUID) -> ConnectionRequest:
        with self._unit_of_work() as uow:
            request = _load_request(uow.repositories, request_id)
            request.cancel(canceller_id, at=self._clock())
            uow.commit()

        log.info("Cancelled request %s", request.id)
        return request

    def unmatch(
        self,
        request_id: UUID,
        initiator_id: UUID,
        reason: str | None = None,
    ) -> UnmatchResult:
        try:
            return self._unmatch_once(request_id, initiator_id, reason)
        except VersionConflict:
            # the other party may have unmatched between our read and our commit
            settled = self._settled_unmatch(request_id, initiator_id)
            if settled is None:
                raise
            log.info(
                "Request %s was unmatched concurrently by %s",
                request_id,
                settled.request.unmatched_by,
            )
            return settled

    def _unmatch_once(
        self,
        request_id: UUID,
        initiator_id: UUID,
        reason: str | None,
    ) -> UnmatchResult:
        with self._unit_of_work() as uow:
            repos = uow.repositories
            request = _load_request(repos, request_id)
            request.require_party(initiator_id, "unmatch")

            if request.status == RequestStatus.UNMATCHED:
                return _already_unmatched(repos, request)

            request.ensure_transition(RequestStatus.UNMATCHED, "unmatch")
            group = _load_group(repos, request.match_group_id)

            now = self._clock()
            if group.is_live:
                group.end(initiator_id, reason=reason or DEFAULT_END_REASON, at=now)
            request.unmatch(initiator_id, at=now)
            uow.commit()

        log.info("Unmatched request %s by %s; group %s ended", request.id, initiator_id, group.id)
        return UnmatchResult(request=request, group=group, changed=True)

    def _settled_unmatch(self, request_id: UUID, initiator_id: UUID) -> UnmatchResult | None:
        with self._unit_of_work() as uow:
            repos = uow.repositories
            request = _load_request(repos, request_id)
            request.require_party(initiator_id, "unmatch")
            if request.status != RequestStatus.UNMATCHED:
                return None
            return _already_unmatched(repos, request)

    def reconnect(
        self,
        request_id: UUID,
        actor_id: UUID,
        message: str | None = None,
    ) -> ConnectionRequest:
        """Open a fresh request toward the other party of a finished request."""

        with self._unit_of_work() as uow:
            repos = uow.repositories
            former = _load_request(repos, request_id)
            former.require_party(actor_id, "reconnect")
            if not former.status.is_terminal:
                raise InvalidTransition(former.ENTITY_NAME, former.id, former.status, "reconnect")

            request = self._stage_submission(
                repos,
                requester_id=actor_id,
                target_id=former.other_party(actor_id),
                request_type=former.request_type,
                message=message or RECONNECT_MESSAGE,
                match_score=former.match_score,
            )
            uow.commit()

        log.info("Reconnect request %s submitted from former request %s", request.id, former.id)
        return request

    def activate_group(self, group_id: UUID, actor_id: UUID) -> MatchGroup:
        with self._unit_of_work() as uow:
            group = _load_group(uow.repositories, group_id)
            group.activate(actor_id, at=self._clock())
            uow.commit()

        log.info("Activated group %s", group.id)
        return group

    def _stage_submission(
        self,
        repos: ConnectionRepositories,
        *,
        requester_id: UUID,
        target_id: UUID,
        request_type: RequestType,
        message: str | None,
        match_score: int | None = None,
    ) -> ConnectionRequest:
        request = ConnectionRequest.submit(
            requester_id=requester_id,
            target_id=target_id,
            request_type=request_type,
            message=message,
            match_score=match_score,
            at=self._clock(),
        )
        roles = RoleResolver(repos.profiles)
        roles.profile(requester_id)
        roles.profile(target_id)

        existing = repos.connection_requests.find_open(
            requester_id=requester_id,
            target_id=target_id,
            request_type=request_type,
        )
        if existing is not None:
            raise DuplicateRequest(requester_id, target_id, request_type)

        repos.connection_requests.add(request)
        return request


def _load_request(repos: ConnectionRepositories, request_id: UUID) -> ConnectionRequest:
    request = repos.connection_requests.get(request_id)
    if request is None:
        raise NotFound(ConnectionRequest.ENTITY_NAME, request_id)
    return request


def _load_group(repos: ConnectionRepositories, group_id: UUID | None) -> MatchGroup:
    if group_id is None:
        raise NotFound(MatchGroup.ENTITY_NAME, group_id)  # pyright: ignore[reportArgumentType]
    group = repos.match_groups.get(group_id)
    if group is None:
        raise NotFound(MatchGroup.ENTITY_NAME, group_id)
    return group


def _already_unmatched(repos: ConnectionRepositories, request: ConnectionRequest) -> UnmatchResult:
    group = (
        repos.match_groups.get(request.match_group_id)
        if request.match_group_id is not None
        else None
    )
    return UnmatchResult(request=request, group=group, changed=False)
