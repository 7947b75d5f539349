"""Read-side helpers: per-user request listings, counts and group listings."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from recoverymatch.domain.errors import NotFound, parse_choice
from recoverymatch.domain.model import ConnectionRequest, MatchGroup, RequestStatus

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from uuid import UUID

    from recoverymatch.domain.model import RequestType
    from recoverymatch.domain.ports.unit_of_work import ConnectionUnitOfWork


class Direction(StrEnum):
    ALL = "all"
    SENT = "sent"
    RECEIVED = "received"


@dataclass(slots=True)
class RequestStatistics:
    """Request counts for one user, as shown on a dashboard."""

    sent: Counter[RequestStatus] = field(default_factory=Counter["RequestStatus"])
    received: Counter[RequestStatus] = field(default_factory=Counter["RequestStatus"])
    by_request_type: Counter[RequestType] = field(default_factory=Counter["RequestType"])
    active_connections: int = 0

    @property
    def total_sent(self) -> int:
        return sum(self.sent.values())

    @property
    def total_received(self) -> int:
        return sum(self.received.values())


def _newest_first(requests: Iterable[ConnectionRequest]) -> list[ConnectionRequest]:
    return sorted(
        requests,
        key=lambda request: (request.created_at is not None, request.created_at),
        reverse=True,
    )


def _matches_direction(request: ConnectionRequest, user_id: UUID, direction: Direction) -> bool:
    if direction == Direction.SENT:
        return request.requester_id == user_id
    if direction == Direction.RECEIVED:
        return request.target_id == user_id
    return request.is_party(user_id)


class ConnectionQueries:
    def __init__(self, unit_of_work_factory: Callable[[], ConnectionUnitOfWork]) -> None:
        self._unit_of_work = unit_of_work_factory

    def get_request(self, request_id: UUID) -> ConnectionRequest:
        with self._unit_of_work() as uow:
            request = uow.repositories.connection_requests.get(request_id)
        if request is None:
            raise NotFound(ConnectionRequest.ENTITY_NAME, request_id)
        return request

    def get_group(self, group_id: UUID) -> MatchGroup:
        with self._unit_of_work() as uow:
            group = uow.repositories.match_groups.get(group_id)
        if group is None:
            raise NotFound(MatchGroup.ENTITY_NAME, group_id)
        return group

    def list_requests(
        self,
        user_id: UUID,
        *,
        direction: Direction | str = Direction.ALL,
        status: RequestStatus | str | None = None,
    ) -> list[ConnectionRequest]:
        wanted_direction = parse_choice(Direction, direction, "direction")
        wanted_status = (
            parse_choice(RequestStatus, status, "request status") if status is not None else None
        )
        with self._unit_of_work() as uow:
            requests = uow.repositories.connection_requests.for_user(user_id)
        selected = [
            request
            for request in requests
            if _matches_direction(request, user_id, wanted_direction)
            and (wanted_status is None or request.status == wanted_status)
        ]
        return _newest_first(selected)

    def pending_count(self, user_id: UUID) -> int:
        """Pending requests waiting on ``user_id`` to respond."""

        return len(
            self.list_requests(user_id, direction=Direction.RECEIVED, status=RequestStatus.PENDING)
        )

    def request_statistics(self, user_id: UUID) -> RequestStatistics:
        stats = RequestStatistics()
        for request in self.list_requests(user_id):
            if request.requester_id == user_id:
                stats.sent[request.status] += 1
            else:
                stats.received[request.status] += 1
            stats.by_request_type[request.request_type] += 1
            if request.status == RequestStatus.MATCHED:
                stats.active_connections += 1
        return stats

    def list_groups(self, user_id: UUID, *, include_ended: bool = True) -> list[MatchGroup]:
        with self._unit_of_work() as uow:
            groups = uow.repositories.match_groups.for_user(user_id)
        selected = [group for group in groups if include_ended or group.is_live]
        return sorted(
            selected,
            key=lambda group: (group.created_at is not None, group.created_at),
            reverse=True,
        )
