"""Error taxonomy for the connection engine.

Every failure a caller can observe is one of these types, each carrying a
stable ``code`` so the consuming layer can render precise feedback.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from enum import StrEnum
    from uuid import UUID

    from recoverymatch.domain.model.enums import RequestType, Role


class MatchEngineError(Exception):
    """Base class for all engine errors."""

    code: ClassVar[str] = "engine_error"
    retryable: ClassVar[bool] = False


class InvalidTransition(MatchEngineError):
    """The record's current status does not allow the requested operation."""

    code = "invalid_transition"

    def __init__(self, entity: str, entity_id: UUID, current: str, action: str) -> None:
        super().__init__(f"cannot {action} {entity} {entity_id} in status {current!r}")
        self.entity = entity
        self.entity_id = entity_id
        self.current = current
        self.action = action


class Unauthorized(MatchEngineError):
    """The acting party is not the party the operation requires."""

    code = "unauthorized"

    def __init__(self, actor_id: UUID, action: str, required: str) -> None:
        super().__init__(f"party {actor_id} may not {action}: only the {required} may")
        self.actor_id = actor_id
        self.action = action
        self.required = required


class UnsupportedRolePairing(MatchEngineError):
    """No match-group shape exists for this request type and pair of role sets."""

    code = "unsupported_role_pairing"

    def __init__(
        self,
        request_type: RequestType | None,
        requester_roles: frozenset[Role],
        target_roles: frozenset[Role],
    ) -> None:
        requester = ",".join(sorted(requester_roles)) or "-"
        target = ",".join(sorted(target_roles)) or "-"
        super().__init__(
            f"no group shape for request type {request_type} "
            f"between roles [{requester}] and [{target}]"
        )
        self.request_type = request_type
        self.requester_roles = requester_roles
        self.target_roles = target_roles


class DuplicateRequest(MatchEngineError):
    """An open request already exists for the same requester, target and type."""

    code = "duplicate_request"

    def __init__(self, requester_id: UUID, target_id: UUID, request_type: RequestType) -> None:
        super().__init__(
            f"an open {request_type} request from {requester_id} to {target_id} already exists"
        )
        self.requester_id = requester_id
        self.target_id = target_id
        self.request_type = request_type


class NotFound(MatchEngineError):
    """A referenced request, group or profile does not exist."""

    code = "not_found"

    def __init__(self, entity: str, entity_id: UUID) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidRequest(MatchEngineError, ValueError):
    """Input that can never succeed, e.g. a self-request or a blank rejection reason."""

    code = "invalid_request"


class StoreUnavailable(MatchEngineError):
    """The record store failed or timed out; safe to retry with backoff."""

    code = "store_unavailable"
    retryable = True


class VersionConflict(MatchEngineError):
    """A concurrent write changed the record; re-fetch and try again."""

    code = "version_conflict"


def parse_choice[E: StrEnum](choices: type[E], value: str, field: str) -> E:
    """Coerce caller input to ``choices``, raising ``InvalidRequest`` for unknown values."""
    try:
        return choices(value)
    except ValueError:
        raise InvalidRequest(f"unknown {field} {value!r}") from None
