"""Public domain model surface."""

from __future__ import annotations

from recoverymatch.domain.model.connection import (
    REQUEST_TRANSITIONS,
    ConnectionRequest,
    can_transition,
)
from recoverymatch.domain.model.entity import Entity, new_id, utcnow
from recoverymatch.domain.model.enums import (
    LIVE_GROUP_STATUSES,
    OPEN_REQUEST_STATUSES,
    TERMINAL_REQUEST_STATUSES,
    ContactSource,
    GroupKind,
    GroupStatus,
    RequestStatus,
    RequestType,
    Role,
    Slot,
)
from recoverymatch.domain.model.match_group import MatchGroup
from recoverymatch.domain.model.profile import ContactRecord, Profile

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "new_id",
    "utcnow",
    # records
    "ConnectionRequest",
    "MatchGroup",
    "Profile",
    "ContactRecord",
    # state machine
    "REQUEST_TRANSITIONS",
    "can_transition",
    # enums
    "ContactSource",
    "GroupKind",
    "GroupStatus",
    "RequestStatus",
    "RequestType",
    "Role",
    "Slot",
    "LIVE_GROUP_STATUSES",
    "OPEN_REQUEST_STATUSES",
    "TERMINAL_REQUEST_STATUSES",
]
