"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    APPLICANT = "applicant"
    PEER = "peer"
    LANDLORD = "landlord"
    EMPLOYER = "employer"


class RequestType(StrEnum):
    ROOMMATE = "roommate"
    PEER_SUPPORT = "peer_support"
    EMPLOYMENT = "employment"
    HOUSING = "housing"


class RequestStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    MATCHED = "matched"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    UNMATCHED = "unmatched"

    @property
    def is_open(self) -> bool:
        """Open requests block a duplicate submit for the same pair and type."""
        return self in OPEN_REQUEST_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_REQUEST_STATUSES


OPEN_REQUEST_STATUSES = frozenset(
    {RequestStatus.PENDING, RequestStatus.APPROVED, RequestStatus.MATCHED}
)
TERMINAL_REQUEST_STATUSES = frozenset(
    {RequestStatus.REJECTED, RequestStatus.CANCELLED, RequestStatus.UNMATCHED}
)


class GroupStatus(StrEnum):
    FORMING = "forming"
    ACTIVE = "active"
    ENDED = "ended"


LIVE_GROUP_STATUSES = frozenset({GroupStatus.FORMING, GroupStatus.ACTIVE})


class GroupKind(StrEnum):
    """Which of the four relationship shapes a match group has."""

    PEER_SUPPORT = "peer_support"
    ROOMMATE = "roommate"
    EMPLOYMENT = "employment"
    HOUSING = "housing"


class Slot(StrEnum):
    """Party-bearing slots of a match group (``property_id`` is not a party)."""

    APPLICANT_1 = "applicant_1_id"
    APPLICANT_2 = "applicant_2_id"
    PEER_SUPPORT = "peer_support_id"
    EMPLOYER = "employer_id"
    LANDLORD = "landlord_id"


class ContactSource(StrEnum):
    """Role-specific profile sub-records that may carry contact details."""

    APPLICANT_FORM = "applicant_form"
    PEER_PROFILE = "peer_profile"
    PROPERTY = "property"
    EMPLOYER_PROFILE = "employer_profile"
