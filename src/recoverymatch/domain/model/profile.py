"""Profiles as the engine sees them: roles plus contact details.

Profiles are owned by the surrounding application; the engine only reads them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from recoverymatch.domain.model.entity import Entity

if TYPE_CHECKING:
    from recoverymatch.domain.model.enums import ContactSource, Role


@dataclass(eq=False, kw_only=True)
class ContactRecord(Entity):
    """Contact details kept on a role-specific sub-record (applicant form, property, ...)."""

    ENTITY_NAME: ClassVar[str] = "contact record"

    source: ContactSource
    phone: str | None = None
    email: str | None = None


@dataclass(eq=False, kw_only=True)
class Profile(Entity):
    ENTITY_NAME: ClassVar[str] = "profile"

    display_name: str
    email: str | None = None
    phone: str | None = None
    roles: frozenset[Role] = field(default_factory=frozenset["Role"])

    contact_records: list[ContactRecord] = field(
        default_factory=list["ContactRecord"], repr=False
    )

    def has_role(self, role: Role) -> bool:
        return role in self.roles

    def add_contact_record(
        self,
        source: ContactSource,
        *,
        phone: str | None = None,
        email: str | None = None,
    ) -> ContactRecord:
        if self.contact_record(source) is not None:
            raise ValueError(f"profile already has a {source} contact record")
        record = ContactRecord(source=source, phone=phone, email=email)
        self.contact_records.append(record)
        return record

    def contact_record(self, source: ContactSource) -> ContactRecord | None:
        for record in self.contact_records:
            if record.source == source:
                return record
        return None
