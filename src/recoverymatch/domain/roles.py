"""Role lookup for connection parties."""

from __future__ import annotations

from typing import TYPE_CHECKING

from recoverymatch.domain.errors import NotFound
from recoverymatch.domain.model import Profile

if TYPE_CHECKING:
    from uuid import UUID

    from recoverymatch.domain.model import Role
    from recoverymatch.domain.ports.persistence import ProfileRepository


class RoleResolver:
    """Answers ``roles_of(profile_id)`` from the profile collection."""

    def __init__(self, profiles: ProfileRepository) -> None:
        self._profiles = profiles

    def profile(self, profile_id: UUID) -> Profile:
        profile = self._profiles.get(profile_id)
        if profile is None:
            raise NotFound(Profile.ENTITY_NAME, profile_id)
        return profile

    def roles_of(self, profile_id: UUID) -> frozenset[Role]:
        return frozenset(self.profile(profile_id).roles)

    def roles_of_pair(
        self, requester_id: UUID, target_id: UUID
    ) -> tuple[frozenset[Role], frozenset[Role]]:
        return self.roles_of(requester_id), self.roles_of(target_id)
