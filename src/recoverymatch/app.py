"""Application wiring: builds the engine's services against the SQLAlchemy adapter."""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from recoverymatch.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    is_started,
    startup,
)
from recoverymatch.config import RetryPolicy
from recoverymatch.domain.disclosure import ContactDisclosureGate
from recoverymatch.domain.errors import StoreUnavailable
from recoverymatch.domain.lifecycle import ConnectionLifecycle
from recoverymatch.domain.model import ContactSource, Profile, Role, utcnow
from recoverymatch.domain.ports.unit_of_work import ConnectionUnitOfWork
from recoverymatch.domain.queries import ConnectionQueries

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime

UnitOfWorkFactory = Callable[[], ConnectionUnitOfWork]


log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConnectionServices:
    """The three entry points a consuming application talks to."""

    lifecycle: ConnectionLifecycle
    disclosure: ContactDisclosureGate
    queries: ConnectionQueries
    unit_of_work_factory: UnitOfWorkFactory


def build_services(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> ConnectionServices:
    """Wire lifecycle, disclosure and queries to one unit-of-work factory.

    Without an explicit factory the SQLAlchemy adapter is started (once) from the
    environment configuration and used.
    """

    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyUnitOfWork

    return ConnectionServices(
        lifecycle=ConnectionLifecycle(unit_of_work_factory, clock=clock),
        disclosure=ContactDisclosureGate(unit_of_work_factory),
        queries=ConnectionQueries(unit_of_work_factory),
        unit_of_work_factory=unit_of_work_factory,
    )


def run_with_retry[TResult](
    operation: Callable[[], TResult],
    *,
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
    jitter: Callable[[float, float], float] = random.uniform,
) -> TResult:
    """Run ``operation``, retrying only ``StoreUnavailable`` with capped backoff.

    Every engine operation is atomic, so re-running one after a store failure is
    safe. All other errors propagate on the first attempt.
    """

    effective = policy or RetryPolicy()
    attempt = 0
    while True:
        try:
            return operation()
        except StoreUnavailable as exc:
            attempt += 1
            if attempt > effective.total:
                log.warning("Record store still unavailable after %s attempts", attempt)
                raise
            wait = effective.backoff_for(attempt)
            if effective.backoff_jitter > 0:
                wait += jitter(0.0, effective.backoff_jitter)
            log.info(
                "Record store unavailable (%s); retry %s/%s in %.2fs",
                exc,
                attempt,
                effective.total,
                wait,
            )
            sleep(wait)


def create_profile(
    unit_of_work_factory: UnitOfWorkFactory,
    *,
    display_name: str,
    roles: Iterable[Role | str],
    email: str | None = None,
    phone: str | None = None,
    contacts: Mapping[ContactSource, tuple[str | None, str | None]] | None = None,
) -> Profile:
    """Seed a profile; ``contacts`` maps a source to its ``(phone, email)`` pair."""

    profile = Profile(
        display_name=display_name,
        email=email,
        phone=phone,
        roles=frozenset(Role(role) for role in roles),
    )
    for source, (contact_phone, contact_email) in (contacts or {}).items():
        profile.add_contact_record(ContactSource(source), phone=contact_phone, email=contact_email)

    with unit_of_work_factory() as uow:
        uow.repositories.profiles.add(profile)
        uow.commit()

    log.info("Created profile %s with roles %s", profile.id, sorted(profile.roles))
    return profile
