"""Translation of SQLAlchemy failures into the engine's error taxonomy."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm.exc import StaleDataError

from recoverymatch.domain.errors import StoreUnavailable, VersionConflict

if TYPE_CHECKING:
    from collections.abc import Iterator

log = logging.getLogger(__name__)


@contextmanager
def translate_store_errors() -> Iterator[None]:
    """Re-raise stale writes as ``VersionConflict`` and driver failures as ``StoreUnavailable``."""

    try:
        yield
    except StaleDataError as exc:
        raise VersionConflict(
            "record was changed by a concurrent write; re-fetch and retry"
        ) from exc
    except (OperationalError, DisconnectionError, PoolTimeoutError) as exc:
        log.warning("Record store unavailable: %s", exc)
        raise StoreUnavailable(str(exc)) from exc
