"""
Atomic units of work against the storage engine.

`run_atomic` is the single place where transactions are opened for store and
coordinator writes. It retries transient connection failures for outermost
units, turns stale conditional writes into version conflicts and reports
cancellation as an outcome. Anything else the database raises is logged and
escalated as `StorageFailure`.
"""
import logging
import time
from typing import Callable, Optional

from django.conf import settings
from django.db import DatabaseError, InterfaceError, OperationalError, connections, transaction

from .concurrency import StaleWrite
from .etag import encode
from .outcomes import ErrorKind, Outcome, StorageFailure, not_found, version_conflict

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (OperationalError, InterfaceError)


class OperationCancelled(Exception):
    pass


def checkpoint(cancel) -> None:
    """Abort the running unit when the caller's cancel flag is set."""
    if cancel is not None and cancel.is_set():
        raise OperationCancelled()


def _backoff(attempt: int, max_delay: float) -> float:
    return min(max_delay, 0.1 * 2 ** attempt)  # 0.2, 0.4, 0.8, ...


def current_version(model, pk, using: str = "default") -> Optional[str]:
    updated_at = (
        model._default_manager.using(using)
        .filter(pk=pk)
        .values_list("updated_at", flat=True)
        .first()
    )
    return encode(updated_at) if updated_at else None


def run_atomic(
    unit: Callable[[], Outcome],
    *,
    using: str = "default",
    cancel=None,
    label: str = "unit",
) -> Outcome:
    attempts = max(1, int(getattr(settings, "CRM_DB_RETRY_ATTEMPTS", 3)))
    max_delay = float(getattr(settings, "CRM_DB_RETRY_MAX_DELAY", 5))
    # A unit nested in a caller's transaction cannot be replayed on its own.
    outermost = not connections[using].in_atomic_block

    attempt = 0
    while True:
        attempt += 1
        try:
            checkpoint(cancel)
            with transaction.atomic(using=using):
                return unit()
        except StaleWrite as exc:
            version = current_version(exc.model, exc.pk, using)
            entity = exc.model.__name__
            if version is None:
                logger.info("%s %s disappeared during %s", entity, exc.pk, label)
                return not_found(entity)
            logger.info("Stale write on %s %s during %s; current %s", entity, exc.pk, label, version)
            return version_conflict(entity, version)
        except OperationCancelled:
            logger.info("%s cancelled; transaction rolled back", label)
            return Outcome.failure(ErrorKind.CANCELLED, f"{label} cancelled")
        except TRANSIENT_ERRORS as exc:
            if outermost and attempt < attempts:
                delay = _backoff(attempt, max_delay)
                logger.warning(
                    "Transient storage failure in %s (attempt %d/%d), retrying in %.1fs: %s",
                    label, attempt, attempts, delay, exc,
                )
                connections[using].close_if_unusable_or_obsolete()
                time.sleep(delay)
                continue
            logger.error("%s failed after %d attempt(s)", label, attempt, exc_info=True)
            raise StorageFailure(f"{label} failed") from exc
        except DatabaseError as exc:
            logger.error("Unexpected storage failure in %s", label, exc_info=True)
            raise StorageFailure(f"{label} failed") from exc
