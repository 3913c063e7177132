"""
Conditional-write primitive shared by every store.

Callers run the guard inside an atomic unit after locking the row they are
about to change. The mutation itself performs conditional writes through
`conditional_update` / `conditional_delete`, so a writer that slipped in
between read and write (on engines without row locks) is still caught:
zero matched rows raise `StaleWrite`, which rolls the unit back.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from .etag import encode, same_version
from .outcomes import Outcome, version_conflict

logger = logging.getLogger(__name__)

MISSING_PRECONDITION = "Write applied without a version precondition (If-Match)."


class StaleWrite(Exception):
    """A conditional write matched no row: the stored version moved."""

    def __init__(self, model, pk):
        self.model = model
        self.pk = pk
        super().__init__(f"{model.__name__} {pk} changed since it was read")


def check_and_apply(
    current: datetime,
    expected: Optional[datetime],
    mutation: Callable[[], object],
    *,
    entity: str,
    entity_id,
) -> Outcome:
    if expected is None:
        logger.warning("%s %s written without a version precondition", entity, entity_id)
        return _apply(mutation).with_warning(MISSING_PRECONDITION)

    if not same_version(current, expected):
        logger.info(
            "Version conflict on %s %s: expected %s, current %s",
            entity, entity_id, encode(expected), encode(current),
        )
        return version_conflict(entity, encode(current))

    return _apply(mutation)


def _apply(mutation) -> Outcome:
    result = mutation()
    updated_at = getattr(result, "updated_at", None)
    return Outcome.success(result, version=encode(updated_at) if updated_at else None)


def conditional_update(queryset, pk, seen_version: datetime, **values) -> None:
    if not queryset.filter(pk=pk, updated_at=seen_version).update(**values):
        raise StaleWrite(queryset.model, pk)


def conditional_delete(queryset, pk, seen_version: datetime) -> None:
    deleted, _ = queryset.filter(pk=pk, updated_at=seen_version).delete()
    if not deleted:
        raise StaleWrite(queryset.model, pk)
