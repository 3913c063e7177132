import uuid
from datetime import timedelta

from django.db import models
from django.utils import timezone


class BaseModel(models.Model):
    """
    Shared columns: opaque UUID id, immutable creation stamp and the
    last-modified stamp that doubles as the optimistic-concurrency version.
    `updated_at` is stamped explicitly by the stores (never auto_now).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        abstract = True

    def next_version(self):
        return next_version(self.updated_at)


def next_version(previous=None):
    """
    Monotonic last-modified stamp: at least one millisecond past `previous`
    so two writes never collapse onto the same version token.
    """
    now = timezone.now()
    if previous is not None and now < previous + timedelta(milliseconds=1):
        return previous + timedelta(milliseconds=1)
    return now
