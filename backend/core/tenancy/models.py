from django.db import models
from django.db.models import F
from django.utils import timezone


class VersionedModel(models.Model):
    """Base for rows whose flags are changed with optimistic compare-and-set.

    The engine never locks: a write succeeds only if the row still carries the
    version the caller read.
    """

    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def compare_and_set(self, expected_version: int, **changes) -> bool:
        updated_at = timezone.now()
        rows = (
            type(self)
            ._base_manager.filter(pk=self.pk, version=expected_version)
            .update(version=F("version") + 1, updated_at=updated_at, **changes)
        )
        if rows != 1:
            return False

        for field_name, value in changes.items():
            setattr(self, field_name, value)
        self.version = expected_version + 1
        self.updated_at = updated_at
        return True
