# shared/common/mixins.py
"""
Reusable model mixins shared by the services.
"""

import uuid
from django.db import models
from django.utils import timezone


class UUIDPrimaryKeyMixin(models.Model):
    """
    Mixin that provides UUID as primary key instead of auto-increment integer.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record"
    )

    class Meta:
        abstract = True


class TimestampMixin(models.Model):
    """
    Mixin that provides created_at and updated_at timestamp fields.
    """

    created_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="When this record was created"
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When this record was last updated"
    )

    class Meta:
        abstract = True


class SoftDeleteQuerySet(models.QuerySet):

    def alive(self):
        return self.filter(is_deleted=False)


class SoftDeleteMixin(models.Model):
    """
    Mixin that provides soft delete functionality.
    Records are marked as deleted instead of being removed from database;
    lookups meant for callers go through ``objects.alive()``.
    """

    is_deleted = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether this record has been soft-deleted"
    )
    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When this record was deleted"
    )
    deleted_by = models.UUIDField(
        null=True,
        blank=True,
        help_text="User who deleted this record"
    )

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        abstract = True

    def soft_delete(self, deleted_by: uuid.UUID = None):
        """Mark record as deleted"""
        self.is_deleted = True
        self.deleted_at = timezone.now()
        self.deleted_by = deleted_by
        self.save(update_fields=['is_deleted', 'deleted_at', 'deleted_by'])
