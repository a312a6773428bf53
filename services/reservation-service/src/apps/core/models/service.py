# services/reservation-service/src/apps/core/models/service.py
"""
Service Models

Bookable services and the resources eligible to deliver them.
"""

from django.db import models
from django.utils import timezone

from shared.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin


class Service(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin):
    """
    A service offered by a business.

    Buffers reserve time around every booking of the service and are not
    separately bookable.
    """

    business = models.ForeignKey(
        'core.Business',
        on_delete=models.CASCADE,
        related_name='services'
    )
    category = models.CharField(max_length=100, blank=True, null=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)

    duration_minutes = models.PositiveIntegerField()
    buffer_before = models.PositiveIntegerField(default=0)
    buffer_after = models.PositiveIntegerField(default=0)
    price_cents = models.PositiveIntegerField(blank=True, null=True)

    policy = models.ForeignKey(
        'core.CancellationPolicy',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='services'
    )
    resources = models.ManyToManyField(
        'core.Resource',
        through='ServiceResource',
        related_name='services',
        blank=True
    )

    metadata = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'services'
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def has_price(self) -> bool:
        return self.price_cents is not None

    def linked_resources(self):
        """Active linked resources in creation order."""
        return self.resources.filter(
            is_active=True,
            is_deleted=False
        ).order_by('created_at', 'id')


class ServiceResource(models.Model):
    """Link between a service and a resource able to deliver it."""

    service = models.ForeignKey(
        Service,
        on_delete=models.CASCADE,
        related_name='resource_links'
    )
    resource = models.ForeignKey(
        'core.Resource',
        on_delete=models.CASCADE,
        related_name='service_links'
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'service_resources'
        constraints = [
            models.UniqueConstraint(
                fields=['service', 'resource'],
                name='uniq_service_resource'
            ),
        ]
