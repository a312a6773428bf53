# services/reservation-service/src/apps/core/models/pricing_rule.py
"""
Pricing Rule Model

Time and date dependent price modifiers of a service.
"""

from datetime import date, time

from django.db import models

from shared.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin

from .hours import day_of_week


class PricingRule(UUIDPrimaryKeyMixin, TimestampMixin):
    """
    A signed price modifier for a service.

    Every condition that is set must match for the rule to apply:
    - day_of_week: list of weekdays (0=Sunday); empty matches every day
    - start_time/end_time: half-open window ``[start, end)`` in local time
    - start_date/end_date: inclusive date range
    """

    class ModifierType(models.TextChoices):
        PERCENTAGE = 'percentage', 'Percentage'
        FIXED = 'fixed', 'Fixed'

    class Priority(models.IntegerChoices):
        LOW = 1, 'Low'
        MEDIUM = 2, 'Medium'
        HIGH = 3, 'High'
        CRITICAL = 4, 'Critical'

    service = models.ForeignKey(
        'core.Service',
        on_delete=models.CASCADE,
        related_name='pricing_rules'
    )
    name = models.CharField(max_length=255)

    # Conditions
    day_of_week = models.JSONField(default=list, blank=True)
    start_time = models.TimeField(blank=True, null=True)
    end_time = models.TimeField(blank=True, null=True)
    start_date = models.DateField(blank=True, null=True)
    end_date = models.DateField(blank=True, null=True)

    # Effect
    price_modifier = models.IntegerField()
    modifier_type = models.CharField(
        max_length=20,
        choices=ModifierType.choices
    )
    priority = models.IntegerField(
        choices=Priority.choices,
        default=Priority.MEDIUM
    )

    is_active = models.BooleanField(default=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = 'pricing_rules'
        ordering = ['-priority', 'created_at']
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(start_time__isnull=True, end_time__isnull=True)
                    | models.Q(start_time__lt=models.F('end_time'))
                ),
                name='pricing_rule_valid_time_window'
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(start_date__isnull=True)
                    | models.Q(end_date__isnull=True)
                    | models.Q(start_date__lte=models.F('end_date'))
                ),
                name='pricing_rule_valid_date_range'
            ),
        ]

    def __str__(self):
        sign = '+' if self.price_modifier >= 0 else ''
        unit = '%' if self.modifier_type == self.ModifierType.PERCENTAGE else ''
        return f"{self.name} ({sign}{self.price_modifier}{unit})"

    def applies_to(self, target_date: date, target_time: time) -> bool:
        if self.day_of_week and day_of_week(target_date) not in self.day_of_week:
            return False

        if self.start_time is not None and self.end_time is not None:
            if not (self.start_time <= target_time.replace(second=0, microsecond=0) < self.end_time):
                return False

        if self.start_date is not None and target_date < self.start_date:
            return False
        if self.end_date is not None and target_date > self.end_date:
            return False

        return True

    def modifier_for(self, base_price: int) -> int:
        if self.modifier_type == self.ModifierType.PERCENTAGE:
            # Floor division rounds toward negative infinity for discounts too
            return (base_price * self.price_modifier) // 100
        return self.price_modifier
