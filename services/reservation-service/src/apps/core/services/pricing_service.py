# services/reservation-service/src/apps/core/services/pricing_service.py
"""
Pricing Service

Evaluates time and date dependent pricing rules and manages them.
"""

import uuid
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from django.db import transaction

from apps.core.models import PricingRule, Service

from . import BadRequestError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class PriceQuote:
    base_price: int
    final_price: int
    applied_rules: List[Dict[str, Any]] = field(default_factory=list)
    total_modifier: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'base_price': self.base_price,
            'final_price': self.final_price,
            'applied_rules': list(self.applied_rules),
            'total_modifier': self.total_modifier,
        }


class PricingService:
    """
    Service for pricing rules.

    Every applicable rule contributes; priority only orders evaluation and
    the list of applied rules.
    """

    RULE_FIELDS = (
        'name', 'day_of_week', 'start_time', 'end_time', 'start_date',
        'end_date', 'price_modifier', 'modifier_type', 'priority',
        'is_active', 'metadata',
    )

    # ==========================================================================
    # Evaluation
    # ==========================================================================

    def evaluate(
        self,
        service_id: uuid.UUID,
        base_price: int,
        target_date: date,
        target_time: time
    ) -> PriceQuote:
        rules = PricingRule.objects.filter(
            service_id=service_id,
            is_active=True
        ).order_by('-priority', 'created_at')

        applied = []
        total_modifier = 0
        for rule in rules:
            if not rule.applies_to(target_date, target_time):
                continue
            modifier = rule.modifier_for(base_price)
            total_modifier += modifier
            applied.append({
                'rule_id': str(rule.id),
                'rule_name': rule.name,
                'modifier': modifier,
                'modifier_type': rule.modifier_type,
            })

        return PriceQuote(
            base_price=base_price,
            final_price=max(0, base_price + total_modifier),
            applied_rules=applied,
            total_modifier=total_modifier,
        )

    def quote_for_service(self, service: Service, start_at: datetime) -> Optional[PriceQuote]:
        """Quote at the local start time of a booking; None for unpriced services."""
        if not service.has_price:
            return None
        local_start = start_at.astimezone(service.business.tzinfo)
        return self.evaluate(service.id, service.price_cents, local_start.date(), local_start.time())

    def price_preview(self, service_id: uuid.UUID, target_date: date, target_time: time) -> PriceQuote:
        service = self._get_service(service_id)
        if not service.has_price:
            raise NotFoundError(f"Service {service_id} has no price")
        return self.evaluate(service.id, service.price_cents, target_date, target_time)

    # ==========================================================================
    # Rule management
    # ==========================================================================

    def list_rules(self, service_id: uuid.UUID, active_only: bool = False):
        queryset = PricingRule.objects.filter(service_id=service_id)
        if active_only:
            queryset = queryset.filter(is_active=True)
        return queryset.order_by('-priority', 'created_at')

    def get_rule(self, rule_id: uuid.UUID) -> PricingRule:
        rule = PricingRule.objects.filter(id=rule_id).first()
        if rule is None:
            raise NotFoundError(f"Pricing rule {rule_id} not found")
        return rule

    @transaction.atomic
    def create_rule(self, service_id: uuid.UUID, **data) -> PricingRule:
        service = self._get_service(service_id)
        values = {key: value for key, value in data.items() if key in self.RULE_FIELDS}
        rule = PricingRule(service=service, **values)
        self.validate_rule(rule)
        rule.save()

        logger.info(f"Created pricing rule {rule.id} for service {service.id}")
        return rule

    @transaction.atomic
    def update_rule(self, rule_id: uuid.UUID, **data) -> PricingRule:
        rule = self.get_rule(rule_id)
        for key, value in data.items():
            if key in self.RULE_FIELDS:
                setattr(rule, key, value)
        self.validate_rule(rule)
        rule.save()

        logger.info(f"Updated pricing rule {rule.id}")
        return rule

    def deactivate_rule(self, rule_id: uuid.UUID) -> PricingRule:
        rule = self.get_rule(rule_id)
        rule.is_active = False
        rule.save(update_fields=['is_active', 'updated_at'])

        logger.info(f"Deactivated pricing rule {rule.id}")
        return rule

    def validate_rule(self, rule: PricingRule):
        if not rule.name:
            raise BadRequestError("Pricing rule name is required")

        days = rule.day_of_week or []
        if not isinstance(days, list) or any(
            not isinstance(day, int) or isinstance(day, bool) or not 0 <= day <= 6 for day in days
        ):
            raise BadRequestError("day_of_week must be a list of integers between 0 and 6")

        if (rule.start_time is None) != (rule.end_time is None):
            raise BadRequestError("start_time and end_time must be given together")
        if rule.start_time is not None and rule.start_time >= rule.end_time:
            raise BadRequestError("start_time must be before end_time")

        if rule.start_date and rule.end_date and rule.start_date > rule.end_date:
            raise BadRequestError("start_date must not be after end_date")

        if rule.modifier_type not in PricingRule.ModifierType.values:
            raise BadRequestError(f"Unknown modifier type: {rule.modifier_type}")
        if rule.price_modifier is None:
            raise BadRequestError("price_modifier is required")
        if rule.priority not in PricingRule.Priority.values:
            raise BadRequestError(f"Unknown priority: {rule.priority}")

    def _get_service(self, service_id: uuid.UUID) -> Service:
        service = Service.objects.alive().select_related('business').filter(id=service_id).first()
        if service is None:
            raise NotFoundError(f"Service {service_id} not found")
        return service
