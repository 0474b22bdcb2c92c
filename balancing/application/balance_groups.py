"""
Application Use Cases: Balance Group Registry

Balance groups are created provisional and closed with set_final, a one-way
transition. Closing a group does not touch existing transactions or
settlement entries; it only stops new transactions from referencing it.
"""

import logging

from django.db import transaction

from balancing.application.tenants import require_active_tenant
from balancing.application.validation import check_settlement_rule, validate_balance_group
from balancing.domain.exceptions import InvalidSettlementRule, NotFound, ValidationError
from balancing.models import BalanceGroup, Status, parse_id

logger = logging.getLogger(__name__)

# Default for optional update fields that were not supplied.
UNCHANGED = object()


def create_balance_group(name, tenant_id, start_time, end_time, settlement_rule=None):
    tenant = require_active_tenant(tenant_id)
    validate_balance_group(name, start_time, end_time, tenant_id, settlement_rule)

    group = BalanceGroup.objects.create(
        tenant=tenant,
        name=name,
        start_time=start_time,
        end_time=end_time,
        settlement_rule_id=parse_id(settlement_rule) if settlement_rule else None,
        status=Status.PROVISIONAL,
    )
    logger.info(
        "Balance group created: id=%s tenant=%s settlement_rule=%s",
        group.id, tenant.id, group.settlement_rule_id,
    )
    return group


def find_balance_group(balance_group_id, tenant_id):
    """Absence and foreign ownership are both reported as NotFound."""
    group = BalanceGroup.objects.find(balance_group_id)
    if group is None or not group.belongs_to(tenant_id):
        raise NotFound("Balance group not found")
    return group


def list_balance_groups(tenant_id):
    return list(BalanceGroup.objects.for_tenant(tenant_id))


def update_balance_group(balance_group_id, tenant_id, name=None, settlement_rule=UNCHANGED):
    """Rename a provisional group or change its settlement rule.

    settlement_rule=None clears the rule; leaving it out keeps the current one.
    """
    require_active_tenant(tenant_id)
    with transaction.atomic():
        group = find_balance_group(balance_group_id, tenant_id)
        group = BalanceGroup.objects.select_for_update().get(pk=group.pk)
        if group.is_final:
            raise ValidationError("Balance group is already closed")

        if name is not None:
            group.name = name
        if settlement_rule is None:
            group.settlement_rule = None
        elif settlement_rule is not UNCHANGED:
            target = check_settlement_rule(settlement_rule, tenant_id)
            if target.pk == group.pk:
                raise InvalidSettlementRule("Balance group cannot settle into itself")
            group.settlement_rule = target
        group.save()

    logger.info("Balance group updated: id=%s settlement_rule=%s", group.id, group.settlement_rule_id)
    return group


def set_final(balance_group_id, tenant_id):
    with transaction.atomic():
        group = find_balance_group(balance_group_id, tenant_id)
        group = BalanceGroup.objects.select_for_update().get(pk=group.pk)
        if group.is_final:
            logger.warning("Balance group already closed: id=%s", group.id)
            raise ValidationError("Balance group is already closed")

        group.status = Status.FINAL
        group.save(update_fields=["status", "updated_at"])

    logger.info("Balance group closed: id=%s tenant=%s", group.id, group.tenant_id)
    return group
