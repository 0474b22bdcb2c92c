"""
Application Use Cases: Transaction Ledger

A transaction is a directed energy transfer between two balance groups of the
same tenant. It is created provisional; finalize is the only status change and
is terminal. Finalizing publishes transaction.finalized after commit so that
derived settlement entries follow the transaction's status eventually, not
synchronously.
"""

import logging

from django.db import transaction

from balancing.application.tenants import require_active_tenant
from balancing.application.validation import check_energy_amount, check_timeframe
from balancing.domain import intervals
from balancing.domain.exceptions import (
    InvalidBalanceGroupStatus,
    InvalidTenant,
    NotFound,
    ValidationError,
)
from balancing.models import BalanceGroup, Status, Transaction, parse_id
from balancing.signals import publish_transaction_finalized

logger = logging.getLogger(__name__)


def _resolve_endpoint(balance_group_id, tenant_id):
    group = BalanceGroup.objects.find(balance_group_id)
    if group is None:
        raise NotFound("Balance group not found")
    if not group.belongs_to(tenant_id):
        logger.warning(
            "Transaction endpoint belongs to another tenant: group=%s tenant=%s",
            balance_group_id, tenant_id,
        )
        raise InvalidTenant("Balance group belongs to a different tenant")
    return group


def create_transaction(name, source_id, destination_id, start_time, end_time, energy_amount, tenant_id):
    tenant = require_active_tenant(tenant_id)
    check_timeframe(start_time, end_time)
    energy_amount = intervals.to_energy(energy_amount)
    check_energy_amount(energy_amount)

    source = _resolve_endpoint(source_id, tenant_id)
    destination = _resolve_endpoint(destination_id, tenant_id)

    if source.is_final or destination.is_final:
        raise InvalidBalanceGroupStatus()

    tx = Transaction.objects.create(
        tenant=tenant,
        name=name,
        source=source,
        destination=destination,
        start_time=start_time,
        end_time=end_time,
        energy_amount=energy_amount,
        status=Status.PROVISIONAL,
    )
    logger.info(
        "Transaction created: id=%s source=%s destination=%s amount=%s",
        tx.id, source.id, destination.id, energy_amount,
    )
    return tx


def get_transaction(transaction_id, tenant_id):
    """Foreign ownership (InvalidTenant) is reported apart from absence (NotFound)."""
    tx = Transaction.objects.find(transaction_id)
    if tx is None:
        raise NotFound("Transaction not found")
    if not tx.belongs_to(tenant_id):
        logger.warning("Transaction requested by foreign tenant: id=%s tenant=%s", transaction_id, tenant_id)
        raise InvalidTenant()
    return tx


def _filter_by_group(queryset, value):
    return queryset.touching_group(_require_id(value))


def _require_id(value):
    parsed = parse_id(value)
    if parsed is None:
        raise ValidationError(f"Malformed id in query: {value}")
    return parsed


QUERY_FILTERS = {
    "source_id": lambda qs, value: qs.filter(source_id=_require_id(value)),
    "destination_id": lambda qs, value: qs.filter(destination_id=_require_id(value)),
    "balance_group_id": _filter_by_group,
    "status": lambda qs, value: qs.filter(status=value),
    "start_time": lambda qs, value: qs.filter(end_time__gt=value),
    "end_time": lambda qs, value: qs.filter(start_time__lt=value),
}


def list_transactions(tenant_id, query=None):
    """All of the tenant's transactions matching query; no pagination.

    start_time / end_time select transactions overlapping that window.
    """
    queryset = Transaction.objects.for_tenant(tenant_id)
    for key, value in (query or {}).items():
        if key not in QUERY_FILTERS:
            raise ValidationError(f"Unsupported transaction query field: {key}")
        queryset = QUERY_FILTERS[key](queryset, value)
    return list(queryset)


def finalize_transaction(transaction_id, tenant_id):
    """Set the transaction final and publish transaction.finalized.

    Re-finalizing is accepted and publishes the notification again.
    """
    with transaction.atomic():
        tx = get_transaction(transaction_id, tenant_id)
        tx = Transaction.objects.select_for_update().get(pk=tx.pk)
        already_final = tx.is_final
        tx.status = Status.FINAL
        tx.save(update_fields=["status", "updated_at"])
        publish_transaction_finalized(Transaction, tx.id, tx.tenant_id)

    if already_final:
        logger.info("Transaction finalize replayed: id=%s", tx.id)
    else:
        logger.info("Transaction finalized: id=%s tenant=%s", tx.id, tx.tenant_id)
    return tx


def get_intervals(transaction_id, tenant_id):
    tx = Transaction.objects.find(transaction_id)
    if tx is None or not tx.belongs_to(tenant_id):
        raise NotFound("Transaction not found")
    return intervals.split(tx.start_time, tx.end_time, tx.energy_amount)
