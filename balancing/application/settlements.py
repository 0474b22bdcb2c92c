"""
Application Use Case: Settlement Calculator

Derives settlement entries from a provisional transaction and transitions
them to final once the transaction is finalized.

Core guarantees provided:

- At most one computation per transaction: the transaction row is locked with
  select_for_update() while existing entries are checked, and a UNIQUE
  constraint on (transaction, balance_group, interval_start) rejects a
  duplicate batch written by a concurrent caller. The losing caller returns
  the stored set instead of failing.
- Conservation: for every interval the source entry is +allocation and the
  destination entry is -allocation when both parties carry a settlement rule.
  A party without a rule is not settled and gets no entry.
- finalize_settlement is a single conditional bulk UPDATE and is safe to run
  concurrently or repeatedly.
"""

import logging

from django.db import IntegrityError, transaction

from balancing.domain import intervals
from balancing.domain.exceptions import InvalidTenant, NotFound, ValidationError
from balancing.models import BalanceGroup, SettlementEntry, Status, Transaction

logger = logging.getLogger(__name__)


def _load_transaction(transaction_id, tenant_id):
    # Absence and foreign ownership both surface as InvalidTenant
    tx = Transaction.objects.find(transaction_id)
    if tx is None or not tx.belongs_to(tenant_id):
        logger.warning(
            "Settlement requested for unknown or foreign transaction: id=%s tenant=%s",
            transaction_id, tenant_id,
        )
        raise InvalidTenant()
    return tx


def _load_party(balance_group_id, tenant_id):
    group = BalanceGroup.objects.find(balance_group_id)
    if group is None:
        raise NotFound("Balance group not found")
    if not group.belongs_to(tenant_id):
        raise InvalidTenant()
    return group


def build_entries(tx, source, destination):
    """Unsaved settlement entries for every interval of tx."""
    entries = []
    for interval in intervals.split(tx.start_time, tx.end_time, tx.energy_amount):
        for party, amount in ((source, interval.energy_amount), (destination, -interval.energy_amount)):
            if party.settlement_rule_id is None:
                continue
            entries.append(
                SettlementEntry(
                    transaction=tx,
                    balance_group=party,
                    target_group_id=party.settlement_rule_id,
                    tenant_id=tx.tenant_id,
                    energy_amount=amount,
                    status=Status.PROVISIONAL,
                    interval_start=interval.start_time,
                    interval_end=interval.end_time,
                )
            )
    return entries


def calculate_settlement(transaction_id, tenant_id):
    """
    Compute and persist the settlement entries of a transaction, once.

    Raises:
        InvalidTenant: The transaction is absent or owned by another tenant.
        ValidationError: The transaction is already final.
        NotFound: A party balance group no longer resolves.
    """
    tx = _load_transaction(transaction_id, tenant_id)

    with transaction.atomic():
        # Single writer per transaction id
        tx = Transaction.objects.select_for_update().get(pk=tx.pk)
        if tx.is_final:
            raise ValidationError("Transaction is already finalized")

        existing = SettlementEntry.objects.for_transaction(tx.pk, tenant_id)
        if existing.exists():
            logger.info("Settlement already computed: transaction=%s", tx.pk)
            return list(existing)

        source = _load_party(tx.source_id, tenant_id)
        destination = _load_party(tx.destination_id, tenant_id)
        entries = build_entries(tx, source, destination)

        if entries:
            try:
                with transaction.atomic():
                    SettlementEntry.objects.bulk_create(entries)
            except IntegrityError:
                # A concurrent caller persisted the same batch first
                logger.info("Settlement batch replayed by concurrent writer: transaction=%s", tx.pk)
            else:
                logger.info(
                    "Settlement computed: transaction=%s entries=%d",
                    tx.pk, len(entries),
                )

    return list(SettlementEntry.objects.for_transaction(tx.pk, tenant_id))


def finalize_settlement(transaction_id, tenant_id):
    """Transition every provisional entry of the transaction to final.

    Nothing left to update is a valid outcome, never an error.
    """
    entries = SettlementEntry.objects.for_transaction(transaction_id, tenant_id)
    updated = entries.finalize()
    logger.info(
        "Settlement finalized: transaction=%s tenant=%s updated=%d",
        transaction_id, tenant_id, updated,
    )
    return list(entries)


def find_by_transaction(transaction_id, tenant_id):
    return list(SettlementEntry.objects.for_transaction(transaction_id, tenant_id))


def list_by_balance_group(balance_group_id, tenant_id):
    return list(SettlementEntry.objects.for_group(balance_group_id, tenant_id))
