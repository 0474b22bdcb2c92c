"""
Application Use Case: Balance Aggregator

Rolls settlement entries of one balance group up into per-interval and total
net positions over a query window. Stored entries are positive for outflow
from the group, so the report inverts the sign.
"""

import logging
from decimal import Decimal

from django.db.models import Max, Sum

from balancing.application.settlements import calculate_settlement
from balancing.domain.exceptions import ValidationError
from balancing.models import SettlementEntry, Transaction, parse_id

logger = logging.getLogger(__name__)


def get_balance(balance_group_id, start_time, end_time, tenant_id):
    """
    Net position of balance_group_id within [start_time, end_time].

    Provisional transactions touching the group are settled lazily here;
    final ones, including any finalized while this runs, are read from their
    stored entries.
    """
    group_id = parse_id(balance_group_id)

    if group_id is not None:
        transactions = (
            Transaction.objects.for_tenant(tenant_id)
            .touching_group(group_id)
            .overlapping(start_time, end_time)
        )
        for tx in transactions:
            if tx.is_final:
                continue
            try:
                calculate_settlement(tx.pk, tenant_id)
            except ValidationError:
                # Finalized after the listing; its stored entries still count
                logger.info("Transaction finalized during balance read: transaction=%s", tx.pk)

    rows = (
        SettlementEntry.objects.for_group(balance_group_id, tenant_id)
        .within(start_time, end_time)
        .order_by()
        .values("interval_start")
        .annotate(interval_end=Max("interval_end"), stored=Sum("energy_amount"))
        .order_by("interval_start")
    )

    intervals = []
    total_amount = Decimal(0)
    for row in rows:
        amount = -row["stored"]
        intervals.append({
            "start_time": row["interval_start"],
            "end_time": row["interval_end"],
            "amount": amount,
        })
        total_amount += amount

    logger.info(
        "Balance computed: group=%s intervals=%d total=%s",
        balance_group_id, len(intervals), total_amount,
    )
    return {
        "balance_group_id": str(balance_group_id),
        "total_amount": total_amount,
        "intervals": intervals,
    }
