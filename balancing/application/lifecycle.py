"""
Lifecycle Coordinator

Consumes transaction.finalized and moves the transaction's settlement entries
to final. Delivery may be duplicated or reordered; finalize_settlement is a
filter-then-set update, so every delivery converges on the same state.
"""

import logging

from balancing.application.settlements import finalize_settlement

logger = logging.getLogger(__name__)


def on_transaction_finalized(sender, **payload):
    logger.info("Received transaction.finalized: %s", {k: payload.get(k) for k in ("id", "tenant_id")})
    return finalize_settlement(payload["id"], payload["tenant_id"])
