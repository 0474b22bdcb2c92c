"""
Notification channel for cross-entity lifecycle propagation.

transaction_finalized is published once the finalizing database transaction
has committed, with keyword arguments ``id`` and ``tenant_id`` (both strings).
Delivery is at-least-once: re-finalizing a transaction publishes again, so
every receiver must be idempotent.
"""

import logging
from functools import partial

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

transaction_finalized = Signal()


def _dispatch(signal, sender, **payload):
    for receiver, response in signal.send_robust(sender=sender, **payload):
        if isinstance(response, Exception):
            logger.error(
                "Notification receiver failed: receiver=%s payload=%s",
                getattr(receiver, "__qualname__", receiver), payload,
                exc_info=(type(response), response, response.__traceback__),
            )


def publish_transaction_finalized(sender, transaction_id, tenant_id):
    """Schedule transaction.finalized for delivery after the current commit."""
    payload = {"id": str(transaction_id), "tenant_id": str(tenant_id)}
    logger.info("Publishing transaction.finalized: %s", payload)
    transaction.on_commit(partial(_dispatch, transaction_finalized, sender, **payload))
