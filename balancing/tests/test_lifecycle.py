from unittest import mock

from django.test import TestCase

from balancing.application.lifecycle import on_transaction_finalized
from balancing.application.settlements import calculate_settlement, find_by_transaction
from balancing.application.transactions import finalize_transaction
from balancing.models import Status, Transaction
from balancing.signals import transaction_finalized
from balancing.tests.helpers import BalancingFixtures, at


class FinalizationPropagationTest(BalancingFixtures, TestCase):

    def setUp(self):
        super().setUp()
        self.tx = self.make_transaction(self.group_a, self.group_b, at(0), at(60), 1000)
        calculate_settlement(self.tx.id, self.tenant.id)

    def statuses(self):
        return {e.status for e in find_by_transaction(self.tx.id, self.tenant.id)}

    def test_entries_become_final_once_the_notification_is_processed(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            finalize_transaction(self.tx.id, self.tenant.id)

        self.assertEqual(len(callbacks), 1)
        self.assertEqual(self.statuses(), {Status.FINAL})

    def test_entries_stay_provisional_until_delivery(self):
        with self.captureOnCommitCallbacks() as callbacks:
            finalize_transaction(self.tx.id, self.tenant.id)

        self.assertEqual(self.statuses(), {Status.PROVISIONAL})

        for callback in callbacks:
            callback()
        self.assertEqual(self.statuses(), {Status.FINAL})

    def test_duplicate_delivery_is_harmless(self):
        with self.captureOnCommitCallbacks() as callbacks:
            finalize_transaction(self.tx.id, self.tenant.id)
            finalize_transaction(self.tx.id, self.tenant.id)

        self.assertEqual(len(callbacks), 2)
        for callback in callbacks + callbacks:
            callback()
        self.assertEqual(self.statuses(), {Status.FINAL})

    def test_delivery_for_transaction_without_entries_is_a_no_op(self):
        other = self.make_transaction(self.group_b, self.group_a, at(0), at(15), 10)

        result = on_transaction_finalized(Transaction, id=str(other.id), tenant_id=str(self.tenant.id))

        self.assertEqual(result, [])

    def test_signal_subscriber_is_connected(self):
        responses = transaction_finalized.send(
            sender=Transaction, id=str(self.tx.id), tenant_id=str(self.tenant.id),
        )

        self.assertIn(on_transaction_finalized, [receiver for receiver, _ in responses])
        self.assertEqual(self.statuses(), {Status.FINAL})

    def test_failing_subscriber_is_logged(self):
        with mock.patch("balancing.application.lifecycle.finalize_settlement", side_effect=RuntimeError("down")):
            with self.assertLogs("balancing.signals", "ERROR") as logs:
                with self.captureOnCommitCallbacks(execute=True):
                    finalize_transaction(self.tx.id, self.tenant.id)

        self.assertIn("Notification receiver failed", logs.output[0])
        self.assertEqual(self.statuses(), {Status.PROVISIONAL})
