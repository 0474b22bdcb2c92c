import uuid
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase

from balancing.application.balance_groups import set_final
from balancing.application.balances import get_balance
from balancing.application.transactions import (
    create_transaction,
    finalize_transaction,
    get_intervals,
    get_transaction,
    list_transactions,
)
from balancing.domain.exceptions import (
    InvalidBalanceGroupStatus,
    InvalidEnergyAmount,
    InvalidTenant,
    InvalidTimeframe,
    NotFound,
    ValidationError,
)
from balancing.models import Status, Transaction
from balancing.tests.helpers import BalancingFixtures, at


class CreateTransactionTest(BalancingFixtures, TestCase):

    def test_created_transaction_is_provisional(self):
        tx = self.make_transaction(self.group_a, self.group_b, at(0), at(60), 1000)

        self.assertEqual(tx.status, Status.PROVISIONAL)
        self.assertEqual(tx.energy_amount, 1000)
        self.assertEqual(get_transaction(tx.id, self.tenant.id), tx)

    def test_non_positive_amount(self):
        with self.assertRaises(InvalidEnergyAmount):
            self.make_transaction(self.group_a, self.group_b, at(0), at(60), 0)

    def test_amount_that_rounds_to_zero(self):
        with self.assertRaises(InvalidEnergyAmount):
            self.make_transaction(self.group_a, self.group_b, at(0), at(60), Decimal("0.0000004"))

    def test_amount_beyond_storage_range_is_rejected_before_it_is_stored(self):
        """An oversized amount must not leave an unreadable row behind."""
        valid = self.make_transaction(self.group_a, self.group_b, at(0), at(60), 1000)

        for amount in (Decimal("1e14"), Decimal("1e16"), "1e30"):
            with self.assertRaises(InvalidEnergyAmount):
                self.make_transaction(self.group_a, self.group_b, at(0), at(60), amount)

        self.assertEqual(list_transactions(self.tenant.id), [valid])
        self.assertEqual(get_balance(self.group_a.id, at(0), at(60), self.tenant.id)["total_amount"], -1000)

    def test_fourteen_integer_digits_are_accepted(self):
        tx = self.make_transaction(self.group_a, self.group_b, at(0), at(60), Decimal("12345678901234"))

        tx.refresh_from_db()
        self.assertEqual(tx.energy_amount, Decimal("12345678901234"))

    def test_inverted_timeframe(self):
        with self.assertRaises(InvalidTimeframe):
            self.make_transaction(self.group_a, self.group_b, at(60), at(0), 10)

    def test_missing_endpoint(self):
        with self.assertRaises(NotFound):
            create_transaction("t", uuid.uuid4(), self.group_b.id, at(0), at(60), 10, self.tenant.id)

    def test_endpoint_of_another_tenant(self):
        with self.assertRaises(InvalidTenant):
            self.make_transaction(self.group_a, self.foreign_group, at(0), at(60), 10)

    def test_final_endpoint_is_rejected(self):
        set_final(self.group_a.id, self.tenant.id)

        with self.assertRaises(InvalidBalanceGroupStatus):
            self.make_transaction(self.group_a, self.group_b, at(0), at(60), 10)
        self.assertEqual(Transaction.objects.count(), 0)


class GetTransactionTest(BalancingFixtures, TestCase):

    def test_foreign_tenant_gets_invalid_tenant_not_not_found(self):
        tx = self.make_transaction(self.group_a, self.group_b, at(0), at(60), 10)

        with self.assertRaises(InvalidTenant):
            get_transaction(tx.id, self.other_tenant.id)

    def test_absent_transaction_is_not_found(self):
        with self.assertRaises(NotFound):
            get_transaction(uuid.uuid4(), self.tenant.id)
        with self.assertRaises(NotFound):
            get_transaction("garbage", self.tenant.id)


class ListTransactionsTest(BalancingFixtures, TestCase):

    def setUp(self):
        super().setUp()
        self.first = self.make_transaction(self.group_a, self.group_b, at(0), at(60), 10, name="first")
        self.second = self.make_transaction(self.group_b, self.unregulated, at(120), at(180), 20, name="second")

    def test_list_all_for_tenant(self):
        self.assertEqual(list_transactions(self.tenant.id), [self.first, self.second])
        self.assertEqual(list_transactions(self.other_tenant.id), [])

    def test_query_by_group_and_window(self):
        self.assertEqual(list_transactions(self.tenant.id, {"balance_group_id": str(self.group_b.id)}),
                         [self.first, self.second])
        self.assertEqual(list_transactions(self.tenant.id, {"source_id": str(self.group_a.id)}), [self.first])
        self.assertEqual(list_transactions(self.tenant.id, {"start_time": at(90), "end_time": at(150)}),
                         [self.second])

    def test_unsupported_query_field(self):
        with self.assertRaises(ValidationError):
            list_transactions(self.tenant.id, {"energy_amount": 10})


class FinalizeTransactionTest(BalancingFixtures, TestCase):

    def test_finalize_is_terminal_and_repeatable(self):
        tx = self.make_transaction(self.group_a, self.group_b, at(0), at(60), 10)

        finalize_transaction(tx.id, self.tenant.id)
        again = finalize_transaction(tx.id, self.tenant.id)

        self.assertEqual(again.status, Status.FINAL)
        self.assertEqual(get_transaction(tx.id, self.tenant.id).status, Status.FINAL)

    def test_finalize_is_tenant_scoped(self):
        tx = self.make_transaction(self.group_a, self.group_b, at(0), at(60), 10)

        with self.assertRaises(InvalidTenant):
            finalize_transaction(tx.id, self.other_tenant.id)
        self.assertEqual(get_transaction(tx.id, self.tenant.id).status, Status.PROVISIONAL)


class GetIntervalsTest(BalancingFixtures, TestCase):

    def test_intervals_follow_the_stored_transaction(self):
        tx = self.make_transaction(self.group_a, self.group_b, at(0), at(60), 1000)

        intervals = get_intervals(tx.id, self.tenant.id)

        self.assertEqual([i.energy_amount for i in intervals], [250] * 4)
        self.assertEqual([i.start_time for i in intervals], [at(0), at(15), at(30), at(45)])

    def test_partial_trailing_interval(self):
        tx = self.make_transaction(self.group_a, self.group_b, at(0), at(20), 90)

        intervals = get_intervals(tx.id, self.tenant.id)

        self.assertEqual(len(intervals), 2)
        self.assertEqual(intervals[-1].end_time - intervals[-1].start_time, timedelta(minutes=5))
        self.assertEqual(intervals[-1].energy_amount, 45)

    def test_unknown_or_foreign_transaction_is_not_found(self):
        tx = self.make_transaction(self.group_a, self.group_b, at(0), at(60), 10)

        with self.assertRaises(NotFound):
            get_intervals(tx.id, self.other_tenant.id)
        with self.assertRaises(NotFound):
            get_intervals(uuid.uuid4(), self.tenant.id)
