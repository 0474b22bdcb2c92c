import uuid

from django.test import TestCase

from balancing.application.balance_groups import set_final
from balancing.application.validation import (
    validate_balance_group,
    validate_settlement,
    validate_transaction,
)
from balancing.domain.exceptions import (
    InvalidAlignment,
    InvalidBalanceGroup,
    InvalidBalanceGroupStatus,
    InvalidEnergyAmount,
    InvalidSettlementRule,
    InvalidTenantReference,
    InvalidTimeframe,
)
from balancing.tests.helpers import DAY_END, BalancingFixtures, T0, at


class ValidateBalanceGroupTest(BalancingFixtures, TestCase):

    def test_valid_group_passes(self):
        self.assertIsNone(validate_balance_group("C", T0, DAY_END, self.tenant.id, str(self.target.id)))

    def test_inverted_timeframe(self):
        with self.assertRaises(InvalidTimeframe):
            validate_balance_group("C", at(60), at(0), self.tenant.id)

    def test_unaligned_bounds(self):
        with self.assertRaises(InvalidAlignment):
            validate_balance_group("C", at(1), at(60), self.tenant.id)
        with self.assertRaises(InvalidAlignment):
            validate_balance_group("C", at(0), at(61), self.tenant.id)

    def test_unknown_settlement_rule(self):
        with self.assertRaises(InvalidSettlementRule):
            validate_balance_group("C", T0, DAY_END, self.tenant.id, str(uuid.uuid4()))

    def test_settlement_rule_of_another_tenant(self):
        with self.assertRaises(InvalidTenantReference):
            validate_balance_group("C", T0, DAY_END, self.tenant.id, str(self.foreign_group.id))


class ValidateTransactionTest(BalancingFixtures, TestCase):

    def validate(self, source=None, destination=None, start=None, end=None, amount=100):
        return validate_transaction(
            str((source or self.group_a).id),
            str((destination or self.group_b).id),
            at(0) if start is None else start,
            at(60) if end is None else end,
            amount,
            self.tenant.id,
        )

    def test_valid_transaction_passes(self):
        self.assertIsNone(self.validate())

    def test_inverted_timeframe(self):
        with self.assertRaises(InvalidTimeframe):
            self.validate(start=at(60), end=at(60))

    def test_non_positive_amount(self):
        with self.assertRaises(InvalidEnergyAmount):
            self.validate(amount=0)
        with self.assertRaises(InvalidEnergyAmount):
            self.validate(amount=-5)

    def test_amount_outside_storage_range(self):
        for amount in ("0.0000001", "1e14", "1e30"):
            with self.assertRaises(InvalidEnergyAmount):
                self.validate(amount=amount)

    def test_unaligned_bounds(self):
        with self.assertRaises(InvalidAlignment):
            self.validate(end=at(50))

    def test_missing_endpoint(self):
        with self.assertRaises(InvalidBalanceGroup):
            validate_transaction(str(uuid.uuid4()), str(self.group_b.id), at(0), at(60), 100, self.tenant.id)

    def test_endpoint_of_another_tenant(self):
        with self.assertRaises(InvalidTenantReference):
            self.validate(destination=self.foreign_group)

    def test_window_outside_endpoint_validity(self):
        with self.assertRaises(InvalidTenantReference):
            self.validate(start=DAY_END, end=DAY_END + (at(15) - T0))

    def test_final_endpoint(self):
        set_final(self.group_b.id, self.tenant.id)

        with self.assertRaises(InvalidBalanceGroupStatus):
            self.validate()


class ValidateSettlementTest(BalancingFixtures, TestCase):

    def test_valid_settlement_passes(self):
        self.assertIsNone(
            validate_settlement(self.group_a.id, self.target.id, 250, at(0), at(15), self.tenant.id)
        )

    def test_missing_group(self):
        with self.assertRaises(InvalidBalanceGroup):
            validate_settlement(uuid.uuid4(), self.target.id, 250, at(0), at(15), self.tenant.id)

    def test_group_of_another_tenant(self):
        with self.assertRaises(InvalidTenantReference):
            validate_settlement(self.group_a.id, self.foreign_group.id, 250, at(0), at(15), self.tenant.id)

    def test_unaligned_interval(self):
        with self.assertRaises(InvalidAlignment):
            validate_settlement(self.group_a.id, self.target.id, 250, at(0), at(10), self.tenant.id)
