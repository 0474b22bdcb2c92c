"""
Cross-field Validator

Stateless checks run before every mutation and also callable on their own.
They never write; the only lookups are balance-group reads used to resolve
references. Each check raises the specific error kind it detects and returns
None when the input is acceptable.
"""

from balancing.domain.exceptions import (
    InvalidAlignment,
    InvalidBalanceGroup,
    InvalidBalanceGroupStatus,
    InvalidEnergyAmount,
    InvalidSettlementRule,
    InvalidTenantReference,
    InvalidTimeframe,
)
from balancing.domain.intervals import MAX_ENERGY, is_aligned, to_energy
from balancing.models import BalanceGroup


def check_timeframe(start_time, end_time):
    if start_time >= end_time:
        raise InvalidTimeframe()


def check_alignment(*moments):
    for moment in moments:
        if not is_aligned(moment):
            raise InvalidAlignment(f"{moment.isoformat()} is not aligned to a 15-minute interval")


def check_energy_amount(energy_amount):
    """Positive once quantized, and within the range an energy column holds."""
    amount = to_energy(energy_amount)
    if not amount.is_finite() or amount <= 0:
        raise InvalidEnergyAmount()
    if amount >= MAX_ENERGY:
        raise InvalidEnergyAmount(f"Energy amount must be below {MAX_ENERGY:f}")


def check_settlement_rule(settlement_rule, tenant_id):
    """Resolve the target group of a settlement rule within tenant scope."""
    target = BalanceGroup.objects.find(settlement_rule)
    if target is None:
        raise InvalidSettlementRule()
    if not target.belongs_to(tenant_id):
        raise InvalidTenantReference("Settlement rule must belong to the same tenant")
    return target


def validate_balance_group(name, start_time, end_time, tenant_id, settlement_rule=None):
    check_timeframe(start_time, end_time)
    check_alignment(start_time, end_time)
    if settlement_rule:
        check_settlement_rule(settlement_rule, tenant_id)


def validate_transaction(source_id, destination_id, start_time, end_time, energy_amount, tenant_id):
    check_timeframe(start_time, end_time)
    check_energy_amount(energy_amount)
    check_alignment(start_time, end_time)

    source = BalanceGroup.objects.find(source_id)
    destination = BalanceGroup.objects.find(destination_id)
    if source is None or destination is None:
        raise InvalidBalanceGroup("Source or destination balance group not found")

    if not (source.belongs_to(tenant_id) and destination.belongs_to(tenant_id)):
        raise InvalidTenantReference("Balance groups must belong to the same tenant")

    if not (source.covers(start_time, end_time) and destination.covers(start_time, end_time)):
        raise InvalidTenantReference("Transaction timeframe must be within balance group validity")

    if source.is_final or destination.is_final:
        raise InvalidBalanceGroupStatus("Cannot create transaction for finalized balance groups")


def validate_settlement(balance_group_id, target_group_id, energy_amount, interval_start, interval_end, tenant_id):
    group = BalanceGroup.objects.find(balance_group_id)
    target = BalanceGroup.objects.find(target_group_id)
    if group is None or target is None:
        raise InvalidBalanceGroup("Balance groups not found")

    if not (group.belongs_to(tenant_id) and target.belongs_to(tenant_id)):
        raise InvalidTenantReference("Settlement must be within the same tenant")

    check_alignment(interval_start, interval_end)
