"""
Interval Splitter: 15-minute billing intervals

Pure functions with no hidden state. A transaction's active span
[start, end) is sliced into contiguous billing intervals of at most
INTERVAL_DURATION each; the last slice may be shorter.

Allocation policy:

Quantity is split uniformly per slice (total / number_of_slices), not in
proportion to slice duration. A short trailing slice therefore receives the
same quantity as a full one. Billing intervals are atomic 15-minute units, so
a slice is counted, never weighted.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation

from balancing.domain.exceptions import InvalidEnergyAmount, InvalidRange

INTERVAL_DURATION = timedelta(minutes=15)

# Matches the decimal_places of every energy column.
ENERGY_QUANTUM = Decimal("0.000001")

# Energy columns hold 20 digits, 6 of them fractional.
MAX_ENERGY = Decimal("1e14")


@dataclass(frozen=True)
class Interval:
    start_time: datetime
    end_time: datetime
    energy_amount: Decimal

    @property
    def duration(self):
        return self.end_time - self.start_time


def to_energy(value):
    """Coerce a number to a Decimal at storage precision.

    Raises:
        InvalidEnergyAmount: If value is not a number or too large to quantize.
    """
    try:
        return Decimal(str(value)).quantize(ENERGY_QUANTUM, rounding=ROUND_HALF_EVEN)
    except InvalidOperation:
        raise InvalidEnergyAmount(f"Energy amount {value} cannot be represented")


def count_intervals(start, end):
    """Number of billing intervals needed to cover [start, end)."""
    if start >= end:
        raise InvalidRange(start, end)
    count, remainder = divmod(end - start, INTERVAL_DURATION)
    if remainder:
        count += 1
    return count


def split(start, end, total_quantity):
    """Slice [start, end) and total_quantity into billing intervals.

    Raises:
        InvalidRange: If start is not strictly before end.
    """
    count = count_intervals(start, end)
    allocation = to_energy(Decimal(str(total_quantity)) / count)

    intervals = []
    current = start
    while current < end:
        slice_end = min(current + INTERVAL_DURATION, end)
        intervals.append(Interval(current, slice_end, allocation))
        current = slice_end
    return intervals


def is_aligned(moment):
    """True iff moment sits exactly on a 15-minute UTC boundary."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return (
        moment.minute % 15 == 0
        and moment.second == 0
        and moment.microsecond == 0
    )

