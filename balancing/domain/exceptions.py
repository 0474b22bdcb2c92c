class BalancingError(Exception):
    """Base class for every rule violation raised by the settlement engine."""

    code = "BALANCING_ERROR"
    default_message = "Balancing operation failed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRange(BalancingError):
    """Raised when a span handed to the interval splitter is empty or inverted."""

    code = "INVALID_RANGE"
    default_message = "Start must be before end"

    def __init__(self, start, end):
        self.start = start
        self.end = end
        super().__init__(f"Invalid range: start {start} is not before end {end}")


class InvalidTimeframe(BalancingError):
    code = "INVALID_TIMEFRAME"
    default_message = "Start time must be before end time"


class InvalidAlignment(BalancingError):
    code = "INVALID_TIME_ALIGNMENT"
    default_message = "Time must be aligned to 15-minute intervals"


class InvalidEnergyAmount(BalancingError):
    code = "INVALID_ENERGY_AMOUNT"
    default_message = "Energy amount must be positive"


class InvalidBalanceGroup(BalancingError):
    code = "INVALID_BALANCE_GROUP"
    default_message = "Balance group not found"


class InvalidBalanceGroupStatus(BalancingError):
    code = "INVALID_BALANCE_GROUP_STATUS"
    default_message = "Cannot create transaction for finalized balance group"


class InvalidSettlementRule(BalancingError):
    code = "INVALID_SETTLEMENT_RULE"
    default_message = "Settlement rule refers to non-existent balance group"


class InvalidTenantReference(BalancingError):
    code = "INVALID_TENANT_REFERENCE"
    default_message = "Referenced entity must belong to the same tenant"


class InvalidTenant(BalancingError):
    """Raised when an entity is owned by another tenant, or the calling
    tenant is unknown or inactive.

    Settlement calculation also raises it for an absent transaction.
    """

    code = "INVALID_TENANT"
    default_message = "Invalid tenant"


class NotFound(BalancingError):
    code = "NOT_FOUND"
    default_message = "Not found"


class ValidationError(BalancingError):
    """Raised when a lifecycle rule forbids the requested state change."""

    code = "VALIDATION_ERROR"
    default_message = "Validation failed"
