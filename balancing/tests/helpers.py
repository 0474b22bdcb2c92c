from datetime import datetime, timedelta, timezone

from balancing.application.balance_groups import create_balance_group
from balancing.application.tenants import create_tenant
from balancing.application.transactions import create_transaction

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
DAY_END = T0 + timedelta(days=1)


def at(minutes):
    return T0 + timedelta(minutes=minutes)


class BalancingFixtures:
    """
    Two tenants. The main tenant owns:

    - target: collects settlement entries, has no rule itself
    - group_a, group_b: both settle into target
    - unregulated: no settlement rule
    """

    def setUp(self):
        super().setUp()
        self.tenant = create_tenant("Stadtwerke Nord", "sw-nord")
        self.other_tenant = create_tenant("Stadtwerke Sued", "sw-sued")

        self.target = create_balance_group("Target", self.tenant.id, T0, DAY_END)
        self.group_a = create_balance_group("A", self.tenant.id, T0, DAY_END, settlement_rule=str(self.target.id))
        self.group_b = create_balance_group("B", self.tenant.id, T0, DAY_END, settlement_rule=str(self.target.id))
        self.unregulated = create_balance_group("Unregulated", self.tenant.id, T0, DAY_END)

        self.foreign_group = create_balance_group("Foreign", self.other_tenant.id, T0, DAY_END)

    def make_transaction(self, source, destination, start, end, amount, name="transfer"):
        return create_transaction(name, source.id, destination.id, start, end, amount, self.tenant.id)
