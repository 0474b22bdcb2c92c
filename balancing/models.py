"""
Persistence Models: Balancing Domain (Django ORM)

This module defines the persistence layer of the settlement engine: tenants,
balance groups, energy transactions between them, and the settlement entries
derived from those transactions.

Key architectural decisions:

- Every record is scoped to a Tenant; no query crosses tenant scope.
- Lifecycle status is a one-way provisional -> final switch on balance
  groups, transactions and settlement entries.
- Settlement entries are derived data. A UNIQUE constraint on
  (transaction, balance_group, interval_start) makes the settlement batch
  insert idempotent under concurrent recomputation.
- Each model exposes its storage operations through a custom QuerySet, so the
  use cases depend on named queries rather than ad-hoc filters.
- created_at / updated_at are maintained on every mutation.
"""

import uuid

from django.db import models
from django.db.models import Q
from django.utils import timezone


class Status(models.TextChoices):
    PROVISIONAL = "provisional", "Provisional"
    FINAL = "final", "Final"


def parse_id(value):
    """Return value as a UUID, or None when it is not a well-formed id."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class RecordQuerySet(models.QuerySet):
    def find(self, pk):
        """Return the record with this id, or None (malformed ids included)."""
        pk = parse_id(pk)
        if pk is None:
            return None
        return self.filter(pk=pk).first()


class TenantScopedQuerySet(RecordQuerySet):
    def for_tenant(self, tenant_id):
        tenant_id = parse_id(tenant_id)
        if tenant_id is None:
            return self.none()
        return self.filter(tenant_id=tenant_id)


class TenantScopedModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def belongs_to(self, tenant_id):
        return self.tenant_id == parse_id(tenant_id)


class Tenant(models.Model):
    """Isolation boundary for every other record. Never hard-deleted."""

    class State(models.TextChoices):
        ACTIVE = "active", "Active"
        INACTIVE = "inactive", "Inactive"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    identifier = models.CharField(max_length=100, unique=True)
    status = models.CharField(max_length=16, choices=State.choices, default=State.ACTIVE)
    settings = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = RecordQuerySet.as_manager()

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"Tenant {self.identifier} ({self.status})"

    @property
    def is_active(self):
        return self.status == self.State.ACTIVE


class BalanceGroup(TenantScopedModel):
    """
    A scoped account bucket with a validity window.

    settlement_rule points at the target group that collects this group's
    settlement entries. Groups without a rule are not settled.
    """

    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name="balance_groups")
    name = models.CharField(max_length=200)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PROVISIONAL)
    settlement_rule = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="settled_groups",
    )

    objects = TenantScopedQuerySet.as_manager()

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["tenant", "status"], name="balancing_b_tenant__8a1f3c_idx"),
        ]

    def __str__(self):
        return f"BalanceGroup {self.name} ({self.status})"

    @property
    def is_final(self):
        return self.status == Status.FINAL

    def covers(self, start, end):
        return self.start_time <= start and end <= self.end_time


class TransactionQuerySet(TenantScopedQuerySet):
    def touching_group(self, balance_group_id):
        return self.filter(Q(source_id=balance_group_id) | Q(destination_id=balance_group_id))

    def overlapping(self, start, end):
        return self.filter(start_time__lt=end, end_time__gt=start)


class Transaction(TenantScopedModel):
    """A directed energy transfer from source to destination over [start, end)."""

    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name="transactions")
    name = models.CharField(max_length=200)
    source = models.ForeignKey(BalanceGroup, on_delete=models.PROTECT, related_name="outgoing_transactions")
    destination = models.ForeignKey(BalanceGroup, on_delete=models.PROTECT, related_name="incoming_transactions")
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    energy_amount = models.DecimalField(max_digits=20, decimal_places=6)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PROVISIONAL)

    objects = TransactionQuerySet.as_manager()

    class Meta:
        ordering = ["start_time", "created_at"]
        indexes = [
            models.Index(fields=["tenant", "start_time"], name="balancing_t_tenant__4d2e9b_idx"),
        ]

    def __str__(self):
        return f"Transaction {self.name} {self.energy_amount} ({self.status})"

    @property
    def is_final(self):
        return self.status == Status.FINAL


class SettlementEntryQuerySet(TenantScopedQuerySet):
    def for_transaction(self, transaction_id, tenant_id):
        transaction_id = parse_id(transaction_id)
        if transaction_id is None:
            return self.none()
        return self.for_tenant(tenant_id).filter(transaction_id=transaction_id)

    def for_group(self, balance_group_id, tenant_id):
        balance_group_id = parse_id(balance_group_id)
        if balance_group_id is None:
            return self.none()
        return self.for_tenant(tenant_id).filter(balance_group_id=balance_group_id)

    def within(self, start, end):
        return self.filter(interval_start__gte=start, interval_end__lte=end)

    def finalize(self):
        """Conditional bulk update; returns the number of rows transitioned."""
        return self.filter(status=Status.PROVISIONAL).update(
            status=Status.FINAL,
            updated_at=timezone.now(),
        )


class SettlementEntry(TenantScopedModel):
    """
    One party's signed contribution to its settlement target for one interval
    of one transaction. Positive for the source, negative for the destination.
    """

    transaction = models.ForeignKey(Transaction, on_delete=models.PROTECT, related_name="settlement_entries")
    balance_group = models.ForeignKey(BalanceGroup, on_delete=models.PROTECT, related_name="settlement_entries")
    target_group = models.ForeignKey(BalanceGroup, on_delete=models.PROTECT, related_name="collected_entries")
    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name="settlement_entries")
    energy_amount = models.DecimalField(max_digits=20, decimal_places=6)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PROVISIONAL)
    interval_start = models.DateTimeField()
    interval_end = models.DateTimeField()

    objects = SettlementEntryQuerySet.as_manager()

    class Meta:
        ordering = ["interval_start", "-energy_amount"]
        constraints = [
            # Enforces at most one computation per transaction under races.
            models.UniqueConstraint(
                fields=["transaction", "balance_group", "interval_start"],
                name="uniq_settlement_entry_per_interval",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "balance_group", "interval_start"], name="balancing_s_tenant__c7b05e_idx"),
        ]

    def __str__(self):
        return f"SettlementEntry {self.balance_group_id} {self.interval_start} {self.energy_amount}"

    @property
    def is_final(self):
        return self.status == Status.FINAL
