from rest_framework import serializers

from balancing.models import BalanceGroup, SettlementEntry, Tenant, Transaction


class TenantSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tenant
        fields = ["id", "name", "identifier", "status", "settings", "created_at", "updated_at"]


class BalanceGroupSerializer(serializers.ModelSerializer):
    tenant_id = serializers.UUIDField(read_only=True)
    settlement_rule = serializers.UUIDField(source="settlement_rule_id", read_only=True)

    class Meta:
        model = BalanceGroup
        fields = [
            "id", "tenant_id", "name", "start_time", "end_time",
            "status", "settlement_rule", "created_at", "updated_at",
        ]


class TransactionSerializer(serializers.ModelSerializer):
    tenant_id = serializers.UUIDField(read_only=True)
    source_id = serializers.UUIDField(read_only=True)
    destination_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Transaction
        fields = [
            "id", "tenant_id", "name", "source_id", "destination_id", "start_time",
            "end_time", "energy_amount", "status", "created_at", "updated_at",
        ]


class SettlementEntrySerializer(serializers.ModelSerializer):
    transaction_id = serializers.UUIDField(read_only=True)
    balance_group_id = serializers.UUIDField(read_only=True)
    target_group_id = serializers.UUIDField(read_only=True)
    tenant_id = serializers.UUIDField(read_only=True)
    interval = serializers.SerializerMethodField()

    class Meta:
        model = SettlementEntry
        fields = [
            "id", "transaction_id", "balance_group_id", "target_group_id", "tenant_id",
            "energy_amount", "status", "interval", "created_at", "updated_at",
        ]

    def get_interval(self, entry):
        field = serializers.DateTimeField()
        return {
            "start_time": field.to_representation(entry.interval_start),
            "end_time": field.to_representation(entry.interval_end),
        }


class IntervalSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    energy_amount = serializers.DecimalField(max_digits=20, decimal_places=6)


class BalanceIntervalSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    amount = serializers.DecimalField(max_digits=20, decimal_places=6)


class BalanceSerializer(serializers.Serializer):
    balance_group_id = serializers.CharField()
    total_amount = serializers.DecimalField(max_digits=20, decimal_places=6)
    intervals = BalanceIntervalSerializer(many=True)
