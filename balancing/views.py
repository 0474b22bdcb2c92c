"""
API Layer: Settlement Engine Endpoints (Django REST Framework)

Thin controllers: parse and coerce input, delegate to the application use
cases, and translate domain exceptions into HTTP responses. No business rules
live here; all lifecycle, tenant and settlement guarantees are enforced by the
application layer.

Error mapping:

- NotFound -> 404
- InvalidTenant -> 403
- every other BalancingError -> 400, body {"code", "message"}
- missing or unparseable request fields -> 400 before the use case runs

The calling tenant is taken from the X-Tenant-ID header.
"""

import logging
from datetime import timezone
from decimal import Decimal, InvalidOperation

from django.utils.dateparse import parse_datetime
from rest_framework import status
from rest_framework.exceptions import ParseError
from rest_framework.response import Response
from rest_framework.views import APIView

from balancing.application import (
    balance_groups,
    balances,
    settlements,
    tenants,
    transactions,
    validation,
)
from balancing.domain.exceptions import BalancingError, InvalidTenant, NotFound
from balancing.serializers import (
    BalanceGroupSerializer,
    BalanceSerializer,
    IntervalSerializer,
    SettlementEntrySerializer,
    TenantSerializer,
    TransactionSerializer,
)

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-ID"

ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidTenant: status.HTTP_403_FORBIDDEN,
}


def require_fields(data, *fields):
    missing = [field for field in fields if data.get(field) in (None, "")]
    if missing:
        raise ParseError(f"{', '.join(missing)} required.")
    return [data[field] for field in fields]


def to_datetime(value, field):
    try:
        parsed = parse_datetime(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise ParseError(f"{field} must be an ISO 8601 datetime.")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_decimal(value, field):
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        raise ParseError(f"{field} must be a number.")
    if not parsed.is_finite():
        raise ParseError(f"{field} must be a finite number.")
    return parsed


class BalancingAPIView(APIView):
    """Base view: resolves the calling tenant and maps domain errors."""

    def tenant_id(self, request):
        tenant_id = request.headers.get(TENANT_HEADER)
        if not tenant_id:
            raise ParseError(f"{TENANT_HEADER} header required.")
        return tenant_id

    def handle_exception(self, exc):
        if isinstance(exc, BalancingError):
            logger.warning("Request rejected: code=%s message=%s", exc.code, exc.message)
            return Response(
                {"code": exc.code, "message": exc.message},
                status=ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST),
            )
        return super().handle_exception(exc)


class TenantListView(BalancingAPIView):
    def get(self, request):
        return Response(TenantSerializer(tenants.list_tenants(), many=True).data)

    def post(self, request):
        name, identifier = require_fields(request.data, "name", "identifier")
        tenant = tenants.create_tenant(name, identifier, request.data.get("settings"))
        return Response(TenantSerializer(tenant).data, status=status.HTTP_201_CREATED)


class TenantDetailView(BalancingAPIView):
    def get(self, request, tenant_id):
        return Response(TenantSerializer(tenants.get_tenant(tenant_id)).data)

    def put(self, request, tenant_id):
        tenant = tenants.update_tenant(
            tenant_id,
            name=request.data.get("name"),
            settings=request.data.get("settings"),
        )
        return Response(TenantSerializer(tenant).data)


class TenantStatusView(BalancingAPIView):
    def put(self, request, tenant_id):
        (new_status,) = require_fields(request.data, "status")
        tenant = tenants.set_tenant_status(tenant_id, new_status)
        return Response(TenantSerializer(tenant).data)


class BalanceGroupListView(BalancingAPIView):
    def get(self, request):
        groups = balance_groups.list_balance_groups(self.tenant_id(request))
        return Response(BalanceGroupSerializer(groups, many=True).data)

    def post(self, request):
        name, start, end = require_fields(request.data, "name", "start_time", "end_time")
        group = balance_groups.create_balance_group(
            name,
            self.tenant_id(request),
            to_datetime(start, "start_time"),
            to_datetime(end, "end_time"),
            settlement_rule=request.data.get("settlement_rule"),
        )
        return Response(BalanceGroupSerializer(group).data, status=status.HTTP_201_CREATED)


class BalanceGroupDetailView(BalancingAPIView):
    def get(self, request, balance_group_id):
        group = balance_groups.find_balance_group(balance_group_id, self.tenant_id(request))
        return Response(BalanceGroupSerializer(group).data)

    def put(self, request, balance_group_id):
        group = balance_groups.update_balance_group(
            balance_group_id,
            self.tenant_id(request),
            name=request.data.get("name"),
            settlement_rule=request.data.get("settlement_rule", balance_groups.UNCHANGED),
        )
        return Response(BalanceGroupSerializer(group).data)


class BalanceGroupFinalView(BalancingAPIView):
    def put(self, request, balance_group_id):
        group = balance_groups.set_final(balance_group_id, self.tenant_id(request))
        return Response(BalanceGroupSerializer(group).data)


class BalanceView(BalancingAPIView):
    """GET /api/balance-groups/<id>/balance/?start_time=...&end_time=..."""

    def get(self, request, balance_group_id):
        start, end = require_fields(request.query_params, "start_time", "end_time")
        report = balances.get_balance(
            balance_group_id,
            to_datetime(start, "start_time"),
            to_datetime(end, "end_time"),
            self.tenant_id(request),
        )
        return Response(BalanceSerializer(report).data)


class TransactionListView(BalancingAPIView):
    QUERY_PARAMS = ("source_id", "destination_id", "balance_group_id", "status")

    def get(self, request):
        query = {key: request.query_params[key] for key in self.QUERY_PARAMS if key in request.query_params}
        for key in ("start_time", "end_time"):
            if key in request.query_params:
                query[key] = to_datetime(request.query_params[key], key)
        found = transactions.list_transactions(self.tenant_id(request), query)
        return Response(TransactionSerializer(found, many=True).data)

    def post(self, request):
        name, source_id, destination_id, start, end, amount = require_fields(
            request.data, "name", "source_id", "destination_id", "start_time", "end_time", "energy_amount",
        )
        tx = transactions.create_transaction(
            name,
            source_id,
            destination_id,
            to_datetime(start, "start_time"),
            to_datetime(end, "end_time"),
            to_decimal(amount, "energy_amount"),
            self.tenant_id(request),
        )
        return Response(TransactionSerializer(tx).data, status=status.HTTP_201_CREATED)


class TransactionDetailView(BalancingAPIView):
    def get(self, request, transaction_id):
        tx = transactions.get_transaction(transaction_id, self.tenant_id(request))
        return Response(TransactionSerializer(tx).data)


class TransactionFinalizeView(BalancingAPIView):
    def put(self, request, transaction_id):
        tx = transactions.finalize_transaction(transaction_id, self.tenant_id(request))
        return Response(TransactionSerializer(tx).data)


class TransactionIntervalsView(BalancingAPIView):
    def get(self, request, transaction_id):
        slices = transactions.get_intervals(transaction_id, self.tenant_id(request))
        return Response(IntervalSerializer(slices, many=True).data)


class SettlementCalculationView(BalancingAPIView):
    def post(self, request, transaction_id):
        entries = settlements.calculate_settlement(transaction_id, self.tenant_id(request))
        return Response(SettlementEntrySerializer(entries, many=True).data)


class SettlementListView(BalancingAPIView):
    def get(self, request, transaction_id):
        entries = settlements.find_by_transaction(transaction_id, self.tenant_id(request))
        return Response(SettlementEntrySerializer(entries, many=True).data)


class ValidateBalanceGroupView(BalancingAPIView):
    def post(self, request):
        name, start, end = require_fields(request.data, "name", "start_time", "end_time")
        validation.validate_balance_group(
            name,
            to_datetime(start, "start_time"),
            to_datetime(end, "end_time"),
            self.tenant_id(request),
            settlement_rule=request.data.get("settlement_rule"),
        )
        return Response({"valid": True})


class ValidateTransactionView(BalancingAPIView):
    def post(self, request):
        source_id, destination_id, start, end, amount = require_fields(
            request.data, "source_id", "destination_id", "start_time", "end_time", "energy_amount",
        )
        validation.validate_transaction(
            source_id,
            destination_id,
            to_datetime(start, "start_time"),
            to_datetime(end, "end_time"),
            to_decimal(amount, "energy_amount"),
            self.tenant_id(request),
        )
        return Response({"valid": True})


class ValidateSettlementView(BalancingAPIView):
    def post(self, request):
        group_id, target_id, amount, start, end = require_fields(
            request.data, "balance_group_id", "target_group_id", "energy_amount",
            "interval_start", "interval_end",
        )
        validation.validate_settlement(
            group_id,
            target_id,
            to_decimal(amount, "energy_amount"),
            to_datetime(start, "interval_start"),
            to_datetime(end, "interval_end"),
            self.tenant_id(request),
        )
        return Response({"valid": True})
