from django.urls import path

from . import views

urlpatterns = [
    path("tenants/", views.TenantListView.as_view(), name="tenant-list"),
    path("tenants/<str:tenant_id>/", views.TenantDetailView.as_view(), name="tenant-detail"),
    path("tenants/<str:tenant_id>/status/", views.TenantStatusView.as_view(), name="tenant-status"),
    path("balance-groups/", views.BalanceGroupListView.as_view(), name="balance-group-list"),
    path("balance-groups/<str:balance_group_id>/", views.BalanceGroupDetailView.as_view(), name="balance-group-detail"),
    path("balance-groups/<str:balance_group_id>/final/", views.BalanceGroupFinalView.as_view(), name="balance-group-final"),
    path("balance-groups/<str:balance_group_id>/balance/", views.BalanceView.as_view(), name="balance-group-balance"),
    path("transactions/", views.TransactionListView.as_view(), name="transaction-list"),
    path("transactions/<str:transaction_id>/", views.TransactionDetailView.as_view(), name="transaction-detail"),
    path("transactions/<str:transaction_id>/finalize/", views.TransactionFinalizeView.as_view(), name="transaction-finalize"),
    path("transactions/<str:transaction_id>/intervals/", views.TransactionIntervalsView.as_view(), name="transaction-intervals"),
    path("transactions/<str:transaction_id>/settlement/", views.SettlementCalculationView.as_view(), name="settlement-calculate"),
    path("transactions/<str:transaction_id>/settlements/", views.SettlementListView.as_view(), name="settlement-list"),
    path("validation/balance-group/", views.ValidateBalanceGroupView.as_view(), name="validate-balance-group"),
    path("validation/transaction/", views.ValidateTransactionView.as_view(), name="validate-transaction"),
    path("validation/settlement/", views.ValidateSettlementView.as_view(), name="validate-settlement"),
]
