from django.urls import path
from .views import purchase_list_create, purchase_detail, last_invoice, latest_rates

urlpatterns = [
    path('purchases/', purchase_list_create, name='purchase-list-create'),
    path('purchases/last-invoice/', last_invoice, name='purchase-last-invoice'),
    path('purchases/latest-rates/', latest_rates, name='purchase-latest-rates'),
    path('purchases/<int:pk>/', purchase_detail, name='purchase-detail'),
]
