from django.urls import path
from .views import (
    state_list_create, state_detail,
    customer_list_create, customer_detail,
    vendor_list_create, vendor_detail,
)

urlpatterns = [
    # State endpoints
    path('states/', state_list_create, name='state-list-create'),
    path('states/<int:pk>/', state_detail, name='state-detail'),

    # Customer endpoints
    path('customers/', customer_list_create, name='customer-list-create'),
    path('customers/<int:pk>/', customer_detail, name='customer-detail'),

    # Vendor endpoints
    path('vendors/', vendor_list_create, name='vendor-list-create'),
    path('vendors/<int:pk>/', vendor_detail, name='vendor-detail'),
]
