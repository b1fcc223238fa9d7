from django.contrib import admin
from .models import State, Customer, Vendor


@admin.register(State)
class StateAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'created_at']
    search_fields = ['name', 'code']
    ordering = ['name']


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['billing_name', 'contact_no', 'email', 'billing_gstin', 'billing_state', 'created_at']
    list_filter = ['billing_state', 'created_at']
    search_fields = ['billing_name', 'contact_no', 'email', 'billing_gstin']
    ordering = ['billing_name']


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ['vendor_name', 'contact_number', 'email_id', 'gst_number', 'city', 'created_at']
    list_filter = ['state', 'created_at']
    search_fields = ['vendor_name', 'contact_number', 'gst_number']
    ordering = ['vendor_name']
