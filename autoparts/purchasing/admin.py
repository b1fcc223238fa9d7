from django.contrib import admin
from .models import Purchase, PurchaseItem


class PurchaseItemInline(admin.TabularInline):
    model = PurchaseItem
    extra = 0
    readonly_fields = ['invoice_date']


@admin.register(Purchase)
class PurchaseAdmin(admin.ModelAdmin):
    list_display = ['invoice_no', 'vendor', 'invoice_date', 'fy', 'total', 'created_by', 'created_at']
    list_filter = ['fy', 'invoice_date']
    search_fields = ['invoice_no', 'bill_reference', 'vendor__vendor_name']
    ordering = ['-invoice_date', '-id']
    inlines = [PurchaseItemInline]
