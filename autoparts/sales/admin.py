from django.contrib import admin
from .models import Invoice, InvoiceItem


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice_no', 'billing_name', 'invoice_date', 'place_of_supply', 'payment_mode', 'total', 'created_at']
    list_filter = ['payment_mode', 'fy', 'invoice_date']
    search_fields = ['invoice_no', 'billing_name', 'contact_no']
    ordering = ['-invoice_date', '-id']
    inlines = [InvoiceItemInline]
