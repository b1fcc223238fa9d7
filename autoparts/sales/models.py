from django.db import models
from decimal import Decimal
from autoparts.catalog.models import Product
from autoparts.parties.models import Customer
from autoparts.core.models import User


class Invoice(models.Model):
    """Sales invoice"""
    PAYMENT_MODE_CHOICES = [
        ('cash', 'Cash'),
        ('upi', 'UPI'),
        ('card', 'Card'),
        ('credit', 'Credit'),
        ('bank', 'Bank Transfer'),
    ]

    invoice_no = models.CharField(max_length=100, unique=True)
    invoice_date = models.DateField(db_index=True)
    fy = models.IntegerField(db_index=True)  # Financial year start, e.g. 2024 for 2024-25
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices')
    # Billing snapshot, kept even if the customer record changes
    billing_name = models.CharField(max_length=200)
    billing_address = models.TextField(blank=True)
    billing_gstin = models.CharField(max_length=20, blank=True)
    contact_no = models.CharField(max_length=20, blank=True)
    shipping_name = models.CharField(max_length=200, blank=True)
    shipping_address = models.TextField(blank=True)
    shipping_gstin = models.CharField(max_length=20, blank=True)
    shipping_state_code = models.CharField(max_length=5, blank=True)
    place_of_supply = models.CharField(max_length=5, blank=True)  # GST state code deciding IGST vs CGST + SGST
    transport_name = models.CharField(max_length=200, blank=True)
    vehicle_number = models.CharField(max_length=50, blank=True)
    transport_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    payment_mode = models.CharField(max_length=20, choices=PAYMENT_MODE_CHOICES, default='cash')
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_tax = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_cgst = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_sgst = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_igst = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.invoice_no

    class Meta:
        db_table = 'invoices'
        ordering = ['-invoice_date', '-id']
        indexes = [
            models.Index(fields=['-invoice_date', '-id'], name='idx_invoice_date_id'),
        ]


class InvoiceItem(models.Model):
    """Invoice line items"""
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoice_items')
    product_name = models.CharField(max_length=255, blank=True)
    part_no = models.CharField(max_length=100, blank=True)
    hsn = models.CharField(max_length=20, blank=True)
    qty = models.IntegerField()
    rate = models.DecimalField(max_digits=12, decimal_places=2)
    tax = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))  # GST percent
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))

    def __str__(self):
        return f"{self.product_name or self.product_id} x {self.qty}"

    class Meta:
        db_table = 'invoice_items'
        ordering = ['id']
