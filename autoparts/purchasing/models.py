from django.db import models
from decimal import Decimal
from autoparts.catalog.models import Product
from autoparts.parties.models import Vendor
from autoparts.core.models import User


class Purchase(models.Model):
    """Purchase invoice from a vendor"""
    vendor = models.ForeignKey(Vendor, on_delete=models.PROTECT, related_name='purchases')
    invoice_no = models.CharField(max_length=100, db_index=True)  # Invoice number printed by the vendor
    bill_reference = models.CharField(max_length=100, blank=True)
    invoice_date = models.DateField(db_index=True)
    fy = models.IntegerField(db_index=True)  # Financial year start, e.g. 2024 for 2024-25
    staff_details = models.CharField(max_length=200, blank=True)
    transport_name = models.CharField(max_length=200, blank=True)
    vehicle_number = models.CharField(max_length=50, blank=True)
    transport_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_tax = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_cgst = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_sgst = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_igst = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='purchases')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.invoice_no or f"Purchase-{self.id}"

    def get_subtotal(self):
        """Calculate subtotal from all items"""
        return sum((item.get_line_subtotal() for item in self.items.all()), Decimal('0.00'))

    def get_total(self):
        """Items total (tax included) plus transport"""
        items_total = sum((item.total for item in self.items.all()), Decimal('0.00'))
        return items_total + (self.transport_cost or Decimal('0.00'))

    class Meta:
        db_table = 'purchases'
        ordering = ['-invoice_date', '-id']
        indexes = [
            models.Index(fields=['vendor', 'invoice_date'], name='idx_purchase_vendor_date'),
            models.Index(fields=['-invoice_date', '-id'], name='idx_purchase_date_id'),
        ]


class PurchaseItem(models.Model):
    """Purchase line items; invoice_date is copied from the purchase for rate lookups"""
    purchase = models.ForeignKey(Purchase, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_items')
    product_name = models.CharField(max_length=255, blank=True)
    invoice_date = models.DateField()
    qty = models.IntegerField()
    rate = models.DecimalField(max_digits=12, decimal_places=2)
    tax = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))  # GST percent
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))

    def get_line_subtotal(self):
        """qty * rate before tax"""
        return self.qty * self.rate

    def get_line_total(self):
        """qty * rate with tax"""
        subtotal = self.get_line_subtotal()
        return (subtotal + subtotal * self.tax / Decimal('100')).quantize(Decimal('0.01'))

    def __str__(self):
        return f"{self.product_name or self.product_id} x {self.qty}"

    class Meta:
        db_table = 'purchase_items'
        ordering = ['id']
        indexes = [
            models.Index(fields=['product', 'invoice_date'], name='idx_puritem_product_date'),
        ]
