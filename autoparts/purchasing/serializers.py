from collections import defaultdict
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from rest_framework import serializers

from autoparts.catalog.models import Product
from autoparts.core.gst import split_gst, state_code_for
from autoparts.core.utils import create_audit_log, financial_year_for
from autoparts.parties.models import State, Vendor
from .models import Purchase, PurchaseItem

VENDOR_FIELDS = ['vendor_name', 'contact_number', 'email_id', 'address', 'city', 'state', 'gst_number']
TWO_PLACES = Decimal('0.01')


class PurchaseItemSerializer(serializers.ModelSerializer):
    product_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = PurchaseItem
        fields = ['id', 'product_id', 'product_name', 'invoice_date', 'qty', 'rate', 'tax', 'total']


class PurchaseSerializer(serializers.ModelSerializer):
    vendor_name = serializers.CharField(source='vendor.vendor_name', read_only=True)
    items = PurchaseItemSerializer(many=True, read_only=True)

    class Meta:
        model = Purchase
        fields = [
            'id', 'vendor', 'vendor_name', 'invoice_no', 'bill_reference', 'invoice_date', 'fy',
            'staff_details', 'transport_name', 'vehicle_number', 'transport_cost',
            'subtotal', 'total_tax', 'total_cgst', 'total_sgst', 'total_igst', 'total', 'notes', 'items',
            'created_at', 'updated_at',
        ]


def reverse_purchase_items(purchase):
    """Take the purchase's stock back out and delete its items"""
    stock_delta = defaultdict(int)
    for product_id, qty in purchase.items.values_list('product_id', 'qty'):
        if product_id:
            stock_delta[product_id] += qty
    for product_id, qty in stock_delta.items():
        Product.objects.filter(pk=product_id).update(stock=F('stock') - qty)
    purchase.items.all().delete()


class PurchaseItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    qty = serializers.IntegerField(min_value=1)
    rate = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'))
    tax = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal('0'), required=False, default=Decimal('0.00'))


class PurchaseWriteSerializer(serializers.Serializer):
    """
    Purchase invoice entry: vendor details, invoice header and line items.

    Saving runs as one transaction: vendor upsert, purchase insert, line item
    inserts and stock increments either all happen or none do.
    """
    # Vendor
    vendor_name = serializers.CharField(max_length=200)
    contact_number = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    email_id = serializers.EmailField(required=False, allow_blank=True, default='')
    address = serializers.CharField(required=False, allow_blank=True, default='')
    city = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    state = serializers.PrimaryKeyRelatedField(queryset=State.objects.all(), required=False, allow_null=True, default=None)
    gst_number = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')

    # Invoice
    invoice_number = serializers.CharField(source='invoice_no', max_length=100)
    bill_reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    date = serializers.DateField(source='invoice_date')
    staff_details = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    transport_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    vehicle_number = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    transport_cost = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False, default=Decimal('0.00'))
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    items = PurchaseItemInputSerializer(many=True)

    def validate_vendor_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Vendor name is required")
        return value

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required")
        product_ids = {item['product_id'] for item in value}
        products = Product.objects.in_bulk(product_ids)
        missing = sorted(pk for pk in product_ids if pk not in products)
        if missing:
            raise serializers.ValidationError(f"Invalid product selected: {', '.join(str(pk) for pk in missing)}")
        self._products = products
        return value

    def _split(self, validated_data):
        vendor_data = {field: validated_data.pop(field) for field in VENDOR_FIELDS if field in validated_data}
        items_data = validated_data.pop('items')
        return vendor_data, items_data, validated_data

    def _write_items(self, purchase, items_data):
        """Insert line items, bump stock and set the purchase totals"""
        products = getattr(self, '_products', None) or Product.objects.in_bulk({item['product_id'] for item in items_data})
        line_items = []
        stock_delta = defaultdict(int)
        subtotal = Decimal('0.00')
        total_tax = Decimal('0.00')

        for item in items_data:
            product = products[item['product_id']]
            line_subtotal = (item['rate'] * item['qty']).quantize(TWO_PLACES)
            line_tax = (line_subtotal * item['tax'] / Decimal('100')).quantize(TWO_PLACES)
            line_items.append(PurchaseItem(
                purchase=purchase,
                product=product,
                product_name=product.product_name,
                invoice_date=purchase.invoice_date,
                qty=item['qty'],
                rate=item['rate'],
                tax=item['tax'],
                total=line_subtotal + line_tax,
            ))
            stock_delta[product.pk] += item['qty']
            subtotal += line_subtotal
            total_tax += line_tax

        PurchaseItem.objects.bulk_create(line_items)
        for product_id, qty in stock_delta.items():
            Product.objects.filter(pk=product_id).update(stock=F('stock') + qty)

        vendor = purchase.vendor
        vendor_state = state_code_for(vendor.state.code if vendor.state_id else '', vendor.gst_number)
        purchase.total_cgst, purchase.total_sgst, purchase.total_igst = split_gst(total_tax, vendor_state)

        purchase.subtotal = subtotal
        purchase.total_tax = total_tax
        purchase.total = subtotal + total_tax + (purchase.transport_cost or Decimal('0.00'))
        purchase.save(update_fields=[
            'subtotal', 'total_tax', 'total_cgst', 'total_sgst', 'total_igst', 'total', 'updated_at',
        ])

    def create(self, validated_data):
        request = self.context.get('request')
        vendor_data, items_data, purchase_data = self._split(validated_data)

        with transaction.atomic():
            vendor, _created = Vendor.objects.upsert(**vendor_data)
            purchase = Purchase.objects.create(
                vendor=vendor,
                fy=financial_year_for(purchase_data['invoice_date']),
                created_by=request.user if request and request.user.is_authenticated else None,
                **purchase_data
            )
            self._write_items(purchase, items_data)
            create_audit_log(
                request=request,
                action='purchase_create',
                model_name='Purchase',
                object_id=purchase.id,
                object_name=vendor.vendor_name,
                object_reference=purchase.invoice_no,
                changes={'items': len(items_data), 'total': str(purchase.total)},
            )
        return purchase

    def update(self, instance, validated_data):
        request = self.context.get('request')
        vendor_data, items_data, purchase_data = self._split(validated_data)

        with transaction.atomic():
            vendor, _created = Vendor.objects.upsert(**vendor_data)
            instance.vendor = vendor
            for attr, value in purchase_data.items():
                setattr(instance, attr, value)
            instance.fy = financial_year_for(instance.invoice_date)
            instance.save()

            reverse_purchase_items(instance)
            self._write_items(instance, items_data)
            create_audit_log(
                request=request,
                action='purchase_update',
                model_name='Purchase',
                object_id=instance.id,
                object_name=vendor.vendor_name,
                object_reference=instance.invoice_no,
                changes={'items': len(items_data), 'total': str(instance.total)},
            )
        return instance


def delete_purchase(purchase, request=None):
    """Delete a purchase, its items first, and take their stock back out"""
    with transaction.atomic():
        purchase_id = purchase.id
        invoice_no = purchase.invoice_no
        reverse_purchase_items(purchase)
        purchase.delete()
        create_audit_log(
            request=request,
            action='purchase_delete',
            model_name='Purchase',
            object_id=purchase_id,
            object_reference=invoice_no,
        )


class PurchaseSummarySerializer(serializers.ModelSerializer):
    """Purchase header for listings; vendor name and item count are attached in batch"""

    class Meta:
        model = Purchase
        fields = [
            'id', 'vendor', 'invoice_no', 'bill_reference', 'invoice_date', 'fy',
            'subtotal', 'total_tax', 'total_cgst', 'total_sgst', 'total_igst', 'total', 'notes', 'created_at',
        ]
