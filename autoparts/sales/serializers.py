from collections import defaultdict
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from rest_framework import serializers

from autoparts.catalog.models import Product
from autoparts.core.gst import split_gst, state_code_for
from autoparts.core.utils import create_audit_log, financial_year_for
from autoparts.parties.models import Customer
from .models import Invoice, InvoiceItem

TWO_PLACES = Decimal('0.01')


class InvoiceItemSerializer(serializers.ModelSerializer):
    product_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = InvoiceItem
        fields = ['id', 'product_id', 'product_name', 'part_no', 'hsn', 'qty', 'rate', 'tax', 'total']


class InvoiceSerializer(serializers.ModelSerializer):
    items = InvoiceItemSerializer(many=True, read_only=True)

    class Meta:
        model = Invoice
        fields = [
            'id', 'invoice_no', 'invoice_date', 'fy', 'customer', 'billing_name', 'billing_address',
            'billing_gstin', 'contact_no', 'shipping_name', 'shipping_address', 'shipping_gstin',
            'shipping_state_code', 'place_of_supply', 'transport_name', 'vehicle_number', 'transport_cost',
            'payment_mode', 'subtotal', 'total_tax', 'total_cgst', 'total_sgst', 'total_igst', 'total',
            'notes', 'items', 'created_at', 'updated_at',
        ]


class InvoiceSummarySerializer(serializers.ModelSerializer):
    """Invoice header for listings; item count is attached in batch"""

    class Meta:
        model = Invoice
        fields = [
            'id', 'invoice_no', 'invoice_date', 'fy', 'customer', 'billing_name',
            'payment_mode', 'subtotal', 'total_tax', 'total_cgst', 'total_sgst', 'total_igst', 'total',
            'created_at',
        ]


class InvoiceItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    qty = serializers.IntegerField(min_value=1)
    rate = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'))
    tax = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal('0'), required=False, default=None, allow_null=True)


class InvoiceWriteSerializer(serializers.Serializer):
    """
    Sales invoice entry. Stock for every line is checked and decremented in
    the same transaction as the invoice insert; a short line rejects the
    whole invoice. Billing, shipping and transport details are stored on the
    invoice as a snapshot.
    """
    invoice_no = serializers.CharField(max_length=100)
    invoice_date = serializers.DateField()
    customer = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.all(), required=False, allow_null=True, default=None)
    billing_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    billing_address = serializers.CharField(required=False, allow_blank=True, default='')
    billing_gstin = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    contact_no = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')

    # Shipping
    shipping_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    shipping_address = serializers.CharField(required=False, allow_blank=True, default='')
    shipping_gstin = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    shipping_state_code = serializers.CharField(max_length=5, required=False, allow_blank=True, default='')
    place_of_supply = serializers.CharField(max_length=5, required=False, allow_blank=True, default='')

    # Transport
    transport_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    vehicle_number = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    transport_cost = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False, default=Decimal('0.00'))

    payment_mode = serializers.ChoiceField(choices=Invoice.PAYMENT_MODE_CHOICES, required=False, default='cash')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    items = InvoiceItemInputSerializer(many=True)

    def validate_invoice_no(self, value):
        value = value.strip()
        if Invoice.objects.filter(invoice_no=value).exists():
            raise serializers.ValidationError("Invoice number already exists")
        return value

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required")
        product_ids = {item['product_id'] for item in value}
        found = set(Product.objects.filter(pk__in=product_ids).values_list('pk', flat=True))
        missing = sorted(pk for pk in product_ids if pk not in found)
        if missing:
            raise serializers.ValidationError(f"Invalid product selected: {', '.join(str(pk) for pk in missing)}")
        return value

    def validate(self, data):
        customer = data.get('customer')
        billing_state_code = ''
        if customer is not None:
            # Fill the billing and shipping snapshot from the customer where not given
            data['billing_name'] = data.get('billing_name') or customer.billing_name
            data['billing_address'] = data.get('billing_address') or customer.billing_address
            data['billing_gstin'] = data.get('billing_gstin') or customer.billing_gstin
            data['contact_no'] = data.get('contact_no') or customer.contact_no
            for field in ('shipping_name', 'shipping_address', 'shipping_gstin', 'shipping_state_code'):
                data[field] = data.get(field) or getattr(customer, field)
            billing_state_code = customer.billing_state_code
        if not data.get('billing_name', '').strip():
            raise serializers.ValidationError({'billing_name': "Billing name is required"})

        # Goods are supplied where they are shipped to, else where they are billed
        data['place_of_supply'] = (
            state_code_for(data.get('place_of_supply'))
            or state_code_for(data.get('shipping_state_code'), data.get('shipping_gstin'))
            or state_code_for(billing_state_code, data.get('billing_gstin'))
        )
        return data

    def create(self, validated_data):
        request = self.context.get('request')
        items_data = validated_data.pop('items')

        with transaction.atomic():
            requested = defaultdict(int)
            for item in items_data:
                requested[item['product_id']] += item['qty']
            products = Product.objects.select_for_update().in_bulk(list(requested))

            short = [
                f"{products[pk].product_name} (available {products[pk].stock}, requested {qty})"
                for pk, qty in requested.items() if products[pk].stock < qty
            ]
            if short:
                raise serializers.ValidationError({'items': [f"Insufficient stock: {', '.join(short)}"]})

            invoice = Invoice.objects.create(
                fy=financial_year_for(validated_data['invoice_date']),
                created_by=request.user if request and request.user.is_authenticated else None,
                **validated_data
            )

            line_items = []
            subtotal = Decimal('0.00')
            total_tax = Decimal('0.00')
            for item in items_data:
                product = products[item['product_id']]
                tax = item['tax'] if item.get('tax') is not None else product.gst_rate
                line_subtotal = (item['rate'] * item['qty']).quantize(TWO_PLACES)
                line_tax = (line_subtotal * tax / Decimal('100')).quantize(TWO_PLACES)
                line_items.append(InvoiceItem(
                    invoice=invoice,
                    product=product,
                    product_name=product.product_name,
                    part_no=product.part_no or '',
                    hsn=product.hsn or '',
                    qty=item['qty'],
                    rate=item['rate'],
                    tax=tax,
                    total=line_subtotal + line_tax,
                ))
                subtotal += line_subtotal
                total_tax += line_tax

            InvoiceItem.objects.bulk_create(line_items)
            for product_id, qty in requested.items():
                Product.objects.filter(pk=product_id).update(stock=F('stock') - qty)

            invoice.total_cgst, invoice.total_sgst, invoice.total_igst = split_gst(total_tax, invoice.place_of_supply)
            invoice.subtotal = subtotal
            invoice.total_tax = total_tax
            invoice.total = subtotal + total_tax + (invoice.transport_cost or Decimal('0.00'))
            invoice.save(update_fields=[
                'subtotal', 'total_tax', 'total_cgst', 'total_sgst', 'total_igst', 'total', 'updated_at',
            ])

            create_audit_log(
                request=request,
                action='invoice_create',
                model_name='Invoice',
                object_id=invoice.id,
                object_name=invoice.billing_name,
                object_reference=invoice.invoice_no,
                changes={'items': len(line_items), 'total': str(invoice.total)},
            )
        return invoice


def delete_invoice(invoice, request=None):
    """Delete an invoice and put its quantities back into stock"""
    with transaction.atomic():
        invoice_id = invoice.id
        invoice_no = invoice.invoice_no
        restock = defaultdict(int)
        for product_id, qty in invoice.items.values_list('product_id', 'qty'):
            if product_id:
                restock[product_id] += qty
        for product_id, qty in restock.items():
            Product.objects.filter(pk=product_id).update(stock=F('stock') + qty)
        invoice.items.all().delete()
        invoice.delete()
        create_audit_log(
            request=request,
            action='invoice_delete',
            model_name='Invoice',
            object_id=invoice_id,
            object_reference=invoice_no,
        )
