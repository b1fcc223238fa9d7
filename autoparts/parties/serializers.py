from rest_framework import serializers
from .models import State, Customer, Vendor


class StateSerializer(serializers.ModelSerializer):
    class Meta:
        model = State
        fields = ['id', 'name', 'code', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = [
            'id', 'billing_name', 'billing_address', 'billing_state', 'billing_state_code',
            'billing_gstin', 'contact_no', 'email',
            'shipping_name', 'shipping_address', 'shipping_state', 'shipping_state_code',
            'shipping_gstin', 'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate_billing_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Billing name is required")
        return value

    def validate(self, attrs):
        # Fill state codes from the selected states when not given
        for prefix in ('billing', 'shipping'):
            state = attrs.get(f'{prefix}_state')
            if state and not attrs.get(f'{prefix}_state_code'):
                attrs[f'{prefix}_state_code'] = state.code
        return attrs


class VendorSerializer(serializers.ModelSerializer):
    class Meta:
        model = Vendor
        fields = [
            'id', 'vendor_name', 'contact_number', 'email_id', 'address', 'city',
            'state', 'gst_number', 'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate_vendor_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Vendor name is required")
        return value

    def validate_gst_number(self, value):
        value = (value or '').strip().upper()
        if value:
            queryset = Vendor.objects.filter(gst_number__iexact=value)
            if self.instance is not None:
                queryset = queryset.exclude(pk=self.instance.pk)
            if queryset.exists():
                raise serializers.ValidationError("A vendor with this GST number already exists")
        return value
