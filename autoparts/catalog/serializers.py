from rest_framework import serializers
from .filters import split_id_list
from .models import Category, Company, Subcategory, Product


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ['id', 'name', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Name is required")
        return value


class CompanySerializer(CategorySerializer):
    class Meta(CategorySerializer.Meta):
        model = Company


class SubcategorySerializer(CategorySerializer):
    class Meta(CategorySerializer.Meta):
        model = Subcategory


class ProductSerializer(serializers.ModelSerializer):
    """
    Product with lookup references exposed as id strings:
    product_category and company hold one id, product_subcategory holds a
    comma separated id list ("3,7,9") backed by the product_subcategories table.
    """
    product_category = serializers.CharField(source='category_id', required=False, allow_blank=True, allow_null=True)
    company = serializers.CharField(source='company_id', required=False, allow_blank=True, allow_null=True)
    product_subcategory = serializers.CharField(source='subcategory_csv', required=False, allow_blank=True, allow_null=True)

    class Meta:
        model = Product
        fields = [
            'id', 'product_name', 'display_name', 'part_no', 'hsn',
            'product_category', 'company', 'product_subcategory',
            'stock', 'min_stock', 'rate', 'mrp', 'gst_rate',
            'rack_number', 'notes', 'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate_product_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Product name is required")
        return value

    def _validate_reference(self, value, model, label):
        value = (value or '').strip()
        if not value:
            return None
        if not value.isdigit() or not model.objects.filter(pk=int(value)).exists():
            raise serializers.ValidationError(f"Invalid {label} selected")
        return int(value)

    def validate_product_category(self, value):
        return self._validate_reference(value, Category, 'category')

    def validate_company(self, value):
        return self._validate_reference(value, Company, 'company')

    def validate_product_subcategory(self, value):
        ids = []
        for token in split_id_list(value):
            if not token.isdigit():
                raise serializers.ValidationError(f"Invalid subcategory id: {token}")
            if token not in ids:
                ids.append(token)
        found = {str(pk) for pk in Subcategory.objects.filter(pk__in=[int(i) for i in ids]).values_list('pk', flat=True)}
        missing = [i for i in ids if i not in found]
        if missing:
            raise serializers.ValidationError(f"Invalid subcategory selected: {', '.join(missing)}")
        return ids

    def validate(self, attrs):
        if attrs.get('stock', 0) < 0:
            raise serializers.ValidationError({"stock": "Stock cannot be negative"})
        if attrs.get('min_stock', 0) < 0:
            raise serializers.ValidationError({"min_stock": "Minimum stock cannot be negative"})
        return attrs

    def create(self, validated_data):
        subcategory_ids = validated_data.pop('subcategory_csv', None)
        product = Product.objects.create(**validated_data)
        if subcategory_ids:
            product.set_subcategories(subcategory_ids)
        return product

    def update(self, instance, validated_data):
        subcategory_ids = validated_data.pop('subcategory_csv', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        if subcategory_ids is not None:
            instance.set_subcategories(subcategory_ids)
        return instance
