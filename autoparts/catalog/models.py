from django.db import models
from decimal import Decimal


class Category(models.Model):
    """Product categories"""
    name = models.CharField(max_length=200, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'


class Company(models.Model):
    """Manufacturers / brands"""
    name = models.CharField(max_length=200, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'companies'
        verbose_name_plural = 'companies'


class Subcategory(models.Model):
    """Product subcategories (vehicle models and the like)"""
    name = models.CharField(max_length=200, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'subcategories'
        verbose_name_plural = 'subcategories'


class Product(models.Model):
    """Product master"""
    product_name = models.CharField(max_length=255, db_index=True)
    display_name = models.CharField(max_length=255, blank=True)
    part_no = models.CharField(max_length=100, blank=True, db_index=True)
    hsn = models.CharField(max_length=20, blank=True)
    # Lookup references are not enforced at the database level; a dangling id
    # is displayed as the raw id.
    category = models.ForeignKey(
        Category, on_delete=models.DO_NOTHING, db_constraint=False,
        null=True, blank=True, related_name='products', db_column='product_category'
    )
    company = models.ForeignKey(
        Company, on_delete=models.DO_NOTHING, db_constraint=False,
        null=True, blank=True, related_name='products', db_column='company'
    )
    subcategories = models.ManyToManyField(
        Subcategory, through='ProductSubcategory', related_name='products', blank=True
    )
    stock = models.IntegerField(default=0)
    min_stock = models.IntegerField(default=0)
    rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    mrp = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    gst_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('18.00'))  # e.g., 18.00 for 18%
    rack_number = models.CharField(max_length=50, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product_name} ({self.part_no or 'NO-PART'})"

    @property
    def subcategory_ids(self):
        """Linked subcategory ids as strings, in the order they were entered"""
        return [str(link.subcategory_id) for link in self.subcategory_links.all()]

    @property
    def subcategory_csv(self):
        return ','.join(self.subcategory_ids)

    def set_subcategories(self, subcategory_ids):
        """Replace the subcategory links, keeping the given order"""
        if hasattr(self, '_prefetched_objects_cache'):
            self._prefetched_objects_cache.pop('subcategory_links', None)
        self.subcategory_links.all().delete()
        ProductSubcategory.objects.bulk_create([
            ProductSubcategory(product=self, subcategory_id=int(sub_id), position=position)
            for position, sub_id in enumerate(subcategory_ids)
        ])

    class Meta:
        db_table = 'products'
        ordering = ['-id']


class ProductSubcategory(models.Model):
    """Product to subcategory link"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='subcategory_links')
    subcategory = models.ForeignKey(
        Subcategory, on_delete=models.DO_NOTHING, db_constraint=False, related_name='product_links'
    )
    position = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"{self.product_id} -> {self.subcategory_id}"

    class Meta:
        db_table = 'product_subcategories'
        ordering = ['position', 'id']
        unique_together = [['product', 'subcategory']]
