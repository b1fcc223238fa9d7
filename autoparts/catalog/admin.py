from django.contrib import admin
from .models import Category, Company, Subcategory, Product, ProductSubcategory


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']
    ordering = ['name']


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']
    ordering = ['name']


@admin.register(Subcategory)
class SubcategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']
    ordering = ['name']


class ProductSubcategoryInline(admin.TabularInline):
    model = ProductSubcategory
    extra = 0


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['product_name', 'part_no', 'category_id', 'company_id', 'stock', 'min_stock', 'rate', 'created_at']
    search_fields = ['product_name', 'display_name', 'part_no']
    ordering = ['-id']
    inlines = [ProductSubcategoryInline]
