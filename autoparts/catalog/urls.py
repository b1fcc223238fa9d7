from django.urls import path
from .views import (
    category_list_create, category_detail,
    company_list_create, company_detail,
    subcategory_list_create, subcategory_detail,
    product_filter_options, product_list_create, product_detail,
)

urlpatterns = [
    # Category endpoints
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),

    # Company endpoints
    path('companies/', company_list_create, name='company-list-create'),
    path('companies/<int:pk>/', company_detail, name='company-detail'),

    # Subcategory endpoints
    path('subcategories/', subcategory_list_create, name='subcategory-list-create'),
    path('subcategories/<int:pk>/', subcategory_detail, name='subcategory-detail'),

    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/filters/', product_filter_options, name='product-filter-options'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
]
