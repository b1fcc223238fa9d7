from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db import transaction
import logging

from autoparts.core.exceptions import api_error_boundary
from autoparts.core.pagination import parse_page_params, paginate_queryset
from autoparts.core.utils import create_audit_log
from .listing import ProductListing, enriched_product
from .models import Category, Company, Subcategory, Product
from .serializers import CategorySerializer, CompanySerializer, SubcategorySerializer, ProductSerializer

logger = logging.getLogger(__name__)


# Lookup table helpers (categories, companies, subcategories share one shape)

def lookup_list_create(request, model, serializer_class, result_key):
    if request.method == 'GET':
        queryset = model.objects.all()
        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(name__icontains=search)

        page, limit = parse_page_params(request.query_params)
        rows, pagination = paginate_queryset(queryset.order_by('name', 'id'), page, limit)
        data = serializer_class(rows, many=True).data
        skip = (page - 1) * limit
        for position, row in enumerate(data):
            row['index'] = skip + position + 1
        return Response({result_key: data, 'pagination': pagination})

    serializer = serializer_class(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


def lookup_detail(request, pk, model, serializer_class):
    instance = get_object_or_404(model, pk=pk)

    if request.method == 'GET':
        return Response(serializer_class(instance).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = serializer_class(instance, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:
        # Products keep the dangling id and display it raw
        instance.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch categories', POST='Failed to create category')
def category_list_create(request):
    """List all categories or create a new category"""
    return lookup_list_create(request, Category, CategorySerializer, 'categories')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch category', PUT='Failed to update category', PATCH='Failed to update category', DELETE='Failed to delete category')
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    return lookup_detail(request, pk, Category, CategorySerializer)


# Company views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch companies', POST='Failed to create company')
def company_list_create(request):
    """List all companies or create a new company"""
    return lookup_list_create(request, Company, CompanySerializer, 'companies')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch company', PUT='Failed to update company', PATCH='Failed to update company', DELETE='Failed to delete company')
def company_detail(request, pk):
    """Retrieve, update or delete a company"""
    return lookup_detail(request, pk, Company, CompanySerializer)


# Subcategory views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch subcategories', POST='Failed to create subcategory')
def subcategory_list_create(request):
    """List all subcategories or create a new subcategory"""
    return lookup_list_create(request, Subcategory, SubcategorySerializer, 'subcategories')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch subcategory', PUT='Failed to update subcategory', PATCH='Failed to update subcategory', DELETE='Failed to delete subcategory')
def subcategory_detail(request, pk):
    """Retrieve, update or delete a subcategory"""
    return lookup_detail(request, pk, Subcategory, SubcategorySerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch filter options')
def product_filter_options(request):
    """Options for the product list filters"""
    def options(model):
        return [{'id': str(pk), 'name': name} for pk, name in model.objects.order_by('name').values_list('pk', 'name')]

    return Response({
        'categories': options(Category),
        'subcategories': options(Subcategory),
        'companies': options(Company),
    })


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch products', POST='Failed to create product')
def product_list_create(request):
    """
    List products with pagination and enrichment, or create a product.

    Query params: page, limit, search, category, company, subcategory
    (id or comma list), lowStock=true|false
    """
    if request.method == 'GET':
        listing = ProductListing(request.query_params)
        response = Response(listing.run())
        response['Cache-Control'] = 'private, max-age=10, must-revalidate'
        return response

    serializer = ProductSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            product = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='Product',
                object_id=product.id,
                object_name=product.product_name,
                object_reference=product.part_no,
            )
        logger.info(f"Product created: {product.id} {product.product_name}")
        return Response(enriched_product(product), status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch product', PUT='Failed to update product', PATCH='Failed to update product', DELETE='Failed to delete product')
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product.objects.prefetch_related('subcategory_links'), pk=pk)

    if request.method == 'GET':
        return Response(enriched_product(product))
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            with transaction.atomic():
                product = serializer.save()
                create_audit_log(
                    request=request,
                    action='update',
                    model_name='Product',
                    object_id=product.id,
                    object_name=product.product_name,
                    changes={key: str(value) for key, value in request.data.items()},
                )
            return Response(enriched_product(product))
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:
        product_id = product.id
        product_name = product.product_name
        with transaction.atomic():
            product.delete()
            create_audit_log(
                request=request,
                action='delete',
                model_name='Product',
                object_id=product_id,
                object_name=product_name,
            )
        return Response(status=status.HTTP_204_NO_CONTENT)
