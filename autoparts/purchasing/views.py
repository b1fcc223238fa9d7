from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db.models import Count, Q
import logging

from autoparts.catalog.filters import split_id_list
from autoparts.core.exceptions import api_error_boundary
from autoparts.core.lookup_cache import lookup_names
from autoparts.core.pagination import parse_page_params, paginate_queryset
from autoparts.core.utils import parse_date_params
from autoparts.parties.models import Vendor
from .models import Purchase, PurchaseItem
from .rates import get_rate_resolver
from .serializers import PurchaseSerializer, PurchaseSummarySerializer, PurchaseWriteSerializer, delete_purchase

logger = logging.getLogger(__name__)


def attach_vendor_names_and_counts(rows):
    """Vendor names and item counts for a page of purchases, one query each"""
    vendor_names = lookup_names('vendors', Vendor, {row['vendor'] for row in rows}, name_field='vendor_name')
    purchase_ids = [row['id'] for row in rows]
    item_counts = dict(
        PurchaseItem.objects.filter(purchase_id__in=purchase_ids)
        .order_by()
        .values('purchase_id')
        .annotate(count=Count('id'))
        .values_list('purchase_id', 'count')
    ) if purchase_ids else {}

    for row in rows:
        vendor_id = str(row['vendor'])
        row['vendor_name'] = vendor_names.get(vendor_id, vendor_id)
        row['item_count'] = item_counts.get(row['id'], 0)
    return rows


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch purchases', POST='Failed to create purchase')
def purchase_list_create(request):
    """List all purchases or create a new purchase"""
    if request.method == 'GET':
        queryset = Purchase.objects.all()

        # Filters
        search = request.query_params.get('search', '').strip()
        vendor = request.query_params.get('vendor', '').strip()
        fy = request.query_params.get('fy', '').strip()
        dates, error = parse_date_params(request.query_params)
        if error:
            return Response({'message': error}, status=status.HTTP_400_BAD_REQUEST)

        if search:
            queryset = queryset.filter(Q(invoice_no__icontains=search) | Q(notes__icontains=search))
        if vendor.isdigit():
            queryset = queryset.filter(vendor_id=int(vendor))
        if 'date_from' in dates:
            queryset = queryset.filter(invoice_date__gte=dates['date_from'])
        if 'date_to' in dates:
            queryset = queryset.filter(invoice_date__lte=dates['date_to'])
        if fy.isdigit():
            queryset = queryset.filter(fy=int(fy))

        # Latest invoices first
        queryset = queryset.order_by('-invoice_date', '-id')

        page, limit = parse_page_params(request.query_params)
        rows, pagination = paginate_queryset(queryset, page, limit)
        purchases = attach_vendor_names_and_counts(PurchaseSummarySerializer(rows, many=True).data)

        response = Response({
            'purchases': purchases,
            'pagination': pagination,
        })
        response['Cache-Control'] = 'private, max-age=10, must-revalidate'
        return response
    else:  # POST
        serializer = PurchaseWriteSerializer(data=request.data, context={'request': request})
        if serializer.is_valid():
            purchase = serializer.save()
            logger.info(f"Purchase created: {purchase.id} invoice {purchase.invoice_no} total {purchase.total}")
            purchase = Purchase.objects.select_related('vendor').prefetch_related('items').get(pk=purchase.pk)
            return Response(PurchaseSerializer(purchase).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch purchase', PUT='Failed to update purchase', DELETE='Failed to delete purchase')
def purchase_detail(request, pk):
    """Retrieve, update or delete a purchase"""
    purchase = get_object_or_404(Purchase.objects.select_related('vendor').prefetch_related('items'), pk=pk)

    if request.method == 'GET':
        return Response(PurchaseSerializer(purchase).data)
    elif request.method == 'PUT':
        serializer = PurchaseWriteSerializer(purchase, data=request.data, context={'request': request})
        if serializer.is_valid():
            serializer.save()
            purchase = Purchase.objects.select_related('vendor').prefetch_related('items').get(pk=pk)
            return Response(PurchaseSerializer(purchase).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        delete_purchase(purchase, request=request)
        logger.info(f"Purchase deleted: {pk}")
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch last invoice')
def last_invoice(request):
    """Invoice number of the most recently entered purchase"""
    purchase = Purchase.objects.order_by('-id').only('id', 'invoice_no', 'invoice_date').first()
    if purchase is None:
        return Response({'invoice_no': None, 'invoice_date': None})
    return Response({'invoice_no': purchase.invoice_no, 'invoice_date': purchase.invoice_date})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch latest rates')
def latest_rates(request):
    """Latest purchase rate for ?ids=1,2,3"""
    product_ids = split_id_list(request.query_params.get('ids'))
    if not product_ids:
        return Response({'message': 'ids is required'}, status=status.HTTP_400_BAD_REQUEST)
    rates = get_rate_resolver().resolve(product_ids)
    return Response({'rates': rates})
