from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db.models import Count, Q
import logging

from autoparts.core.exceptions import api_error_boundary
from autoparts.core.lookup_cache import lookup_names
from autoparts.core.pagination import parse_page_params, paginate_queryset
from autoparts.core.utils import parse_date_params
from autoparts.parties.models import Customer
from .models import Invoice, InvoiceItem
from .serializers import InvoiceSerializer, InvoiceSummarySerializer, InvoiceWriteSerializer, delete_invoice

logger = logging.getLogger(__name__)


def attach_customer_names_and_counts(rows):
    """Current customer names and item counts for a page of invoices"""
    customer_ids = {row['customer'] for row in rows if row['customer']}
    customer_names = lookup_names('customers', Customer, customer_ids, name_field='billing_name')
    invoice_ids = [row['id'] for row in rows]
    item_counts = dict(
        InvoiceItem.objects.filter(invoice_id__in=invoice_ids)
        .order_by()
        .values('invoice_id')
        .annotate(count=Count('id'))
        .values_list('invoice_id', 'count')
    ) if invoice_ids else {}

    for row in rows:
        customer_id = row['customer']
        # Walk-in invoices have no customer record; the billing snapshot stands in
        row['customer_name'] = customer_names.get(str(customer_id), row['billing_name']) if customer_id else row['billing_name']
        row['item_count'] = item_counts.get(row['id'], 0)
    return rows


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch invoices', POST='Failed to create invoice')
def invoice_list_create(request):
    """List all sales invoices or create a new one"""
    if request.method == 'GET':
        queryset = Invoice.objects.all()

        search = request.query_params.get('search', '').strip()
        customer = request.query_params.get('customer', '').strip()
        payment_mode = request.query_params.get('payment_mode', '').strip()
        fy = request.query_params.get('fy', '').strip()
        dates, error = parse_date_params(request.query_params)
        if error:
            return Response({'message': error}, status=status.HTTP_400_BAD_REQUEST)

        if search:
            queryset = queryset.filter(
                Q(invoice_no__icontains=search) |
                Q(billing_name__icontains=search) |
                Q(contact_no__icontains=search)
            )
        if customer.isdigit():
            queryset = queryset.filter(customer_id=int(customer))
        if 'date_from' in dates:
            queryset = queryset.filter(invoice_date__gte=dates['date_from'])
        if 'date_to' in dates:
            queryset = queryset.filter(invoice_date__lte=dates['date_to'])
        if payment_mode:
            queryset = queryset.filter(payment_mode=payment_mode)
        if fy.isdigit():
            queryset = queryset.filter(fy=int(fy))

        queryset = queryset.order_by('-invoice_date', '-id')

        page, limit = parse_page_params(request.query_params)
        rows, pagination = paginate_queryset(queryset, page, limit)
        invoices = attach_customer_names_and_counts(InvoiceSummarySerializer(rows, many=True).data)

        return Response({
            'invoices': invoices,
            'pagination': pagination,
        })
    else:  # POST
        serializer = InvoiceWriteSerializer(data=request.data, context={'request': request})
        if serializer.is_valid():
            invoice = serializer.save()
            logger.info(f"Invoice created: {invoice.id} {invoice.invoice_no} total {invoice.total}")
            invoice = Invoice.objects.prefetch_related('items').get(pk=invoice.pk)
            return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch invoice', DELETE='Failed to delete invoice')
def invoice_detail(request, pk):
    """Retrieve or delete a sales invoice"""
    invoice = get_object_or_404(Invoice.objects.prefetch_related('items'), pk=pk)

    if request.method == 'GET':
        return Response(InvoiceSerializer(invoice).data)

    delete_invoice(invoice, request=request)
    logger.info(f"Invoice deleted: {pk}")
    return Response(status=status.HTTP_204_NO_CONTENT)
