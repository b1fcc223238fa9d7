import calendar
import logging
from datetime import date, datetime
from decimal import Decimal

from django.core.cache import cache
from django.db.models import Sum, Count, F, DecimalField, ExpressionWrapper
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from autoparts.catalog.filters import low_stock_q
from autoparts.catalog.listing import ProductListing
from autoparts.catalog.models import Product
from autoparts.core.cache_signals import DASHBOARD_STATS_CACHE_KEY, DASHBOARD_STATS_CACHE_TTL
from autoparts.core.exceptions import api_error_boundary
from autoparts.core.utils import parse_date_params
from autoparts.parties.models import Customer, Vendor
from autoparts.purchasing.models import Purchase, PurchaseItem
from autoparts.sales.models import Invoice, InvoiceItem

logger = logging.getLogger(__name__)


def _money(value):
    return float(value or Decimal('0.00'))


def _totals(queryset):
    totals = queryset.aggregate(count=Count('id'), total=Sum('total', output_field=DecimalField()))
    return {'count': totals['count'], 'total': _money(totals['total'])}


def build_dashboard_stats(today):
    stock_value = Product.objects.aggregate(
        value=Sum(ExpressionWrapper(F('stock') * F('rate'), output_field=DecimalField()))
    )['value']

    last_invoice = Invoice.objects.order_by('-id').values('id', 'invoice_no', 'invoice_date', 'billing_name', 'total').first()
    last_purchase = Purchase.objects.order_by('-id').values('id', 'invoice_no', 'invoice_date', 'vendor__vendor_name', 'total').first()
    if last_purchase:
        last_purchase['vendor_name'] = last_purchase.pop('vendor__vendor_name')

    return {
        'date': today.isoformat(),
        'products': {
            'total': Product.objects.count(),
            'low_stock': Product.objects.filter(low_stock_q()).count(),
            'out_of_stock': Product.objects.filter(stock__lte=0).count(),
            'stock_value': _money(stock_value),
        },
        'parties': {
            'vendors': Vendor.objects.count(),
            'customers': Customer.objects.count(),
        },
        'totals': {
            'invoices': Invoice.objects.count(),
            'purchases': Purchase.objects.count(),
        },
        'today': {
            'sales': _totals(Invoice.objects.filter(invoice_date=today)),
            'purchases': _totals(Purchase.objects.filter(invoice_date=today)),
        },
        'last_invoice': last_invoice,
        'last_purchase': last_purchase,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch dashboard stats')
def dashboard_stats(request):
    """Headline numbers for the dashboard, cached for five minutes"""
    today = timezone.localdate()
    stats = cache.get(DASHBOARD_STATS_CACHE_KEY)
    # Stats computed yesterday are stale even within the TTL
    if stats is not None and stats.get('date') == today.isoformat():
        logger.debug("Cache HIT for dashboard stats")
        return Response(stats)

    stats = build_dashboard_stats(today)
    cache.set(DASHBOARD_STATS_CACHE_KEY, stats, DASHBOARD_STATS_CACHE_TTL)
    return Response(stats)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch daily report')
def daily_report(request):
    """Sales and purchases for one day (?date=YYYY-MM-DD)"""
    raw_date = request.query_params.get('date', '').strip()
    if not raw_date:
        return Response({'message': 'date is required (YYYY-MM-DD)'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        day = datetime.strptime(raw_date, '%Y-%m-%d').date()
    except ValueError:
        return Response({'message': f'Invalid date: {raw_date}'}, status=status.HTTP_400_BAD_REQUEST)

    invoices = Invoice.objects.filter(invoice_date=day)
    purchases = Purchase.objects.filter(invoice_date=day)

    items_sold = InvoiceItem.objects.filter(invoice__invoice_date=day).aggregate(qty=Sum('qty'))['qty'] or 0
    items_bought = PurchaseItem.objects.filter(purchase__invoice_date=day).aggregate(qty=Sum('qty'))['qty'] or 0

    by_payment_mode = {
        row['payment_mode']: _money(row['total'])
        for row in invoices.order_by().values('payment_mode').annotate(total=Sum('total'))
    }

    return Response({
        'date': day.isoformat(),
        'sales': {
            **_totals(invoices),
            'items': items_sold,
            'by_payment_mode': by_payment_mode,
            'invoices': list(invoices.order_by('id').values('id', 'invoice_no', 'billing_name', 'payment_mode', 'total')),
        },
        'purchases': {
            **_totals(purchases),
            'items': items_bought,
            'purchases': list(
                purchases.order_by('id').values('id', 'invoice_no', 'vendor__vendor_name', 'total')
            ),
        },
    })


ANALYTICS_PERIODS = ('month', 'year')


def period_bounds(period, today):
    """First and last day of the calendar month or year containing today"""
    if period == 'year':
        return date(today.year, 1, 1), date(today.year, 12, 31)
    first = today.replace(day=1)
    return first, first.replace(day=calendar.monthrange(today.year, today.month)[1])


def build_sales_analytics(invoices):
    """Summary, daily trend and GST breakdown for a queryset of invoices"""
    totals = invoices.aggregate(
        count=Count('id'),
        total=Sum('total'),
        taxable_value=Sum('subtotal'),
        tax=Sum('total_tax'),
        cgst=Sum('total_cgst'),
        sgst=Sum('total_sgst'),
        igst=Sum('total_igst'),
    )
    count = totals['count']
    total = _money(totals['total'])

    trends = [
        {
            'sale_date': row['invoice_date'].isoformat(),
            'total_sales': _money(row['total_sales']),
            'invoice_count': row['invoice_count'],
        }
        for row in invoices.order_by('invoice_date').values('invoice_date').annotate(
            total_sales=Sum('total'), invoice_count=Count('id'),
        )
    ]

    line_taxable = ExpressionWrapper(F('qty') * F('rate'), output_field=DecimalField())
    by_rate = [
        {
            'rate': _money(row['tax']),
            'taxable_value': _money(row['taxable_value']),
            'tax': _money((row['line_total'] or 0) - (row['taxable_value'] or 0)),
            'lines': row['lines'],
        }
        for row in InvoiceItem.objects.filter(invoice__in=invoices).order_by('tax').values('tax').annotate(
            taxable_value=Sum(line_taxable), line_total=Sum('total'), lines=Count('id'),
        )
    ]

    return {
        'summary': {
            'total_invoices': count,
            'total_sales': total,
            'total_taxable_value': _money(totals['taxable_value']),
            'total_tax': _money(totals['tax']),
            'average_invoice_value': round(total / count, 2) if count else 0.0,
        },
        'sales_trends': trends,
        'gst_breakdown': {
            'cgst': _money(totals['cgst']),
            'sgst': _money(totals['sgst']),
            'igst': _money(totals['igst']),
            'by_rate': by_rate,
        },
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch sales analytics')
def sales_analytics(request):
    """
    Sales analytics over a date window.

    ?start_date=&end_date= (YYYY-MM-DD) give an explicit range; otherwise
    ?period=month|year selects the current calendar month or year. With only
    ?fy= given the whole financial year is covered. The default is the
    current month.
    """
    params = request.query_params
    period = params.get('period', '').strip()
    fy = params.get('fy', '').strip()
    if fy and not fy.isdigit():
        return Response({'message': f'Invalid fy: {fy}'}, status=status.HTTP_400_BAD_REQUEST)

    dates, error = parse_date_params(params, names=('start_date', 'end_date'))
    if error:
        return Response({'message': error}, status=status.HTTP_400_BAD_REQUEST)

    if dates:
        if len(dates) != 2:
            return Response({'message': 'start_date and end_date are both required'}, status=status.HTTP_400_BAD_REQUEST)
        start, end = dates['start_date'], dates['end_date']
        if start > end:
            return Response({'message': 'start_date is after end_date'}, status=status.HTTP_400_BAD_REQUEST)
        period = 'custom'
    elif period or not fy:
        period = period or 'month'
        if period not in ANALYTICS_PERIODS:
            return Response({'message': f'Invalid period: {period}'}, status=status.HTTP_400_BAD_REQUEST)
        start, end = period_bounds(period, timezone.localdate())
    else:
        period, start, end = 'fy', None, None

    invoices = Invoice.objects.all()
    if start is not None:
        invoices = invoices.filter(invoice_date__gte=start, invoice_date__lte=end)
    if fy:
        invoices = invoices.filter(fy=int(fy))

    analytics = build_sales_analytics(invoices)
    analytics['filters'] = {
        'period': period,
        'start_date': start.isoformat() if start else None,
        'end_date': end.isoformat() if end else None,
        'fy': int(fy) if fy else None,
    }
    return Response(analytics)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@api_error_boundary('Failed to fetch low stock report')
def low_stock_report(request):
    """Low stock products through the product listing pipeline"""
    params = request.query_params.copy()
    params['lowStock'] = 'true'
    return Response(ProductListing(params).run())
