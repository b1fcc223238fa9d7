"""
Test suite for Reports module
Tests: dashboard stats and caching, daily report, low stock report, sales analytics
"""
from datetime import date
from decimal import Decimal

from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from autoparts.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class ReportsTests(TestCase):
    """Test report endpoints"""

    def setUp(self):
        TestDataFactory.clear_caches()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_dashboard(self):
        TestDataFactory.create_product(stock=1, min_stock=0)
        TestDataFactory.create_product(stock=4, min_stock=5)
        TestDataFactory.create_product(stock=20, min_stock=5, rate=Decimal('10.00'))
        TestDataFactory.create_invoice(total=Decimal('500.00'))

        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['products']['total'], 3)
        self.assertEqual(response.data['products']['low_stock'], 2)
        self.assertEqual(response.data['today']['sales'], {'count': 1, 'total': 500.0})
        self.assertEqual(response.data['today']['purchases']['count'], 0)
        self.assertIsNone(response.data['last_purchase'])

    def test_dashboard_is_cached_until_data_changes(self):
        TestDataFactory.create_product()
        self.client.get('/api/v1/reports/dashboard/')

        # Not committed, so the cached stats stand
        TestDataFactory.create_product()
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.data['products']['total'], 1)

        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_product()
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.data['products']['total'], 3)

    def test_daily_report(self):
        today = timezone.localdate()
        product = TestDataFactory.create_product()
        invoice = TestDataFactory.create_invoice(total=Decimal('250.00'), payment_mode='upi')
        TestDataFactory.create_invoice_item(invoice, product, qty=3)
        purchase = TestDataFactory.create_purchase(invoice_date=today)
        TestDataFactory.create_purchase_item(purchase, product, qty=12)

        response = self.client.get(f'/api/v1/reports/daily/?date={today.isoformat()}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['sales']['count'], 1)
        self.assertEqual(response.data['sales']['total'], 250.0)
        self.assertEqual(response.data['sales']['items'], 3)
        self.assertEqual(response.data['sales']['by_payment_mode'], {'upi': 250.0})
        self.assertEqual(response.data['purchases']['items'], 12)

    def test_daily_report_requires_valid_date(self):
        response = self.client.get('/api/v1/reports/daily/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/reports/daily/?date=31-12-2024')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_low_stock_report(self):
        category = TestDataFactory.create_category(name='Filters')
        low = TestDataFactory.create_product(category=category, stock=0)
        TestDataFactory.create_product(stock=30)

        response = self.client.get('/api/v1/reports/low-stock/?lowStock=false')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data['products']], [low.id])
        self.assertEqual(response.data['products'][0]['categoryName'], 'Filters')
        self.assertEqual(response.data['pagination']['total'], 1)


@override_settings(SELLER_STATE_CODE='07')
class SalesAnalyticsTests(TestCase):
    """Sales analytics summary, trends and GST breakdown"""

    def setUp(self):
        TestDataFactory.clear_caches()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(stock=50)
        self.haryana = TestDataFactory.create_customer(name='Verma Motors', gstin='06AAAAA0000A1Z5')

    def sell(self, invoice_no, invoice_date, qty, rate, tax=None, **extra):
        item = {'product_id': self.product.id, 'qty': qty, 'rate': rate}
        if tax is not None:
            item['tax'] = tax
        payload = {'invoice_no': invoice_no, 'invoice_date': invoice_date, 'items': [item], **extra}
        response = self.client.post('/api/v1/invoices/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data

    def create_july_sales(self):
        # Inter-state at 18%: 200 + 36 IGST
        self.sell('INV-1', '2024-07-01', 2, '100.00', customer=self.haryana.id)
        # Local counter sale at 18%: 100 + 9 CGST + 9 SGST
        self.sell('INV-2', '2024-07-03', 1, '100.00', billing_name='Cash Sale')
        # Untaxed, same day
        self.sell('INV-3', '2024-07-03', 1, '50.00', tax='0.00', billing_name='Cash Sale')
        # Outside the range, previous financial year
        self.sell('INV-0', '2024-03-20', 1, '80.00', tax='0.00', billing_name='Cash Sale')

    def test_date_range(self):
        self.create_july_sales()
        response = self.client.get('/api/v1/reports/sales-analytics/?start_date=2024-07-01&end_date=2024-07-31')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary'], {
            'total_invoices': 3,
            'total_sales': 404.0,
            'total_taxable_value': 350.0,
            'total_tax': 54.0,
            'average_invoice_value': 134.67,
        })
        self.assertEqual(response.data['sales_trends'], [
            {'sale_date': '2024-07-01', 'total_sales': 236.0, 'invoice_count': 1},
            {'sale_date': '2024-07-03', 'total_sales': 168.0, 'invoice_count': 2},
        ])
        gst = response.data['gst_breakdown']
        self.assertEqual((gst['cgst'], gst['sgst'], gst['igst']), (9.0, 9.0, 36.0))
        self.assertEqual(gst['by_rate'], [
            {'rate': 0.0, 'taxable_value': 50.0, 'tax': 0.0, 'lines': 1},
            {'rate': 18.0, 'taxable_value': 300.0, 'tax': 54.0, 'lines': 2},
        ])
        self.assertEqual(response.data['filters']['period'], 'custom')

    def test_financial_year(self):
        self.create_july_sales()
        response = self.client.get('/api/v1/reports/sales-analytics/?fy=2023')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['total_invoices'], 1)
        self.assertEqual(response.data['summary']['total_sales'], 80.0)
        self.assertEqual(response.data['filters']['period'], 'fy')

        response = self.client.get('/api/v1/reports/sales-analytics/?fy=2024&start_date=2024-07-02&end_date=2024-07-31')
        self.assertEqual(response.data['summary']['total_invoices'], 2)

    def test_defaults_to_current_month(self):
        today = timezone.localdate()
        TestDataFactory.create_invoice(invoice_date=today, total=Decimal('500.00'))
        TestDataFactory.create_invoice(invoice_date=date(2020, 1, 15), total=Decimal('900.00'))

        response = self.client.get('/api/v1/reports/sales-analytics/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['total_invoices'], 1)
        self.assertEqual(response.data['summary']['average_invoice_value'], 500.0)
        self.assertEqual(response.data['filters']['period'], 'month')
        self.assertEqual(response.data['filters']['start_date'], today.replace(day=1).isoformat())

        response = self.client.get('/api/v1/reports/sales-analytics/?period=year')
        self.assertEqual(response.data['filters']['start_date'], date(today.year, 1, 1).isoformat())
        self.assertEqual(response.data['summary']['total_sales'], 500.0)

    def test_empty_window(self):
        response = self.client.get('/api/v1/reports/sales-analytics/?start_date=2019-01-01&end_date=2019-01-31')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['total_invoices'], 0)
        self.assertEqual(response.data['summary']['average_invoice_value'], 0.0)
        self.assertEqual(response.data['sales_trends'], [])
        self.assertEqual(response.data['gst_breakdown']['by_rate'], [])

    def test_invalid_parameters(self):
        for query in (
            'period=week',
            'fy=twenty',
            'start_date=garbage&end_date=2024-07-31',
            'start_date=2024-07-01',
            'start_date=2024-07-31&end_date=2024-07-01',
        ):
            response = self.client.get(f'/api/v1/reports/sales-analytics/?{query}')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, query)
            self.assertIn('message', response.data)
