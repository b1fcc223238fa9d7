"""
Test suite for Sales module
Tests: invoice entry with stock checks, rollback on short stock, GST split, shipping and
transport snapshot, deletion and listing filters
"""
from datetime import date
from decimal import Decimal

from django.test import TestCase, override_settings
from rest_framework import status

from autoparts.core.models import AuditLog
from autoparts.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from autoparts.sales.models import Invoice, InvoiceItem


class InvoiceAPITests(TestCase):
    """Sales invoice endpoints"""

    def setUp(self):
        TestDataFactory.clear_caches()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(name='Verma Motors', gstin='06AAAAA0000A1Z5')
        self.product = TestDataFactory.create_product(name='Brake Pad', part_no='BP-100', stock=10)
        self.other = TestDataFactory.create_product(name='Clutch Plate', stock=2)

    def payload(self, **overrides):
        data = {
            'invoice_no': 'INV-0001',
            'invoice_date': '2024-07-01',
            'customer': self.customer.id,
            'payment_mode': 'upi',
            'items': [
                {'product_id': self.product.id, 'qty': 3, 'rate': '150.00'},
                {'product_id': self.other.id, 'qty': 2, 'rate': '400.00', 'tax': '0.00'},
            ],
        }
        data.update(overrides)
        return data

    def test_create_invoice(self):
        response = self.client.post('/api/v1/invoices/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['billing_name'], 'Verma Motors')
        self.assertEqual(response.data['billing_gstin'], '06AAAAA0000A1Z5')
        self.assertEqual(response.data['fy'], 2024)
        # 450 at the product's 18% GST plus 800 untaxed
        self.assertEqual(response.data['subtotal'], Decimal('1250.00'))
        self.assertEqual(response.data['total_tax'], Decimal('81.00'))
        self.assertEqual(response.data['total'], Decimal('1331.00'))
        self.assertEqual(response.data['items'][0]['part_no'], 'BP-100')

        self.product.refresh_from_db()
        self.other.refresh_from_db()
        self.assertEqual(self.product.stock, 7)
        self.assertEqual(self.other.stock, 0)
        self.assertTrue(AuditLog.objects.filter(action='invoice_create', object_reference='INV-0001').exists())

    def test_insufficient_stock_rejects_whole_invoice(self):
        items = [
            {'product_id': self.product.id, 'qty': 1, 'rate': '150.00'},
            {'product_id': self.other.id, 'qty': 3, 'rate': '400.00'},
        ]
        response = self.client.post('/api/v1/invoices/', self.payload(items=items), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient stock', str(response.data['items']))

        self.assertFalse(Invoice.objects.exists())
        self.assertFalse(InvoiceItem.objects.exists())
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_repeated_product_lines_are_summed(self):
        items = [
            {'product_id': self.other.id, 'qty': 1, 'rate': '400.00'},
            {'product_id': self.other.id, 'qty': 2, 'rate': '400.00'},
        ]
        response = self.client.post('/api/v1/invoices/', self.payload(items=items), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_invoice_number(self):
        self.client.post('/api/v1/invoices/', self.payload(), format='json')
        response = self.client.post('/api/v1/invoices/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('invoice_no', response.data)

    def test_walk_in_requires_billing_name(self):
        response = self.client.post('/api/v1/invoices/', self.payload(customer=None), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post('/api/v1/invoices/', self.payload(customer=None, billing_name='Cash Sale'), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['customer'])

    def test_delete_restores_stock(self):
        created = self.client.post('/api/v1/invoices/', self.payload(), format='json')
        response = self.client.delete(f"/api/v1/invoices/{created.data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

        self.product.refresh_from_db()
        self.other.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertEqual(self.other.stock, 2)
        self.assertFalse(InvoiceItem.objects.exists())

    def test_list_invoices(self):
        first = TestDataFactory.create_invoice(customer=self.customer)
        TestDataFactory.create_invoice_item(first, self.product, qty=2)
        TestDataFactory.create_invoice()

        response = self.client.get('/api/v1/invoices/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 2)
        rows = {row['id']: row for row in response.data['invoices']}
        self.assertEqual(rows[first.id]['customer_name'], 'Verma Motors')
        self.assertEqual(rows[first.id]['item_count'], 1)

        response = self.client.get('/api/v1/invoices/?search=verma')
        self.assertEqual([row['id'] for row in response.data['invoices']], [first.id])

    def test_detail(self):
        created = self.client.post('/api/v1/invoices/', self.payload(), format='json')
        response = self.client.get(f"/api/v1/invoices/{created.data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['items']), 2)

        response = self.client.get('/api/v1/invoices/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    @override_settings(SELLER_STATE_CODE='06')
    def test_intra_state_invoice_splits_cgst_sgst(self):
        response = self.client.post('/api/v1/invoices/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        # Place of supply comes from the customer's GSTIN
        self.assertEqual(response.data['place_of_supply'], '06')
        self.assertEqual(response.data['total_cgst'], Decimal('40.50'))
        self.assertEqual(response.data['total_sgst'], Decimal('40.50'))
        self.assertEqual(response.data['total_igst'], Decimal('0.00'))

    @override_settings(SELLER_STATE_CODE='07')
    def test_inter_state_invoice_carries_igst(self):
        response = self.client.post('/api/v1/invoices/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_cgst'], Decimal('0.00'))
        self.assertEqual(response.data['total_sgst'], Decimal('0.00'))
        self.assertEqual(response.data['total_igst'], Decimal('81.00'))

        invoice = Invoice.objects.get(pk=response.data['id'])
        self.assertEqual(invoice.total_igst, invoice.total_tax)

    @override_settings(SELLER_STATE_CODE='06')
    def test_shipping_state_decides_place_of_supply(self):
        payload = self.payload(
            shipping_name='Verma Motors Depot',
            shipping_address='Plot 4, Transport Nagar, Jaipur',
            shipping_state_code='08',
        )
        response = self.client.post('/api/v1/invoices/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['place_of_supply'], '08')
        self.assertEqual(response.data['total_igst'], Decimal('81.00'))

    def test_shipping_and_transport_snapshot(self):
        self.customer.shipping_name = 'Verma Motors Godown'
        self.customer.shipping_address = 'Sector 18, Gurugram'
        self.customer.save()

        payload = self.payload(transport_name='VRL Logistics', vehicle_number='HR26AB1234', transport_cost='50.00')
        response = self.client.post('/api/v1/invoices/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['shipping_name'], 'Verma Motors Godown')
        self.assertEqual(response.data['shipping_address'], 'Sector 18, Gurugram')
        self.assertEqual(response.data['transport_name'], 'VRL Logistics')
        self.assertEqual(response.data['vehicle_number'], 'HR26AB1234')
        self.assertEqual(response.data['total'], Decimal('1381.00'))

        # Later edits to the customer leave the invoice as billed
        self.customer.shipping_address = 'Moved'
        self.customer.save()
        invoice = Invoice.objects.get(pk=response.data['id'])
        self.assertEqual(invoice.shipping_address, 'Sector 18, Gurugram')

    def test_snapshot_is_rolled_back_with_short_stock(self):
        items = [{'product_id': self.other.id, 'qty': 5, 'rate': '400.00'}]
        payload = self.payload(items=items, transport_name='VRL Logistics', shipping_name='Depot')
        response = self.client.post('/api/v1/invoices/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Invoice.objects.filter(transport_name='VRL Logistics').exists())

    def test_list_filters_by_financial_year(self):
        march = TestDataFactory.create_invoice(invoice_date=date(2024, 3, 31))
        april = TestDataFactory.create_invoice(invoice_date=date(2024, 4, 1))

        response = self.client.get('/api/v1/invoices/?fy=2024')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data['invoices']], [april.id])

        response = self.client.get('/api/v1/invoices/?fy=2023')
        self.assertEqual([row['id'] for row in response.data['invoices']], [march.id])

    def test_list_filters_by_date_range(self):
        TestDataFactory.create_invoice(invoice_date=date(2024, 1, 10))
        february = TestDataFactory.create_invoice(invoice_date=date(2024, 2, 10))

        response = self.client.get('/api/v1/invoices/?date_from=2024-02-01&date_to=2024-02-29')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data['invoices']], [february.id])

    def test_list_rejects_malformed_dates(self):
        for query in ('date_from=garbage', 'date_from=2024-13-45', 'date_to=31-12-2024'):
            response = self.client.get(f'/api/v1/invoices/?{query}')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertIn('Invalid date_', response.data['message'])
