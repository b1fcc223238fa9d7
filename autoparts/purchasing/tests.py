"""
Test suite for Purchasing module
Tests: latest purchase rates (fast path, fallback, time budget), purchase
entry with stock updates and GST split, atomic rollback, and purchase endpoints
"""
from datetime import date
from decimal import Decimal
from unittest import mock

from django.test import TestCase, override_settings
from rest_framework import status

from autoparts.catalog.models import Product
from autoparts.core.models import AuditLog
from autoparts.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from autoparts.parties.models import Vendor
from autoparts.purchasing.models import Purchase, PurchaseItem
from autoparts.purchasing.rates import (
    RateResolver, RawSQLRateStrategy, PerItemRateStrategy, RateResult, clean_product_ids,
)


class TickingClock:
    """Advances one second every time it is read"""

    def __init__(self):
        self.now = 0

    def __call__(self):
        value = self.now
        self.now += 1
        return value


class PurchaseModelTests(TestCase):

    def test_totals(self):
        product = TestDataFactory.create_product()
        purchase = TestDataFactory.create_purchase()
        purchase.transport_cost = Decimal('50.00')
        TestDataFactory.create_purchase_item(purchase, product, qty=10, rate=Decimal('100.00'))
        TestDataFactory.create_purchase_item(purchase, product, qty=5, rate=Decimal('50.00'))
        self.assertEqual(purchase.get_subtotal(), Decimal('1250.00'))
        self.assertEqual(purchase.get_total(), Decimal('1300.00'))

    def test_line_total_with_tax(self):
        product = TestDataFactory.create_product()
        item = TestDataFactory.create_purchase_item(
            TestDataFactory.create_purchase(), product, qty=3, rate=Decimal('99.99'), tax=Decimal('18.00')
        )
        self.assertEqual(item.get_line_total(), Decimal('353.96'))


class LatestRateTests(TestCase):
    """Latest rate per product across both strategies"""

    def setUp(self):
        self.brake = TestDataFactory.create_product()
        self.clutch = TestDataFactory.create_product()
        self.unbought = TestDataFactory.create_product()

        may = TestDataFactory.create_purchase(invoice_date=date(2024, 5, 1))
        june = TestDataFactory.create_purchase(invoice_date=date(2024, 6, 1))
        TestDataFactory.create_purchase_item(june, self.brake, rate=Decimal('82.00'))
        TestDataFactory.create_purchase_item(may, self.brake, rate=Decimal('75.00'))
        # Same day twice: the later line wins
        TestDataFactory.create_purchase_item(may, self.clutch, rate=Decimal('300.00'))
        TestDataFactory.create_purchase_item(may, self.clutch, rate=Decimal('310.00'))

        self.ids = [str(self.brake.id), str(self.clutch.id), str(self.unbought.id)]
        self.expected = {str(self.brake.id): Decimal('82.00'), str(self.clutch.id): Decimal('310.00')}

    def test_raw_sql_strategy(self):
        result = RawSQLRateStrategy().resolve(self.ids)
        self.assertFalse(result.fallback_needed)
        self.assertEqual(result.rates, self.expected)

    def test_per_item_strategy(self):
        result = PerItemRateStrategy().resolve(self.ids)
        self.assertEqual(result.rates, self.expected)
        self.assertIsNone(result.error)

    def test_raw_sql_failure_is_tagged(self):
        result = RawSQLRateStrategy(table='missing_purchase_items').resolve(self.ids)
        self.assertTrue(result.fallback_needed)
        self.assertEqual(result.rates, {})
        self.assertTrue(result.error)

    def test_resolver_falls_back(self):
        resolver = RateResolver(primary=RawSQLRateStrategy(table='missing_purchase_items'))
        self.assertEqual(resolver.resolve(self.ids), self.expected)
        # The connection is still usable afterwards
        self.assertEqual(Product.objects.count(), 3)

    def test_resolver_never_raises(self):
        class Broken:
            def resolve(self, product_ids):
                raise RuntimeError('boom')

        self.assertEqual(RateResolver(primary=Broken()).resolve(self.ids), {})

    def test_fallback_skips_failed_products(self):
        strategy = PerItemRateStrategy()
        original = strategy.latest_rate

        def flaky(product_id):
            if product_id == str(self.brake.id):
                raise RuntimeError('lock timeout')
            return original(product_id)

        strategy.latest_rate = flaky
        primary = mock.Mock()
        primary.resolve.return_value = RateResult({}, fallback_needed=True, error='forced')
        rates = RateResolver(primary=primary, fallback=strategy).resolve(self.ids)
        self.assertEqual(rates, {str(self.clutch.id): Decimal('310.00')})

    def test_fallback_time_budget(self):
        products = [TestDataFactory.create_product() for _ in range(5)]
        purchase = TestDataFactory.create_purchase()
        for product in products:
            TestDataFactory.create_purchase_item(purchase, product, rate=Decimal('10.00'))

        strategy = PerItemRateStrategy(batch_size=2, time_budget=3, clock=TickingClock())
        result = strategy.resolve([p.id for p in products])
        self.assertEqual(len(result.rates), 2)
        self.assertEqual(result.error, 'time budget exhausted')

    def test_empty_and_junk_ids(self):
        with self.assertNumQueries(0):
            self.assertEqual(RateResolver().resolve([]), {})
            self.assertEqual(RateResolver().resolve(['abc', '', ' ']), {})

    def test_clean_product_ids(self):
        self.assertEqual(clean_product_ids(['3', 3, ' 4', 'x', '3']), ['3', '4'])


class PurchaseAPITests(TestCase):
    """Purchase endpoints"""

    def setUp(self):
        TestDataFactory.clear_caches()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(stock=5)
        self.other = TestDataFactory.create_product(stock=0)

    def payload(self, **overrides):
        data = {
            'vendor_name': 'Sharma Auto',
            'gst_number': '07ABCDE1234F1Z5',
            'invoice_number': 'SA-1001',
            'date': '2024-06-15',
            'items': [
                {'product_id': self.product.id, 'qty': 10, 'rate': '100.00', 'tax': '18.00'},
                {'product_id': self.other.id, 'qty': 4, 'rate': '25.00'},
            ],
        }
        data.update(overrides)
        return data

    def test_create_purchase(self):
        response = self.client.post('/api/v1/purchases/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['vendor_name'], 'Sharma Auto')
        self.assertEqual(response.data['fy'], 2024)
        self.assertEqual(len(response.data['items']), 2)
        self.assertEqual(response.data['subtotal'], Decimal('1100.00'))
        self.assertEqual(response.data['total_tax'], Decimal('180.00'))
        self.assertEqual(response.data['total'], Decimal('1280.00'))

        self.product.refresh_from_db()
        self.other.refresh_from_db()
        self.assertEqual(self.product.stock, 15)
        self.assertEqual(self.other.stock, 4)
        self.assertTrue(AuditLog.objects.filter(action='purchase_create').exists())

    def test_create_reuses_vendor(self):
        vendor = TestDataFactory.create_vendor(name='Sharma Auto')
        response = self.client.post('/api/v1/purchases/', self.payload(gst_number=''), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['vendor'], vendor.id)
        self.assertEqual(Vendor.objects.count(), 1)

    def test_create_without_items(self):
        response = self.client.post('/api/v1/purchases/', self.payload(items=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('items', response.data)

    def test_create_with_unknown_product(self):
        items = [{'product_id': 999999, 'qty': 1, 'rate': '10.00'}]
        response = self.client.post('/api/v1/purchases/', self.payload(items=items), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Vendor.objects.count(), 0)

    def test_failed_item_insert_rolls_everything_back(self):
        with mock.patch.object(PurchaseItem.objects, 'bulk_create', side_effect=RuntimeError('disk full')):
            response = self.client.post('/api/v1/purchases/', self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {'message': 'Failed to create purchase', 'error': 'disk full'})
        self.assertEqual(Vendor.objects.count(), 0)
        self.assertEqual(Purchase.objects.count(), 0)
        self.assertEqual(PurchaseItem.objects.count(), 0)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 5)

    def test_new_purchase_updates_latest_rate(self):
        self.client.post('/api/v1/purchases/', self.payload(), format='json')
        response = self.client.get(f'/api/v1/purchases/latest-rates/?ids={self.product.id},{self.other.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['rates'][str(self.product.id)], Decimal('100.00'))
        self.assertEqual(response.data['rates'][str(self.other.id)], Decimal('25.00'))

    def test_latest_rates_requires_ids(self):
        response = self.client.get('/api/v1/purchases/latest-rates/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_purchases(self):
        vendor = TestDataFactory.create_vendor(name='Kapoor Spares')
        older = TestDataFactory.create_purchase(vendor=vendor, invoice_date=date(2024, 1, 10))
        newer = TestDataFactory.create_purchase(vendor=vendor, invoice_date=date(2024, 2, 10))
        TestDataFactory.create_purchase_item(newer, self.product)

        response = self.client.get('/api/v1/purchases/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data['purchases']], [newer.id, older.id])
        self.assertEqual(response.data['purchases'][0]['vendor_name'], 'Kapoor Spares')
        self.assertEqual(response.data['purchases'][0]['item_count'], 1)
        self.assertEqual(response.data['purchases'][1]['item_count'], 0)

        response = self.client.get('/api/v1/purchases/?date_from=2024-02-01')
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_update_purchase_rebalances_stock(self):
        created = self.client.post('/api/v1/purchases/', self.payload(), format='json')
        items = [{'product_id': self.product.id, 'qty': 2, 'rate': '90.00'}]
        response = self.client.put(f"/api/v1/purchases/{created.data['id']}/", self.payload(items=items), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['items']), 1)

        self.product.refresh_from_db()
        self.other.refresh_from_db()
        self.assertEqual(self.product.stock, 7)
        self.assertEqual(self.other.stock, 0)

    def test_delete_purchase_reverses_stock(self):
        created = self.client.post('/api/v1/purchases/', self.payload(), format='json')
        response = self.client.delete(f"/api/v1/purchases/{created.data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 5)
        self.assertFalse(PurchaseItem.objects.exists())

    def test_last_invoice(self):
        response = self.client.get('/api/v1/purchases/last-invoice/')
        self.assertIsNone(response.data['invoice_no'])

        self.client.post('/api/v1/purchases/', self.payload(), format='json')
        response = self.client.get('/api/v1/purchases/last-invoice/')
        self.assertEqual(response.data['invoice_no'], 'SA-1001')

    @override_settings(SELLER_STATE_CODE='07')
    def test_intra_state_purchase_splits_cgst_sgst(self):
        # Vendor state comes from the GSTIN prefix
        response = self.client.post('/api/v1/purchases/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_cgst'], Decimal('90.00'))
        self.assertEqual(response.data['total_sgst'], Decimal('90.00'))
        self.assertEqual(response.data['total_igst'], Decimal('0.00'))

    @override_settings(SELLER_STATE_CODE='07')
    def test_inter_state_purchase_carries_igst(self):
        state = TestDataFactory.create_state(name='Maharashtra', code='27')
        response = self.client.post(
            '/api/v1/purchases/', self.payload(gst_number='', state=state.id), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_cgst'], Decimal('0.00'))
        self.assertEqual(response.data['total_igst'], Decimal('180.00'))

        # Updating the items recomputes the split
        items = [{'product_id': self.product.id, 'qty': 1, 'rate': '100.00', 'tax': '28.00'}]
        response = self.client.put(
            f"/api/v1/purchases/{response.data['id']}/",
            self.payload(gst_number='', state=state.id, items=items),
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_igst'], Decimal('28.00'))

    def test_list_rejects_malformed_dates(self):
        for query in ('date_from=garbage', 'date_from=2024-13-45', 'date_to=2024/02/01'):
            response = self.client.get(f'/api/v1/purchases/?{query}')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertIn('Invalid date_', response.data['message'])
