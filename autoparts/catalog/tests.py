"""
Test suite for Catalog module
Tests: enrichment merge, batched name resolution, listing pagination modes,
filters, and product/lookup endpoints
"""
from datetime import date
from decimal import Decimal

from django.core.cache.backends.locmem import LocMemCache
from django.http import QueryDict
from django.test import TestCase, SimpleTestCase
from rest_framework import status

from autoparts.catalog.enrichment import BatchResolver, merge_enrichment, collect_reference_ids, enrich_products
from autoparts.catalog.filters import split_id_list, normalize_search_text, is_low_stock
from autoparts.catalog.listing import ProductListing, serialize_products
from autoparts.catalog.models import Category, Product
from autoparts.core.lookup_cache import LookupCache
from autoparts.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from autoparts.purchasing.rates import RateResolver, RawSQLRateStrategy, PerItemRateStrategy


def fresh_lookup_cache():
    backend = LocMemCache('catalog-tests', {})
    backend.clear()
    return LookupCache(backend=backend)


class StaticRates:
    """Rate resolver stub returning a fixed map"""

    def __init__(self, rates=None):
        self.rates = rates or {}

    def resolve(self, product_ids):
        return {pid: self.rates[pid] for pid in product_ids if pid in self.rates}

    async def aresolve(self, product_ids):
        return self.resolve(product_ids)


class FilterHelperTests(SimpleTestCase):

    def test_split_id_list(self):
        self.assertEqual(split_id_list('3, 7,9'), ['3', '7', '9'])
        self.assertEqual(split_id_list('3,,7, '), ['3', '7'])
        self.assertEqual(split_id_list(None), [])
        self.assertEqual(split_id_list(''), [])

    def test_normalize_search_text(self):
        self.assertEqual(normalize_search_text('AB-12'), 'ab12')
        self.assertEqual(normalize_search_text('ab 12/x'), 'ab12x')

    def test_low_stock_predicate(self):
        self.assertTrue(is_low_stock({'stock': 1, 'min_stock': 0}))
        self.assertTrue(is_low_stock({'stock': 5, 'min_stock': 6}))
        self.assertTrue(is_low_stock({'stock': None, 'min_stock': None}))
        self.assertFalse(is_low_stock({'stock': 2, 'min_stock': 2}))
        self.assertFalse(is_low_stock({'stock': 10, 'min_stock': 3}))


class MergeEnrichmentTests(SimpleTestCase):
    """merge_enrichment is a pure function over rows and lookup maps"""

    def setUp(self):
        self.rows = [
            {'id': 1, 'product_category': '3', 'company': '5', 'product_subcategory': '7,9', 'rate': Decimal('80.00')},
            {'id': 2, 'product_category': '4', 'company': None, 'product_subcategory': '', 'rate': Decimal('55.00')},
            {'id': 3, 'product_category': None, 'company': '6', 'product_subcategory': '9,8', 'rate': Decimal('10.00')},
        ]
        self.categories = {'3': 'Brakes'}
        self.companies = {'5': 'Bosch', '6': 'Lumax'}
        self.subcategories = {'7': 'Swift', '9': 'Alto'}
        self.rates = {'1': Decimal('72.50')}

    def merge(self):
        return merge_enrichment(self.rows, self.categories, self.companies, self.subcategories, self.rates)

    def test_order_and_length_preserved(self):
        merged = self.merge()
        self.assertEqual([row['id'] for row in merged], [1, 2, 3])

    def test_names_resolved(self):
        first = self.merge()[0]
        self.assertEqual(first['categoryName'], 'Brakes')
        self.assertEqual(first['companyName'], 'Bosch')
        self.assertEqual(first['subcategoryNames'], 'Swift, Alto')
        self.assertEqual(first['latestPurchaseRate'], Decimal('72.50'))

    def test_unresolved_references_fall_back(self):
        merged = self.merge()
        # Unknown category shows the raw id; a missing company stays empty
        self.assertEqual(merged[1]['categoryName'], '4')
        self.assertIsNone(merged[1]['companyName'])
        self.assertEqual(merged[1]['subcategoryNames'], '')
        # Unknown subcategory ids are dropped from the names
        self.assertEqual(merged[2]['subcategoryNames'], 'Alto')

    def test_rate_falls_back_to_product_rate(self):
        merged = self.merge()
        self.assertEqual(merged[1]['latestPurchaseRate'], Decimal('55.00'))
        self.assertEqual(merged[2]['latestPurchaseRate'], Decimal('10.00'))

    def test_input_rows_not_modified(self):
        before = [dict(row) for row in self.rows]
        self.merge()
        self.assertEqual(self.rows, before)

    def test_empty_maps(self):
        merged = merge_enrichment(self.rows, {}, {}, {}, {})
        self.assertEqual(merged[0]['categoryName'], '3')
        self.assertEqual(merged[0]['subcategoryNames'], '')
        self.assertEqual(merged[0]['latestPurchaseRate'], Decimal('80.00'))

    def test_collect_reference_ids(self):
        categories, companies, subcategories = collect_reference_ids(self.rows)
        self.assertEqual(categories, {'3', '4'})
        self.assertEqual(companies, {'5', '6'})
        self.assertEqual(subcategories, {'7', '8', '9'})


class BatchResolverTests(TestCase):
    """Name resolution costs at most one query per lookup table"""

    def setUp(self):
        TestDataFactory.clear_caches()
        self.subcategories = [TestDataFactory.create_subcategory() for _ in range(3)]
        for i in range(12):
            TestDataFactory.create_product(
                category=TestDataFactory.create_category(),
                company=TestDataFactory.create_company(),
                subcategories=self.subcategories[:1 + i % 3],
            )
        self.rows = serialize_products(Product.objects.prefetch_related('subcategory_links'))

    def test_three_queries_for_a_page(self):
        resolver = BatchResolver(cache=fresh_lookup_cache())
        with self.assertNumQueries(3):
            names = resolver.resolve(self.rows)
        self.assertEqual(len(names.category_names), 12)
        self.assertEqual(len(names.company_names), 12)
        self.assertEqual(len(names.subcategory_names), 3)

    def test_cached_page_costs_nothing(self):
        resolver = BatchResolver(cache=fresh_lookup_cache())
        resolver.resolve(self.rows)
        with self.assertNumQueries(0):
            resolver.resolve(self.rows)

    def test_async_path_matches(self):
        resolver = BatchResolver(cache=fresh_lookup_cache())
        with self.assertNumQueries(3):
            products = enrich_products(self.rows, resolver=resolver, rate_resolver=StaticRates())
        self.assertEqual(len(products), 12)
        self.assertTrue(all(row['subcategoryNames'] for row in products))

    def test_page_without_references(self):
        rows = [{'id': 1, 'product_category': None, 'company': '', 'product_subcategory': ''}]
        with self.assertNumQueries(0):
            names = BatchResolver(cache=fresh_lookup_cache()).resolve(rows)
        self.assertEqual(names.category_names, {})


class ProductListingTests(TestCase):
    """Database and memory pagination modes"""

    def setUp(self):
        TestDataFactory.clear_caches()
        self.rates = StaticRates()

    def listing(self, query=''):
        return ProductListing(QueryDict(query), rate_resolver=self.rates).run()

    def test_database_mode_last_page(self):
        for _ in range(37):
            TestDataFactory.create_product()
        result = self.listing('page=4&limit=10')
        self.assertEqual(len(result['products']), 7)
        self.assertEqual(result['pagination'], {
            'page': 4, 'limit': 10, 'total': 37, 'totalPages': 4, 'hasMore': False,
        })

    def test_database_mode_newest_first(self):
        products = [TestDataFactory.create_product() for _ in range(3)]
        result = self.listing()
        self.assertEqual([row['id'] for row in result['products']], [p.id for p in reversed(products)])
        self.assertFalse(ProductListing(QueryDict('')).in_memory)

    def test_page_past_the_end(self):
        TestDataFactory.create_product()
        result = self.listing('page=5&limit=10')
        self.assertEqual(result['products'], [])
        self.assertEqual(result['pagination']['total'], 1)
        self.assertFalse(result['pagination']['hasMore'])

    def test_low_stock_memory_mode(self):
        low = [
            TestDataFactory.create_product(stock=1, min_stock=0),
            TestDataFactory.create_product(stock=5, min_stock=6),
            TestDataFactory.create_product(stock=0, min_stock=0),
        ]
        TestDataFactory.create_product(stock=2, min_stock=2)
        TestDataFactory.create_product(stock=50, min_stock=5)

        listing = ProductListing(QueryDict('lowStock=true&limit=2'), rate_resolver=self.rates)
        self.assertTrue(listing.in_memory)
        result = listing.run()
        self.assertEqual(result['pagination']['total'], 3)
        self.assertEqual(result['pagination']['totalPages'], 2)
        self.assertTrue(result['pagination']['hasMore'])
        self.assertEqual([row['id'] for row in result['products']], [low[2].id, low[1].id])

    def test_low_stock_false_is_database_mode(self):
        self.assertFalse(ProductListing(QueryDict('lowStock=false')).in_memory)

    def test_subcategory_filter_matches_any(self):
        swift, alto, city = (TestDataFactory.create_subcategory(name=n) for n in ('Swift', 'Alto', 'City'))
        first = TestDataFactory.create_product(subcategories=[swift, alto])
        second = TestDataFactory.create_product(subcategories=[city])
        TestDataFactory.create_product()

        result = self.listing(f'subcategory={alto.id}')
        self.assertEqual([row['id'] for row in result['products']], [first.id])
        self.assertEqual(result['products'][0]['subcategoryNames'], 'Swift, Alto')

        result = self.listing(f'subcategory={alto.id},{city.id}')
        self.assertEqual({row['id'] for row in result['products']}, {first.id, second.id})

    def test_combined_filters(self):
        brakes = TestDataFactory.create_category(name='Brakes')
        sub = TestDataFactory.create_subcategory()
        match = TestDataFactory.create_product(category=brakes, subcategories=[sub], stock=0)
        TestDataFactory.create_product(category=brakes, subcategories=[sub], stock=100)
        TestDataFactory.create_product(subcategories=[sub], stock=0)

        result = self.listing(f'category={brakes.id}&subcategory={sub.id}&lowStock=true')
        self.assertEqual([row['id'] for row in result['products']], [match.id])
        self.assertEqual(result['products'][0]['categoryName'], 'Brakes')

    def test_search_normalized_part_number(self):
        product = TestDataFactory.create_product(name='Brake Pad', part_no='AB12')
        TestDataFactory.create_product(name='Clutch Plate', part_no='ZZ99')

        result = self.listing('search=ab-12')
        self.assertEqual([row['id'] for row in result['products']], [product.id])
        result = self.listing('search=Brake')
        self.assertEqual([row['id'] for row in result['products']], [product.id])

    def test_non_numeric_category_returns_nothing(self):
        TestDataFactory.create_product(category=TestDataFactory.create_category())
        result = self.listing('category=abc')
        self.assertEqual(result['products'], [])
        self.assertEqual(result['pagination']['total'], 0)

    def test_dangling_category_displays_raw_id(self):
        category = TestDataFactory.create_category()
        product = TestDataFactory.create_product(category=category)
        category_id = str(category.id)
        Category.objects.filter(pk=category.pk).delete()

        row = self.listing()['products'][0]
        self.assertEqual(row['id'], product.id)
        self.assertEqual(row['categoryName'], category_id)

    def test_latest_purchase_rate_attached(self):
        product = TestDataFactory.create_product(rate=Decimal('90.00'))
        other = TestDataFactory.create_product(rate=Decimal('40.00'))
        purchase = TestDataFactory.create_purchase(invoice_date=date(2024, 5, 1))
        TestDataFactory.create_purchase_item(purchase, product, rate=Decimal('75.00'))
        later = TestDataFactory.create_purchase(invoice_date=date(2024, 6, 1))
        TestDataFactory.create_purchase_item(later, product, rate=Decimal('82.50'))

        rows = {row['id']: row for row in ProductListing(QueryDict('')).run()['products']}
        self.assertEqual(rows[product.id]['latestPurchaseRate'], Decimal('82.50'))
        self.assertEqual(rows[other.id]['latestPurchaseRate'], Decimal('40.00'))

    def test_rate_fast_path_failure_still_lists(self):
        product = TestDataFactory.create_product(rate=Decimal('90.00'))
        purchase = TestDataFactory.create_purchase()
        TestDataFactory.create_purchase_item(purchase, product, rate=Decimal('70.00'))

        resolver = RateResolver(primary=RawSQLRateStrategy(table='missing_purchase_items'), fallback=PerItemRateStrategy())
        result = ProductListing(QueryDict(''), rate_resolver=resolver).run()
        self.assertEqual(result['products'][0]['latestPurchaseRate'], Decimal('70.00'))


class LookupAPITests(TestCase):
    """Category, company and subcategory endpoints"""

    def setUp(self):
        TestDataFactory.clear_caches()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_list_with_index(self):
        for name in ('Brakes', 'Clutch', 'Filters'):
            TestDataFactory.create_category(name=name)
        response = self.client.get('/api/v1/categories/?page=2&limit=2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['categories'][0]['name'], 'Filters')
        self.assertEqual(response.data['categories'][0]['index'], 3)
        self.assertEqual(response.data['pagination']['total'], 3)

    def test_create_and_rename_company(self):
        response = self.client.post('/api/v1/companies/', {'name': '  Bosch '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Bosch')

        company_id = response.data['id']
        response = self.client.patch(f'/api/v1/companies/{company_id}/', {'name': 'Bosch India'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Bosch India')

    def test_blank_name_rejected(self):
        response = self.client.post('/api/v1/subcategories/', {'name': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_subcategory(self):
        sub = TestDataFactory.create_subcategory()
        response = self.client.delete(f'/api/v1/subcategories/{sub.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_filter_options(self):
        TestDataFactory.create_category(name='Brakes')
        TestDataFactory.create_company(name='Bosch')
        response = self.client.get('/api/v1/products/filters/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['categories'][0]['name'], 'Brakes')
        self.assertEqual(response.data['companies'][0]['name'], 'Bosch')
        self.assertEqual(response.data['subcategories'], [])


class ProductAPITests(TestCase):
    """Product endpoints"""

    def setUp(self):
        TestDataFactory.clear_caches()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.category = TestDataFactory.create_category(name='Brakes')
        self.company = TestDataFactory.create_company(name='Bosch')
        self.swift = TestDataFactory.create_subcategory(name='Swift')
        self.alto = TestDataFactory.create_subcategory(name='Alto')

    def test_list_shape(self):
        TestDataFactory.create_product(category=self.category, company=self.company, subcategories=[self.swift])
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(set(response.data), {'products', 'pagination'})
        row = response.data['products'][0]
        self.assertEqual(row['categoryName'], 'Brakes')
        self.assertEqual(row['companyName'], 'Bosch')
        self.assertEqual(row['subcategoryNames'], 'Swift')
        self.assertIn('latestPurchaseRate', row)
        self.assertIn('private', response['Cache-Control'])

    def test_invalid_paging_uses_defaults(self):
        TestDataFactory.create_product()
        response = self.client.get('/api/v1/products/?page=abc&limit=-4')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['page'], 1)
        self.assertEqual(response.data['pagination']['limit'], 1)

    def test_create_product(self):
        data = {
            'product_name': 'Brake Pad',
            'part_no': 'BP-100',
            'product_category': str(self.category.id),
            'company': str(self.company.id),
            'product_subcategory': f'{self.alto.id},{self.swift.id}',
            'stock': 4,
            'min_stock': 2,
            'rate': '120.00',
        }
        response = self.client.post('/api/v1/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['product_subcategory'], f'{self.alto.id},{self.swift.id}')
        self.assertEqual(response.data['subcategoryNames'], 'Alto, Swift')
        self.assertEqual(response.data['latestPurchaseRate'], Decimal('120.00'))

        product = Product.objects.get(pk=response.data['id'])
        self.assertEqual(product.category_id, self.category.id)
        self.assertEqual(product.subcategory_ids, [str(self.alto.id), str(self.swift.id)])

    def test_create_with_unknown_category(self):
        response = self.client.post('/api/v1/products/', {'product_name': 'X', 'product_category': '99999'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('product_category', response.data)

    def test_negative_stock_rejected(self):
        response = self.client.post('/api/v1/products/', {'product_name': 'X', 'stock': -1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_replaces_subcategories(self):
        product = TestDataFactory.create_product(subcategories=[self.swift, self.alto])
        response = self.client.patch(f'/api/v1/products/{product.id}/', {'product_subcategory': str(self.alto.id)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['subcategoryNames'], 'Alto')

    def test_detail_and_delete(self):
        product = TestDataFactory.create_product(category=self.category)
        response = self.client.get(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['categoryName'], 'Brakes')

        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(pk=product.id).exists())

    def test_missing_product(self):
        response = self.client.get('/api/v1/products/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
