"""
Test suite for Core module
Tests: lookup cache expiry and invalidation, pagination, error responses, auth, audit logs,
financial years, date parameters and the GST split
"""
from decimal import Decimal

from django.core.cache.backends.locmem import LocMemCache
from django.http import Http404
from django.test import TestCase, SimpleTestCase, override_settings
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.test import APIRequestFactory
from autoparts.core.exceptions import api_error_boundary
from autoparts.core.lookup_cache import LookupCache, build_key, normalize_ids, lookup_names, get_lookup_cache
from autoparts.core.models import AuditLog
from autoparts.core.pagination import parse_page_params, build_pagination, paginate_list
from autoparts.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from autoparts.core.gst import split_gst, state_code_for, is_inter_state
from autoparts.core.utils import create_audit_log, financial_year_for, parse_date_params
from autoparts.catalog.models import Category
from datetime import date


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class LookupCacheTests(SimpleTestCase):
    """Expiry, key derivation and invalidation of the lookup cache"""

    def setUp(self):
        self.backend = LocMemCache('lookup-cache-tests', {})
        self.backend.clear()
        self.clock = FakeClock()
        self.cache = LookupCache(backend=self.backend, ttl=300, clock=self.clock)
        self.calls = 0

    def fetcher(self):
        self.calls += 1
        return {'1': f'Brakes v{self.calls}'}

    def test_fresh_entry_is_served_from_cache(self):
        self.assertEqual(self.cache.get_or_fetch('categories_1', self.fetcher), {'1': 'Brakes v1'})
        self.clock.now += 299
        self.assertEqual(self.cache.get_or_fetch('categories_1', self.fetcher), {'1': 'Brakes v1'})
        self.assertEqual(self.calls, 1)

    def test_entry_expires_at_ttl(self):
        self.cache.get_or_fetch('categories_1', self.fetcher)
        self.clock.now += 300
        self.assertEqual(self.cache.get_or_fetch('categories_1', self.fetcher), {'1': 'Brakes v2'})
        self.assertEqual(self.calls, 2)

    def test_refetch_restarts_the_ttl(self):
        self.cache.get_or_fetch('categories_1', self.fetcher)
        self.clock.now += 301
        self.cache.get_or_fetch('categories_1', self.fetcher)
        self.clock.now += 200
        self.cache.get_or_fetch('categories_1', self.fetcher)
        self.assertEqual(self.calls, 2)

    def test_distinct_keys_have_independent_slots(self):
        self.cache.get_or_fetch('categories_1', self.fetcher)
        self.cache.get_or_fetch('categories_1,2', self.fetcher)
        self.assertEqual(self.calls, 2)

    def test_invalidate_drops_namespace_only(self):
        self.cache.get_or_fetch('categories_1', self.fetcher)
        self.cache.get_or_fetch('companies_1', self.fetcher)
        self.clock.now += 1
        self.cache.invalidate('categories')
        self.clock.now += 1

        self.cache.get_or_fetch('categories_1', self.fetcher)
        self.cache.get_or_fetch('companies_1', self.fetcher)
        self.assertEqual(self.calls, 3)

    def test_fetcher_error_propagates_and_caches_nothing(self):
        def failing():
            raise RuntimeError('db down')

        with self.assertRaises(RuntimeError):
            self.cache.get_or_fetch('categories_9', failing)
        self.assertEqual(self.cache.get_or_fetch('categories_9', self.fetcher), {'1': 'Brakes v1'})

    def test_build_key_sorts_and_dedupes(self):
        self.assertEqual(build_key('categories', ['10', '2', '2', ' 3 ']), 'categories_2,3,10')
        self.assertEqual(build_key('categories', [3, 2]), build_key('categories', ['2', '3']))

    def test_build_key_hashes_long_id_lists(self):
        key = build_key('subcategories', [str(i) for i in range(1, 200)])
        self.assertTrue(key.startswith('subcategories_'))
        self.assertLessEqual(len(key), 100)

    def test_normalize_ids_drops_blanks(self):
        self.assertEqual(normalize_ids(['', None, ' 4', '4', '1']), ['1', '4'])


class LookupNamesTests(TestCase):
    """lookup_names against the database"""

    def setUp(self):
        TestDataFactory.clear_caches()

    def test_empty_id_set_issues_no_query(self):
        with self.assertNumQueries(0):
            self.assertEqual(lookup_names('categories', Category, []), {})

    def test_names_are_cached_per_id_set(self):
        category = TestDataFactory.create_category(name='Filters')
        with self.assertNumQueries(1):
            self.assertEqual(lookup_names('categories', Category, [category.pk]), {str(category.pk): 'Filters'})
        with self.assertNumQueries(0):
            lookup_names('categories', Category, [str(category.pk)])

    def test_rename_is_visible_after_commit(self):
        category = TestDataFactory.create_category(name='Filters')
        lookup_names('categories', Category, [category.pk])

        with self.captureOnCommitCallbacks(execute=True):
            category.name = 'Oil Filters'
            category.save()

        self.assertEqual(lookup_names('categories', Category, [category.pk]), {str(category.pk): 'Oil Filters'})

    def test_unknown_ids_are_absent(self):
        category = TestDataFactory.create_category(name='Filters')
        names = lookup_names('categories', Category, [category.pk, 999999, 'abc'])
        self.assertEqual(names, {str(category.pk): 'Filters'})

    def test_default_cache_uses_lookup_alias(self):
        self.assertIsInstance(get_lookup_cache(), LookupCache)
        self.assertEqual(get_lookup_cache().ttl, 300)


class PaginationTests(SimpleTestCase):
    """Page/limit parsing and pagination metadata"""

    def test_defaults(self):
        self.assertEqual(parse_page_params({}), (1, 50))

    def test_invalid_values_fall_back(self):
        self.assertEqual(parse_page_params({'page': 'abc', 'limit': 'xyz'}), (1, 50))

    def test_bounds(self):
        self.assertEqual(parse_page_params({'page': '0', 'limit': '0'}), (1, 1))
        self.assertEqual(parse_page_params({'page': '-3', 'limit': '100000'}), (1, 500))

    def test_build_pagination(self):
        self.assertEqual(build_pagination(4, 10, 37), {
            'page': 4, 'limit': 10, 'total': 37, 'totalPages': 4, 'hasMore': False,
        })
        self.assertTrue(build_pagination(1, 10, 37)['hasMore'])
        self.assertEqual(build_pagination(1, 10, 0)['totalPages'], 0)

    def test_paginate_list_past_the_end(self):
        rows, pagination = paginate_list(list(range(5)), 3, 2)
        self.assertEqual(rows, [4])
        rows, pagination = paginate_list(list(range(5)), 9, 2)
        self.assertEqual(rows, [])
        self.assertEqual(pagination['total'], 5)
        self.assertFalse(pagination['hasMore'])


class ErrorBoundaryTests(SimpleTestCase):
    """Unexpected exceptions become {message, error} with HTTP 500"""

    def setUp(self):
        self.factory = APIRequestFactory()

    def test_unexpected_error(self):
        @api_error_boundary('Failed to fetch products', POST='Failed to create product')
        def view(request):
            raise RuntimeError('connection reset')

        response = view(self.factory.get('/'))
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {'message': 'Failed to fetch products', 'error': 'connection reset'})

        response = view(self.factory.post('/'))
        self.assertEqual(response.data['message'], 'Failed to create product')

    def test_api_exceptions_pass_through(self):
        @api_error_boundary('Failed')
        def view(request):
            raise ValidationError({'name': ['required']})

        with self.assertRaises(ValidationError):
            view(self.factory.get('/'))

    def test_not_found_passes_through(self):
        @api_error_boundary('Failed')
        def view(request):
            raise Http404

        with self.assertRaises(Http404):
            view(self.factory.get('/'))


class AuthAPITests(TestCase):
    """Login, refresh and current user"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='counter1', password='secret123')
        self.client = AuthenticatedAPIClient()

    def test_login_returns_tokens_and_user(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'counter1', 'password': 'secret123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['username'], 'counter1')

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'counter1', 'password': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('message', response.data)

    def test_refresh(self):
        login = self.client.post('/api/v1/auth/login/', {'username': 'counter1', 'password': 'secret123'}, format='json')
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_me(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'counter1')
        self.assertEqual(response.data['groups'], [])

    def test_unauthenticated_requests_rejected(self):
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class AuditLogTests(TestCase):
    """Audit log helper and listing"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_audit_log(self):
        log = create_audit_log(action='create', model_name='Product', object_id=7, user=self.admin, object_name='Brake pad')
        self.assertEqual(log.object_id, '7')
        self.assertEqual(log.user, self.admin)

    def test_missing_fields_skipped(self):
        self.assertIsNone(create_audit_log(action='create', model_name='Product'))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_list_requires_admin(self):
        create_audit_log(action='create', model_name='Product', object_id=1, user=self.admin)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 1)

        clerk = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        self.assertEqual(clerk.get('/api/v1/audit-logs/').status_code, status.HTTP_403_FORBIDDEN)


class FinancialYearTests(SimpleTestCase):
    def test_april_starts_the_year(self):
        self.assertEqual(financial_year_for(date(2024, 4, 1)), 2024)
        self.assertEqual(financial_year_for(date(2025, 3, 31)), 2024)


class DateParamsTests(SimpleTestCase):
    def test_valid_and_blank_values(self):
        dates, error = parse_date_params({'date_from': '2024-02-01', 'date_to': ' '})
        self.assertIsNone(error)
        self.assertEqual(dates, {'date_from': date(2024, 2, 1)})

    def test_malformed_values(self):
        for raw in ('garbage', '2024-13-45', '01-02-2024'):
            dates, error = parse_date_params({'date_to': raw})
            self.assertEqual(dates, {})
            self.assertIn(f'Invalid date_to: {raw}', error)

    def test_custom_names(self):
        dates, error = parse_date_params({'start_date': '2024-07-01', 'date_from': 'x'}, names=('start_date',))
        self.assertIsNone(error)
        self.assertEqual(dates, {'start_date': date(2024, 7, 1)})


class GSTSplitTests(SimpleTestCase):
    def test_state_code(self):
        self.assertEqual(state_code_for('7'), '07')
        self.assertEqual(state_code_for('', '27AAACB1234C1Z5'), '27')
        self.assertEqual(state_code_for('09', '27AAACB1234C1Z5'), '09')
        self.assertEqual(state_code_for('', 'URP'), '')

    def test_intra_state_halves(self):
        split = split_gst(Decimal('81.00'), '06', seller_code='06')
        self.assertEqual(split, (Decimal('40.50'), Decimal('40.50'), Decimal('0.00')))

    def test_odd_paisa_goes_to_sgst(self):
        cgst, sgst, igst = split_gst(Decimal('0.05'), '06', seller_code='06')
        self.assertEqual(cgst + sgst, Decimal('0.05'))
        self.assertEqual(igst, Decimal('0.00'))

    def test_inter_state(self):
        split = split_gst(Decimal('81.00'), '06', seller_code='07')
        self.assertEqual(split, (Decimal('0.00'), Decimal('0.00'), Decimal('81.00')))

    def test_unknown_state_is_intra_state(self):
        self.assertFalse(is_inter_state('', seller_code='07'))
        self.assertFalse(is_inter_state('06', seller_code=''))

    @override_settings(SELLER_STATE_CODE='07')
    def test_seller_code_from_settings(self):
        self.assertTrue(is_inter_state('06'))
        self.assertFalse(is_inter_state('7'))
