"""
Test suite for Parties module
Tests: states, customers, vendors and vendor upsert
"""
from django.test import TestCase
from rest_framework import status
from autoparts.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from autoparts.parties.models import Vendor, Customer


class VendorUpsertTests(TestCase):
    """Vendor matching by GSTIN, then by name"""

    def test_creates_new_vendor(self):
        vendor, created = Vendor.objects.upsert('Sharma Auto', gst_number='07abcde1234f1z5', city='Delhi')
        self.assertTrue(created)
        self.assertEqual(vendor.gst_number, '07ABCDE1234F1Z5')
        self.assertEqual(vendor.city, 'Delhi')

    def test_matches_by_gstin_before_name(self):
        existing = TestDataFactory.create_vendor(name='Sharma Auto Parts', gst_number='07ABCDE1234F1Z5')
        TestDataFactory.create_vendor(name='Sharma Auto')

        vendor, created = Vendor.objects.upsert('Sharma Auto', gst_number='07abcde1234f1z5')
        self.assertFalse(created)
        self.assertEqual(vendor.pk, existing.pk)

    def test_matches_by_name_case_insensitive(self):
        existing = TestDataFactory.create_vendor(name='Sharma Auto')
        vendor, created = Vendor.objects.upsert('SHARMA AUTO', city='Noida')
        self.assertFalse(created)
        self.assertEqual(vendor.pk, existing.pk)
        existing.refresh_from_db()
        self.assertEqual(existing.city, 'Noida')

    def test_blank_details_do_not_overwrite(self):
        existing = TestDataFactory.create_vendor(name='Sharma Auto', contact_number='9876543210')
        Vendor.objects.upsert('Sharma Auto', contact_number='')
        existing.refresh_from_db()
        self.assertEqual(existing.contact_number, '9876543210')


class StateAPITests(TestCase):

    def setUp(self):
        TestDataFactory.clear_caches()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())

    def test_create_and_list(self):
        response = self.client.post('/api/v1/states/', {'name': 'Delhi', 'code': '07'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.get('/api/v1/states/?search=del')
        self.assertEqual(response.data['states'][0]['name'], 'Delhi')
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_duplicate_name_rejected(self):
        TestDataFactory.create_state(name='Delhi')
        response = self.client.post('/api/v1/states/', {'name': 'Delhi'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class CustomerAPITests(TestCase):

    def setUp(self):
        TestDataFactory.clear_caches()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())
        self.state = TestDataFactory.create_state(name='Haryana', code='06')

    def test_create_fills_state_code(self):
        data = {'billing_name': 'Verma Motors', 'billing_state': self.state.id, 'contact_no': '9811111111'}
        response = self.client.post('/api/v1/customers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['billing_state_code'], '06')

    def test_list_attaches_state_names(self):
        Customer.objects.create(billing_name='Verma Motors', billing_state=self.state)
        response = self.client.get('/api/v1/customers/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        row = response.data['customers'][0]
        self.assertEqual(row['billing_state_name'], 'Haryana')
        self.assertIsNone(row['shipping_state_name'])

    def test_search(self):
        TestDataFactory.create_customer(name='Verma Motors')
        TestDataFactory.create_customer(name='Gupta Garage')
        response = self.client.get('/api/v1/customers/?search=gupta')
        self.assertEqual([row['billing_name'] for row in response.data['customers']], ['Gupta Garage'])

    def test_blank_name_rejected(self):
        response = self.client.post('/api/v1/customers/', {'billing_name': ' '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class VendorAPITests(TestCase):

    def setUp(self):
        TestDataFactory.clear_caches()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_duplicate_gst_rejected(self):
        TestDataFactory.create_vendor(gst_number='07ABCDE1234F1Z5')
        response = self.client.post('/api/v1/vendors/', {'vendor_name': 'Other', 'gst_number': '07abcde1234f1z5'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_vendor_with_purchases_cannot_be_deleted(self):
        vendor = TestDataFactory.create_vendor()
        TestDataFactory.create_purchase(vendor=vendor)
        response = self.client.delete(f'/api/v1/vendors/{vendor.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Vendor.objects.filter(pk=vendor.pk).exists())

    def test_delete_unused_vendor(self):
        vendor = TestDataFactory.create_vendor()
        response = self.client.delete(f'/api/v1/vendors/{vendor.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
