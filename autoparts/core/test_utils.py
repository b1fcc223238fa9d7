"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from django.core.cache import caches
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from autoparts.catalog.models import Category, Company, Subcategory, Product
from autoparts.parties.models import State, Customer, Vendor
from autoparts.purchasing.models import Purchase, PurchaseItem
from autoparts.sales.models import Invoice, InvoiceItem
from autoparts.core.lookup_cache import set_lookup_cache
from autoparts.core.utils import financial_year_for
from decimal import Decimal
import random
import string
import uuid

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def clear_caches():
        """Empty every cache alias and drop the process-wide lookup cache"""
        for alias in ('default', 'lookups'):
            caches[alias].clear()
        set_lookup_cache(None)

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_category(name=None):
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(name=name)

    @staticmethod
    def create_company(name=None):
        if not name:
            name = f'Company_{TestDataFactory.random_string(6)}'
        return Company.objects.create(name=name)

    @staticmethod
    def create_subcategory(name=None):
        if not name:
            name = f'Subcategory_{TestDataFactory.random_string(6)}'
        return Subcategory.objects.create(name=name)

    @staticmethod
    def create_product(name=None, part_no=None, category=None, company=None, subcategories=None,
                       stock=10, min_stock=0, rate=None):
        """Create a test product; subcategories is a list of Subcategory rows or ids"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if part_no is None:
            part_no = f'PN{TestDataFactory.random_string(8)}'
        product = Product.objects.create(
            product_name=name,
            part_no=part_no,
            category=category,
            company=company,
            stock=stock,
            min_stock=min_stock,
            rate=rate if rate is not None else Decimal('100.00'),
        )
        if subcategories:
            product.set_subcategories([getattr(sub, 'pk', sub) for sub in subcategories])
        return product

    @staticmethod
    def create_state(name=None, code=''):
        if not name:
            name = f'State_{TestDataFactory.random_string(6)}'
        return State.objects.create(name=name, code=code)

    @staticmethod
    def create_customer(name=None, contact_no=None, gstin=''):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        if not contact_no:
            contact_no = f'9{random.randint(100000000, 999999999)}'
        return Customer.objects.create(
            billing_name=name,
            billing_address=f'Test Address {name}',
            billing_gstin=gstin,
            contact_no=contact_no
        )

    @staticmethod
    def create_vendor(name=None, gst_number='', contact_number=None):
        """Create a test vendor"""
        if not name:
            name = f'Vendor_{TestDataFactory.random_string(6)}'
        if not contact_number:
            contact_number = f'9{random.randint(100000000, 999999999)}'
        return Vendor.objects.create(
            vendor_name=name,
            gst_number=gst_number,
            contact_number=contact_number
        )

    @staticmethod
    def create_purchase(user=None, vendor=None, invoice_date=None, invoice_no=None):
        """Create a test purchase header (no items, stock untouched)"""
        if not vendor:
            vendor = TestDataFactory.create_vendor()
        if not invoice_date:
            invoice_date = timezone.localdate()
        if not invoice_no:
            invoice_no = f"PUR-{str(uuid.uuid4())[:8].upper()}"
        return Purchase.objects.create(
            vendor=vendor,
            invoice_no=invoice_no,
            invoice_date=invoice_date,
            fy=financial_year_for(invoice_date),
            created_by=user
        )

    @staticmethod
    def create_purchase_item(purchase, product, qty=10, rate=None, tax=None, invoice_date=None):
        """Create a test purchase line; invoice_date defaults to the purchase's"""
        if rate is None:
            rate = Decimal('100.00')
        if tax is None:
            tax = Decimal('0.00')
        item = PurchaseItem(
            purchase=purchase,
            product=product,
            product_name=product.product_name,
            invoice_date=invoice_date or purchase.invoice_date,
            qty=qty,
            rate=rate,
            tax=tax,
        )
        item.total = item.get_line_total()
        item.save()
        return item

    @staticmethod
    def create_invoice(user=None, customer=None, invoice_date=None, total=None, payment_mode='cash'):
        """Create a test sales invoice header (no items, stock untouched)"""
        if not invoice_date:
            invoice_date = timezone.localdate()
        invoice_no = f"INV-{str(uuid.uuid4())[:8].upper()}"
        while Invoice.objects.filter(invoice_no=invoice_no).exists():
            invoice_no = f"INV-{str(uuid.uuid4())[:8].upper()}"
        return Invoice.objects.create(
            invoice_no=invoice_no,
            invoice_date=invoice_date,
            fy=financial_year_for(invoice_date),
            customer=customer,
            billing_name=customer.billing_name if customer else 'Walk-in',
            payment_mode=payment_mode,
            total=total if total is not None else Decimal('0.00'),
            created_by=user
        )

    @staticmethod
    def create_invoice_item(invoice, product, qty=1, rate=None):
        if rate is None:
            rate = product.rate
        return InvoiceItem.objects.create(
            invoice=invoice,
            product=product,
            product_name=product.product_name,
            qty=qty,
            rate=rate,
            total=rate * qty
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
