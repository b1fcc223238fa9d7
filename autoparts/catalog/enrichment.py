"""
Product enrichment: display names for category, company and subcategories plus
the latest purchase rate, resolved for a whole page of products at once.

Rows are serialized product dicts (ProductSerializer output) where
product_category and company are id strings and product_subcategory is a
comma separated id list.
"""
from collections import namedtuple
import asyncio

from asgiref.sync import async_to_sync
from autoparts.core.lookup_cache import lookup_names, alookup_names
from autoparts.purchasing.rates import get_rate_resolver
from .filters import split_id_list
from .models import Category, Company, Subcategory

ResolvedNames = namedtuple('ResolvedNames', ['category_names', 'company_names', 'subcategory_names'])


def _ref(value):
    if value is None:
        return ''
    return str(value).strip()


def collect_reference_ids(rows):
    """Distinct category, company and subcategory ids referenced by rows"""
    category_ids, company_ids, subcategory_ids = set(), set(), set()
    for row in rows:
        category_id = _ref(row.get('product_category'))
        if category_id:
            category_ids.add(category_id)
        company_id = _ref(row.get('company'))
        if company_id:
            company_ids.add(company_id)
        subcategory_ids.update(split_id_list(row.get('product_subcategory')))
    return category_ids, company_ids, subcategory_ids


class BatchResolver:
    """
    Resolve every lookup id on a page with at most one query per lookup table,
    going through the lookup cache.
    """

    def __init__(self, cache=None):
        self.cache = cache

    def resolve(self, rows):
        category_ids, company_ids, subcategory_ids = collect_reference_ids(rows)
        return ResolvedNames(
            lookup_names('categories', Category, category_ids, cache=self.cache),
            lookup_names('companies', Company, company_ids, cache=self.cache),
            lookup_names('subcategories', Subcategory, subcategory_ids, cache=self.cache),
        )

    async def aresolve(self, rows):
        category_ids, company_ids, subcategory_ids = collect_reference_ids(rows)
        category_names, company_names, subcategory_names = await asyncio.gather(
            alookup_names('categories', Category, category_ids, cache=self.cache),
            alookup_names('companies', Company, company_ids, cache=self.cache),
            alookup_names('subcategories', Subcategory, subcategory_ids, cache=self.cache),
        )
        return ResolvedNames(category_names, company_names, subcategory_names)


def merge_enrichment(products, category_names, company_names, subcategory_names, rates):
    """
    Attach categoryName, companyName, subcategoryNames and latestPurchaseRate.

    Unresolved category/company ids display as the raw id, unresolved
    subcategory ids are left out, and a missing rate falls back to the
    product's own rate. Input rows are not modified; output order matches input.
    """
    enriched = []
    for product in products:
        category_id = _ref(product.get('product_category'))
        company_id = _ref(product.get('company'))
        names = [
            subcategory_names[sub_id]
            for sub_id in split_id_list(product.get('product_subcategory'))
            if sub_id in subcategory_names
        ]
        latest_rate = rates.get(_ref(product.get('id')))

        row = dict(product)
        row['categoryName'] = category_names.get(category_id, product.get('product_category'))
        row['companyName'] = company_names.get(company_id, product.get('company'))
        row['subcategoryNames'] = ', '.join(names)
        row['latestPurchaseRate'] = latest_rate if latest_rate is not None else product.get('rate')
        enriched.append(row)
    return enriched


async def aenrich_products(products, resolver=None, rate_resolver=None):
    """Fan out name and rate lookups together, then merge"""
    if not products:
        return []
    if resolver is None:
        resolver = BatchResolver()
    if rate_resolver is None:
        rate_resolver = get_rate_resolver()

    product_ids = [_ref(product.get('id')) for product in products]
    names, rates = await asyncio.gather(
        resolver.aresolve(products),
        rate_resolver.aresolve(product_ids),
    )
    return merge_enrichment(products, names.category_names, names.company_names, names.subcategory_names, rates)


def enrich_products(products, resolver=None, rate_resolver=None):
    return async_to_sync(aenrich_products)(products, resolver=resolver, rate_resolver=rate_resolver)
