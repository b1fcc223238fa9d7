"""
Product listing pipeline: filter -> paginate -> enrich.

Pagination happens in the database unless a low-stock or subcategory filter is
active; those filters are applied in memory over every row matching the
database filters, and the filtered list is sliced.
"""
import logging
import time

from asgiref.sync import async_to_sync, sync_to_async
from autoparts.core.pagination import parse_page_params, paginate_list, apaginate_queryset
from .enrichment import aenrich_products, enrich_products
from .filters import ProductFilter, is_low_stock, has_any_subcategory, split_id_list
from .models import Product
from .serializers import ProductSerializer

logger = logging.getLogger(__name__)


def serialize_products(products):
    return [dict(row) for row in ProductSerializer(products, many=True).data]


class ProductListing:
    """One listing request; the pagination mode is decided once from the filters"""

    def __init__(self, query_params, resolver=None, rate_resolver=None):
        self.query_params = query_params
        self.page, self.limit = parse_page_params(query_params)
        self.low_stock = str(query_params.get('lowStock', 'false')).strip().lower() == 'true'
        self.subcategory_ids = split_id_list(query_params.get('subcategory'))
        self.resolver = resolver
        self.rate_resolver = rate_resolver

    @property
    def in_memory(self):
        return self.low_stock or bool(self.subcategory_ids)

    def filtered_queryset(self):
        queryset = Product.objects.prefetch_related('subcategory_links').order_by('-id')
        return ProductFilter(self.query_params, queryset=queryset).qs

    def apply_memory_filters(self, rows):
        if self.low_stock:
            rows = [row for row in rows if is_low_stock(row)]
        if self.subcategory_ids:
            rows = [row for row in rows if has_any_subcategory(row, self.subcategory_ids)]
        return rows

    async def afetch_page(self):
        queryset = self.filtered_queryset()
        if self.in_memory:
            rows = await sync_to_async(serialize_products)(queryset)
            return paginate_list(self.apply_memory_filters(rows), self.page, self.limit)

        products, pagination = await apaginate_queryset(queryset, self.page, self.limit)
        rows = await sync_to_async(serialize_products)(products)
        return rows, pagination

    async def arun(self):
        started = time.monotonic()
        rows, pagination = await self.afetch_page()
        products = await aenrich_products(rows, resolver=self.resolver, rate_resolver=self.rate_resolver)
        elapsed_ms = (time.monotonic() - started) * 1000
        logger.info(
            f"Product listing ({'memory' if self.in_memory else 'database'} pagination): "
            f"page={self.page} limit={self.limit} returned={len(products)} total={pagination['total']} in {elapsed_ms:.1f}ms"
        )
        return {'products': products, 'pagination': pagination}

    def run(self):
        return async_to_sync(self.arun)()


def enriched_product(product, resolver=None, rate_resolver=None):
    """Single product through the same enrichment as the listing"""
    return enrich_products(serialize_products([product]), resolver=resolver, rate_resolver=rate_resolver)[0]
