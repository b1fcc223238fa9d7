"""
Latest purchase rate per product.

The rate for a product is the line-item rate on its most recent invoice_date;
on equal dates the line item with the highest id wins.

Two strategies share one result shape:
- RawSQLRateStrategy: one statement, self-join against a MAX(invoice_date) subquery
- PerItemRateStrategy: one ORM query per product, batched, with a time budget

RateResolver tries the first and hands over to the second when the result is
tagged fallback_needed. It never raises; a product without a rate is simply
absent from the returned map.
"""
from collections import namedtuple
from decimal import Decimal
import logging
import time

from asgiref.sync import sync_to_async
from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, connections, transaction
from .models import PurchaseItem

logger = logging.getLogger(__name__)

RATE_FALLBACK_BATCH_SIZE = 20
RATE_FALLBACK_TIME_BUDGET = 5.0  # seconds

RateResult = namedtuple('RateResult', ['rates', 'fallback_needed', 'error'], defaults=(False, None))


def clean_product_ids(product_ids):
    """Numeric id strings, deduplicated, in first-seen order"""
    seen = []
    for value in product_ids:
        value = str(value).strip()
        if value.isdigit() and value not in seen:
            seen.append(value)
    return seen


def _to_decimal(value):
    if value is None or isinstance(value, Decimal):
        return value
    # Some backends return floats from raw queries
    return Decimal(str(value))


class RawSQLRateStrategy:
    """Latest rates for all requested products in one round-trip"""

    def __init__(self, using=DEFAULT_DB_ALIAS, table=None):
        self.using = using
        self.table = table or PurchaseItem._meta.db_table

    def build_sql(self, id_count):
        connection = connections[self.using]
        table = connection.ops.quote_name(self.table)
        placeholders = ', '.join(['%s'] * id_count)
        # ORDER BY id so that on equal dates the highest id is applied last
        return (
            f"SELECT pi.product_id, pi.rate "
            f"FROM {table} pi "
            f"INNER JOIN ("
            f"SELECT product_id, MAX(invoice_date) AS max_date "
            f"FROM {table} "
            f"WHERE product_id IN ({placeholders}) "
            f"GROUP BY product_id"
            f") latest ON latest.product_id = pi.product_id AND latest.max_date = pi.invoice_date "
            f"ORDER BY pi.product_id, pi.id"
        )

    def resolve(self, product_ids):
        ids = clean_product_ids(product_ids)
        if not ids:
            return RateResult({})

        sql = self.build_sql(len(ids))
        try:
            # Savepoint so a failed statement leaves the request transaction usable
            with transaction.atomic(using=self.using):
                with connections[self.using].cursor() as cursor:
                    cursor.execute(sql, [int(i) for i in ids])
                    rows = cursor.fetchall()
        except Exception as e:
            logger.warning(f"Raw latest-rate query failed for {len(ids)} products: {e}")
            return RateResult({}, fallback_needed=True, error=str(e))

        rates = {}
        for product_id, rate in rows:
            rates[str(product_id)] = _to_decimal(rate)
        return RateResult(rates)


class PerItemRateStrategy:
    """One "latest line item" query per product, in fixed-size batches"""

    def __init__(self, batch_size=None, time_budget=None, clock=None, using=DEFAULT_DB_ALIAS):
        self.batch_size = batch_size or getattr(settings, 'RATE_FALLBACK_BATCH_SIZE', RATE_FALLBACK_BATCH_SIZE)
        self.time_budget = time_budget if time_budget is not None else getattr(
            settings, 'RATE_FALLBACK_TIME_BUDGET', RATE_FALLBACK_TIME_BUDGET
        )
        self.clock = clock or time.monotonic
        self.using = using

    def latest_rate(self, product_id):
        return (
            PurchaseItem.objects.using(self.using)
            .filter(product_id=int(product_id))
            .order_by('-invoice_date', '-id')
            .values_list('rate', flat=True)
            .first()
        )

    def resolve(self, product_ids):
        ids = clean_product_ids(product_ids)
        rates = {}
        deadline = self.clock() + self.time_budget

        for start in range(0, len(ids), self.batch_size):
            batch = ids[start:start + self.batch_size]
            for position, product_id in enumerate(batch):
                if self.clock() >= deadline:
                    remaining = len(ids) - (start + position)
                    logger.warning(f"Latest-rate fallback hit its {self.time_budget}s budget; {remaining} products left without a rate")
                    return RateResult(rates, error='time budget exhausted')
                try:
                    with transaction.atomic(using=self.using):
                        rate = self.latest_rate(product_id)
                except Exception as e:
                    # A failed product just has no rate
                    logger.warning(f"Latest-rate lookup failed for product {product_id}: {e}")
                    continue
                if rate is not None:
                    rates[product_id] = _to_decimal(rate)
        return RateResult(rates)


class RateResolver:
    """Fast path first, per-item fallback when the fast path asks for it"""

    def __init__(self, primary=None, fallback=None):
        self.primary = primary or RawSQLRateStrategy()
        self.fallback = fallback or PerItemRateStrategy()

    def resolve(self, product_ids):
        """Map of product id string -> latest purchase rate"""
        try:
            result = self.primary.resolve(product_ids)
            if result.fallback_needed:
                logger.info(f"Using per-item latest-rate fallback ({result.error})")
                result = self.fallback.resolve(product_ids)
            return result.rates
        except Exception as e:
            logger.error(f"Latest-rate resolution failed: {e}", exc_info=True)
            return {}

    async def aresolve(self, product_ids):
        return await sync_to_async(self.resolve)(product_ids)


def get_rate_resolver():
    return RateResolver()
