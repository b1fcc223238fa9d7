"""
Cache invalidation signals
Drop cached lookup names and dashboard stats when the underlying rows change
"""
from django.core.cache import cache
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging

from .lookup_cache import get_lookup_cache

logger = logging.getLogger(__name__)

DASHBOARD_STATS_CACHE_KEY = 'dashboard_stats'
DASHBOARD_STATS_CACHE_TTL = 300  # 5 minutes

# Model label -> lookup cache namespace
LOOKUP_NAMESPACES = {
    'catalog.Category': 'categories',
    'catalog.Company': 'companies',
    'catalog.Subcategory': 'subcategories',
    'parties.State': 'states',
    'parties.Vendor': 'vendors',
    'parties.Customer': 'customers',
}

DASHBOARD_MODELS = {
    'catalog.Product',
    'purchasing.Purchase',
    'purchasing.PurchaseItem',
    'sales.Invoice',
    'sales.InvoiceItem',
}


# --- Manual Invalidation Helpers ---

def invalidate_lookup_namespace_manual(namespace):
    """Manually invalidate one lookup namespace"""
    try:
        get_lookup_cache().invalidate(namespace)
    except Exception as e:
        logger.warning(f"Error invalidating lookup cache {namespace}: {e}")


def invalidate_dashboard_cache_manual():
    """Manually invalidate dashboard cache"""
    try:
        cache.delete(DASHBOARD_STATS_CACHE_KEY)
        logger.info("Invalidated dashboard cache (Manual/Signal)")
    except Exception as e:
        logger.warning(f"Error invalidating dashboard cache: {e}")


# --- Signal Handlers ---

@receiver([post_save, post_delete])
def invalidate_lookup_cache(sender, instance, **kwargs):
    """Invalidate cached names when a lookup row is written"""
    namespace = LOOKUP_NAMESPACES.get(getattr(sender._meta, 'label', None))
    if not namespace:
        return
    # After commit so a concurrent reader cannot repopulate with the old name
    transaction.on_commit(lambda: invalidate_lookup_namespace_manual(namespace))


@receiver([post_save, post_delete])
def invalidate_dashboard_cache(sender, instance, **kwargs):
    """Invalidate dashboard stats when products, purchases or invoices change"""
    if getattr(sender._meta, 'label', None) not in DASHBOARD_MODELS:
        return
    transaction.on_commit(invalidate_dashboard_cache_manual)
