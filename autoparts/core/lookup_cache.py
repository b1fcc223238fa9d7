"""
Time-expiring cache for small reference tables (categories, companies,
subcategories, vendors, customers, states).

Entries are stored in a Django cache backend as {'data', 'timestamp'} so the
freshness rule (now - timestamp < ttl) holds whichever backend is configured.
The backend and the clock are injectable.
"""
import hashlib
import inspect
import logging
import time

from asgiref.sync import sync_to_async
from django.conf import settings
from django.core.cache import caches

logger = logging.getLogger(__name__)

LOOKUP_CACHE_TTL = 300  # 5 minutes
MAX_PLAIN_KEY_LENGTH = 200


def _id_sort_key(value):
    if value.isdigit():
        return (0, int(value), value)
    return (1, 0, value)


def normalize_ids(ids):
    """Sorted, deduplicated string ids with blanks removed"""
    cleaned = set()
    for value in ids:
        if value is None:
            continue
        value = str(value).strip()
        if value:
            cleaned.add(value)
    return sorted(cleaned, key=_id_sort_key)


def build_key(namespace, ids):
    """
    Build the cache key for a set of ids: "<namespace>_<id,id,...>".

    Differing id sets get independent slots. Long id lists are hashed so the
    key stays within backend limits.
    """
    joined = ','.join(normalize_ids(ids))
    if len(joined) > MAX_PLAIN_KEY_LENGTH:
        joined = hashlib.md5(joined.encode()).hexdigest()
    return f"{namespace}_{joined}"


def namespace_of(key):
    return key.partition('_')[0]


class LookupCache:
    """get_or_fetch cache with TTL expiry on read and per-namespace invalidation"""

    def __init__(self, backend=None, ttl=LOOKUP_CACHE_TTL, clock=None):
        self.backend = backend if backend is not None else caches['default']
        self.ttl = ttl
        self.clock = clock or time.time

    def _invalidated_at(self, namespace):
        return self.backend.get(f"{namespace}:invalidated_at")

    def _read(self, key):
        entry = self.backend.get(key)
        if not entry:
            return None
        now = self.clock()
        if now - entry['timestamp'] >= self.ttl:
            logger.debug(f"Lookup cache EXPIRED: {key}")
            return None
        invalidated_at = self._invalidated_at(namespace_of(key))
        if invalidated_at is not None and entry['timestamp'] <= invalidated_at:
            logger.debug(f"Lookup cache INVALIDATED: {key}")
            return None
        logger.debug(f"Lookup cache HIT: {key}")
        return entry

    def _write(self, key, data, fetched_at):
        self.backend.set(key, {'data': data, 'timestamp': fetched_at}, self.ttl)

    def get_or_fetch(self, key, fetcher):
        """Return the cached map for key, calling fetcher() on a miss or stale entry"""
        entry = self._read(key)
        if entry is not None:
            return entry['data']
        logger.debug(f"Lookup cache MISS: {key}")
        # Taken before fetching so an invalidation during the fetch wins
        fetched_at = self.clock()
        data = fetcher()
        self._write(key, data, fetched_at)
        return data

    async def aget_or_fetch(self, key, fetcher):
        """Async get_or_fetch; fetcher may be a plain callable or a coroutine function"""
        entry = await sync_to_async(self._read)(key)
        if entry is not None:
            return entry['data']
        logger.debug(f"Lookup cache MISS: {key}")
        fetched_at = self.clock()
        if inspect.iscoroutinefunction(fetcher):
            data = await fetcher()
        else:
            data = await sync_to_async(fetcher)()
        await sync_to_async(self._write)(key, data, fetched_at)
        return data

    def invalidate(self, namespace):
        """Drop every id-set slot cached under namespace"""
        self.backend.set(f"{namespace}:invalidated_at", self.clock(), None)
        if hasattr(self.backend, 'delete_pattern'):
            # django-redis: remove the stale slots outright
            try:
                deleted = self.backend.delete_pattern(f"{namespace}_*")
                logger.debug(f"Deleted {deleted} lookup cache keys for {namespace}")
            except Exception as e:
                logger.warning(f"Lookup cache pattern delete failed for {namespace}: {e}")
        logger.info(f"Lookup cache invalidated: {namespace}")


_lookup_cache = None


def get_lookup_cache():
    """Process-wide LookupCache configured from settings"""
    global _lookup_cache
    if _lookup_cache is None:
        alias = getattr(settings, 'LOOKUP_CACHE_ALIAS', 'default')
        ttl = getattr(settings, 'LOOKUP_CACHE_TTL', LOOKUP_CACHE_TTL)
        _lookup_cache = LookupCache(backend=caches[alias], ttl=ttl)
    return _lookup_cache


def set_lookup_cache(cache):
    """Replace the process-wide LookupCache; None restores the settings default"""
    global _lookup_cache
    _lookup_cache = cache


def fetch_names(model, ids, name_field='name'):
    """Resolve ids to display names with a single IN query; keys are id strings"""
    numeric_ids = [int(value) for value in ids if str(value).isdigit()]
    if not numeric_ids:
        return {}
    rows = model.objects.filter(pk__in=numeric_ids).values_list('pk', name_field)
    return {str(pk): name for pk, name in rows}


def lookup_names(namespace, model, ids, name_field='name', cache=None):
    """fetch_names through the lookup cache; an empty id set costs nothing"""
    ids = normalize_ids(ids)
    if not ids:
        return {}
    cache = cache or get_lookup_cache()
    return cache.get_or_fetch(build_key(namespace, ids), lambda: fetch_names(model, ids, name_field))


async def alookup_names(namespace, model, ids, name_field='name', cache=None):
    ids = normalize_ids(ids)
    if not ids:
        return {}
    cache = cache or get_lookup_cache()
    return await cache.aget_or_fetch(build_key(namespace, ids), lambda: fetch_names(model, ids, name_field))
