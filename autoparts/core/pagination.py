"""
Offset pagination shared by every listing endpoint.

Two modes:
- database: LIMIT/OFFSET on the queryset plus a COUNT
- memory: slice an already filtered list and report its length as the total
"""
import asyncio
import math

from asgiref.sync import sync_to_async
from django.conf import settings

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500


def _to_int(value, default):
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def parse_page_params(query_params, default_limit=None):
    """
    Read page/limit from query params with explicit defaults and bounds.

    Non-numeric values fall back to the defaults, page is at least 1 and
    limit is clamped to [1, MAX_PAGE_SIZE].
    """
    default_limit = default_limit or getattr(settings, 'DEFAULT_PAGE_SIZE', DEFAULT_PAGE_SIZE)
    max_limit = getattr(settings, 'MAX_PAGE_SIZE', MAX_PAGE_SIZE)

    page = _to_int(query_params.get('page', 1), 1)
    limit = _to_int(query_params.get('limit', default_limit), default_limit)

    page = max(page, 1)
    limit = min(max(limit, 1), max_limit)
    return page, limit


def build_pagination(page, limit, total):
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        'page': page,
        'limit': limit,
        'total': total,
        'totalPages': total_pages,
        'hasMore': page < total_pages,
    }


def paginate_list(rows, page, limit):
    """Slice an in-memory list; returns (page_rows, pagination)"""
    skip = (page - 1) * limit
    return rows[skip:skip + limit], build_pagination(page, limit, len(rows))


def paginate_queryset(queryset, page, limit):
    """LIMIT/OFFSET + COUNT; returns (page_rows, pagination)"""
    skip = (page - 1) * limit
    total = queryset.count()
    rows = list(queryset[skip:skip + limit])
    return rows, build_pagination(page, limit, total)


async def apaginate_queryset(queryset, page, limit):
    """Async variant; the COUNT and the page query are awaited together"""
    skip = (page - 1) * limit
    total, rows = await asyncio.gather(
        sync_to_async(queryset.count)(),
        sync_to_async(list)(queryset[skip:skip + limit]),
    )
    return rows, build_pagination(page, limit, total)
