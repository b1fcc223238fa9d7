import django_filters
import re
from django.db.models import F, Q
from .models import Product

# Fixed business rule: anything under two units on hand is low stock
LOW_STOCK_FLOOR = 2


def split_id_list(value):
    """
    Split a comma separated id string into trimmed tokens, dropping empties.

    Examples:
    - "3, 7,9" -> ["3", "7", "9"]
    - "3,,7, " -> ["3", "7"]
    - None -> []
    """
    if not value:
        return []
    return [token.strip() for token in str(value).split(',') if token.strip()]


def normalize_search_text(value: str) -> str:
    """
    Normalize free text for part number matching:
    lower-case and strip everything that is not a letter or digit.

    Examples:
    - "AB-12" -> "ab12"
    - "ab 12/x" -> "ab12x"
    """
    if not value:
        return ''
    return re.sub(r'[^a-z0-9]', '', value.lower())


def is_low_stock(row) -> bool:
    """stock < min_stock OR stock < 2 (missing values count as 0)"""
    stock = row.get('stock') or 0
    min_stock = row.get('min_stock') or 0
    return stock < min_stock or stock < LOW_STOCK_FLOOR


def low_stock_q():
    """Database form of is_low_stock"""
    return Q(stock__lt=F('min_stock')) | Q(stock__lt=LOW_STOCK_FLOOR)


def has_any_subcategory(row, subcategory_ids) -> bool:
    """True when one of subcategory_ids is among the row's product_subcategory tokens"""
    wanted = set(subcategory_ids)
    if not wanted:
        return True
    return any(token in wanted for token in split_id_list(row.get('product_subcategory')))


class ProductFilter(django_filters.FilterSet):
    """Database-side product filters: search, category and company"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.CharFilter(method='filter_category', label='Category ID')
    company = django_filters.CharFilter(method='filter_company', label='Company ID')

    class Meta:
        model = Product
        fields = ['search', 'category', 'company']

    def filter_search(self, queryset, name, value):
        """Substring match on product name, display name or part number.

        The normalized form of the term is also tried against part numbers,
        so "ab-12" finds "AB12".
        """
        value = (value or '').strip()
        if not value:
            return queryset

        query = (
            Q(product_name__contains=value)
            | Q(display_name__contains=value)
            | Q(part_no__contains=value)
        )
        normalized = normalize_search_text(value)
        if normalized and normalized != value:
            query |= Q(part_no__icontains=normalized)
        return queryset.filter(query)

    def filter_category(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        if not value.isdigit():
            return queryset.none()
        return queryset.filter(category_id=int(value))

    def filter_company(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        if not value.isdigit():
            return queryset.none()
        return queryset.filter(company_id=int(value))
