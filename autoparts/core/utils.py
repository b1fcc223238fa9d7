"""Utility functions: audit logging, financial years and date parameters"""
import logging
from datetime import datetime

from django.db import transaction

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, purchase_create, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., product name)
        object_reference: Reference identifier (e.g., invoice number)
    """
    audit_user = user
    if audit_user is None and request is not None and hasattr(request, 'user'):
        audit_user = request.user

    if not action or not model_name or not object_id:
        logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
        return None

    try:
        # Savepoint so a failed insert does not break the caller's transaction
        with transaction.atomic():
            return AuditLog.objects.create(
                user=audit_user if audit_user and audit_user.is_authenticated else None,
                action=action,
                model_name=model_name,
                object_id=str(object_id),
                object_name=object_name,
                object_reference=object_reference,
                changes=changes or {},
                ip_address=get_client_ip(request) if request else None,
            )
    except Exception as e:
        # Audit logging must not fail the main operation
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def financial_year_for(day):
    """Starting year of the April-March financial year containing day"""
    return day.year if day.month >= 4 else day.year - 1


def parse_iso_date(raw):
    """YYYY-MM-DD to a date; ValueError for anything else"""
    return datetime.strptime(raw.strip(), '%Y-%m-%d').date()


def parse_date_params(params, names=('date_from', 'date_to')):
    """
    Parse the optional date query parameters in names.

    Returns (dates, error). dates maps each non-blank name to its date;
    error is a message for the first malformed value, else None.
    """
    dates = {}
    for name in names:
        raw = (params.get(name) or '').strip()
        if not raw:
            continue
        try:
            dates[name] = parse_iso_date(raw)
        except ValueError:
            return {}, f'Invalid {name}: {raw} (expected YYYY-MM-DD)'
    return dates, None
