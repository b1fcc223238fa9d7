"""
Error responses

Unhandled failures inside an endpoint become {"message", "error"} with HTTP 500.
DRF exceptions and 404s keep their usual handling.
"""
from functools import wraps
import logging

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def error_response(message, error, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR):
    return Response({'message': message, 'error': error}, status=status_code)


def api_error_boundary(message, **method_messages):
    """
    Decorator for function views: convert unexpected exceptions into the
    standard error body. Keyword arguments give per-method messages.

    Usage:
        @api_view(['GET'])
        @permission_classes([IsAuthenticated])
        @api_error_boundary('Failed to fetch products', POST='Failed to create product')
        def product_list_create(request):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(request, *args, **kwargs):
            try:
                return func(request, *args, **kwargs)
            except (APIException, Http404):
                raise
            except Exception as e:
                failure = method_messages.get(request.method, message)
                logger.error(f"{failure}: {e}", exc_info=True)
                return error_response(failure, str(e) or e.__class__.__name__)
        return wrapper
    return decorator


def custom_exception_handler(exc, context):
    """DRF exception handler that adds a message key to every error body"""
    response = exception_handler(exc, context)
    if response is None:
        return None

    data = response.data
    if isinstance(data, dict) and 'message' not in data:
        if 'detail' in data:
            data['message'] = str(data['detail'])
        else:
            data['message'] = 'Validation failed'
    elif isinstance(data, list):
        response.data = {'message': 'Validation failed', 'errors': data}
    return response
