# shared/common/exceptions.py
"""
API Exception Classes and Exception Handler

Every service raises subclasses of ``BaseAPIException``; the DRF exception
handler below renders them (and a few Django/database errors) in one
envelope::

    {"success": false, "error": {"code": ..., "message": ..., "request_id": ...}}
"""

import logging
import traceback
from typing import Dict, Any, Optional
from rest_framework import status
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework.exceptions import APIException, ValidationError
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError
from django.http import Http404
from django.conf import settings

logger = logging.getLogger(__name__)


# =============================================================================
# BASE EXCEPTIONS
# =============================================================================

class BaseAPIException(APIException):
    """Base exception class for all custom API exceptions"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'An unexpected error occurred.'
    default_code = 'error'
    error_code = 'INTERNAL_ERROR'

    def __init__(
        self,
        detail: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(detail=detail)
        self.details = details or {}


# =============================================================================
# CLIENT ERRORS (4xx)
# =============================================================================

class BadRequestException(BaseAPIException):
    """400 Bad Request"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Bad request.'
    default_code = 'bad_request'
    error_code = 'BAD_REQUEST'


class ForbiddenException(BaseAPIException):
    """403 Forbidden"""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have permission to perform this action.'
    default_code = 'forbidden'
    error_code = 'FORBIDDEN'


class NotFoundException(BaseAPIException):
    """404 Not Found"""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'The requested resource was not found.'
    default_code = 'not_found'
    error_code = 'NOT_FOUND'


class ConflictException(BaseAPIException):
    """409 Conflict"""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'A conflict occurred with the current state of the resource.'
    default_code = 'conflict'
    error_code = 'CONFLICT'


# =============================================================================
# EXCEPTION HANDLER
# =============================================================================

def custom_exception_handler(exc, context) -> Optional[Response]:
    """
    Custom exception handler for DRF.
    Provides consistent error response format across all services.
    """

    request = context.get('request')
    request_id = getattr(request, 'request_id', None) if request else None

    response = exception_handler(exc, context)

    if response is not None:
        return format_error_response(exc, response, request_id)

    if isinstance(exc, DjangoValidationError):
        errors = exc.message_dict if hasattr(exc, 'message_dict') else {'detail': exc.messages}
        return _error_response(
            'VALIDATION_ERROR', 'Validation error', status.HTTP_400_BAD_REQUEST,
            request_id, details=errors,
        )

    if isinstance(exc, Http404):
        return _error_response(
            'NOT_FOUND', str(exc) or 'Resource not found', status.HTTP_404_NOT_FOUND,
            request_id,
        )

    # Storage-level constraints are the last line against concurrent writers
    if isinstance(exc, IntegrityError):
        logger.warning(
            f"Integrity error surfaced as conflict: {exc}",
            extra={'request_id': request_id},
        )
        return _error_response(
            'CONFLICT', 'The request conflicts with existing data.',
            status.HTTP_409_CONFLICT, request_id,
        )

    logger.exception(
        f"Unhandled exception: {exc}",
        extra={
            'request_id': request_id,
            'exception_type': type(exc).__name__,
        }
    )

    if settings.DEBUG:
        return _error_response(
            'INTERNAL_ERROR', str(exc), status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id,
            type=type(exc).__name__,
            traceback=traceback.format_exc().split('\n'),
        )

    return _error_response(
        'INTERNAL_ERROR', 'An unexpected error occurred. Please try again later.',
        status.HTTP_500_INTERNAL_SERVER_ERROR, request_id,
    )


def _error_response(code: str, message: str, status_code: int, request_id: str = None, **extra) -> Response:
    error = {'code': code, 'message': message, 'request_id': request_id}
    error.update(extra)
    return Response({'success': False, 'error': error}, status=status_code)


def format_error_response(exc, response: Response, request_id: str = None) -> Response:
    """Format error response in consistent structure"""

    error_code = getattr(exc, 'error_code', None) or _drf_error_code(exc)
    details = getattr(exc, 'details', None)

    error_data = {
        'success': False,
        'error': {
            'code': error_code,
            'message': get_error_message(exc, response),
            'request_id': request_id,
        }
    }

    if details:
        error_data['error']['details'] = details
    elif isinstance(response.data, dict) and 'detail' not in response.data:
        # Field-level validation errors from DRF serializers
        error_data['error']['details'] = response.data

    response.data = error_data
    return response


def _drf_error_code(exc) -> str:
    if isinstance(exc, ValidationError):
        return 'VALIDATION_ERROR'
    code = getattr(exc, 'default_code', None)
    return code.upper() if code else 'ERROR'


def get_error_message(exc, response: Response) -> str:
    """Extract error message from exception or response"""

    if hasattr(exc, 'detail'):
        if isinstance(exc.detail, str):
            return exc.detail
        if isinstance(exc.detail, list) and exc.detail:
            return str(exc.detail[0])
        if isinstance(exc.detail, dict):
            return str(exc.detail.get('detail', 'Validation error'))

    if isinstance(response.data, dict):
        return response.data.get('detail', str(response.data))

    return str(response.data)
