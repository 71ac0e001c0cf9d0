"""
Clinic error taxonomy and the unified DRF exception handler.

Service functions raise the :class:`ClinicError` subclasses below; the
handler renders every failure as
``{"ok": false, "error": {"code": ..., "message": ...}}`` so that clients
can tell a slot conflict from an availability miss without parsing text.
"""
import logging

from django.db import InterfaceError, OperationalError
from pymongo.errors import PyMongoError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class ClinicError(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'clinic_error'
    default_detail = 'Request could not be processed.'


class NotFound(ClinicError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'not_found'
    default_detail = 'Resource not found.'


class OutsideAvailability(ClinicError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_code = 'outside_availability'
    default_detail = 'Requested time is outside the doctor\'s available slots.'


class SlotConflict(ClinicError):
    status_code = status.HTTP_409_CONFLICT
    default_code = 'slot_conflict'
    default_detail = 'Requested time overlaps an existing appointment.'


class ValidationError(ClinicError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'validation_error'
    default_detail = 'Invalid input.'


class StoreUnavailable(ClinicError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_code = 'store_unavailable'
    default_detail = 'Storage is temporarily unavailable, retry later.'


def _error(code, message, status_code):
    return Response({'ok': False, 'error': {'code': code, 'message': message}}, status=status_code)


def api_exception_handler(exc, context):
    if isinstance(exc, (OperationalError, InterfaceError, PyMongoError)):
        logger.error("store failure in %s: %s", context.get('view').__class__.__name__, exc)
        exc = StoreUnavailable()

    if isinstance(exc, ClinicError):
        return _error(exc.default_code, exc.detail, exc.status_code)

    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception("unhandled error in %s", context.get('view').__class__.__name__)
        return _error('server_error', str(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    # normalize response
    if isinstance(exc, exceptions.ValidationError):
        return _error('validation_error', resp.data, resp.status_code)
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = str(resp.data)
    return _error('api_error', detail, resp.status_code)
