"""
Domain errors raised by the table, order and billing services.

Every error carries the HTTP status and a stable ``code`` so views can turn it
into a response without knowing which service raised it.
"""
import logging

from rest_framework import status
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class TablesideError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'error'
    default_message = 'Operation failed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TablesideError):
    """Bad input or an unmet precondition, detected before any write"""
    code = 'validation_error'
    default_message = 'Invalid request'


class EmptyOrderError(ValidationError):
    code = 'empty_order'
    default_message = 'Please add items to the order'


class InvalidSessionError(ValidationError):
    code = 'invalid_session'
    default_message = 'Invalid table session. Please refresh and try again.'


class GuestDetailsError(ValidationError):
    code = 'invalid_guest_details'
    default_message = 'Guest details are incomplete'

    def __init__(self, errors):
        self.errors = errors
        super().__init__('; '.join(f'{field}: {msg}' for field, msg in errors.items()))


class TableNotAvailableError(ValidationError):
    code = 'table_not_available'
    default_message = 'Table is not available'


class TableOccupiedError(ValidationError):
    code = 'table_occupied'
    default_message = 'Table is occupied'


class NothingToBillError(ValidationError):
    code = 'nothing_to_bill'
    default_message = 'No orders found for this table session'


class SessionNotEmptyError(ValidationError):
    code = 'session_not_empty'
    default_message = 'Session has billable orders; settle it instead'


class InvalidTransitionError(ValidationError):
    code = 'invalid_transition'
    default_message = 'Order status transition not allowed'


class ConcurrencyConflictError(TablesideError):
    """The caller acted on a stale view of the document"""
    status_code = status.HTTP_409_CONFLICT
    code = 'version_conflict'
    default_message = 'Table was changed by someone else. Please refresh and try again.'


class OperationInFlightError(TablesideError):
    status_code = status.HTTP_409_CONFLICT
    code = 'operation_in_flight'
    default_message = 'This operation is already being processed'


class InconsistentStateError(TablesideError):
    """Invariant violation that correct clients never trigger"""
    status_code = status.HTTP_409_CONFLICT
    code = 'inconsistent_state'
    default_message = 'Inconsistent table state'


class TransportError(TablesideError):
    """Storage or cache failure; state is left as it was before the call"""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = 'transport_error'
    default_message = 'Storage is unavailable. Please try again.'


def error_response(exc):
    """Build the API response for a domain error"""
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}")
    else:
        logger.warning(f"{exc.code}: {exc.message}")

    data = {'error': exc.message, 'code': exc.code}
    if isinstance(exc, GuestDetailsError):
        data['fields'] = exc.errors
    return Response(data, status=exc.status_code)
