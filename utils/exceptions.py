# ==================== UTILS/EXCEPTIONS.PY ====================
from rest_framework.exceptions import APIException
from rest_framework import status


class ValidationError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid booking request.'
    default_code = 'validation_error'


class NotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found.'
    default_code = 'not_found'


class Forbidden(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You are not allowed to perform this action.'
    default_code = 'forbidden'


class CapacityExceeded(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Parking lot is fully booked for the selected time slot.'
    default_code = 'capacity_exceeded'


class NotMutable(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Only pending bookings can be changed.'
    default_code = 'not_mutable'


class IllegalTransition(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Illegal booking status transition.'
    default_code = 'illegal_transition'

    def __init__(self, current, target, detail=None):
        self.current = current
        self.target = target
        if detail is None:
            detail = f'Cannot move booking from {current} to {target}.'
        super().__init__(detail)


class AlreadyPaid(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Booking has already been paid.'
    default_code = 'already_paid'


class GatewayUnavailable(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Payment gateway is unavailable. Please retry.'
    default_code = 'gateway_unavailable'


class PaymentFailed(APIException):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_detail = 'Payment processing failed.'
    default_code = 'payment_failed'
