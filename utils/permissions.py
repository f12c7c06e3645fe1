# ==================== UTILS/PERMISSIONS.PY ====================
from rest_framework import permissions


class IsOwnerRole(permissions.BasePermission):
    """User signed up as a parking lot owner"""
    message = 'Only parking lot owners can do this.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_owner)


class IsDriverRole(permissions.BasePermission):
    """User signed up as a driver"""
    message = 'Only drivers can do this.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_driver)


class IsOwnerOrDriver(permissions.BasePermission):
    """Booking party - the driver who booked or the owner of the lot"""
    message = 'You are not part of this booking.'

    def has_object_permission(self, request, view, obj):
        return request.user.id in (obj.driver_id, obj.parking_lot.owner_id)
