# ==================== NOTIFICATIONS/VIEWS.PY ====================
from django.conf import settings
from rest_framework import viewsets, permissions
from rest_framework.decorators import action
from rest_framework.response import Response

from .serializers import NotificationSerializer
from .services import NotificationService


class NotificationViewSet(viewsets.ViewSet):
    """The current user's notifications"""
    permission_classes = [permissions.IsAuthenticated]

    def list(self, request):
        limit = request.query_params.get('limit', '')
        limit = min(int(limit), 100) if limit.isdigit() and int(limit) > 0 else settings.NOTIFICATION_PAGE_SIZE
        notifications = NotificationService().list_for_user(request.user.id, limit=limit)
        return Response(NotificationSerializer(notifications, many=True).data)

    @action(detail=True, methods=['put'])
    def read(self, request, pk=None):
        notification = NotificationService().mark_read(pk, request.user.id)
        return Response(NotificationSerializer(notification).data)

    @action(detail=False, methods=['get'])
    def unread_count(self, request):
        return Response({'unread_count': NotificationService().unread_count(request.user.id)})
