from django.apps import AppConfig

from .registry import ConnectionRegistry


class NotificationsConfig(AppConfig):
    name = 'notifications'
    default_auto_field = 'django.db.models.BigAutoField'

    def ready(self):
        # Live connections of this process. The transport layer registers
        # sockets here; booking code only ever talks to NotificationService.
        self.registry = ConnectionRegistry()
