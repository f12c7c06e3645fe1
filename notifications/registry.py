# ==================== NOTIFICATIONS/REGISTRY.PY ====================
"""Live connection registry.

A channel is any object with a ``send(message)`` method (a websocket wrapper,
a queue adapter, a test double). Users can hold several channels at once, and
any channel may additionally watch lots for capacity broadcasts.

This project ships no transport. A websocket or SSE layer is expected to call
``register``/``subscribe_lot`` when a client connects and ``unregister`` when it
goes away. Until one is wired in, pushes reach no channels and users read
their stored notifications over the REST endpoints instead.
"""
import logging
import threading
from collections import defaultdict

logger = logging.getLogger(__name__)


class ConnectionRegistry:

    def __init__(self):
        self._lock = threading.RLock()
        self._user_channels = defaultdict(set)
        self._channel_users = {}
        self._lot_channels = defaultdict(set)

    def register(self, user_id, channel):
        with self._lock:
            previous = self._channel_users.get(channel)
            if previous is not None and previous != user_id:
                self._user_channels[previous].discard(channel)
            self._channel_users[channel] = user_id
            self._user_channels[user_id].add(channel)
        logger.info(f"Channel registered for user {user_id}")

    def unregister(self, channel):
        """Drop a channel from every user and lot it was attached to"""
        with self._lock:
            user_id = self._channel_users.pop(channel, None)
            if user_id is not None:
                channels = self._user_channels.get(user_id)
                if channels is not None:
                    channels.discard(channel)
                    if not channels:
                        del self._user_channels[user_id]
            for lot_id in [lot for lot, channels in self._lot_channels.items() if channel in channels]:
                self._lot_channels[lot_id].discard(channel)
                if not self._lot_channels[lot_id]:
                    del self._lot_channels[lot_id]
        logger.info(f"Channel unregistered (user {user_id})")

    def subscribe_lot(self, lot_id, channel):
        with self._lock:
            self._lot_channels[lot_id].add(channel)

    def unsubscribe_lot(self, lot_id, channel):
        with self._lock:
            channels = self._lot_channels.get(lot_id)
            if channels is not None:
                channels.discard(channel)
                if not channels:
                    del self._lot_channels[lot_id]

    def is_connected(self, user_id):
        with self._lock:
            return bool(self._user_channels.get(user_id))

    def clear(self):
        """Forget every channel, e.g. on server shutdown"""
        with self._lock:
            self._user_channels.clear()
            self._channel_users.clear()
            self._lot_channels.clear()

    def publish(self, user_id, message):
        """Send to every live channel of a user; returns how many accepted it"""
        with self._lock:
            channels = list(self._user_channels.get(user_id, ()))
        return self._send_all(channels, message)

    def broadcast_lot(self, lot_id, message):
        with self._lock:
            channels = list(self._lot_channels.get(lot_id, ()))
        return self._send_all(channels, message)

    def _send_all(self, channels, message):
        delivered = 0
        for channel in channels:
            try:
                channel.send(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping message on failed channel: {str(e)}")
        return delivered
