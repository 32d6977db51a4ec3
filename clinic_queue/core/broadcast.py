"""Redis pub/sub client used to broadcast queue snapshots."""

import json
import threading
from collections.abc import Callable
from typing import Any

import redis
import structlog

from clinic_queue.config import Settings
from clinic_queue.core.exceptions import UpstreamUnavailableException

logger = structlog.get_logger(__name__)


class QueueBroadcastClient:
    """
    Connection handle for the broadcast broker.

    Created once at process start and passed to the components that publish.
    The handle owns its connect / reconnect / close lifecycle; nothing here is
    tied to a request. Publishes arrive from worker threads, so the
    connection handle is only read or replaced under a lock.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str | None = None,
        password: str | None = None,
        connect_timeout: float = 5.0,
        socket_timeout: float = 2.0,
        enabled: bool = True,
        redis_factory: Callable[..., redis.Redis] = redis.Redis,
    ):
        """Store connection parameters; no network I/O happens here."""
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.connect_timeout = connect_timeout
        self.socket_timeout = socket_timeout
        self.enabled = enabled
        self._redis_factory = redis_factory
        self._client: redis.Redis | None = None
        self._lock = threading.RLock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "QueueBroadcastClient":
        """Build a client from application settings."""
        return cls(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username if settings.redis_password else None,
            password=settings.redis_password or None,
            connect_timeout=settings.broadcast_connect_timeout,
            socket_timeout=settings.broadcast_socket_timeout,
            enabled=settings.broadcast_enabled,
        )

    @property
    def is_connected(self) -> bool:
        """Whether a live broker connection is held."""
        return self._client is not None

    def connect(self) -> bool:
        """
        Open the broker connection.

        Returns:
            True if connected, False if disabled or the broker is unreachable
        """
        if not self.enabled:
            logger.info("broadcast_disabled")
            return False

        client = self._redis_factory(
            host=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            decode_responses=True,
            socket_connect_timeout=self.connect_timeout,
            socket_timeout=self.socket_timeout,
            socket_keepalive=True,
            health_check_interval=30,
            retry_on_timeout=False,
        )

        try:
            client.ping()
        except redis.RedisError as e:
            logger.warning(
                "broadcast_connect_failed",
                host=self.host,
                port=self.port,
                error=str(e),
            )
            client.close()
            return False

        with self._lock:
            previous, self._client = self._client, client
        if previous is not None:
            self._close_quietly(previous)
        logger.info("broadcast_connected", host=self.host, port=self.port)
        return True

    def ping(self) -> bool:
        """Check if the broker connection is healthy."""
        with self._lock:
            client = self._client
        if client is None:
            return False
        try:
            return bool(client.ping())
        except redis.RedisError:
            return False

    def publish(self, topic: str, message: dict[str, Any]) -> int:
        """
        Publish a JSON message to a topic.

        A disconnected client makes one reconnect attempt before giving up.

        Args:
            topic: Channel name
            message: JSON-serializable payload

        Returns:
            Number of subscribers that received the message

        Raises:
            UpstreamUnavailableException: If the broker cannot be reached
        """
        with self._lock:
            if self._client is None and not self.connect():
                raise UpstreamUnavailableException("Broadcast channel is not connected")
            client = self._client

        payload = json.dumps(message, default=str)

        try:
            receivers = client.publish(topic, payload)  # type: ignore[union-attr]
        except redis.RedisError as e:
            # Drop the handle so the next publish reconnects
            self._discard(client)
            raise UpstreamUnavailableException(f"Failed to publish to {topic}: {e}") from e

        logger.debug("broadcast_published", topic=topic, receivers=receivers)
        return int(receivers)

    def close(self) -> None:
        """Close the broker connection."""
        if self._client is not None:
            self._discard()
            logger.info("broadcast_connection_closed")

    def _discard(self, expected: redis.Redis | None = None) -> None:
        # A handle another thread already replaced is left alone
        with self._lock:
            client = self._client
            if client is None or (expected is not None and client is not expected):
                return
            self._client = None
        self._close_quietly(client)

    @staticmethod
    def _close_quietly(client: redis.Redis) -> None:
        try:
            client.close()
        except redis.RedisError as e:
            logger.debug("broadcast_close_failed", error=str(e))
