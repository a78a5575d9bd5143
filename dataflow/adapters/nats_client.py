"""
NATS Client Adapter

Async NATS client used by the candle chart service to receive trades and
publish candle updates.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional
import nats
from nats.aio.client import Client as NatsConnection
from nats.aio.msg import Msg

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Msg], Awaitable[None]]


@dataclass
class NatsConfig:
    """NATS connection configuration"""
    servers: list[str] = field(default_factory=lambda: ["nats://localhost:4222"])
    name: str = "candle-chart"
    reconnect_time_wait: float = 2.0
    max_reconnect_attempts: int = -1  # Infinite reconnects
    ping_interval: int = 20
    max_outstanding_pings: int = 3

    @classmethod
    def from_env(cls, prefix: str = "NATS") -> "NatsConfig":
        """Create config from environment variables"""
        servers = os.getenv(f"{prefix}_SERVERS", "nats://localhost:4222")
        return cls(
            servers=[s.strip() for s in servers.split(",") if s.strip()],
            name=os.getenv(f"{prefix}_CLIENT_NAME", "candle-chart"),
            reconnect_time_wait=float(os.getenv(f"{prefix}_RECONNECT_WAIT", "2.0")),
        )


class NatsClient:
    """
    Async NATS client wrapper.

    Topic Patterns:
    - trades.raw.{symbol}       - Trade events from ingestion
    - candles.{symbol}.{tf}     - Candle updates from the chart service
    """

    def __init__(self, config: Optional[NatsConfig] = None):
        self.config = config or NatsConfig()
        self._nc: Optional[NatsConnection] = None
        self._subscriptions: dict[str, Any] = {}
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected and self._nc is not None and self._nc.is_connected

    async def connect(self) -> None:
        """Establish connection to NATS server"""
        if self._connected:
            return

        async def error_handler(e):
            logger.error(f"NATS error: {e}")

        async def closed_handler():
            logger.warning("NATS connection closed")
            self._connected = False

        async def reconnected_handler():
            logger.info("NATS reconnected")
            self._connected = True

        async def disconnected_handler():
            logger.warning("NATS disconnected")
            self._connected = False

        try:
            self._nc = await nats.connect(
                servers=self.config.servers,
                name=self.config.name,
                reconnect_time_wait=self.config.reconnect_time_wait,
                max_reconnect_attempts=self.config.max_reconnect_attempts,
                ping_interval=self.config.ping_interval,
                max_outstanding_pings=self.config.max_outstanding_pings,
                error_cb=error_handler,
                closed_cb=closed_handler,
                reconnected_cb=reconnected_handler,
                disconnected_cb=disconnected_handler,
            )
        except Exception as e:
            logger.error(f"Failed to connect to NATS {self.config.servers}: {e}")
            raise

        self._connected = True
        logger.info(f"Connected to NATS: {self.config.servers}")

    async def close(self) -> None:
        """Drain subscriptions and close the connection"""
        if self._nc is None:
            return
        await self._nc.drain()
        await self._nc.close()
        self._subscriptions.clear()
        self._connected = False
        logger.info("NATS connection closed")

    async def publish_json(self, subject: str, data: str) -> None:
        """
        Publish a JSON string to a NATS subject.

        Raises:
            RuntimeError: If the client is not connected
        """
        if not self.is_connected:
            raise RuntimeError("NATS client not connected")
        payload = data.encode("utf-8")
        await self._nc.publish(subject, payload)
        logger.debug(f"Published to {subject}: {len(payload)} bytes")

    async def subscribe(
        self,
        subject: str,
        callback: MessageHandler,
        queue: Optional[str] = None,
    ) -> None:
        """
        Subscribe to a NATS subject.

        Args:
            subject: NATS subject pattern (supports wildcards: *, >)
            callback: Async callback for received messages
            queue: Optional queue group for load balancing
        """
        if not self.is_connected:
            raise RuntimeError("NATS client not connected")

        sub = await self._nc.subscribe(subject, queue=queue or "", cb=callback)
        self._subscriptions[subject] = sub
        logger.info(f"Subscribed to {subject}" + (f" (queue: {queue})" if queue else ""))

    async def unsubscribe(self, subject: str) -> None:
        sub = self._subscriptions.pop(subject, None)
        if sub is not None:
            await sub.unsubscribe()
            logger.info(f"Unsubscribed from {subject}")


class Topics:
    """NATS topic name builders"""

    @staticmethod
    def _sanitize(name: str) -> str:
        """
        Sanitize a name for use as a NATS topic segment.

        Only alphanumerics, hyphens and underscores are kept; anything
        else becomes an underscore.
        """
        return "".join(c if c.isalnum() or c in "-_" else "_" for c in name)

    @staticmethod
    def trades_raw(symbol: str) -> str:
        """Trade topic for a symbol"""
        return f"trades.raw.{Topics._sanitize(symbol)}"

    @staticmethod
    def candles(symbol: str, timeframe: str) -> str:
        """Candle update topic for a symbol and timeframe"""
        return f"candles.{Topics._sanitize(symbol)}.{timeframe}"

    @staticmethod
    def candles_all(symbol: str) -> str:
        """All candle timeframes for a symbol (wildcard)"""
        return f"candles.{Topics._sanitize(symbol)}.*"
