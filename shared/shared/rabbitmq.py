import asyncio
import logging

import aio_pika

from .events import to_json

EXCHANGE_NAME = "domain_events"

logger = logging.getLogger("shared.rabbitmq")


class EventPublisher:
    """
    Publishes event envelopes (see shared.events) to the domain_events topic
    exchange, routed by event_type. Without a URL every call is a no-op.
    """

    def __init__(self, url: str | None, source: str):
        self.url = url
        self.source = source
        self._lock = asyncio.Lock()
        self._connection: aio_pika.abc.AbstractRobustConnection | None = None
        self._exchange: aio_pika.abc.AbstractExchange | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def connect(self):
        if not self.enabled:
            return
        async with self._lock:
            if self._exchange is not None:
                return
            connection = await aio_pika.connect_robust(self.url)
            try:
                channel = await connection.channel()
                self._exchange = await channel.declare_exchange(
                    EXCHANGE_NAME, aio_pika.ExchangeType.TOPIC, durable=True
                )
            except Exception:
                await connection.close()
                raise
            self._connection = connection

    async def publish_event(self, event: dict) -> bool:
        """Returns whether the event reached the broker. Never raises."""
        if not self.enabled:
            return False

        try:
            await self.connect()
            await self._exchange.publish(
                aio_pika.Message(
                    body=to_json(event).encode("utf-8"),
                    content_type="application/json",
                    delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
                    message_id=event["event_id"],
                    headers={"source": self.source},
                ),
                routing_key=event["event_type"],
            )
            return True
        except Exception as e:
            logger.warning(
                "[%s] event %s %s not published: %s",
                self.source, event.get("event_type"), event.get("event_id"), e,
            )
            # reconnect on the next event
            self._exchange = None
            return False

    async def close(self):
        connection, self._connection, self._exchange = self._connection, None, None
        if connection is not None and not connection.is_closed:
            await connection.close()
