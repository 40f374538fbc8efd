"""In-process table change feed with an optional Redis relay.

Writers call ``ChangeFeed.emit`` after a successful commit. Subscribers get an
unfiltered stream of events for the tables they name; consumers are expected to re-read
whatever they display rather than patch it incrementally, so a dropped event is
healed by the next one.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone

import structlog
from redis.asyncio import Redis

from .metrics import REALTIME_EVENTS_PUBLISHED_TOTAL, REALTIME_SUBSCRIPTIONS_ACTIVE

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    action: str
    record_id: int | None = None
    occurred_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


_EVENT_FIELDS = {f.name for f in fields(ChangeEvent)}


def event_from_payload(data: dict) -> ChangeEvent | None:
    """Build an event from a relayed payload, ignoring keys this version does not know."""
    if not isinstance(data.get("table"), str) or not isinstance(data.get("action"), str):
        return None
    return ChangeEvent(**{k: v for k, v in data.items() if k in _EVENT_FIELDS})


class Subscription:
    def __init__(self, feed: ChangeFeed, tables: tuple[str, ...], max_queue: int) -> None:
        self.id = uuid.uuid4().hex
        self.tables = tables
        self._feed = feed
        self._queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=max_queue)
        self.closed = False

    def _offer(self, event: ChangeEvent) -> None:
        if self._queue.full():
            # keep the newest events; a full resync follows any of them
            self._queue.get_nowait()
        self._queue.put_nowait(event)

    async def get(self) -> ChangeEvent:
        return await self._queue.get()

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        self._feed.unsubscribe(self)

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *args) -> None:
        self.close()


class ChangeFeed:
    def __init__(self, max_queue: int = 256) -> None:
        self.max_queue = max_queue
        self._subscriptions: dict[str, dict[str, Subscription]] = {}
        self._origin = uuid.uuid4().hex
        self._redis: Redis | None = None
        self._channel: str | None = None
        self._relay_task: asyncio.Task | None = None

    def subscribe(self, *tables: str) -> Subscription:
        if not tables:
            raise ValueError("subscribe() needs at least one table")
        sub = Subscription(self, tables, self.max_queue)
        for table in tables:
            self._subscriptions.setdefault(table, {})[sub.id] = sub
        REALTIME_SUBSCRIPTIONS_ACTIVE.inc()
        logger.debug("realtime_subscribed", tables=tables, subscription_id=sub.id)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if sub.closed:
            return
        sub.closed = True
        for table in sub.tables:
            self._subscriptions.get(table, {}).pop(sub.id, None)
        REALTIME_SUBSCRIPTIONS_ACTIVE.dec()
        logger.debug("realtime_unsubscribed", tables=sub.tables, subscription_id=sub.id)

    def subscriber_count(self, table: str) -> int:
        return len(self._subscriptions.get(table, {}))

    def publish_local(self, event: ChangeEvent) -> None:
        for sub in list(self._subscriptions.get(event.table, {}).values()):
            sub._offer(event)

    async def emit(self, table: str, action: str, record_id: int | None = None) -> None:
        event = ChangeEvent(table=table, action=action, record_id=record_id)
        self.publish_local(event)
        REALTIME_EVENTS_PUBLISHED_TOTAL.labels(table=table, action=action).inc()

        if self._redis is None:
            return
        payload = json.dumps({"origin": self._origin, **asdict(event)})
        try:
            await self._redis.publish(self._channel, payload)
        except Exception as exc:
            # local subscribers already have the event
            logger.warning("realtime_relay_publish_failed", table=table, error=str(exc))

    async def start_relay(self, redis: Redis, channel: str) -> None:
        self._redis = redis
        self._channel = channel
        pubsub = redis.pubsub()
        await pubsub.subscribe(channel)
        self._relay_task = asyncio.create_task(self._relay_loop(pubsub))
        logger.info("realtime_relay_started", channel=channel)

    async def _relay_loop(self, pubsub) -> None:
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    data = json.loads(message["data"])
                except (TypeError, ValueError):
                    logger.warning("realtime_relay_bad_payload")
                    continue
                if not isinstance(data, dict) or data.get("origin") == self._origin:
                    continue
                event = event_from_payload(data)
                if event is None:
                    logger.warning("realtime_relay_bad_payload", keys=sorted(data))
                    continue
                self.publish_local(event)
        finally:
            await pubsub.aclose()

    async def stop_relay(self) -> None:
        if self._relay_task is not None:
            self._relay_task.cancel()
            try:
                await self._relay_task
            except asyncio.CancelledError:
                pass
            except Exception as exc:
                logger.error("realtime_relay_crashed", error=str(exc))
            self._relay_task = None
        self._redis = None
        logger.info("realtime_relay_stopped")


change_feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    return change_feed
