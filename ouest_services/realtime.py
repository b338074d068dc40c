"""
In-process WebSocket pub-sub for realtime events.

Topics:
  - user:{user_id}       events for one user (authStatus, pushNotification, newInvoice...)
  - admins               events for every connected admin
  - broadcast            events for everyone (newService, serviceUpdated)
  - review:{service_id}  review rooms joined on demand
"""

import asyncio
import logging
from typing import Any, Optional

from starlette.websockets import WebSocket, WebSocketState

logger = logging.getLogger(__name__)

ADMINS_TOPIC = "admins"
BROADCAST_TOPIC = "broadcast"


def user_topic(user_id: str) -> str:
    return f"user:{user_id}"


def review_room(service_id: str) -> str:
    return f"review:{service_id}"


class BroadcastManager:
    """Topic → set of sockets, one lock per topic. Empty topics are dropped."""

    def __init__(self) -> None:
        self._topics: dict[str, set[WebSocket]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _topic_lock(self, topic: str) -> asyncio.Lock:
        if topic not in self._locks:
            self._locks[topic] = asyncio.Lock()
        return self._locks[topic]

    def _prune(self, topic: str) -> None:
        if not self._topics.get(topic):
            self._topics.pop(topic, None)
            self._locks.pop(topic, None)

    def topic_count(self) -> int:
        return len(self._topics)

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    async def subscribe(self, topic: str, websocket: WebSocket) -> None:
        """Add an already-accepted websocket to a topic"""
        async with self._topic_lock(topic):
            subscribers = self._topics.setdefault(topic, set())
            subscribers.add(websocket)
            logger.info(f"🔌 WebSocket joined {topic}; subscribers={len(subscribers)}")

    async def unsubscribe(self, topic: str, websocket: WebSocket) -> None:
        if topic not in self._topics:
            return
        async with self._topic_lock(topic):
            subscribers = self._topics.get(topic, set())
            subscribers.discard(websocket)
            logger.info(f"WebSocket left {topic}; subscribers={len(subscribers)}")
            self._prune(topic)

    async def unsubscribe_all(self, websocket: WebSocket) -> None:
        for topic in list(self._topics):
            if websocket in self._topics.get(topic, ()):
                await self.unsubscribe(topic, websocket)

    async def publish(
        self, topic: str, event: str, data: Any, exclude: Optional[WebSocket] = None
    ) -> int:
        """
        Send {"event", "data"} to every subscriber of topic.
        Returns the number of sockets reached; dead sockets are dropped.
        """
        if topic not in self._topics:
            logger.debug(f"No subscribers on {topic} for {event}")
            return 0

        payload = {"event": event, "data": data}
        delivered = 0
        async with self._topic_lock(topic):
            subscribers = self._topics.get(topic, set())
            to_drop: list[WebSocket] = []
            for ws in list(subscribers):
                if exclude is not None and ws is exclude:
                    continue
                try:
                    if (
                        ws.application_state == WebSocketState.DISCONNECTED
                        or ws.client_state == WebSocketState.DISCONNECTED
                    ):
                        to_drop.append(ws)
                        continue
                    await ws.send_json(payload)
                    delivered += 1
                except Exception:
                    logger.exception("Failed to send message to websocket; scheduling drop")
                    to_drop.append(ws)
            for ws in to_drop:
                subscribers.discard(ws)
            self._prune(topic)
        return delivered

    async def emit_to_user(self, user_id: str, event: str, data: Any) -> int:
        delivered = await self.publish(user_topic(user_id), event, data)
        if not delivered:
            logger.debug(f"User {user_id} not connected for {event}")
        return delivered

    async def emit_to_admins(self, event: str, data: Any) -> int:
        return await self.publish(ADMINS_TOPIC, event, data)

    async def emit_to_room(self, room: str, event: str, data: Any) -> int:
        return await self.publish(room, event, data)

    async def broadcast(self, event: str, data: Any) -> int:
        return await self.publish(BROADCAST_TOPIC, event, data)


# Singleton instance
broadcast_manager = BroadcastManager()
