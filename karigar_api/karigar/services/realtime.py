from __future__ import annotations

import asyncio

import logging
from typing import Dict, Set
from uuid import UUID

from starlette.websockets import WebSocket, WebSocketState

from karigar.schemas.realtime import KanbanEvent, WsEnvelope

logger = logging.getLogger(__name__)


class BroadcastManager:
    """
    Simple in-process pub-sub manager for WebSocket topics.

    Topics:
      - kanban:{merchant_id}
    """

    def __init__(self) -> None:
        self._topics: Dict[str, Set[WebSocket]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._global_lock = asyncio.Lock()

    def _topic_lock(self, topic: str) -> asyncio.Lock:
        if topic not in self._locks:
            self._locks[topic] = asyncio.Lock()
        return self._locks[topic]

    # PUBLIC_INTERFACE
    def kanban_topic(self, merchant_id: UUID | str) -> str:
        """Return the Kanban board topic name for a merchant."""
        return f"kanban:{merchant_id}"

    async def _ensure_topic(self, topic: str) -> None:
        async with self._global_lock:
            if topic not in self._topics:
                self._topics[topic] = set()

    # PUBLIC_INTERFACE
    async def connect(self, topic: str, websocket: WebSocket) -> None:
        """Add an accepted websocket to topic subscribers."""
        await self._ensure_topic(topic)
        async with self._topic_lock(topic):
            self._topics[topic].add(websocket)
            logger.info("WebSocket connected to topic=%s; subscribers=%d", topic, len(self._topics[topic]))

    # PUBLIC_INTERFACE
    async def disconnect(self, topic: str, websocket: WebSocket) -> None:
        """Remove websocket from topic subscribers."""
        if topic not in self._topics:
            return
        async with self._topic_lock(topic):
            self._topics[topic].discard(websocket)
            logger.info("WebSocket disconnected from topic=%s; subscribers=%d", topic, len(self._topics[topic]))

    # PUBLIC_INTERFACE
    async def broadcast(self, topic: str, message: dict) -> None:
        """
        Broadcast a dict message to all subscribers in the topic.

        Sockets that fail to receive are dropped from the topic.
        """
        await self._ensure_topic(topic)
        async with self._topic_lock(topic):
            to_drop: list[WebSocket] = []
            for ws in list(self._topics[topic]):
                try:
                    if ws.application_state == WebSocketState.DISCONNECTED or ws.client_state == WebSocketState.DISCONNECTED:
                        to_drop.append(ws)
                        continue
                    await ws.send_json(message)
                except Exception:
                    logger.exception("Failed to send message to websocket; scheduling drop")
                    to_drop.append(ws)
            for ws in to_drop:
                self._topics[topic].discard(ws)

    # PUBLIC_INTERFACE
    async def publish_kanban_event(self, merchant_id: UUID | str, event: KanbanEvent) -> None:
        """Publish a Kanban card event to the merchant's board topic."""
        env = WsEnvelope(type=f"kanban.{event.event}", payload=event.model_dump(mode="json"), user_id=event.user_id)
        await self.broadcast(self.kanban_topic(merchant_id), env.model_dump(mode="json"))


# Singleton instance
broadcast_manager = BroadcastManager()
