"""
BroadcastManager fan-out on the per-merchant Kanban topic.
"""

from __future__ import annotations

import asyncio
from uuid import uuid4

from starlette.websockets import WebSocketState

from karigar.schemas.realtime import KanbanEvent
from karigar.services.realtime import BroadcastManager


class _Socket:
    def __init__(self, fail: bool = False, state: WebSocketState = WebSocketState.CONNECTED) -> None:
        self.fail = fail
        self.application_state = state
        self.client_state = state
        self.received = []

    async def send_json(self, message) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.received.append(message)


class TestBroadcastManager:
    def test_event_reaches_every_subscriber_of_the_merchant(self) -> None:
        manager = BroadcastManager()
        merchant, other = uuid4(), uuid4()
        first, second, elsewhere = _Socket(), _Socket(), _Socket()
        event = KanbanEvent(event="card.moved", card_id=uuid4(), order_id=uuid4(), from_stage="jhalai", to_stage="quellai")

        async def _run() -> None:
            await manager.connect(manager.kanban_topic(merchant), first)
            await manager.connect(manager.kanban_topic(merchant), second)
            await manager.connect(manager.kanban_topic(other), elsewhere)
            await manager.publish_kanban_event(merchant, event)

        asyncio.run(_run())

        assert [m["type"] for m in first.received] == ["kanban.card.moved"]
        assert second.received[0]["payload"]["to_stage"] == "quellai"
        assert elsewhere.received == []

    def test_failed_and_disconnected_sockets_are_dropped(self) -> None:
        manager = BroadcastManager()
        topic = manager.kanban_topic(uuid4())
        healthy, broken, gone = _Socket(), _Socket(fail=True), _Socket(state=WebSocketState.DISCONNECTED)

        async def _run() -> None:
            for ws in (healthy, broken, gone):
                await manager.connect(topic, ws)
            await manager.broadcast(topic, {"type": "ping"})
            await manager.broadcast(topic, {"type": "ping"})

        asyncio.run(_run())

        assert len(healthy.received) == 2
        assert broken.received == [] and gone.received == []
        assert manager._topics[topic] == {healthy}
