from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any, Dict, Mapping, Optional

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from app.engine import ConversationEngine, Turn
from app.schemas import StreamEvent, latest_user_utterance
from app.state import Session, SessionStore, Stage

logger = logging.getLogger(__name__)

TURN_EVENTS = {"response_required", "reminder_required"}
GREETING_RESPONSE_ID = 0
CONFIG_MESSAGE: Dict[str, Any] = {
    "response_type": "config",
    "config": {"auto_reconnect": True, "call_details": True},
}


def resolve_stream_key(path_call_id: Optional[str], query: Mapping[str, str]) -> str:
    """Session key for a streaming connection: path segment, then ``call_id``/``id`` query, then a new id."""

    for candidate in (path_call_id, query.get("call_id"), query.get("id")):
        if candidate and candidate.strip():
            return candidate.strip()
    return uuid.uuid4().hex


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


class StreamSession:
    """Serves one streaming connection; the connection is the session scope."""

    def __init__(
        self,
        websocket: WebSocket,
        key: str,
        store: SessionStore,
        engine: ConversationEngine,
        *,
        greeting_delay: float = 1.5,
    ) -> None:
        self.websocket = websocket
        self.key = key
        self.store = store
        self.engine = engine
        self.greeting_delay = greeting_delay
        self._send_lock = asyncio.Lock()
        self._greeting_task: Optional[asyncio.Task] = None
        self._turn_seen = False
        self._greeting_started = False

    @property
    def session(self) -> Session:
        return self.store.get_or_create(self.key)

    async def run(self) -> None:
        await self.websocket.accept()
        logger.info("Stream connected", extra={"session": self.key})
        await self.send(CONFIG_MESSAGE)
        self._greeting_task = asyncio.create_task(self._greet_after_delay())
        try:
            while True:
                message = await self.websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                raw = message.get("text")
                if raw is None and message.get("bytes") is not None:
                    raw = message["bytes"].decode("utf-8", errors="replace")
                await self.handle_raw(raw)
        except WebSocketDisconnect:
            logger.info("Stream disconnected", extra={"session": self.key})
        finally:
            self._disarm_greeting()

    async def handle_raw(self, raw: str) -> None:
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError):
            logger.debug("Dropping undecodable stream payload", extra={"session": self.key})
            return
        if not isinstance(payload, dict):
            logger.debug("Dropping non-object stream payload", extra={"session": self.key})
            return
        try:
            event = StreamEvent.model_validate(payload)
        except ValidationError:
            logger.debug("Dropping invalid stream event", extra={"session": self.key})
            return
        await self.handle_event(event)

    async def handle_event(self, event: StreamEvent) -> None:
        kind = event.interaction_type
        if kind in TURN_EVENTS:
            self._turn_seen = True
            self._disarm_greeting()
            utterance = latest_user_utterance(event.transcript) if kind == "response_required" else ""
            turn = self.engine.advance(self.session, utterance)
            await self.send_turn(event.response_id, turn)
        elif kind == "ping_pong":
            await self.send({"response_type": "ping_pong", "timestamp": event.timestamp})
        elif kind == "call_details" and event.call:
            self._merge_call_details(event.call)

    def _merge_call_details(self, call: Mapping[str, Any]) -> None:
        variables = call.get("retell_llm_dynamic_variables")
        if not isinstance(variables, dict):
            variables = {}
        self.session.lead.merge(
            name=_text(variables.get("name")),
            phone=_text(call.get("to_number")),
            listing_url=_text(variables.get("listing_url")),
        )

    async def _greet_after_delay(self) -> None:
        await asyncio.sleep(self.greeting_delay)
        if self._turn_seen:
            return
        session = self.session
        if session.stage is not Stage.INTRO:
            return
        # Past this point the session has moved on, so the reply must go out.
        self._greeting_started = True
        turn = self.engine.advance(session, "")
        await self.send_turn(GREETING_RESPONSE_ID, turn)

    def _disarm_greeting(self) -> None:
        task = self._greeting_task
        if task is not None and not task.done() and not self._greeting_started:
            task.cancel()

    async def send_turn(self, response_id: Optional[int], turn: Turn) -> None:
        await self.send(
            {
                "response_type": "response",
                "response_id": response_id,
                "content": turn.reply,
                "content_complete": True,
                "end_call": turn.end_call,
            }
        )

    async def send(self, data: Dict[str, Any]) -> None:
        async with self._send_lock:
            try:
                await self.websocket.send_text(json.dumps(data))
            except (RuntimeError, WebSocketDisconnect) as exc:
                logger.warning("Stream send failed: %s", exc, extra={"session": self.key})


__all__ = ["CONFIG_MESSAGE", "StreamSession", "TURN_EVENTS", "resolve_stream_key"]
