from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from app.booking import BookingDispatcher
from app.config import get_settings
from app.debug import router as debug_router
from app.engine import ConversationEngine
from app.logging_config import setup_logging
from app.schemas import TurnRequest, latest_user_utterance, turn_response
from app.state import SessionStore
from app.streaming import StreamSession, resolve_stream_key

setup_logging()

logger = logging.getLogger(__name__)

settings = get_settings()

TURN_PATH = "/retell-llm"

sessions = SessionStore(
    settings.offer_slot_a,
    settings.offer_slot_b,
    ttl_seconds=settings.session_ttl_seconds,
)
dispatcher = BookingDispatcher(settings.booking_webhook_url, timeout=settings.booking_timeout)
engine = ConversationEngine(dispatcher, settings.brand_name)


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    dispatcher.shutdown(wait=False)


app = FastAPI(lifespan=lifespan)
app.state.sessions = sessions

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_headers=["Content-Type"],
    allow_methods=["GET", "POST", "OPTIONS"],
)
app.include_router(debug_router)


@app.get("/health")
async def health() -> JSONResponse:
    return JSONResponse({"ok": True})


@app.get("/")
async def root() -> PlainTextResponse:
    return PlainTextResponse(f"{settings.brand_name} Retell LLM up")


@app.get(TURN_PATH)
async def turn_hint() -> JSONResponse:
    return JSONResponse({"ok": True, "hint": "POST here with messages[]"})


async def _parse_turn_request(request: Request) -> Optional[TurnRequest]:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    try:
        return TurnRequest.model_validate(payload)
    except ValidationError:
        return None


@app.post(TURN_PATH)
async def turn_route(request: Request) -> JSONResponse:
    body = await _parse_turn_request(request)
    if body is None:
        logger.warning("Malformed turn payload on %s", TURN_PATH)
        return JSONResponse(turn_response("", False))

    key = body.session_key()
    session = sessions.get_or_create(key)
    if body.callee is not None:
        session.lead.merge(
            name=body.callee.name,
            phone=body.callee.phone,
            listing_url=body.callee.listing_url,
        )

    turn = engine.advance(session, latest_user_utterance(body.messages))
    return JSONResponse(turn_response(turn.reply, turn.end_call))


@app.websocket(TURN_PATH)
@app.websocket(TURN_PATH + "/{call_id}")
async def turn_stream(websocket: WebSocket, call_id: Optional[str] = None) -> None:
    key = resolve_stream_key(call_id, websocket.query_params)
    stream = StreamSession(
        websocket,
        key,
        sessions,
        engine,
        greeting_delay=settings.greeting_delay,
    )
    await stream.run()


__all__ = ["app", "engine", "sessions", "turn_route", "turn_stream"]


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
