from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: Optional[str] = None
    content: Optional[str] = None


class Callee(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    phone: Optional[str] = None
    listing_url: Optional[str] = None


class TurnRequest(BaseModel):
    """Body of a stateless HTTP turn."""

    model_config = ConfigDict(extra="ignore")

    conversation_id: Optional[Union[str, int]] = None
    call_id: Optional[Union[str, int]] = None
    messages: List[Message] = Field(default_factory=list)
    callee: Optional[Callee] = None

    def session_key(self) -> str:
        for candidate in (self.conversation_id, self.call_id):
            if candidate is None:
                continue
            text = str(candidate).strip()
            if text:
                return text
        return "unknown"


class StreamEvent(BaseModel):
    """Inbound message on the streaming connection."""

    model_config = ConfigDict(extra="ignore")

    interaction_type: Optional[str] = None
    response_id: Optional[int] = None
    transcript: List[Message] = Field(default_factory=list)
    timestamp: Optional[int] = None
    call: Optional[Dict[str, Any]] = None


def latest_user_utterance(messages: Sequence[Message]) -> str:
    """Lower-cased content of the most recent caller message, or ``""``."""

    for message in reversed(messages):
        if message.role == "user":
            return (message.content or "").lower()
    return ""


def turn_response(reply: str, end_call: bool) -> Dict[str, Any]:
    # Clients parse different key names, so the reply and flag go out under each.
    return {
        "response": reply,
        "reply": reply,
        "content": reply,
        "text": reply,
        "end_call": end_call,
        "hangup": end_call,
        "hang_up": end_call,
    }


__all__ = [
    "Callee",
    "Message",
    "StreamEvent",
    "TurnRequest",
    "latest_user_utterance",
    "turn_response",
]
