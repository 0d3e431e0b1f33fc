from typing import List, Optional, Tuple

import pytest

from app.engine import ConversationEngine
from app.state import Lead, SessionStore


class RecordingDispatcher:
    def __init__(self) -> None:
        self.calls: List[Tuple[Optional[str], Optional[str], str, Optional[str]]] = []

    def notify(self, lead: Lead, slot: str, conversation_id: Optional[str]) -> None:
        self.calls.append((lead.name, lead.phone, slot, conversation_id))


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def store() -> SessionStore:
    return SessionStore("Tomorrow 2:00 PM", "Thursday 10:00 AM")


@pytest.fixture
def engine(dispatcher) -> ConversationEngine:
    return ConversationEngine(dispatcher, "Venturebnb")
