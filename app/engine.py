from __future__ import annotations

import logging
from typing import Callable, Dict, NamedTuple, Optional, Protocol

from app import dialogue
from app.intent import Intent, classify
from app.state import Lead, Session, Stage

logger = logging.getLogger(__name__)


class Turn(NamedTuple):
    reply: str
    end_call: bool


class Dispatcher(Protocol):
    def notify(self, lead: Lead, slot: str, conversation_id: Optional[str]) -> object:
        ...


class ConversationEngine:
    """Drives the outbound sales script one caller turn at a time.

    Every (stage, intent) pair yields a reply; unmatched input re-prompts
    or closes the call. The only side effect besides mutating the session
    is the single booking notification sent when a slot is first chosen.
    """

    def __init__(self, dispatcher: Dispatcher, brand_name: str) -> None:
        self.dispatcher = dispatcher
        self.brand_name = brand_name
        self._handlers: Dict[Stage, Callable[[Session, Intent], Turn]] = {
            Stage.INTRO: self._intro,
            Stage.INTRO_WAIT: self._intro_wait,
            Stage.COMPARE: self._compare,
            Stage.OFFER: self._offer,
            Stage.PICK_TIME: self._pick_time,
            Stage.CONFIRM: self._confirm,
        }

    def advance(self, session: Session, utterance: Optional[str]) -> Turn:
        stage = session.stage
        intent = classify(stage, utterance)
        handler = self._handlers.get(stage, self._closed)
        turn = handler(session, intent)
        session.turns += 1
        logger.info(
            "Advanced conversation",
            extra={
                "session": session.key,
                "stage": session.stage.value,
                "intent": intent.value,
                "end_call": turn.end_call,
            },
        )
        return turn

    def _intro(self, session: Session, intent: Intent) -> Turn:
        session.stage = Stage.INTRO_WAIT
        return Turn(dialogue.greeting(self.brand_name, session.lead.name), False)

    def _intro_wait(self, session: Session, intent: Intent) -> Turn:
        if intent is Intent.AFFIRM:
            session.stage = Stage.COMPARE
            return Turn(dialogue.RECEIVED_ANALYSIS, False)
        if intent is Intent.DENY:
            session.stage = Stage.COMPARE
            return Turn(dialogue.MISSED_ANALYSIS, False)
        return Turn(dialogue.CONFIRM_ANALYSIS_REPROMPT, False)

    def _compare(self, session: Session, intent: Intent) -> Turn:
        session.stage = Stage.OFFER
        return Turn(dialogue.STRATEGIST_PITCH, False)

    def _offer(self, session: Session, intent: Intent) -> Turn:
        if intent is Intent.AFFIRM:
            session.stage = Stage.PICK_TIME
            return Turn(dialogue.compose_offer_times(session.offer_a, session.offer_b), False)
        if intent is Intent.DENY:
            session.stage = Stage.DONE
            return Turn(dialogue.OFFER_DECLINED, True)
        return Turn(dialogue.PERIOD_PREFERENCE_PROMPT, False)

    def _resolve_slot(self, session: Session, intent: Intent) -> Optional[str]:
        if intent in (Intent.TIME_SLOT_A, Intent.TIME_PERIOD_AFTERNOON):
            return session.offer_a
        # Mornings map to slot B.
        if intent in (Intent.TIME_SLOT_B, Intent.TIME_PERIOD_MORNING):
            return session.offer_b
        return None

    def _pick_time(self, session: Session, intent: Intent) -> Turn:
        resolved = self._resolve_slot(session, intent)
        if resolved is not None and session.choose_slot(resolved):
            self.dispatcher.notify(session.lead, session.chosen_slot, session.key)
        if session.chosen_slot is None:
            return Turn(dialogue.compose_time_reprompt(session.offer_a, session.offer_b), False)

        session.stage = Stage.CONFIRM
        return Turn(dialogue.compose_booking_confirmation(session.chosen_slot), False)

    def _confirm(self, session: Session, intent: Intent) -> Turn:
        session.stage = Stage.DONE
        return Turn(dialogue.CONFIRM_CLOSING, True)

    def _closed(self, session: Session, intent: Intent) -> Turn:
        session.stage = Stage.DONE
        return Turn(dialogue.GENERIC_CLOSING, True)


__all__ = ["ConversationEngine", "Dispatcher", "Turn"]
