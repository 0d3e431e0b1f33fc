from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Callable, Dict, List, Optional


class Stage(str, Enum):
    INTRO = "intro"
    INTRO_WAIT = "intro_wait"
    COMPARE = "compare"
    OFFER = "offer"
    PICK_TIME = "pick_time"
    CONFIRM = "confirm"
    DONE = "done"

    @property
    def order(self) -> int:
        return _STAGE_ORDER.index(self)


_STAGE_ORDER: List[Stage] = list(Stage)


@dataclass
class Lead:
    name: Optional[str] = None
    phone: Optional[str] = None
    listing_url: Optional[str] = None

    def merge(
        self,
        *,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        listing_url: Optional[str] = None,
    ) -> None:
        """Fill in identity fields that are still empty; known values are never replaced."""

        if name and not self.name:
            self.name = name.strip() or None
        if phone and not self.phone:
            self.phone = phone.strip() or None
        if listing_url and not self.listing_url:
            self.listing_url = listing_url.strip() or None


@dataclass
class Session:
    key: str
    offer_a: str
    offer_b: str
    stage: Stage = Stage.INTRO
    lead: Lead = field(default_factory=Lead)
    chosen_slot: Optional[str] = None
    turns: int = 0
    last_seen: float = field(default_factory=time.monotonic)

    def choose_slot(self, slot: str) -> bool:
        """Record the caller's slot. Returns False if one was already chosen."""

        if self.chosen_slot is not None:
            return False
        self.chosen_slot = slot
        return True

    def as_dict(self) -> Dict[str, object]:
        return {
            "key": self.key,
            "stage": self.stage.value,
            "lead": {
                "name": self.lead.name,
                "phone": self.lead.phone,
                "listing_url": self.lead.listing_url,
            },
            "offer_a": self.offer_a,
            "offer_b": self.offer_b,
            "chosen_slot": self.chosen_slot,
            "turns": self.turns,
        }


class SessionStore:
    """Process-wide map of session key to :class:`Session`.

    Sessions are created lazily on first lookup. With ``ttl_seconds`` set,
    sessions idle for longer than the TTL are evicted on access or by
    :meth:`prune`; without it they live as long as the process.
    """

    def __init__(
        self,
        offer_a: str,
        offer_b: str,
        *,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.offer_a = offer_a
        self.offer_b = offer_b
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._lock = Lock()

    def _expired(self, session: Session, now: float) -> bool:
        return self.ttl_seconds is not None and now - session.last_seen > self.ttl_seconds

    def get_or_create(self, key: str) -> Session:
        now = self._clock()
        with self._lock:
            session = self._sessions.get(key)
            if session is not None and self._expired(session, now):
                session = None
            if session is None:
                session = Session(key=key, offer_a=self.offer_a, offer_b=self.offer_b, last_seen=now)
                self._sessions[key] = session
            else:
                session.last_seen = now
            return session

    def get(self, key: str) -> Optional[Session]:
        with self._lock:
            session = self._sessions.get(key)
            if session is not None and self._expired(session, self._clock()):
                del self._sessions[key]
                return None
            return session

    def remove(self, key: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.pop(key, None)

    def prune(self) -> int:
        if self.ttl_seconds is None:
            return 0
        now = self._clock()
        with self._lock:
            stale = [key for key, session in self._sessions.items() if self._expired(session, now)]
            for key in stale:
                del self._sessions[key]
            return len(stale)

    def snapshot(self) -> List[Dict[str, object]]:
        with self._lock:
            return [session.as_dict() for session in self._sessions.values()]

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


__all__ = ["Lead", "Session", "SessionStore", "Stage"]
