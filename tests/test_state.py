import threading

from app.state import Lead, SessionStore, Stage


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_new_session_defaults(store):
    session = store.get_or_create("abc")
    assert session.key == "abc"
    assert session.stage is Stage.INTRO
    assert session.offer_a == "Tomorrow 2:00 PM"
    assert session.offer_b == "Thursday 10:00 AM"
    assert session.chosen_slot is None
    assert session.lead == Lead()


def test_get_or_create_returns_same_object(store):
    first = store.get_or_create("abc")
    first.stage = Stage.OFFER
    first.choose_slot("Thursday 10:00 AM")

    again = store.get_or_create("abc")
    assert again is first
    assert again.stage is Stage.OFFER
    assert again.chosen_slot == "Thursday 10:00 AM"
    assert len(store) == 1


def test_sessions_are_isolated(store):
    a = store.get_or_create("A")
    b = store.get_or_create("B")
    a.stage = Stage.CONFIRM
    a.lead.merge(name="Dana")
    assert b.stage is Stage.INTRO
    assert b.lead.name is None


def test_choose_slot_is_write_once(store):
    session = store.get_or_create("abc")
    assert session.choose_slot("Tomorrow 2:00 PM") is True
    assert session.choose_slot("Thursday 10:00 AM") is False
    assert session.chosen_slot == "Tomorrow 2:00 PM"


def test_lead_merge_only_fills_blanks():
    lead = Lead()
    lead.merge(name="Dana", phone=None)
    lead.merge(name="Other", phone="+15550100", listing_url="https://example.com/listing/1")
    assert lead.name == "Dana"
    assert lead.phone == "+15550100"
    assert lead.listing_url == "https://example.com/listing/1"


def test_lead_merge_ignores_blank_values():
    lead = Lead()
    lead.merge(name="   ")
    assert lead.name is None
    lead.merge(name="Dana")
    assert lead.name == "Dana"


def test_concurrent_first_touch_creates_one_session(store):
    barrier = threading.Barrier(8)
    seen = []

    def worker():
        barrier.wait()
        seen.append(store.get_or_create("shared"))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store) == 1
    assert all(session is seen[0] for session in seen)


def test_no_expiry_without_ttl(store):
    store.get_or_create("abc")
    assert store.prune() == 0
    assert store.get("abc") is not None


def test_idle_sessions_expire_with_ttl():
    clock = FakeClock()
    store = SessionStore("A", "B", ttl_seconds=60, clock=clock)
    session = store.get_or_create("abc")
    session.stage = Stage.OFFER

    clock.now += 30
    assert store.get_or_create("abc") is session

    clock.now += 61
    fresh = store.get_or_create("abc")
    assert fresh is not session
    assert fresh.stage is Stage.INTRO


def test_prune_and_get_drop_stale_sessions():
    clock = FakeClock()
    store = SessionStore("A", "B", ttl_seconds=10, clock=clock)
    store.get_or_create("old")
    clock.now += 20
    store.get_or_create("new")

    assert store.get("old") is None
    store.get_or_create("old2")
    clock.now += 11
    assert store.prune() == 2
    assert len(store) == 0


def test_remove_snapshot_and_clear(store):
    session = store.get_or_create("abc")
    session.lead.merge(name="Dana")
    snapshot = store.snapshot()
    assert snapshot[0]["key"] == "abc"
    assert snapshot[0]["stage"] == "intro"
    assert snapshot[0]["lead"]["name"] == "Dana"

    assert store.remove("abc") is session
    assert store.remove("abc") is None
    store.get_or_create("x")
    store.clear()
    assert len(store) == 0
