import pytest

from engine import SettlementEngine
from sim.calendar import Season
from sim.events import EventBus, Notification, NotificationKind


def note(kind=NotificationKind.TICK, message=""):
    return Notification(kind, message)


def test_publish_reaches_subscribers_in_order():
    bus = EventBus()
    seen = []
    bus.subscribe(lambda n: seen.append(("a", n.message)))
    off = bus.subscribe(lambda n: seen.append(("b", n.message)))
    bus.publish(note(message="one"))
    off()
    bus.publish(note(message="two"))
    assert seen == [("a", "one"), ("b", "one"), ("a", "two")]


def test_deferred_block_queues_until_exit():
    bus = EventBus()
    seen = []
    bus.subscribe(lambda n: seen.append(n.message))
    with bus.deferred():
        bus.publish(note(message="first"))
        with bus.deferred():
            bus.publish(note(message="second"))
        assert seen == []
        assert bus.pending == 2
    assert seen == ["first", "second"]
    assert bus.pending == 0


def test_failing_drain_keeps_the_rest_queued():
    bus = EventBus()
    seen = []

    def picky(n):
        if n.message == "bad":
            raise RuntimeError("boom")
        seen.append(n.message)

    bus.subscribe(picky)
    bus.emit(note(message="bad"))
    bus.emit(note(message="good"))
    with pytest.raises(RuntimeError):
        bus.drain()
    assert bus.pending == 1
    assert bus.drain() == 1
    assert seen == ["good"]


def test_raising_subscriber_cannot_interrupt_a_tick():
    eng = SettlementEngine(seed=4)
    eng.found_settlement()
    lodge = eng.construct("huntersLodge", "nearbyForest").value
    eng.assign_worker(lodge.id, "p3")
    food_before = eng.resources()["food"]

    def grumpy(n):
        if n.kind is NotificationKind.SEASON_CHANGED:
            raise RuntimeError("subscriber failed")

    eng.bus.subscribe(grumpy)
    with pytest.raises(RuntimeError):
        eng.tick(90)
    assert eng.calendar.season is Season.SUMMER
    assert eng.production_rates()["food"] > 0
    assert eng.resources()["food"] != food_before
    assert eng.buildings.get(lodge.id).condition == pytest.approx(91.0)
    assert eng.progression.seasons_survived == 1
