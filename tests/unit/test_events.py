"""事件总线测试"""
from core.cards import Card, Color, Rank, wild_card
from core.events import EventBus, EventRecorder, EventType, GameEvent
from core.player import Player


class TestEventBus:
    """EventBus 测试"""

    def test_publish_to_all(self):
        bus = EventBus()
        recorder = bus.subscribe(EventRecorder())
        bus.emit(EventType.STATUS_UPDATED)
        bus.emit(EventType.DIRECTION_CHANGED, clockwise=False)
        assert [e.type for e in recorder.events] == [
            EventType.STATUS_UPDATED, EventType.DIRECTION_CHANGED,
        ]
        assert recorder.events[1].clockwise is False

    def test_type_filter(self):
        bus = EventBus()
        recorder = EventRecorder()
        bus.subscribe(recorder, EventType.GAME_OVER)
        bus.emit(EventType.STATUS_UPDATED)
        bus.emit(EventType.GAME_OVER)
        assert len(recorder.events) == 1

    def test_unsubscribe(self):
        bus = EventBus()
        recorder = EventRecorder()
        bus.subscribe(recorder)
        bus.unsubscribe(recorder)
        bus.emit(EventType.STATUS_UPDATED)
        assert recorder.events == []

    def test_dispatch_order(self):
        bus = EventBus()
        seen = []
        bus.subscribe(lambda e: seen.append("first"))
        bus.subscribe(lambda e: seen.append("second"))
        bus.publish(GameEvent(EventType.STATUS_UPDATED))
        assert seen == ["first", "second"]


class TestRequestColor:
    """选色请求测试"""

    def test_without_resolver(self):
        bus = EventBus()
        recorder = bus.subscribe(EventRecorder())
        player = Player("alice")
        assert bus.request_color(player, wild_card()) is None
        requested = recorder.of_type(EventType.COLOR_REQUESTED)
        assert len(requested) == 1
        assert requested[0].player is player

    def test_resolver_choice(self):
        bus = EventBus(color_resolver=lambda player, card: Color.GREEN)
        assert bus.request_color(Player("alice"), wild_card()) == Color.GREEN

    def test_resolver_cannot_pick_wild(self):
        bus = EventBus(color_resolver=lambda player, card: Color.WILD)
        assert bus.request_color(Player("alice"), wild_card()) is None


class TestEventRecorder:
    """EventRecorder 测试"""

    def test_counts_and_clear(self):
        recorder = EventRecorder()
        card = Card(Color.RED, Rank.ONE)
        recorder(GameEvent(EventType.BOT_ACTION, card=card))
        recorder(GameEvent(EventType.BOT_ACTION))
        recorder(GameEvent(EventType.GAME_OVER))
        assert recorder.counts() == {EventType.BOT_ACTION: 2, EventType.GAME_OVER: 1}
        recorder.clear()
        assert recorder.counts() == {}
