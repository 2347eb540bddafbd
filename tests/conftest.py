"""测试公共工具"""
import random

import pytest

from core.cards import Card, Color, Rank
from core.deck import Deck
from core.events import EventBus, EventRecorder
from core.player import Player
from core.session import GameSession


def _filler(n: int):
    """n 张黄色数字牌，用作摸牌堆"""
    return [Card(Color.YELLOW, Rank(1 + i % 9)) for i in range(n)]


def _make_session(
    hands,
    current_card,
    undrawn=None,
    current_index=0,
    clockwise=True,
    current_color=None,
    human=True,
    **kwargs,
):
    """
    构造确定性会话

    第一位玩家为真人 alice (human=False 时全是机器人)，其余为 Bot 1、Bot 2 ...
    返回 (session, recorder)
    """
    players = []
    for i, hand in enumerate(hands):
        if i == 0 and human:
            players.append(Player("alice", hand=hand))
        else:
            players.append(Player(f"Bot {i if human else i + 1}", is_bot=True, hand=hand))

    recorder = EventRecorder()
    bus = kwargs.pop("event_bus", None) or EventBus()
    bus.subscribe(recorder)

    deck = Deck(
        undrawn=_filler(20) if undrawn is None else undrawn,
        discarded=[current_card],
        rng=random.Random(0),
    )
    session = GameSession.restore(
        players,
        deck,
        current_card,
        current_index=current_index,
        clockwise=clockwise,
        current_color=current_color,
        event_bus=bus,
        rng=random.Random(0),
        **kwargs,
    )
    return session, recorder


@pytest.fixture
def session_factory():
    return _make_session
