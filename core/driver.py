"""
会话驱动

订阅会话事件，连续执行机器人回合直到轮到真人玩家或游戏结束；
机器人行动间隔由驱动方控制，规则引擎不做计时
"""
from typing import Callable, Optional
import logging
import time

from .cards import Card
from .events import EventType, GameEvent
from .player import Player
from .session import GameSession, Phase

logger = logging.getLogger(__name__)


class TurnInFlightError(RuntimeError):
    """上一回合尚未结束时又发起了新的回合"""


class SessionDriver:
    """
    机器人回合循环

    Usage:
        driver = SessionDriver(session, bot_delay=1.0)
        driver.run_bots()          # 执行到真人回合
        session.play_card(card, human)
        driver.run_bots()
    """

    def __init__(
        self,
        session: GameSession,
        bot_delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
        on_bot_action: Optional[Callable[[Player, Optional[Card]], None]] = None,
    ):
        """
        Args:
            session: 游戏会话
            bot_delay: 每个机器人回合前的等待时间 (秒)
            sleep: 等待函数 (测试时可替换)
            on_bot_action: 机器人行动后的回调
        """
        self.session = session
        self.bot_delay = bot_delay
        self._sleep = sleep
        self._on_bot_action = on_bot_action
        self._in_flight = False
        self.turns_played = 0
        session.events.subscribe(self._handle_event, EventType.BOT_ACTION)

    def _handle_event(self, event: GameEvent):
        if self._on_bot_action is not None:
            self._on_bot_action(event.player, event.card)

    @property
    def is_finished(self) -> bool:
        return self.session.phase == Phase.GAME_OVER

    def bot_to_move(self) -> Optional[Player]:
        """轮到机器人时返回该机器人"""
        if self.is_finished:
            return None
        player = self.session.current_player
        return player if player.is_bot else None

    def step_bot(self) -> Optional[Card]:
        """
        执行一个机器人回合

        Raises:
            TurnInFlightError: 在事件回调中重入
            RuntimeError: 当前不是机器人回合
        """
        if self._in_flight:
            raise TurnInFlightError("A bot turn is already being resolved")
        bot = self.bot_to_move()
        if bot is None:
            raise RuntimeError("It is not a bot's turn")

        self._in_flight = True
        try:
            if self.bot_delay > 0:
                self._sleep(self.bot_delay)
            played = self.session.play_bot_turn(bot)
        finally:
            self._in_flight = False
        self.turns_played += 1
        return played

    def run_bots(self, max_turns: Optional[int] = None) -> int:
        """
        连续执行机器人回合

        Args:
            max_turns: 最多执行的回合数 (None 表示不限)

        Returns:
            本次执行的回合数
        """
        played = 0
        while self.bot_to_move() is not None:
            if max_turns is not None and played >= max_turns:
                logger.warning(f"Stopped after {played} bot turns")
                break
            self.step_bot()
            played += 1
        return played

    def close(self):
        self.session.events.unsubscribe(self._handle_event)
