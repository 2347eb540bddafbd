"""
玩家

手牌、UNO 声明状态与累计战绩
"""
from dataclasses import dataclass
from typing import List, Optional, Iterable
from collections import Counter

from .cards import Card, Color, PLAYABLE_COLORS


@dataclass
class PlayerStats:
    """
    累计战绩 (由账户存储持久化)

    Attributes:
        games_played: 已玩局数
        wins: 胜局数
        total_score: 累计得分
    """
    games_played: int = 0
    wins: int = 0
    total_score: int = 0


class Player:
    """
    玩家

    手牌按加入顺序保存，顺序没有规则含义
    """

    def __init__(
        self,
        username: str,
        is_bot: bool = False,
        hand: Optional[Iterable[Card]] = None,
        stats: Optional[PlayerStats] = None,
    ):
        """
        Args:
            username: 用户名
            is_bot: 是否为机器人 (构造后不可变)
            hand: 初始手牌 (读档时使用)
            stats: 累计战绩
        """
        self._username = username
        self._is_bot = is_bot
        self._hand: List[Card] = list(hand) if hand is not None else []
        self._uno_declared = False
        self.score = 0
        self.stats = stats or PlayerStats()

    @property
    def username(self) -> str:
        return self._username

    @property
    def is_bot(self) -> bool:
        return self._is_bot

    @property
    def hand(self) -> List[Card]:
        """手牌副本"""
        return list(self._hand)

    def __len__(self) -> int:
        return len(self._hand)

    def has_card(self, card: Card) -> bool:
        return card in self._hand

    def draw_card(self, card: Card):
        """加入手牌并清除 UNO 声明"""
        self._hand.append(card)
        self._uno_declared = False

    def remove_card(self, card: Card):
        """
        移除一张取值相同的牌

        Raises:
            ValueError: 手牌中没有该牌
        """
        try:
            self._hand.remove(card)
        except ValueError:
            raise ValueError(f"{self._username} does not hold {card}") from None

    def has_declared_uno(self) -> bool:
        return self._uno_declared

    def set_uno_declared(self, declared: bool):
        self._uno_declared = declared

    def choose_color_automatically(self) -> Color:
        """
        选择手中数量最多的颜色

        平局按 RED < YELLOW < GREEN < BLUE 取先者；没有彩色牌时为 RED
        """
        counts = Counter(c.color for c in self._hand if c.color != Color.WILD)
        return max(PLAYABLE_COLORS, key=lambda color: (counts[color], -color))

    def increment_score(self, points: int):
        self.score += points

    def __repr__(self) -> str:
        kind = "bot" if self._is_bot else "human"
        return f"Player({self._username!r}, {kind}, cards={len(self._hand)})"
