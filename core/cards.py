"""
牌的定义与编码

UNO 使用 108 张牌：
- 红/黄/绿/蓝 四色，每色 0 一张，1-9 各两张
- 每色 Skip / Reverse / Draw Two 各两张
- Wild、Wild Draw Four 各四张 (无颜色)
"""
from enum import IntEnum
from dataclasses import dataclass
from typing import List, Tuple, Dict
from collections import Counter
import numpy as np


class Color(IntEnum):
    """颜色 (枚举顺序即自动选色时的平局顺序)"""
    RED = 0
    YELLOW = 1
    GREEN = 2
    BLUE = 3
    WILD = 4


class Rank(IntEnum):
    """牌面 (数字牌的值即其分数)"""
    ZERO = 0
    ONE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    SKIP = 10
    REVERSE = 11
    DRAW_TWO = 12
    WILD = 13
    DRAW_FOUR = 14


# 四种可出的颜色
PLAYABLE_COLORS: Tuple[Color, ...] = (Color.RED, Color.YELLOW, Color.GREEN, Color.BLUE)

# 数字牌
NUMBER_RANKS: Tuple[Rank, ...] = tuple(Rank(i) for i in range(10))

# 万能牌
WILD_RANKS: Tuple[Rank, ...] = (Rank.WILD, Rank.DRAW_FOUR)

# 功能牌 (有回合效果)
ACTION_RANKS: Tuple[Rank, ...] = (
    Rank.SKIP, Rank.REVERSE, Rank.DRAW_TWO, Rank.WILD, Rank.DRAW_FOUR,
)


class CardParseError(ValueError):
    """存档中的牌标记无法解析"""


@dataclass(frozen=True)
class Card:
    """
    不可变的牌

    相等性按 (color, rank) 取值比较，手牌是多重集合

    Attributes:
        color: 颜色，万能牌为 WILD
        rank: 牌面
    """
    color: Color
    rank: Rank

    @property
    def is_wild(self) -> bool:
        return self.rank in WILD_RANKS

    @property
    def is_action(self) -> bool:
        return self.rank in ACTION_RANKS

    def matches(self, other: 'Card') -> bool:
        """颜色相同、牌面相同或本身为万能牌"""
        return (
            self.color == other.color
            or self.rank == other.rank
            or self.color == Color.WILD
        )

    @property
    def token(self) -> str:
        """存档标记，如 RED_SKIP；万能牌不带颜色前缀"""
        if self.is_wild:
            return self.rank.name
        return f"{self.color.name}_{self.rank.name}"

    def __str__(self) -> str:
        if self.is_wild:
            return self.rank.name
        return f"{self.color.name} {self.rank.name}"


def wild_card(rank: Rank = Rank.WILD) -> Card:
    """创建万能牌"""
    if rank not in WILD_RANKS:
        raise ValueError(f"Not a wild rank: {rank!r}")
    return Card(Color.WILD, rank)


def build_full_deck() -> List[Card]:
    """
    生成完整牌组 (108 张，未洗牌)

    Returns:
        牌列表
    """
    cards: List[Card] = []
    for color in PLAYABLE_COLORS:
        cards.append(Card(color, Rank.ZERO))
        for _ in range(2):
            for rank in NUMBER_RANKS[1:]:
                cards.append(Card(color, rank))
            cards.append(Card(color, Rank.SKIP))
            cards.append(Card(color, Rank.REVERSE))
            cards.append(Card(color, Rank.DRAW_TWO))
    for _ in range(4):
        cards.append(wild_card(Rank.WILD))
        cards.append(wild_card(Rank.DRAW_FOUR))
    return cards


FULL_DECK: Tuple[Card, ...] = tuple(build_full_deck())

# 所有不同的牌种 (52 种彩色 + 2 种万能)
CARD_KINDS: Tuple[Card, ...] = tuple(
    [Card(color, rank) for color in PLAYABLE_COLORS for rank in Rank if rank not in WILD_RANKS]
    + [wild_card(rank) for rank in WILD_RANKS]
)

# 牌种到数组索引的映射
CARD_TO_INDEX: Dict[Card, int] = {card: i for i, card in enumerate(CARD_KINDS)}

NUM_CARD_KINDS = len(CARD_KINDS)


def card_points(card: Card) -> int:
    """
    出牌得分

    数字牌按面值，Skip/Reverse/Draw Two 为 20，万能牌为 50
    """
    if card.rank in WILD_RANKS:
        return 50
    if card.rank in (Rank.SKIP, Rank.REVERSE, Rank.DRAW_TWO):
        return 20
    return int(card.rank)


def _parse_rank(s: str) -> Rank:
    if s.isdigit():
        value = int(s)
        if value > 9:
            raise CardParseError(f"Invalid card rank: {s}")
        return Rank(value)
    try:
        return Rank[s]
    except KeyError:
        raise CardParseError(f"Invalid card rank: {s}") from None


def parse_card(text: str) -> Card:
    """
    解析牌标记

    接受 "RED_SKIP"、"RED SKIP"、"RED_5"、"WILD"、"DRAW_FOUR"，
    以及带 WILD 前缀的万能牌 "WILD_DRAW_FOUR"

    Args:
        text: 牌标记

    Returns:
        Card

    Raises:
        CardParseError: 标记无法解析
    """
    s = "_".join(text.strip().upper().split())
    if not s:
        raise CardParseError("Empty card token")

    if s in ("WILD", "DRAW_FOUR", "WILD_WILD", "WILD_DRAW_FOUR"):
        return wild_card(Rank.DRAW_FOUR if s.endswith("DRAW_FOUR") else Rank.WILD)

    color_str, sep, rank_str = s.partition("_")
    if not sep:
        raise CardParseError(f"Invalid card token: {text!r}")
    try:
        color = Color[color_str]
    except KeyError:
        raise CardParseError(f"Invalid card color: {color_str}") from None
    rank = _parse_rank(rank_str)

    if color == Color.WILD or rank in WILD_RANKS:
        raise CardParseError(f"Invalid card token: {text!r}")
    return Card(color, rank)


def cards_to_str(cards: List[Card]) -> str:
    """将牌列表转换为逗号分隔的存档标记"""
    return ",".join(card.token for card in cards)


def str_to_cards(s: str) -> List[Card]:
    """
    将逗号分隔的标记转换为牌列表 (严格模式)

    Raises:
        CardParseError: 任一标记无法解析
    """
    return [parse_card(part) for part in s.split(",") if part.strip()]


def cards_to_array(cards: List[Card]) -> np.ndarray:
    """
    将牌列表转换为 54 维计数向量

    每一维对应 CARD_KINDS 中的一种牌

    Args:
        cards: 牌列表

    Returns:
        54 维 numpy 数组
    """
    array = np.zeros(NUM_CARD_KINDS, dtype=np.float32)
    for card, count in Counter(cards).items():
        array[CARD_TO_INDEX[card]] = count
    return array


def array_to_cards(array: np.ndarray) -> List[Card]:
    """将计数向量转换回牌列表 (按 CARD_KINDS 顺序)"""
    cards: List[Card] = []
    for idx, count in enumerate(array[:NUM_CARD_KINDS]):
        cards.extend([CARD_KINDS[idx]] * int(count))
    return cards
