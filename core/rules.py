"""
规则引擎 - 出牌合法性、回合顺序、得分

所有方法都是纯函数，无状态
"""
from typing import List, Optional

from .cards import Card, Color, Rank, card_points


# 未声明 UNO 的罚摸张数
UNO_PENALTY_CARDS = 2

# 功能牌迫使下家摸牌的张数
DRAW_PENALTIES = {
    Rank.DRAW_TWO: 2,
    Rank.DRAW_FOUR: 4,
}


class RuleEngine:
    """
    UNO 规则引擎

    提供出牌合法性、回合推进、得分等功能
    所有方法都是静态方法，无状态
    """

    @staticmethod
    def effective_color(current_card: Card, current_color: Optional[Color]) -> Color:
        """万能牌选定的颜色优先，否则为顶牌颜色"""
        return current_color if current_color is not None else current_card.color

    @staticmethod
    def is_valid_play(
        card: Card,
        current_card: Card,
        current_color: Optional[Color] = None,
    ) -> bool:
        """
        验证出牌是否合法

        Args:
            card: 要出的牌
            current_card: 弃牌堆顶牌
            current_color: 万能牌选定的颜色

        Returns:
            颜色匹配、牌面匹配或为万能牌
        """
        color = RuleEngine.effective_color(current_card, current_color)
        return (
            card.color == color
            or card.rank == current_card.rank
            or card.color == Color.WILD
        )

    @staticmethod
    def playable_cards(
        hand: List[Card],
        current_card: Card,
        current_color: Optional[Color] = None,
    ) -> List[Card]:
        """手牌中所有可出的牌 (保持手牌顺序)"""
        return [c for c in hand if RuleEngine.is_valid_play(c, current_card, current_color)]

    @staticmethod
    def next_index(current: int, num_players: int, clockwise: bool) -> int:
        """
        下一位玩家的索引

        Args:
            current: 当前玩家索引
            num_players: 玩家数
            clockwise: 是否顺时针

        Returns:
            (current ± 1 + N) mod N
        """
        step = 1 if clockwise else -1
        return (current + step + num_players) % num_players

    @staticmethod
    def score_for_card(card: Card) -> int:
        return card_points(card)

    @staticmethod
    def skips_next_player(card: Card, num_players: int) -> bool:
        """打出该牌后是否跳过下家"""
        if card.rank in (Rank.SKIP, Rank.DRAW_TWO, Rank.DRAW_FOUR):
            return True
        # 两人局中 Reverse 等同于 Skip
        return card.rank == Rank.REVERSE and num_players == 2

    @staticmethod
    def draw_penalty(card: Card) -> int:
        """下家需要摸的张数"""
        return DRAW_PENALTIES.get(card.rank, 0)

    @staticmethod
    def can_declare_uno(hand: List[Card], current_card: Card) -> bool:
        """
        能否声明 UNO

        手牌恰好两张，或手中有与顶牌匹配的牌
        """
        if len(hand) == 2:
            return True
        return any(card.matches(current_card) for card in hand)

    @staticmethod
    def is_valid_starting_card(card: Card) -> bool:
        """开局翻出的牌必须是数字牌"""
        return not card.is_action
