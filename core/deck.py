"""
牌堆

两个栈: 摸牌堆 (末尾为下一张) 与弃牌堆 (末尾为最近打出的牌)
"""
from typing import List, Optional, Iterable
import logging
import random

from .cards import Card, build_full_deck

logger = logging.getLogger(__name__)


class DeckExhausted(RuntimeError):
    """摸牌堆与弃牌堆都无牌可摸 (规则引擎缺陷)"""


class Deck:
    """
    UNO 牌堆

    摸牌堆为空时，保留弃牌堆顶牌，其余洗匀后作为新的摸牌堆
    """

    def __init__(
        self,
        undrawn: Optional[Iterable[Card]] = None,
        discarded: Optional[Iterable[Card]] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            undrawn: 摸牌堆 (None 表示完整新牌组)
            discarded: 弃牌堆 (读档时使用)
            rng: 随机数生成器
        """
        self._rng = rng or random.Random()
        self._undrawn: List[Card] = list(undrawn) if undrawn is not None else build_full_deck()
        self._discarded: List[Card] = list(discarded) if discarded is not None else []

    def shuffle(self):
        """洗摸牌堆"""
        self._rng.shuffle(self._undrawn)

    def reshuffle_discard_into_deck(self):
        """把弃牌堆 (除顶牌外) 洗回摸牌堆"""
        if self._undrawn or len(self._discarded) < 2:
            return
        top = self._discarded.pop()
        self._rng.shuffle(self._discarded)
        self._undrawn.extend(self._discarded)
        self._discarded = [top]
        logger.info("Discard pile reshuffled into the draw pile.")

    def draw(self) -> Card:
        """
        摸一张牌

        Raises:
            DeckExhausted: 没有可洗回的弃牌
        """
        if not self._undrawn:
            self.reshuffle_discard_into_deck()
        if not self._undrawn:
            raise DeckExhausted(
                f"No cards left to draw (discard pile holds {len(self._discarded)})"
            )
        return self._undrawn.pop()

    def add_to_discard_pile(self, card: Card):
        self._discarded.append(card)

    def peek(self) -> Optional[Card]:
        """查看摸牌堆顶牌，空时返回 None"""
        return self._undrawn[-1] if self._undrawn else None

    @property
    def top_discard(self) -> Optional[Card]:
        return self._discarded[-1] if self._discarded else None

    @property
    def undrawn_cards(self) -> List[Card]:
        """摸牌堆副本 (自底向顶)"""
        return list(self._undrawn)

    @property
    def discarded_cards(self) -> List[Card]:
        """弃牌堆副本 (自底向顶)"""
        return list(self._discarded)

    def is_empty(self) -> bool:
        return not self._undrawn

    def __len__(self) -> int:
        return len(self._undrawn) + len(self._discarded)
