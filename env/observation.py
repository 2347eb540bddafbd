"""
观察空间编码

将游戏会话转换为神经网络可用的特征表示，并定义离散动作编码
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional
import numpy as np

from core.cards import (
    Card,
    Color,
    CARD_KINDS,
    CARD_TO_INDEX,
    NUM_CARD_KINDS,
    PLAYABLE_COLORS,
    cards_to_array,
)
from core.player import Player
from core.session import GameSession


class ActionKind(Enum):
    """动作类别"""
    PLAY = "play"
    DRAW = "draw"
    PASS = "pass"
    DECLARE_UNO = "declare_uno"


@dataclass(frozen=True)
class UnoAction:
    """
    环境动作

    Attributes:
        kind: 动作类别
        card: 要出的牌 (仅 PLAY)
        color: 万能牌选定的颜色 (仅万能牌 PLAY)
    """
    kind: ActionKind
    card: Optional[Card] = None
    color: Optional[Color] = None

    @classmethod
    def play(cls, card: Card, color: Optional[Color] = None) -> 'UnoAction':
        if card.is_wild and color is None:
            raise ValueError(f"{card} needs a chosen color")
        return cls(ActionKind.PLAY, card, color if card.is_wild else None)

    def __str__(self) -> str:
        if self.kind != ActionKind.PLAY:
            return self.kind.value
        if self.color is not None:
            return f"{self.card} -> {self.color.name}"
        return str(self.card)


DRAW_ACTION = UnoAction(ActionKind.DRAW)
PASS_ACTION = UnoAction(ActionKind.PASS)
DECLARE_UNO_ACTION = UnoAction(ActionKind.DECLARE_UNO)


@dataclass
class Observation:
    """
    结构化观测

    Attributes:
        hand: 自己的手牌计数 (54,)
        top_card: 顶牌 one-hot (54,)
        color: 当前有效颜色 one-hot (4,)
        discard: 弃牌堆计数 (54,)
        cards_left: 各玩家剩余牌数，自己在首位 (N,)
        direction: 是否顺时针 (1,)
        uno_declared: 自己是否已声明 UNO (1,)
    """
    hand: np.ndarray
    top_card: np.ndarray
    color: np.ndarray
    discard: np.ndarray
    cards_left: np.ndarray
    direction: np.ndarray
    uno_declared: np.ndarray

    def to_dict(self) -> Dict[str, np.ndarray]:
        """转换为字典格式"""
        return {
            "hand": self.hand,
            "top_card": self.top_card,
            "color": self.color,
            "discard": self.discard,
            "cards_left": self.cards_left,
            "direction": self.direction,
            "uno_declared": self.uno_declared,
        }

    def to_flat_array(self) -> np.ndarray:
        """展平为单一向量 (用于简单网络)"""
        return np.concatenate([v.flatten() for v in self.to_dict().values()])


class ObservationBuilder:
    """
    观测构建器

    负责将 GameSession 转换为 Observation
    """

    def build(self, session: GameSession, perspective: Optional[Player] = None) -> Observation:
        """
        从会话构建观测

        Args:
            session: 游戏会话
            perspective: 视角玩家 (默认为当前玩家)

        Returns:
            Observation 对象
        """
        if perspective is None:
            perspective = session.current_player

        top_card = np.zeros(NUM_CARD_KINDS, dtype=np.float32)
        top_card[CARD_TO_INDEX[session.current_card]] = 1

        color = np.zeros(len(PLAYABLE_COLORS), dtype=np.float32)
        if session.effective_color != Color.WILD:
            color[int(session.effective_color)] = 1

        return Observation(
            hand=cards_to_array(perspective.hand),
            top_card=top_card,
            color=color,
            discard=cards_to_array(session.deck.discarded_cards),
            cards_left=self._encode_cards_left(session, perspective),
            direction=np.array([float(session.direction_clockwise)], dtype=np.float32),
            uno_declared=np.array([float(perspective.has_declared_uno())], dtype=np.float32),
        )

    def _encode_cards_left(self, session: GameSession, perspective: Player) -> np.ndarray:
        """按出牌顺序从自己开始排列的剩余牌数"""
        players = session.players
        start = players.index(perspective)
        n = len(players)
        return np.array(
            [len(players[(start + i) % n]) for i in range(n)],
            dtype=np.float32,
        )


class ActionEncoder:
    """
    动作编码器

    将 UnoAction 与索引相互转换:
    - 52 种彩色牌各一个索引
    - 2 种万能牌 × 4 种颜色
    - 摸牌、过、声明 UNO
    """

    def __init__(self):
        self._action_to_idx: Dict[UnoAction, int] = {}
        self._idx_to_action: List[UnoAction] = []
        self._build_action_space()

    def _add(self, action: UnoAction):
        self._action_to_idx[action] = len(self._idx_to_action)
        self._idx_to_action.append(action)

    def _build_action_space(self):
        for card in CARD_KINDS:
            if card.is_wild:
                for color in PLAYABLE_COLORS:
                    self._add(UnoAction.play(card, color))
            else:
                self._add(UnoAction.play(card))
        self._add(DRAW_ACTION)
        self._add(PASS_ACTION)
        self._add(DECLARE_UNO_ACTION)

    @property
    def num_actions(self) -> int:
        return len(self._idx_to_action)

    def encode(self, action: UnoAction) -> int:
        return self._action_to_idx[action]

    def decode(self, idx: int) -> Optional[UnoAction]:
        if 0 <= idx < len(self._idx_to_action):
            return self._idx_to_action[idx]
        return None

    def plays_for(self, card: Card) -> List[UnoAction]:
        """一张牌对应的所有出牌动作"""
        if card.is_wild:
            return [UnoAction.play(card, color) for color in PLAYABLE_COLORS]
        return [UnoAction.play(card)]

    def get_legal_action_indices(self, legal_actions: List[UnoAction]) -> np.ndarray:
        return np.array(sorted(self.encode(a) for a in legal_actions), dtype=np.int64)

    def build_legal_mask(self, legal_actions: List[UnoAction]) -> np.ndarray:
        mask = np.zeros(self.num_actions, dtype=np.int8)
        for action in legal_actions:
            mask[self.encode(action)] = 1
        return mask


def legal_actions_for(session: GameSession, player: Player) -> List[UnoAction]:
    """
    玩家当前的合法动作

    Returns:
        可出的牌 (去重)、摸牌、已摸牌时的过、可声明时的 UNO
    """
    encoder = get_action_encoder()
    actions: List[UnoAction] = []
    seen = set()
    for card in session.playable_cards(player):
        if card in seen:
            continue
        seen.add(card)
        actions.extend(encoder.plays_for(card))
    actions.append(DRAW_ACTION)
    if session.drawn_this_turn:
        actions.append(PASS_ACTION)
    if not player.has_declared_uno() and session.can_declare_uno(player):
        actions.append(DECLARE_UNO_ACTION)
    return actions


_ACTION_ENCODER: Optional[ActionEncoder] = None


def get_action_encoder() -> ActionEncoder:
    """全局共享的动作编码器"""
    global _ACTION_ENCODER
    if _ACTION_ENCODER is None:
        _ACTION_ENCODER = ActionEncoder()
    return _ACTION_ENCODER
