"""
游戏事件

GameSession 通过 EventBus 向驱动方 (界面、机器人循环、环境) 推送事件
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, TYPE_CHECKING
import logging

from .cards import Card, Color

if TYPE_CHECKING:
    from .player import Player

logger = logging.getLogger(__name__)


class EventType(Enum):
    """事件类型"""
    TURN_CHANGED = "turn_changed"                      # 轮到新玩家 (游戏结束时 player 为 None)
    COLOR_REQUESTED = "color_requested"                # 真人玩家需要选择颜色
    BOT_ACTION = "bot_action"                          # 机器人行动完毕
    DIRECTION_CHANGED = "direction_changed"            # 方向改变
    STATUS_UPDATED = "status_updated"                  # 需要刷新界面
    UNO_DECLARED = "uno_declared"                      # 声明 UNO 成功
    UNO_DECLARATION_FAILED = "uno_declaration_failed"  # 声明 UNO 失败
    PENALTY_APPLIED = "penalty_applied"                # 未声明 UNO 被罚
    GAME_OVER = "game_over"                            # 游戏结束


@dataclass(frozen=True)
class GameEvent:
    """
    带标签的事件

    Attributes:
        type: 事件类型
        player: 相关玩家
        card: 相关的牌 (机器人打出的牌、触发选色的万能牌)
        clockwise: 新方向 (仅 DIRECTION_CHANGED)
    """
    type: EventType
    player: Optional['Player'] = None
    card: Optional[Card] = None
    clockwise: Optional[bool] = None


Handler = Callable[[GameEvent], None]
ColorResolver = Callable[['Player', Card], Optional[Color]]


class EventBus:
    """
    事件回调注册表

    除选色外所有事件都是单向通知；选色需要同步返回结果，
    由 color_resolver 提供
    """

    def __init__(self, color_resolver: Optional[ColorResolver] = None):
        self._handlers: List[Tuple[Optional[frozenset], Handler]] = []
        self.color_resolver = color_resolver

    def subscribe(self, handler: Handler, *types: EventType) -> Handler:
        """
        注册回调

        Args:
            handler: 回调函数
            *types: 关注的事件类型 (为空表示全部)

        Returns:
            handler 本身，便于取消注册
        """
        self._handlers.append((frozenset(types) if types else None, handler))
        return handler

    def unsubscribe(self, handler: Handler):
        self._handlers = [(t, h) for t, h in self._handlers if h is not handler]

    def publish(self, event: GameEvent):
        """按注册顺序同步分发事件"""
        for types, handler in list(self._handlers):
            if types is None or event.type in types:
                handler(event)

    def emit(self, event_type: EventType, **kwargs):
        self.publish(GameEvent(event_type, **kwargs))

    def request_color(self, player: 'Player', card: Card) -> Optional[Color]:
        """
        向驱动方请求颜色

        Returns:
            选定的颜色；没有 color_resolver 或返回无效颜色时为 None
        """
        self.emit(EventType.COLOR_REQUESTED, player=player, card=card)
        if self.color_resolver is None:
            return None
        color = self.color_resolver(player, card)
        if color is None or color == Color.WILD:
            logger.warning(f"Ignoring invalid color choice {color!r} for {player.username}")
            return None
        return Color(color)


class EventRecorder:
    """
    记录所有事件 (测试与环境使用)

    Usage:
        recorder = EventRecorder()
        bus.subscribe(recorder)
    """

    def __init__(self):
        self.events: List[GameEvent] = []

    def __call__(self, event: GameEvent):
        self.events.append(event)

    def of_type(self, event_type: EventType) -> List[GameEvent]:
        return [e for e in self.events if e.type == event_type]

    def counts(self) -> Dict[EventType, int]:
        counts: Dict[EventType, int] = {}
        for event in self.events:
            counts[event.type] = counts.get(event.type, 0) + 1
        return counts

    def clear(self):
        self.events.clear()
