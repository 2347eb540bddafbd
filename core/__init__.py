"""
Core Layer - 纯游戏逻辑 (无 ML 依赖)

Modules:
    cards: 牌定义与编码
    deck: 摸牌堆与弃牌堆
    player: 玩家与战绩
    rules: 规则引擎
    events: 事件总线
    session: 回合状态机
    persistence: 存档编解码
    accounts: 账户与战绩存储
    driver: 机器人回合驱动
    gamelog: 对局日志文件
    config: 游戏配置
"""
from .cards import (
    Color,
    Rank,
    Card,
    CardParseError,
    FULL_DECK,
    CARD_KINDS,
    NUM_CARD_KINDS,
    PLAYABLE_COLORS,
    ACTION_RANKS,
    WILD_RANKS,
    build_full_deck,
    card_points,
    parse_card,
    wild_card,
    cards_to_str,
    str_to_cards,
    cards_to_array,
    array_to_cards,
)

from .deck import Deck, DeckExhausted

from .player import Player, PlayerStats

from .rules import RuleEngine, UNO_PENALTY_CARDS

from .events import (
    EventType,
    GameEvent,
    EventBus,
    EventRecorder,
)

from .config import GameConfig, load_config

from .accounts import (
    DEFAULT_PASSWORD,
    AccountRecord,
    AccountStore,
    AccountStoreError,
    InMemoryAccountStore,
    FileAccountStore,
)

from .session import Phase, GameSession

from .persistence import (
    SaveFileError,
    SaveOwnershipError,
    serialize_session,
    deserialize_session,
    save_session,
    load_session,
    list_saves,
    read_save_owner,
)

from .driver import SessionDriver, TurnInFlightError

from .gamelog import attach_game_log, console_handler, detach_game_log

__all__ = [
    # cards
    "Color",
    "Rank",
    "Card",
    "CardParseError",
    "FULL_DECK",
    "CARD_KINDS",
    "NUM_CARD_KINDS",
    "PLAYABLE_COLORS",
    "ACTION_RANKS",
    "WILD_RANKS",
    "build_full_deck",
    "card_points",
    "parse_card",
    "wild_card",
    "cards_to_str",
    "str_to_cards",
    "cards_to_array",
    "array_to_cards",
    # deck
    "Deck",
    "DeckExhausted",
    # player
    "Player",
    "PlayerStats",
    # rules
    "RuleEngine",
    "UNO_PENALTY_CARDS",
    # events
    "EventType",
    "GameEvent",
    "EventBus",
    "EventRecorder",
    # config
    "GameConfig",
    "load_config",
    # accounts
    "DEFAULT_PASSWORD",
    "AccountRecord",
    "AccountStore",
    "AccountStoreError",
    "InMemoryAccountStore",
    "FileAccountStore",
    # session
    "Phase",
    "GameSession",
    # persistence
    "SaveFileError",
    "SaveOwnershipError",
    "serialize_session",
    "deserialize_session",
    "save_session",
    "load_session",
    "list_saves",
    "read_save_owner",
    # driver
    "SessionDriver",
    "TurnInFlightError",
    # gamelog
    "attach_game_log",
    "console_handler",
    "detach_game_log",
]
