"""
存档编解码

纯文本，每行一条记录:

    Current Index:<int>
    Current Card:<COLOR> <RANK>          (万能牌只有牌面)
    Current direction:<true|false>
    Current Color:<COLOR>                (可选，万能牌选定的颜色)
    <username>:<TOKEN>,<TOKEN>,...       (每位玩家一行)
    Deck:<摸牌堆>;<弃牌堆>

读档时格式错误的行或牌标记会被跳过并记录警告
"""
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple, Union
import logging

from .cards import Card, Color, CardParseError, FULL_DECK, parse_card, cards_to_str
from .config import GameConfig
from .deck import Deck
from .player import Player
from .session import GameSession

logger = logging.getLogger(__name__)

INDEX_KEY = "Current Index"
CARD_KEY = "Current Card"
DIRECTION_KEY = "Current direction"
COLOR_KEY = "Current Color"
DECK_KEY = "Deck"
HEADER_KEYS = (INDEX_KEY, CARD_KEY, DIRECTION_KEY, COLOR_KEY, DECK_KEY)


class SaveFileError(Exception):
    """存档无法读取、写入或恢复"""


class SaveOwnershipError(SaveFileError):
    """存档属于其他用户"""


def serialize_session(session: GameSession) -> str:
    """
    将会话序列化为存档文本

    Args:
        session: 游戏会话

    Returns:
        存档文本
    """
    lines = [
        f"{INDEX_KEY}:{session.current_player_index}",
        f"{CARD_KEY}:{session.current_card}",
        f"{DIRECTION_KEY}:{'true' if session.direction_clockwise else 'false'}",
    ]
    if session.current_color is not None:
        lines.append(f"{COLOR_KEY}:{session.current_color.name}")
    for player in session.players:
        lines.append(f"{player.username}:{cards_to_str(player.hand)}")
    deck = session.deck
    lines.append(
        f"{DECK_KEY}:{cards_to_str(deck.undrawn_cards)};{cards_to_str(deck.discarded_cards)}"
    )
    return "\n".join(lines) + "\n"


def _parse_bool(s: str) -> bool:
    value = s.strip().lower()
    if value not in ("true", "false"):
        raise ValueError(f"Invalid direction: {s!r}")
    return value == "true"


def _parse_color(s: str) -> Color:
    try:
        color = Color[s.strip().upper()]
    except KeyError:
        raise ValueError(f"Invalid color: {s!r}") from None
    if color == Color.WILD:
        raise ValueError("Current color cannot be WILD")
    return color


def _parse_card_list(s: str, context: str) -> List[Card]:
    """解析逗号分隔的牌标记，跳过无法解析的标记"""
    cards = []
    for token in s.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            cards.append(parse_card(token))
        except CardParseError as e:
            logger.warning(f"{context}: skipping card token {token!r} ({e})")
    return cards


def _split_player_line(line: str) -> Tuple[str, str]:
    username, sep, hand = line.rpartition(":")
    username = username.strip()
    if not sep or not username:
        raise ValueError(f"Invalid player data: {line!r}")
    return username, hand


def _is_header(line: str) -> bool:
    key, sep, _ = line.partition(":")
    return bool(sep) and key.strip() in HEADER_KEYS


def read_save_owner(text: str) -> Optional[str]:
    """存档的所有者，即第一位玩家的用户名"""
    for line in text.splitlines():
        line = line.strip()
        if not line or _is_header(line):
            continue
        try:
            return _split_player_line(line)[0]
        except ValueError:
            continue
    return None


def _rebuild_deck(players: List[Player], current_card: Card, rng=None) -> Deck:
    """存档缺少牌堆时，用完整牌组减去手牌和顶牌重建"""
    remaining = Counter(FULL_DECK)
    remaining.subtract(c for p in players for c in p.hand)
    remaining[current_card] -= 1
    undrawn = [card for card, count in remaining.items() for _ in range(max(count, 0))]
    deck = Deck(undrawn, [current_card], rng=rng)
    deck.shuffle()
    return deck


def deserialize_session(
    text: str,
    config: Optional[GameConfig] = None,
    **session_kwargs,
) -> GameSession:
    """
    从存档文本恢复会话

    Args:
        text: 存档文本
        config: 游戏配置 (机器人前缀等)
        **session_kwargs: 传给 GameSession.restore 的其他参数

    Returns:
        GameSession

    Raises:
        SaveFileError: 缺少顶牌或没有任何玩家
    """
    config = config or GameConfig()
    rng = session_kwargs.get("rng")

    current_index = 0
    current_card: Optional[Card] = None
    clockwise = True
    current_color: Optional[Color] = None
    players: List[Player] = []
    deck: Optional[Deck] = None

    for lineno, raw in enumerate(text.splitlines(), 1):
        line = raw.strip()
        if not line:
            continue
        context = f"line {lineno}"
        try:
            if _is_header(line):
                key, _, value = line.partition(":")
                key = key.strip()
                if key == INDEX_KEY:
                    current_index = int(value.strip())
                elif key == CARD_KEY:
                    current_card = parse_card(value)
                elif key == DIRECTION_KEY:
                    clockwise = _parse_bool(value)
                elif key == COLOR_KEY:
                    current_color = _parse_color(value)
                else:
                    undrawn_str, sep, discarded_str = value.partition(";")
                    if not sep:
                        raise ValueError("Deck line is missing the ';' separator")
                    deck = Deck(
                        _parse_card_list(undrawn_str, context),
                        _parse_card_list(discarded_str, context),
                        rng=rng,
                    )
            else:
                username, hand_str = _split_player_line(line)
                hand = _parse_card_list(hand_str, context)
                is_bot = username.startswith(config.bot_prefix)
                players.append(Player(username, is_bot=is_bot, hand=hand))
        except ValueError as e:
            logger.warning(f"{context}: skipping malformed line {line!r} ({e})")

    if not players:
        raise SaveFileError("No players loaded from the save file")
    if current_card is None:
        raise SaveFileError("Save file has no readable current card")

    if not 0 <= current_index < len(players):
        logger.warning(f"Current index {current_index} out of range, starting with player 0")
        current_index = 0

    if current_card.is_wild and current_color is None:
        logger.warning("Wild card on top without a saved color")

    if deck is None:
        logger.warning("Save file has no deck, rebuilding it from the remaining cards")
        deck = _rebuild_deck(players, current_card, rng)
    elif deck.top_discard != current_card:
        logger.warning("Discard pile top differs from the current card, restoring it")
        deck.add_to_discard_pile(current_card)

    return GameSession.restore(
        players,
        deck,
        current_card,
        current_index=current_index,
        clockwise=clockwise,
        current_color=current_color,
        config=config,
        **session_kwargs,
    )


def save_session(
    session: GameSession,
    directory: Union[str, Path, None] = None,
) -> Path:
    """
    保存会话到带时间戳的存档文件

    同一会话再次保存时覆盖首次保存的文件

    Args:
        session: 游戏会话
        directory: 存档目录 (默认为配置中的 saves_dir)

    Returns:
        存档路径

    Raises:
        SaveFileError: 写入失败 (会话状态不受影响)
    """
    if session.save_path is None:
        save_dir = Path(directory if directory is not None else session.config.saves_dir)
        filename = f"{session.config.save_prefix}{datetime.now():%Y%m%d%H%M%S}.txt"
        path = save_dir / filename
    else:
        path = session.save_path

    text = serialize_session(session)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise SaveFileError(f"Error saving game: {e}") from e

    session.save_path = path
    logger.info(f"Game saved to {path}")
    return path


def load_session(
    path: Union[str, Path],
    owner: Optional[str] = None,
    config: Optional[GameConfig] = None,
    **session_kwargs,
) -> GameSession:
    """
    读取存档

    Args:
        path: 存档路径
        owner: 请求读档的用户 (不为 None 时必须是存档所有者)
        config: 游戏配置

    Returns:
        GameSession

    Raises:
        SaveOwnershipError: 存档属于其他用户
        SaveFileError: 文件无法读取或内容无法恢复
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SaveFileError(f"Error loading game: {e}") from e

    if owner is not None:
        saved_owner = read_save_owner(text)
        if saved_owner != owner:
            raise SaveOwnershipError(
                f"{path.name} belongs to {saved_owner!r}, not {owner!r}"
            )

    session = deserialize_session(text, config=config, **session_kwargs)
    session.save_path = path
    logger.info(f"Game loaded from {path}")
    return session


def list_saves(
    directory: Union[str, Path],
    prefix: str = GameConfig.save_prefix,
) -> List[Path]:
    """存档列表 (最新的在前)"""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    saves = [p for p in directory.glob(f"{prefix}*.txt") if p.is_file()]
    return sorted(saves, key=lambda p: (p.stat().st_mtime, p.name), reverse=True)
