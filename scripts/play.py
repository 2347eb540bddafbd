#!/usr/bin/env python3
"""
对战脚本

Usage:
    python scripts/play.py --mode play --user alice --bots 2   # 与机器人对战
    python scripts/play.py --mode play --user alice --load saves/UnoSave_20240101120000.txt
    python scripts/play.py --mode watch --bots 3 --delay 0.5   # 观看机器人对战
    python scripts/play.py --mode leaderboard                  # 排行榜
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

# 添加项目根目录到路径
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from core import (
    Card,
    Color,
    PLAYABLE_COLORS,
    EventBus,
    EventType,
    GameEvent,
    GameSession,
    Player,
    SessionDriver,
    DEFAULT_PASSWORD,
    AccountStoreError,
    FileAccountStore,
    SaveFileError,
    SaveOwnershipError,
    attach_game_log,
    console_handler,
    detach_game_log,
    list_saves,
    load_config,
    load_session,
    save_session,
)

logging.basicConfig(
    level=logging.WARNING,
    handlers=[console_handler()],
)
logger = logging.getLogger(__name__)

HELP = "命令: <编号> 出牌 | d 摸牌 | u 声明 UNO | s 保存 | q 退出"


def parse_args():
    parser = argparse.ArgumentParser(description="UNO Play")

    parser.add_argument(
        "--mode",
        type=str,
        default="play",
        choices=["play", "watch", "leaderboard"],
        help="Mode: play against bots, watch bots or show the leaderboard",
    )
    parser.add_argument("--config", type=str, help="JSON config file")
    parser.add_argument("--user", type=str, default="Player", help="Username")
    parser.add_argument("--password", type=str, default=DEFAULT_PASSWORD, help="Password")
    parser.add_argument("--bots", type=int, default=1, help="Number of bots")
    parser.add_argument("--load", type=str, help="Save file to resume")
    parser.add_argument("--list-saves", action="store_true", help="List save files and exit")
    parser.add_argument("--delay", type=float, help="Delay between bot moves")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--users-file", type=str, help="Account file")
    parser.add_argument("--saves-dir", type=str, help="Save directory")
    parser.add_argument("--log-dir", type=str, default=".", help="Game log directory")
    parser.add_argument("--no-log", action="store_true", help="Do not write a game log file")

    return parser.parse_args()


def build_config(args):
    config = load_config(args.config)
    if args.delay is not None:
        config.bot_delay = args.delay
    if args.seed is not None:
        config.seed = args.seed
    if args.users_file:
        config.users_file = args.users_file
    if args.saves_dir:
        config.saves_dir = args.saves_dir
    return config


def prompt_color(player: Player, card: Card) -> Optional[Color]:
    """真人玩家选色"""
    options = " ".join(f"{i}:{c.name}" for i, c in enumerate(PLAYABLE_COLORS))
    while True:
        try:
            choice = input(f"选择颜色 ({options}): ").strip()
        except EOFError:
            return None
        if choice.isdigit() and int(choice) < len(PLAYABLE_COLORS):
            return PLAYABLE_COLORS[int(choice)]
        try:
            return Color[choice.upper()] if choice.upper() != "WILD" else None
        except KeyError:
            print("无效颜色，请重试")


def print_event(event: GameEvent):
    """把事件打印到终端"""
    if event.type == EventType.BOT_ACTION:
        if event.card is not None:
            print(f"{event.player.username} 出牌: {event.card}")
        else:
            print(f"{event.player.username} 摸了一张牌")
    elif event.type == EventType.DIRECTION_CHANGED:
        print(f"方向改变: {'顺时针' if event.clockwise else '逆时针'}")
    elif event.type == EventType.UNO_DECLARED:
        print(f"{event.player.username}: UNO!")
    elif event.type == EventType.UNO_DECLARATION_FAILED:
        print(f"{event.player.username} 现在不能声明 UNO")
    elif event.type == EventType.PENALTY_APPLIED:
        print(f"{event.player.username} 未声明 UNO，罚摸两张")
    elif event.type == EventType.GAME_OVER:
        print(f"\n游戏结束! 胜者: {event.player.username}")


def print_game_state(session: GameSession, viewer: Optional[Player] = None):
    """打印游戏状态"""
    print("\n" + "=" * 60)
    color = session.effective_color
    print(f"当前牌: {session.current_card}  (颜色 {color.name})")
    print(f"方向: {'顺时针' if session.direction_clockwise else '逆时针'}")
    print("-" * 60)
    for i, player in enumerate(session.players):
        marker = ">" if i == session.current_player_index else " "
        if player is viewer:
            print(f"{marker} {player.username} 手牌 ({len(player)}):")
            for j, card in enumerate(player.hand):
                flag = "*" if session.is_valid_play(card) else " "
                print(f"     {j:2d}{flag} {card}")
        else:
            print(f"{marker} {player.username}  手牌数: {len(player)}")
    print("=" * 60)


def open_account(config, args) -> Optional[FileAccountStore]:
    """登录或注册；账户文件不可用时返回 None 并继续游戏"""
    store = FileAccountStore(Path(config.users_file))
    try:
        if store.get(args.user) is None:
            store.register(args.user, args.password)
            print(f"已注册新用户 {args.user}")
        elif store.authenticate(args.user, args.password) is None:
            print("密码错误")
            sys.exit(1)
    except AccountStoreError as e:
        print(f"账户文件不可用，本局战绩不会保存: {e}")
        return None
    return store


def human_turn(session: GameSession, human: Player) -> bool:
    """
    处理一次真人输入

    Returns:
        玩家选择退出时为 False
    """
    print_game_state(session, human)
    print(HELP)
    try:
        choice = input("> ").strip().lower()
    except EOFError:
        return False

    if choice == "q":
        return False
    if choice == "s":
        try:
            path = save_session(session)
            print(f"已保存到 {path}")
        except SaveFileError as e:
            print(f"保存失败: {e}")
    elif choice == "u":
        session.declare_uno(human)
    elif choice == "d":
        card = session.draw_card_for_player(human)
        if card is None:
            print("摸到的牌不能出，回合结束")
        else:
            try:
                answer = input(f"摸到 {card}，是否打出? (y/n): ").strip().lower()
            except EOFError:
                answer = "n"
            if answer == "y":
                session.play_card(card, human)
            else:
                session.pass_turn(human)
    elif choice.isdigit() and int(choice) < len(human):
        card = human.hand[int(choice)]
        if not session.play_card(card, human):
            print(f"不能打出 {card}")
    else:
        print("无效命令")
    return True


def play_game(args, config):
    """与机器人对战"""
    store = open_account(config, args)
    bus = EventBus(color_resolver=prompt_color)
    bus.subscribe(print_event)

    if args.load:
        try:
            session = load_session(
                args.load, owner=args.user, config=config,
                event_bus=bus, account_store=store,
            )
        except SaveOwnershipError as e:
            print(f"不能读取他人的存档: {e}")
            return
        except SaveFileError as e:
            print(f"读档失败: {e}")
            return
    else:
        session = GameSession.create(
            args.user, num_bots=args.bots, config=config,
            event_bus=bus, account_store=store,
        )

    human = session.human_player
    driver = SessionDriver(session, bot_delay=config.bot_delay)
    try:
        while True:
            driver.run_bots()
            if driver.is_finished:
                break
            if not human_turn(session, human):
                print("退出游戏")
                return
    finally:
        driver.close()

    print("=" * 60)
    print("恭喜你赢了!" if session.winner is human else "你输了!")
    print(f"本局得分: {human.score}")
    stats = human.stats
    print(f"累计: {stats.games_played} 局, {stats.wins} 胜, {stats.total_score} 分")
    print("=" * 60)


def watch_game(args, config):
    """观看机器人对战"""
    bus = EventBus()
    bus.subscribe(print_event, EventType.BOT_ACTION, EventType.DIRECTION_CHANGED,
                  EventType.GAME_OVER)
    players = [
        Player(f"{config.bot_prefix} {i + 1}", is_bot=True)
        for i in range(max(args.bots, 2))
    ]
    session = GameSession(players, event_bus=bus, config=config)
    print_game_state(session)

    driver = SessionDriver(session, bot_delay=config.bot_delay)
    try:
        driver.run_bots()
    finally:
        driver.close()
    print(f"总回合数: {driver.turns_played}")


def show_leaderboard(config, limit: int = 10):
    store = FileAccountStore(Path(config.users_file))
    try:
        ranking = store.leaderboard(limit)
    except AccountStoreError as e:
        print(f"无法读取账户文件: {e}")
        return
    print(f"{'#':>3} {'用户':<16} {'局数':>6} {'胜局':>6} {'胜率':>8} {'得分':>8}")
    for i, record in enumerate(ranking):
        print(
            f"{i + 1:>3} {record.username:<16} {record.games_played:>6} "
            f"{record.wins:>6} {record.win_rate:>8.2%} {record.total_score:>8}"
        )


def main():
    args = parse_args()
    config = build_config(args)

    if args.list_saves:
        for path in list_saves(config.saves_dir, config.save_prefix):
            print(path)
        return

    print("=" * 60)
    print("UNO")
    print("=" * 60)

    if args.mode == "leaderboard":
        show_leaderboard(config)
        return

    handler = None if args.no_log else attach_game_log(config.log_base, args.log_dir)
    try:
        if args.mode == "watch":
            watch_game(args, config)
        elif args.mode == "play":
            play_game(args, config)
    finally:
        if handler is not None:
            detach_game_log(handler)


if __name__ == "__main__":
    main()
