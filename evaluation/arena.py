"""
对战竞技场

让若干内置机器人对战，统计各座位胜率与对局长度，
并在每局结束后检查牌的总数守恒
"""
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from collections import defaultdict
import numpy as np
import logging
import random
from concurrent.futures import ThreadPoolExecutor

from core.cards import FULL_DECK
from core.config import GameConfig
from core.deck import DeckExhausted
from core.driver import SessionDriver
from core.player import Player
from core.session import GameSession

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """对局结果"""
    seats: Tuple[str, ...]
    winner: Optional[str]          # 未分胜负时为 None
    winner_seat: Optional[int]
    turns: int
    total_cards: int
    aborted: bool = False

    @property
    def conserved(self) -> bool:
        return self.total_cards == len(FULL_DECK)


@dataclass
class ArenaResult:
    """多局统计"""
    num_players: int
    matches: List[MatchResult] = field(default_factory=list)

    @property
    def total_games(self) -> int:
        return len(self.matches)

    @property
    def finished_games(self) -> List[MatchResult]:
        return [m for m in self.matches if m.winner is not None]

    @property
    def wins_per_seat(self) -> Dict[int, int]:
        wins = defaultdict(int)
        for match in self.finished_games:
            wins[match.winner_seat] += 1
        return {seat: wins[seat] for seat in range(self.num_players)}

    @property
    def avg_turns(self) -> float:
        finished = self.finished_games
        if not finished:
            return 0.0
        return float(np.mean([m.turns for m in finished]))

    @property
    def unfinished_games(self) -> int:
        return self.total_games - len(self.finished_games)

    @property
    def conservation_violations(self) -> int:
        return sum(1 for m in self.matches if not m.conserved)

    def get_ranking(self) -> List[Tuple[int, float]]:
        """按胜率排列座位"""
        n = len(self.finished_games) or 1
        return sorted(
            [(seat, wins / n) for seat, wins in self.wins_per_seat.items()],
            key=lambda x: x[1],
            reverse=True,
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "num_players": self.num_players,
            "total_games": self.total_games,
            "unfinished_games": self.unfinished_games,
            "wins_per_seat": self.wins_per_seat,
            "avg_turns": self.avg_turns,
            "conservation_violations": self.conservation_violations,
        }

    def __repr__(self) -> str:
        lines = [f"Arena Results ({self.total_games} games, {self.num_players} players):"]
        for i, (seat, win_rate) in enumerate(self.get_ranking()):
            lines.append(f"  {i+1}. seat {seat}: {win_rate:.2%}")
        lines.append(f"  avg turns: {self.avg_turns:.1f}")
        if self.unfinished_games:
            lines.append(f"  unfinished: {self.unfinished_games}")
        if self.conservation_violations:
            lines.append(f"  card count violations: {self.conservation_violations}")
        return "\n".join(lines)


class Arena:
    """
    对战竞技场

    每局新建一个全机器人会话，由 SessionDriver 执行到结束
    """

    def __init__(
        self,
        num_players: int = 2,
        config: Optional[GameConfig] = None,
        max_turns: int = 2000,
    ):
        """
        Args:
            num_players: 每局玩家数 (至少 2)
            config: 游戏配置
            max_turns: 每局最多回合数 (超出视为未分胜负)
        """
        if num_players < 2:
            raise ValueError("An arena match needs at least two players")
        self.num_players = num_players
        self.config = config or GameConfig()
        self.max_turns = max_turns

    def _make_players(self) -> List[Player]:
        return [
            Player(f"{self.config.bot_prefix} {i + 1}", is_bot=True)
            for i in range(self.num_players)
        ]

    def play_game(self, seed: Optional[int] = None) -> MatchResult:
        """
        进行一局

        Args:
            seed: 本局随机种子

        Returns:
            MatchResult
        """
        players = self._make_players()
        session = GameSession(players, config=self.config, rng=random.Random(seed))
        driver = SessionDriver(session)
        aborted = False
        try:
            driver.run_bots(max_turns=self.max_turns)
        except DeckExhausted as e:
            logger.warning(f"Game aborted: {e}")
            aborted = True
        finally:
            driver.close()

        winner = session.winner
        result = MatchResult(
            seats=tuple(p.username for p in players),
            winner=winner.username if winner is not None else None,
            winner_seat=players.index(winner) if winner is not None else None,
            turns=driver.turns_played,
            total_cards=session.total_cards(),
            aborted=aborted,
        )
        if not result.conserved:
            logger.error(f"Card count is {result.total_cards} after game with seed {seed}")
        return result

    def play_match(
        self,
        n_games: int = 1,
        seed: Optional[int] = None,
    ) -> ArenaResult:
        """
        进行多局

        Args:
            n_games: 对局数
            seed: 起始随机种子 (第 i 局使用 seed + i)

        Returns:
            ArenaResult
        """
        result = ArenaResult(num_players=self.num_players)
        for game_idx in range(n_games):
            game_seed = None if seed is None else seed + game_idx
            result.matches.append(self.play_game(game_seed))
        return result


class ParallelArena(Arena):
    """
    并行竞技场

    各局会话互不共享状态，可以在线程池中同时执行
    """

    def __init__(self, *args, n_workers: int = 4, **kwargs):
        super().__init__(*args, **kwargs)
        self.n_workers = n_workers

    def play_match(
        self,
        n_games: int = 1,
        seed: Optional[int] = None,
    ) -> ArenaResult:
        seeds = [None if seed is None else seed + i for i in range(n_games)]
        result = ArenaResult(num_players=self.num_players)
        with ThreadPoolExecutor(max_workers=self.n_workers) as executor:
            # map 保持提交顺序
            result.matches.extend(executor.map(self.play_game, seeds))
        return result
