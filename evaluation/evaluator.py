"""
评估器

在 UnoEnv 中评估智能体表现
"""
from typing import Dict, List, Optional, Callable, Any
from dataclasses import dataclass, field
import numpy as np
import logging

from core.cards import CARD_KINDS, PLAYABLE_COLORS
from env.observation import ActionKind, UnoAction

logger = logging.getLogger(__name__)


@dataclass
class EvalResult:
    """评估结果"""
    win_rate: float
    avg_reward: float
    avg_length: float
    games_played: int
    avg_score: float = 0.0
    truncated_games: int = 0
    extra_stats: Dict[str, float] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"EvalResult(win_rate={self.win_rate:.2%}, "
            f"avg_reward={self.avg_reward:.2f}, "
            f"games={self.games_played})"
        )


class Agent:
    """智能体基类"""

    def __init__(self, name: str = "agent"):
        self.name = name

    def act(self, obs: Dict[str, Any], legal_actions: List[UnoAction]) -> UnoAction:
        """选择动作"""
        raise NotImplementedError

    def reset(self):
        """重置状态"""
        pass


class RandomAgent(Agent):
    """随机智能体"""

    def __init__(self, name: str = "random", seed: Optional[int] = None):
        super().__init__(name)
        self._rng = np.random.default_rng(seed)

    def act(self, obs: Dict[str, Any], legal_actions: List[UnoAction]) -> UnoAction:
        idx = self._rng.integers(len(legal_actions))
        return legal_actions[idx]


class RuleBasedAgent(Agent):
    """
    规则智能体

    能声明 UNO 时先声明；优先出功能牌，其次数字牌；
    万能牌选手中最多的颜色；无牌可出时摸牌，摸过仍无牌可出时过
    """

    def __init__(self, name: str = "rule"):
        super().__init__(name)

    def act(self, obs: Dict[str, Any], legal_actions: List[UnoAction]) -> UnoAction:
        kinds = {a.kind for a in legal_actions}
        hand_size = int(obs["hand"].sum())
        if ActionKind.DECLARE_UNO in kinds and hand_size == 2:
            return next(a for a in legal_actions if a.kind == ActionKind.DECLARE_UNO)

        plays = [a for a in legal_actions if a.kind == ActionKind.PLAY]
        if plays:
            colored = [a for a in plays if a.color is None]
            actions = [a for a in colored if a.card.is_action] or colored
            if actions:
                return actions[0]
            best_color = self._best_color(obs)
            return next((a for a in plays if a.color == best_color), plays[0])

        if ActionKind.PASS in kinds:
            return next(a for a in legal_actions if a.kind == ActionKind.PASS)
        return next(a for a in legal_actions if a.kind == ActionKind.DRAW)

    @staticmethod
    def _best_color(obs: Dict[str, Any]) -> Any:
        counts = np.zeros(len(PLAYABLE_COLORS))
        for idx, count in enumerate(obs["hand"]):
            card = CARD_KINDS[idx]
            if not card.is_wild:
                counts[int(card.color)] += count
        return PLAYABLE_COLORS[int(counts.argmax())]


class Evaluator:
    """
    评估器

    让智能体在环境中对战内置机器人
    """

    def __init__(self, env_fn: Callable):
        """
        Args:
            env_fn: 创建 UnoEnv 的函数
        """
        self.env_fn = env_fn

    def evaluate(
        self,
        agent: Agent,
        n_games: int = 100,
        seed: Optional[int] = None,
        verbose: bool = False,
    ) -> EvalResult:
        """
        评估智能体

        Args:
            agent: 智能体
            n_games: 对局数
            seed: 起始随机种子 (第 i 局使用 seed + i)
            verbose: 是否打印进度

        Returns:
            EvalResult
        """
        env = self.env_fn()
        wins = 0
        truncated_games = 0
        rewards = []
        lengths = []
        scores = []

        for game_idx in range(n_games):
            agent.reset()
            game_seed = None if seed is None else seed + game_idx
            obs, info = env.reset(seed=game_seed)
            done = False
            total_reward = 0.0
            length = 0

            while not done:
                action = agent.act(obs, info["legal_actions"])
                obs, reward, terminated, truncated, info = env.step(action)
                total_reward += reward
                length += 1
                done = terminated or truncated

            if info.get("winner") == env.username:
                wins += 1
            if truncated:
                truncated_games += 1
            rewards.append(total_reward)
            lengths.append(length)
            scores.append(info.get("score", 0))

            if verbose and (game_idx + 1) % 10 == 0:
                logger.info(f"Game {game_idx + 1}/{n_games}, Win rate: {wins/(game_idx+1):.2%}")

        env.close()
        return EvalResult(
            win_rate=wins / n_games if n_games else 0.0,
            avg_reward=float(np.mean(rewards)) if rewards else 0.0,
            avg_length=float(np.mean(lengths)) if lengths else 0.0,
            games_played=n_games,
            avg_score=float(np.mean(scores)) if scores else 0.0,
            truncated_games=truncated_games,
        )
