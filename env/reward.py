"""
奖励函数

支持两种奖励设计:
- 终局奖励 (sparse)
- 过程奖励 (shaped): 出牌减少手牌得到小奖励，被罚摸牌得到小惩罚
"""
from dataclasses import dataclass
from typing import Optional
from enum import Enum

from core.player import Player
from core.session import GameSession, Phase


class RewardType(Enum):
    """奖励类型"""
    SPARSE = "sparse"      # 仅终局奖励
    SHAPED = "shaped"      # 过程奖励


@dataclass
class RewardConfig:
    """奖励配置"""
    reward_type: RewardType = RewardType.SPARSE
    win_reward: float = 1.0
    lose_reward: float = -1.0
    illegal_action_reward: float = -1.0
    card_reward: float = 0.01     # 每减少一张手牌
    truncated_reward: float = 0.0


class RewardCalculator:
    """
    奖励计算器

    根据配置计算不同类型的奖励
    """

    def __init__(self, config: Optional[RewardConfig] = None):
        self.config = config or RewardConfig()

    def compute(
        self,
        session: GameSession,
        player: Player,
        prev_hand_size: Optional[int] = None,
    ) -> float:
        """
        计算奖励

        Args:
            session: 当前会话
            player: 计算奖励的玩家视角
            prev_hand_size: 行动前的手牌数 (用于 shaped 奖励)

        Returns:
            奖励值
        """
        reward = self._sparse_reward(session, player)
        if self.config.reward_type == RewardType.SHAPED and session.phase != Phase.GAME_OVER:
            if prev_hand_size is not None:
                reward += (prev_hand_size - len(player)) * self.config.card_reward
        return reward

    def _sparse_reward(self, session: GameSession, player: Player) -> float:
        """
        稀疏奖励：仅在游戏结束时给予

        Returns:
            胜利: +1, 失败: -1, 其他: 0
        """
        if session.phase != Phase.GAME_OVER:
            return 0.0
        if session.winner is player:
            return self.config.win_reward
        return self.config.lose_reward


def create_reward_calculator(
    reward_type: str = "sparse",
    **kwargs
) -> RewardCalculator:
    """
    工厂函数：创建奖励计算器

    Args:
        reward_type: 奖励类型 ("sparse", "shaped")
        **kwargs: 其他配置参数

    Returns:
        RewardCalculator 实例
    """
    config = RewardConfig(
        reward_type=RewardType(reward_type),
        **kwargs
    )
    return RewardCalculator(config)
