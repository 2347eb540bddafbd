"""
Environment Layer - Gymnasium 兼容环境

Modules:
    uno_env: 主环境类
    observation: 观测空间与动作编码
    reward: 奖励函数
"""
from .uno_env import (
    UnoEnv,
    make_env,
)

from .observation import (
    ActionKind,
    UnoAction,
    DRAW_ACTION,
    PASS_ACTION,
    DECLARE_UNO_ACTION,
    Observation,
    ObservationBuilder,
    ActionEncoder,
    get_action_encoder,
    legal_actions_for,
)

from .reward import (
    RewardType,
    RewardConfig,
    RewardCalculator,
    create_reward_calculator,
)

__all__ = [
    # env
    "UnoEnv",
    "make_env",
    # observation
    "ActionKind",
    "UnoAction",
    "DRAW_ACTION",
    "PASS_ACTION",
    "DECLARE_UNO_ACTION",
    "Observation",
    "ObservationBuilder",
    "ActionEncoder",
    "get_action_encoder",
    "legal_actions_for",
    # reward
    "RewardType",
    "RewardConfig",
    "RewardCalculator",
    "create_reward_calculator",
]
