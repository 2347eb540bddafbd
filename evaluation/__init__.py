"""
Evaluation Layer - 评估框架

Modules:
    evaluator: 智能体与环境评估器
    arena: 全机器人对战竞技场
"""
from .evaluator import (
    EvalResult,
    Agent,
    RandomAgent,
    RuleBasedAgent,
    Evaluator,
)
from .arena import (
    MatchResult,
    ArenaResult,
    Arena,
    ParallelArena,
)

__all__ = [
    # evaluator
    "EvalResult",
    "Agent",
    "RandomAgent",
    "RuleBasedAgent",
    "Evaluator",
    # arena
    "MatchResult",
    "ArenaResult",
    "Arena",
    "ParallelArena",
]
