#!/usr/bin/env python3
"""
评估脚本

Usage:
    python scripts/evaluate.py --arena --players 4 --games 200
    python scripts/evaluate.py --agent rule --bots 2 --games 100 --output results.json
"""
import argparse
import logging
import sys
from pathlib import Path
import json

# 添加项目根目录到路径
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from core import load_config
from env import UnoEnv
from evaluation import (
    Arena,
    ParallelArena,
    Evaluator,
    RandomAgent,
    RuleBasedAgent,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
# 规则引擎每步都有 INFO 日志，评估时只保留警告
logging.getLogger("core").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def parse_args():
    parser = argparse.ArgumentParser(description="UNO Evaluation")

    # 模式
    parser.add_argument("--arena", action="store_true", help="Run an all-bot arena")

    # 评估参数
    parser.add_argument("--games", type=int, default=100, help="Number of games")
    parser.add_argument("--players", type=int, default=2, help="Players per arena game")
    parser.add_argument("--bots", type=int, default=1, help="Bots facing the agent")
    parser.add_argument(
        "--agent",
        type=str,
        default="random",
        choices=["random", "rule"],
        help="Agent type",
    )
    parser.add_argument("--reward", type=str, default="sparse", choices=["sparse", "shaped"])
    parser.add_argument("--workers", type=int, default=1, help="Arena worker threads")

    # 其他
    parser.add_argument("--config", type=str, help="JSON config file")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--output", type=str, help="Output file for results")
    parser.add_argument("--verbose", action="store_true", help="Verbose output")

    return parser.parse_args()


def run_arena(args, config):
    """全机器人对战"""
    logger.info(f"Running arena: {args.games} games, {args.players} players")

    if args.workers > 1:
        arena = ParallelArena(args.players, config=config, n_workers=args.workers)
    else:
        arena = Arena(args.players, config=config)
    result = arena.play_match(n_games=args.games, seed=args.seed)

    logger.info("=" * 50)
    for line in repr(result).splitlines():
        logger.info(line)
    logger.info("=" * 50)

    if result.conservation_violations:
        logger.error(f"{result.conservation_violations} games broke the 108-card total")

    return result.to_dict()


def evaluate_agent(args, config):
    """智能体对战机器人"""
    logger.info(f"Evaluating {args.agent} agent against {args.bots} bots")

    if args.agent == "rule":
        agent = RuleBasedAgent()
    else:
        agent = RandomAgent(seed=args.seed)

    evaluator = Evaluator(
        env_fn=lambda: UnoEnv(num_bots=args.bots, reward_type=args.reward, config=config)
    )
    result = evaluator.evaluate(
        agent=agent,
        n_games=args.games,
        seed=args.seed,
        verbose=args.verbose,
    )

    logger.info("=" * 50)
    logger.info("Evaluation Results")
    logger.info("=" * 50)
    logger.info(f"Win Rate: {result.win_rate:.2%}")
    logger.info(f"Average Reward: {result.avg_reward:.2f}")
    logger.info(f"Average Length: {result.avg_length:.1f}")
    logger.info(f"Average Score: {result.avg_score:.1f}")
    logger.info(f"Truncated Games: {result.truncated_games}")
    logger.info("=" * 50)

    return {
        "agent": agent.name,
        "win_rate": result.win_rate,
        "avg_reward": result.avg_reward,
        "avg_length": result.avg_length,
        "avg_score": result.avg_score,
        "truncated_games": result.truncated_games,
        "games_played": result.games_played,
    }


def main():
    args = parse_args()
    config = load_config(args.config)

    if args.arena:
        summary = run_arena(args, config)
    else:
        summary = evaluate_agent(args, config)

    if args.output:
        with open(args.output, "w") as f:
            json.dump(summary, f, indent=2)
        logger.info(f"Results saved to {args.output}")


if __name__ == "__main__":
    main()
