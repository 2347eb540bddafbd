"""
UNO Gymnasium 环境

遵循标准 Gymnasium API；智能体控制真人座位，其余座位由机器人驱动
"""
from typing import Dict, Any, Tuple, Optional, List, Union
import logging
import random
import numpy as np

import gymnasium as gym
from gymnasium import spaces

from core.cards import Color, NUM_CARD_KINDS, PLAYABLE_COLORS
from core.config import GameConfig
from core.deck import DeckExhausted
from core.driver import SessionDriver
from core.events import EventBus, EventRecorder
from core.player import Player
from core.session import GameSession, Phase

from .observation import (
    ActionKind,
    ObservationBuilder,
    UnoAction,
    get_action_encoder,
    legal_actions_for,
)
from .reward import RewardCalculator, RewardConfig, RewardType

logger = logging.getLogger(__name__)


class UnoEnv(gym.Env):
    """
    UNO Gymnasium 环境

    API:
    - reset() -> observation, info
    - step(action) -> observation, reward, terminated, truncated, info
    """

    metadata = {
        "render_modes": ["human", "ansi"],
        "name": "Uno-v0",
    }

    def __init__(
        self,
        render_mode: Optional[str] = None,
        num_bots: int = 1,
        reward_type: str = "sparse",
        username: str = "Agent",
        config: Optional[GameConfig] = None,
        max_steps: int = 500,
        max_bot_turns: int = 200,
        seed: Optional[int] = None,
    ):
        """
        Args:
            render_mode: 渲染模式 ("human", "ansi", None)
            num_bots: 机器人数量
            reward_type: 奖励类型 ("sparse", "shaped")
            username: 智能体用户名 (不能以机器人前缀开头)
            config: 游戏配置
            max_steps: 每局最多步数 (超出后截断)
            max_bot_turns: 两次智能体行动之间最多的机器人回合数
            seed: 随机种子
        """
        super().__init__()

        self.render_mode = render_mode
        self.num_bots = num_bots
        self.username = username
        self.config = config or GameConfig()
        self.max_steps = max_steps
        self.max_bot_turns = max_bot_turns
        self._seed = seed

        self._obs_builder = ObservationBuilder()
        self._reward_calculator = RewardCalculator(
            RewardConfig(reward_type=RewardType(reward_type))
        )
        self._action_encoder = get_action_encoder()

        self._session: Optional[GameSession] = None
        self._driver: Optional[SessionDriver] = None
        self._recorder: Optional[EventRecorder] = None
        self._chosen_color: Optional[Color] = None
        self._step_count = 0
        self._truncated = False

        self._define_spaces()

    def _define_spaces(self):
        """定义观测和动作空间"""
        num_players = self.num_bots + 1
        self.action_space = spaces.Discrete(self._action_encoder.num_actions)
        self.observation_space = spaces.Dict({
            "hand": spaces.Box(0, 108, shape=(NUM_CARD_KINDS,), dtype=np.float32),
            "top_card": spaces.Box(0, 1, shape=(NUM_CARD_KINDS,), dtype=np.float32),
            "color": spaces.Box(0, 1, shape=(len(PLAYABLE_COLORS),), dtype=np.float32),
            "discard": spaces.Box(0, 108, shape=(NUM_CARD_KINDS,), dtype=np.float32),
            "cards_left": spaces.Box(0, 108, shape=(num_players,), dtype=np.float32),
            "direction": spaces.Box(0, 1, shape=(1,), dtype=np.float32),
            "uno_declared": spaces.Box(0, 1, shape=(1,), dtype=np.float32),
        })

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        """
        重置环境

        Args:
            seed: 随机种子
            options: 额外选项

        Returns:
            (observation, info) 元组
        """
        super().reset(seed=seed)

        game_seed = seed if seed is not None else self._seed
        if game_seed is None:
            game_seed = int(self.np_random.integers(0, 2**31 - 1))

        if self._driver is not None:
            self._driver.close()

        self._recorder = EventRecorder()
        bus = EventBus(color_resolver=self._resolve_color)
        bus.subscribe(self._recorder)

        self._session = GameSession.create(
            self.username,
            num_bots=self.num_bots,
            config=self.config,
            event_bus=bus,
            rng=random.Random(game_seed),
        )
        self._driver = SessionDriver(self._session)
        self._chosen_color = None
        self._step_count = 0
        self._truncated = False

        self._driver.run_bots(max_turns=self.max_bot_turns)

        obs = self._build_observation()
        info = self._build_info()

        if self.render_mode == "human":
            self.render()

        return obs, info

    def _resolve_color(self, player: Player, card) -> Optional[Color]:
        return self._chosen_color

    @property
    def agent(self) -> Player:
        return self._session.players[0]

    def step(
        self,
        action: Union[int, UnoAction],
    ) -> Tuple[Dict[str, np.ndarray], float, bool, bool, Dict[str, Any]]:
        """
        执行动作

        Args:
            action: 动作索引或 UnoAction 对象

        Returns:
            (observation, reward, terminated, truncated, info) 元组
        """
        if self._session is None:
            raise RuntimeError("Environment not reset. Call reset() first.")
        if self._session.phase == Phase.GAME_OVER:
            raise RuntimeError("Game is finished. Call reset() first.")
        if self._truncated:
            raise RuntimeError("Episode was truncated. Call reset() first.")

        concrete_action = self._decode_action(action)

        if concrete_action not in self.get_legal_actions():
            # 非法动作：给予惩罚并保持状态
            obs = self._build_observation()
            info = self._build_info()
            info["error"] = "Invalid action"
            return obs, self._reward_calculator.config.illegal_action_reward, False, False, info

        prev_hand_size = len(self.agent)
        self._step_count += 1
        exhausted = False
        try:
            self._apply(concrete_action)
            if concrete_action.kind != ActionKind.DECLARE_UNO:
                self._driver.run_bots(max_turns=self.max_bot_turns)
        except DeckExhausted as e:
            # 手牌囤积过多，无牌可摸，按截断处理
            logger.warning(f"Episode truncated: {e}")
            exhausted = True

        terminated = self._session.phase == Phase.GAME_OVER
        truncated = not terminated and (
            exhausted
            or self._step_count >= self.max_steps
            or self._driver.bot_to_move() is not None
        )
        self._truncated = truncated

        reward = self._reward_calculator.compute(self._session, self.agent, prev_hand_size)
        if truncated:
            reward += self._reward_calculator.config.truncated_reward

        obs = self._build_observation()
        info = self._build_info()

        if self.render_mode == "human":
            self.render()

        return obs, reward, terminated, truncated, info

    def _apply(self, action: UnoAction):
        session = self._session
        agent = self.agent
        if action.kind == ActionKind.PLAY:
            self._chosen_color = action.color
            session.play_card(action.card, agent)
        elif action.kind == ActionKind.DRAW:
            session.draw_card_for_player(agent)
        elif action.kind == ActionKind.PASS:
            session.pass_turn(agent)
        else:
            session.declare_uno(agent)

    def _decode_action(self, action: Union[int, UnoAction]) -> UnoAction:
        """解码动作"""
        if isinstance(action, UnoAction):
            return action
        if isinstance(action, (int, np.integer)):
            decoded = self._action_encoder.decode(int(action))
            if decoded is None:
                raise ValueError(
                    f"Invalid action index: {action}. "
                    f"Valid range: 0-{self._action_encoder.num_actions - 1}"
                )
            return decoded
        raise ValueError(f"Invalid action type: {type(action)}")

    def _build_observation(self) -> Dict[str, np.ndarray]:
        return self._obs_builder.build(self._session, self.agent).to_dict()

    def _build_info(self) -> Dict[str, Any]:
        """构建 info 字典"""
        session = self._session
        legal_actions = self.get_legal_actions()

        info = {
            "current_player": session.current_player.username,
            "phase": session.phase.value,
            "legal_actions": legal_actions,
            "legal_action_mask": self._action_encoder.build_legal_mask(legal_actions),
            "legal_action_indices": self._action_encoder.get_legal_action_indices(legal_actions),
            "step_count": self._step_count,
            "score": self.agent.score,
            "events": self._recorder.counts(),
        }

        if session.phase == Phase.GAME_OVER:
            info["winner"] = session.winner.username

        return info

    def render(self) -> Optional[str]:
        """渲染环境"""
        if self.render_mode == "ansi" or self.render_mode == "human":
            return self._render_text()
        return None

    def _render_text(self) -> str:
        """文本渲染"""
        session = self._session
        lines = []
        lines.append("=" * 50)
        lines.append(f"Current Card: {session.current_card} (color {session.effective_color.name})")
        lines.append(f"Direction: {'clockwise' if session.direction_clockwise else 'counter-clockwise'}")
        for i, player in enumerate(session.players):
            marker = ">" if i == session.current_player_index else " "
            if player is self.agent:
                hand = ", ".join(str(c) for c in player.hand)
                lines.append(f"{marker} {player.username}: {hand} ({len(player)})")
            else:
                lines.append(f"{marker} {player.username}: {len(player)} cards")
        if session.phase == Phase.GAME_OVER:
            lines.append(f"Winner: {session.winner.username}")
        lines.append("=" * 50)

        output = "\n".join(lines)
        if self.render_mode == "human":
            print(output)
        return output

    def close(self):
        """关闭环境"""
        if self._driver is not None:
            self._driver.close()

    @property
    def session(self) -> Optional[GameSession]:
        """获取当前会话 (用于调试)"""
        return self._session

    def get_legal_actions(self) -> List[UnoAction]:
        """获取智能体当前合法动作 (非智能体回合时为空)"""
        if self._session is None or self._session.phase == Phase.GAME_OVER:
            return []
        if self._session.current_player is not self.agent:
            return []
        return legal_actions_for(self._session, self.agent)

    def sample_action(self) -> UnoAction:
        """随机采样一个合法动作"""
        legal_actions = self.get_legal_actions()
        idx = self.np_random.integers(len(legal_actions))
        return legal_actions[idx]


def make_env(
    env_id: str = "Uno-v0",
    **kwargs
) -> UnoEnv:
    """
    工厂函数：创建环境

    Args:
        env_id: 环境 ID
        **kwargs: 环境参数

    Returns:
        UnoEnv 实例
    """
    return UnoEnv(**kwargs)
