"""
游戏配置
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
import json

from .rules import UNO_PENALTY_CARDS


@dataclass
class GameConfig:
    """
    游戏配置

    Attributes:
        hand_size: 开局每人手牌数
        uno_penalty: 未声明 UNO 的罚摸张数
        bot_prefix: 机器人用户名前缀 (读档时据此判断机器人)
        saves_dir: 存档目录
        save_prefix: 存档文件名前缀
        users_file: 账户文件
        log_base: 对局日志文件名前缀
        bot_delay: 机器人行动间隔 (秒)
        seed: 随机种子
    """
    hand_size: int = 7
    uno_penalty: int = UNO_PENALTY_CARDS
    bot_prefix: str = "Bot"

    # 文件
    saves_dir: str = "saves"
    save_prefix: str = "UnoSave_"
    users_file: str = "users.txt"
    log_base: str = "GameSessionLog-"

    # 驱动
    bot_delay: float = 0.0
    seed: Optional[int] = None

    @classmethod
    def from_dict(cls, d: dict) -> 'GameConfig':
        valid_keys = cls.__dataclass_fields__.keys()
        filtered = {k: v for k, v in d.items() if k in valid_keys}
        return cls(**filtered)


def load_config(path: Union[str, Path, None] = None) -> GameConfig:
    """
    从 JSON 文件加载配置

    Args:
        path: 配置文件路径 (None 返回默认配置)

    Returns:
        GameConfig
    """
    if path is None:
        return GameConfig()
    with open(path, "r", encoding="utf-8") as f:
        return GameConfig.from_dict(json.load(f))
