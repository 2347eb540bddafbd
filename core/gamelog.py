"""
对局日志文件

把规则引擎的日志追加写入带时间戳的文本文件，
写入失败由 logging 报告，不影响对局
"""
from datetime import datetime
from pathlib import Path
from typing import Union
import logging

# 规则引擎使用的 logger 名称
ENGINE_LOGGER = "core"


def game_log_path(base: str, directory: Union[str, Path] = ".") -> Path:
    """日志文件路径: <base>_<YYYYmmdd_HHMMSS>.txt"""
    return Path(directory) / f"{base}_{datetime.now():%Y%m%d_%H%M%S}.txt"


def attach_game_log(
    base: str = "GameSessionLog-",
    directory: Union[str, Path] = ".",
    level: int = logging.INFO,
) -> logging.FileHandler:
    """
    为规则引擎添加文件日志

    Args:
        base: 文件名前缀
        directory: 日志目录
        level: 日志级别

    Returns:
        FileHandler (调用 detach_game_log 移除)
    """
    path = game_log_path(base, directory)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="a", encoding="utf-8", delay=True)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(asctime)s: %(message)s"))

    engine_logger = logging.getLogger(ENGINE_LOGGER)
    engine_logger.addHandler(handler)
    if engine_logger.getEffectiveLevel() > level:
        engine_logger.setLevel(level)
    return handler


def detach_game_log(handler: logging.FileHandler):
    logging.getLogger(ENGINE_LOGGER).removeHandler(handler)
    handler.close()


def console_handler(stream=None, level: int = logging.WARNING) -> logging.StreamHandler:
    """
    终端日志 handler

    handler 自身带级别，attach_game_log 把引擎 logger 降到 INFO 后，
    INFO 记录只进日志文件，不会打印到终端
    """
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler
