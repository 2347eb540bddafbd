"""
账户与战绩存储

文件格式: 每行一个账户 `username,password,gamesPlayed,wins,totalScore`
整体读取，整体改写 (临时文件 + 原子替换)
"""
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, List, Optional, Union
import logging
import os
import tempfile

from .player import PlayerStats

logger = logging.getLogger(__name__)

# 未注册玩家首次记录战绩时使用的密码
DEFAULT_PASSWORD = "password"


class AccountStoreError(Exception):
    """账户文件无法读取或写入"""


@dataclass(frozen=True)
class AccountRecord:
    """
    账户记录

    Attributes:
        username: 用户名
        password: 密码 (明文，沿用原文件格式)
        games_played: 已玩局数
        wins: 胜局数
        total_score: 累计得分
    """
    username: str
    password: str
    games_played: int = 0
    wins: int = 0
    total_score: int = 0

    @property
    def stats(self) -> PlayerStats:
        return PlayerStats(self.games_played, self.wins, self.total_score)

    @property
    def win_rate(self) -> float:
        return self.wins / self.games_played if self.games_played else 0.0

    def to_line(self) -> str:
        return (
            f"{self.username},{self.password},"
            f"{self.games_played},{self.wins},{self.total_score}"
        )

    @classmethod
    def from_line(cls, line: str) -> 'AccountRecord':
        """
        解析一行

        Raises:
            ValueError: 字段数不对或数字无法解析
        """
        parts = [p.strip() for p in line.split(",")]
        if len(parts) != 5:
            raise ValueError(f"Expected 5 fields, got {len(parts)}")
        return cls(parts[0], parts[1], int(parts[2]), int(parts[3]), int(parts[4]))


class AccountStore:
    """
    账户存储接口

    子类实现 read_all / replace_all，其余操作在此基础上完成
    """

    def read_all(self) -> Dict[str, AccountRecord]:
        raise NotImplementedError

    def replace_all(self, records: Dict[str, AccountRecord]):
        raise NotImplementedError

    def get(self, username: str) -> Optional[AccountRecord]:
        return self.read_all().get(username)

    def upsert(self, record: AccountRecord):
        """按用户名插入或替换"""
        records = self.read_all()
        records[record.username] = record
        self.replace_all(records)

    def register(self, username: str, password: str) -> bool:
        """
        注册新账户

        Returns:
            用户名已存在时为 False
        """
        records = self.read_all()
        if username in records:
            return False
        records[username] = AccountRecord(username, password)
        self.replace_all(records)
        return True

    def authenticate(self, username: str, password: str) -> Optional[AccountRecord]:
        record = self.get(username)
        if record is None or record.password != password:
            return None
        return record

    def record_game(self, username: str, won: bool, score: int) -> AccountRecord:
        """
        记录一局结果

        Args:
            username: 用户名
            won: 是否获胜
            score: 本局得分

        Returns:
            更新后的记录
        """
        records = self.read_all()
        record = records.get(username)
        if record is None:
            record = AccountRecord(username, DEFAULT_PASSWORD)
            logger.info(f"Added new user statistics for: {username}")
        record = replace(
            record,
            games_played=record.games_played + 1,
            wins=record.wins + (1 if won else 0),
            total_score=record.total_score + score,
        )
        records[username] = record
        self.replace_all(records)
        logger.info(f"Updated statistics for user: {username}")
        return record

    def leaderboard(self, limit: Optional[int] = None) -> List[AccountRecord]:
        """按胜局数、累计得分降序排列"""
        ranking = sorted(
            self.read_all().values(),
            key=lambda r: (r.wins, r.total_score),
            reverse=True,
        )
        return ranking[:limit] if limit is not None else ranking


class InMemoryAccountStore(AccountStore):
    """内存账户存储"""

    def __init__(self, records: Optional[Dict[str, AccountRecord]] = None):
        self._records: Dict[str, AccountRecord] = dict(records or {})

    def read_all(self) -> Dict[str, AccountRecord]:
        return dict(self._records)

    def replace_all(self, records: Dict[str, AccountRecord]):
        self._records = dict(records)


class FileAccountStore(AccountStore):
    """
    平面文件账户存储

    格式错误的行会被跳过并记录警告
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def read_all(self) -> Dict[str, AccountRecord]:
        records: Dict[str, AccountRecord] = {}
        if not self.path.exists():
            return records
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                for lineno, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        record = AccountRecord.from_line(line)
                    except ValueError as e:
                        logger.warning(f"{self.path}:{lineno}: skipping account line ({e})")
                        continue
                    records[record.username] = record
        except OSError as e:
            raise AccountStoreError(f"Failed to read {self.path}: {e}") from e
        return records

    def replace_all(self, records: Dict[str, AccountRecord]):
        """写入临时文件后原子替换原文件"""
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=self.path.name + ".", suffix=".tmp", dir=directory
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    for record in records.values():
                        f.write(record.to_line() + "\n")
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise AccountStoreError(f"Failed to write {self.path}: {e}") from e
