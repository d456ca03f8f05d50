"""ConfigManager - wortex設定の読み込み"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from shared.constants import (
    CONFIG_FILENAME,
    DB_FILENAME,
    DEFAULT_BUSY_TIMEOUT,
    LOG_FILENAME,
    WORTEX_CONFIG_ENV,
    WORTEX_HOME_DIRNAME,
    WORTEX_HOME_ENV,
)

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "database": {
        "busy_timeout": DEFAULT_BUSY_TIMEOUT,
    },
    "logging": {
        "level": "INFO",
        "file": LOG_FILENAME,
    },
    "defaults": {
        "remote": "origin",
        "base": "main",
    },
    "commands": {
        "claude": "claude",
        "shell": "sh",
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """overrideの値でbaseを深くマージ（in-place）

    ネストされた辞書は再帰的にマージし、それ以外は上書き。
    """
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def resolve_home() -> Path:
    """wortexホームディレクトリを解決する

    優先順:
    1. 環境変数 WORTEX_HOME
    2. ~/.wortex

    Returns:
        Path: ホームディレクトリ

    Raises:
        RuntimeError: ホームディレクトリが解決できない場合
    """
    home = os.environ.get(WORTEX_HOME_ENV)
    if home:
        return Path(home)

    try:
        return Path.home() / WORTEX_HOME_DIRNAME
    except RuntimeError as e:
        raise RuntimeError("Home directory not found: set WORTEX_HOME") from e


class ConfigManager:
    """config.yamlの読み込みとデフォルト値のマージ"""

    def __init__(self, home: Optional[Path] = None, config_path: Optional[Path] = None):
        """初期化

        Args:
            home: wortexホーム（省略時はresolve_home()）
            config_path: 設定ファイルパス（省略時は WORTEX_CONFIG > <home>/config.yaml）
        """
        self.home = home if home is not None else resolve_home()
        if config_path is None:
            env_path = os.environ.get(WORTEX_CONFIG_ENV)
            config_path = Path(env_path) if env_path else self.home / CONFIG_FILENAME
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """設定ファイルを読み込みデフォルトにマージする

        ファイルなし・YAML不正時はデフォルト設定を返す。
        """
        config = copy.deepcopy(DEFAULT_CONFIG)
        if not self.config_path.exists():
            return config

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (yaml.YAMLError, OSError) as e:
            logger.warning("設定ファイル読み込み失敗、デフォルト使用: %s (%s)", self.config_path, e)
            return config

        if isinstance(data, dict):
            _deep_merge(config, data)
        elif data is not None:
            logger.warning("設定ファイルの形式不正（マッピングではない）: %s", self.config_path)
        return config

    @property
    def db_path(self) -> Path:
        return self.home / DB_FILENAME

    @property
    def busy_timeout(self) -> float:
        return float(self.config["database"]["busy_timeout"])

    @property
    def log_level(self) -> str:
        return str(self.config["logging"]["level"])

    @property
    def log_file(self) -> Path:
        return self.home / str(self.config["logging"]["file"])

    @property
    def default_remote(self) -> str:
        return str(self.config["defaults"]["remote"])

    @property
    def default_base(self) -> str:
        return str(self.config["defaults"]["base"])

    @property
    def claude_binary(self) -> str:
        return str(self.config["commands"]["claude"])

    @property
    def shell_binary(self) -> str:
        return str(self.config["commands"]["shell"])
