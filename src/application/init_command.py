"""init コマンド - wortexホームの作成"""

import logging

from infrastructure.config.config_manager import ConfigManager
from infrastructure.db.wortex_state_db import WortexStateDB

logger = logging.getLogger(__name__)


class InitCommand:
    """wortexホームを作成し、レジストリを初期化する"""

    def __init__(self, config: ConfigManager):
        self.config = config

    def execute(self) -> int:
        home = self.config.home
        home.mkdir(parents=True, exist_ok=True)

        # スキーマ作成と旧世代成果物の移行をここで済ませる
        with WortexStateDB(self.config.db_path, busy_timeout=self.config.busy_timeout):
            pass

        logger.info("wortex初期化: %s", home)
        print(f"Initialized wortex at {home}")
        return 0
