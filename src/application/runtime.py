"""コマンド実行時の依存一式"""

from dataclasses import dataclass

from infrastructure.config.config_manager import ConfigManager
from infrastructure.db.process_repository import ProcessRepository
from infrastructure.db.tool_call_repository import ToolCallRepository
from infrastructure.db.wortex_state_db import WortexStateDB
from infrastructure.git_client import GitClient
from infrastructure.tmux_client import TmuxClient


@dataclass
class Runtime:
    """レジストリ接続・リポジトリ・外部コマンドラッパー"""

    config: ConfigManager
    db: WortexStateDB
    processes: ProcessRepository
    tool_calls: ToolCallRepository
    git: GitClient
    tmux: TmuxClient

    @classmethod
    def open(cls, config: ConfigManager) -> "Runtime":
        """レジストリを開く（スキーマ確認・旧世代マイグレーションを含む）

        Raises:
            NotInitializedError: wortexホーム未作成
            LegacyParseError: 旧世代成果物の解析失敗
        """
        db = WortexStateDB(config.db_path, busy_timeout=config.busy_timeout)
        db.connect()
        return cls(
            config=config,
            db=db,
            processes=ProcessRepository(db),
            tool_calls=ToolCallRepository(db),
            git=GitClient(),
            tmux=TmuxClient(),
        )

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "Runtime":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
