"""WortexStateDB - プロセスレジストリDB"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

from shared.constants import DB_FILENAME, DEFAULT_BUSY_TIMEOUT
from shared.errors import ContentionError, NotInitializedError, StorageError, WortexError

logger = logging.getLogger(__name__)


# 最新スキーマ定義 - 排他ロック下で1文ずつ実行する
_SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS processes (
    id          TEXT PRIMARY KEY,
    project     TEXT NOT NULL,
    branch      TEXT NOT NULL,
    directory   TEXT NOT NULL,
    session     TEXT NOT NULL,
    window      TEXT NOT NULL,
    command     TEXT NOT NULL,
    prompt      TEXT,
    exit_kill   TEXT,
    exit_code   INTEGER,
    status      TEXT NOT NULL DEFAULT 'spawned',
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS tool_calls (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    process_id  TEXT NOT NULL REFERENCES processes(id) ON DELETE CASCADE,
    hook_type   TEXT NOT NULL CHECK (hook_type IN ('pre', 'post')),
    tool_name   TEXT NOT NULL,
    tool_input  TEXT NOT NULL,
    timestamp   TEXT NOT NULL,
    sequence    INTEGER NOT NULL,
    UNIQUE(process_id, sequence)
);

CREATE INDEX IF NOT EXISTS idx_processes_branch ON processes(branch);
CREATE INDEX IF NOT EXISTS idx_processes_created ON processes(created_at);
CREATE INDEX IF NOT EXISTS idx_tool_calls_timestamp ON tool_calls(timestamp);

CREATE TABLE IF NOT EXISTS legacy_migrations (
    artifact    TEXT PRIMARY KEY,
    migrated_at TEXT NOT NULL,
    row_count   INTEGER NOT NULL DEFAULT 0
);
"""

_SCHEMA_STATEMENTS = [s.strip() for s in _SCHEMA.split(";") if s.strip()]


class WortexStateDB:
    """プロセスレジストリSQLiteデータベース

    書き込みはexclusive()内で行う。WALモードのため読み取りは書き込みにブロックされない。
    """

    SCHEMA_VERSION = 2

    def __init__(
        self,
        db_path: Path,
        busy_timeout: float = DEFAULT_BUSY_TIMEOUT,
        migrate_legacy: bool = True,
    ):
        """初期化

        Args:
            db_path: データベースファイルパス（親ディレクトリ=wortexホーム）
            busy_timeout: 排他取得の待機上限（秒）
            migrate_legacy: 接続時に旧世代成果物のマイグレーションを行うか
        """
        self._db_path = db_path
        self._busy_timeout = busy_timeout
        self._migrate_legacy = migrate_legacy
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def db_path(self) -> Path:
        return self._db_path

    @property
    def home(self) -> Path:
        return self._db_path.parent

    @property
    def busy_timeout(self) -> float:
        return self._busy_timeout

    def connect(self) -> sqlite3.Connection:
        """データベースに接続する

        未接続の場合のみ新規接続を作成。
        WALモード有効化、外部キー制約有効化、busy_timeout秒の待機。
        スキーマ確認後、旧世代成果物があればマイグレーションを実行する。

        Returns:
            sqlite3.Connection: データベース接続

        Raises:
            NotInitializedError: wortexホームが存在しない
            LegacyParseError: 旧世代成果物の解析失敗
        """
        if self._conn is not None:
            return self._conn

        if not self.home.is_dir():
            raise NotInitializedError()

        try:
            self._conn = sqlite3.connect(str(self._db_path), timeout=self._busy_timeout)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._ensure_schema()
        except sqlite3.Error as e:
            self.close()
            raise self.translate_error(e, "open registry") from e

        if self._migrate_legacy:
            # 循環import回避
            from infrastructure.db.legacy_migrator import LegacyMigrator

            try:
                LegacyMigrator(self).run()
            except Exception:
                self.close()
                raise

        return self._conn

    def close(self) -> None:
        """接続をクローズする"""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @property
    def conn(self) -> sqlite3.Connection:
        """接続プロパティ（未接続なら自動接続）"""
        if self._conn is None:
            self.connect()
        return self._conn  # type: ignore[return-value]

    def __enter__(self) -> "WortexStateDB":
        """コンテキストマネージャ: 開始"""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """コンテキストマネージャ: 終了"""
        self.close()

    # === 排他アクセス ===
    @contextmanager
    def exclusive(self, operation: str = "write") -> Iterator[sqlite3.Connection]:
        """排他トランザクションのスコープ

        BEGIN EXCLUSIVEで書き込みロックを取得し、正常終了でCOMMIT、
        例外時は必ずROLLBACKして再送出する。

        Args:
            operation: エラーメッセージ用の操作名

        Raises:
            ContentionError: busy_timeout内にロックを取得できない
            StorageError: その他のSQLiteエラー
        """
        conn = self.conn
        try:
            conn.execute("BEGIN EXCLUSIVE")
        except sqlite3.Error as e:
            raise self.translate_error(e, operation) from e

        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise self.translate_error(e, operation) from e
        except BaseException:
            conn.rollback()
            raise

    # === 読み取り ===
    def fetch_all(self, sql: str, params: Sequence[Any] = (), operation: str = "read") -> List[tuple]:
        """SELECTを実行して全行を返す（ロックなし）"""
        try:
            return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise self.translate_error(e, operation) from e

    def fetch_one(self, sql: str, params: Sequence[Any] = (), operation: str = "read") -> Optional[tuple]:
        """SELECTを実行して先頭行を返す（ロックなし）"""
        try:
            return self.conn.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            raise self.translate_error(e, operation) from e

    def translate_error(self, error: sqlite3.Error, operation: str) -> WortexError:
        """sqlite3例外をwortex例外に変換

        locked/busyは待機上限超過としてContentionError、それ以外はStorageError。
        """
        message = str(error).lower()
        if isinstance(error, sqlite3.OperationalError) and ("locked" in message or "busy" in message):
            return ContentionError(operation, self._busy_timeout)
        return StorageError(f"{operation} failed ({self._db_path}): {error}")

    # === スキーマ ===
    def _ensure_schema(self) -> None:
        """スキーマの確認と作成

        最新バージョンが記録済みなら何もしない（ロックなし）。
        それ以外は排他ロック下でschema_versionを再確認し、
        スキーマ作成またはマイグレーションとバージョン記録を同一トランザクションで行う。
        """
        assert self._conn is not None

        if self._current_version() >= self.SCHEMA_VERSION:
            return

        conn = self._conn
        conn.execute("BEGIN EXCLUSIVE")
        try:
            # 待機中に別の接続が作成・移行を済ませている場合がある
            current_version = self._current_version()
            if current_version == 0:
                for statement in _SCHEMA_STATEMENTS:
                    conn.execute(statement)
                now = datetime.now(timezone.utc).isoformat()
                conn.execute(
                    "INSERT OR IGNORE INTO schema_version (version, applied_at) VALUES (?, ?)",
                    (self.SCHEMA_VERSION, now),
                )
                logger.info("スキーマ作成: v%d (%s)", self.SCHEMA_VERSION, self._db_path)
            elif current_version < self.SCHEMA_VERSION:
                self._migrate(current_version, self.SCHEMA_VERSION)
            conn.commit()
        except BaseException:
            conn.rollback()
            raise

    def _current_version(self) -> int:
        """記録済みの最新スキーマバージョン（schema_version未作成なら0）"""
        assert self._conn is not None

        cursor = self._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
        )
        if cursor.fetchone() is None:
            return 0

        row = self._conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] if row and row[0] is not None else 0

    def _migrate(self, from_ver: int, to_ver: int) -> None:
        """スキーママイグレーション実行（_ensure_schemaの排他トランザクション内で呼ぶ）

        Args:
            from_ver: 現在のスキーマバージョン
            to_ver: 目標のスキーマバージョン
        """
        assert self._conn is not None
        logger.info("スキーママイグレーション: v%d -> v%d (%s)", from_ver, to_ver, self._db_path)

        if from_ver < 2 <= to_ver:
            # v1 -> v2: 旧世代マイグレーションの完了マーカー
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS legacy_migrations (
                    artifact    TEXT PRIMARY KEY,
                    migrated_at TEXT NOT NULL,
                    row_count   INTEGER NOT NULL DEFAULT 0
                )
            """)
            now = datetime.now(timezone.utc).isoformat()
            self._conn.execute(
                "INSERT OR IGNORE INTO schema_version (version, applied_at) VALUES (?, ?)",
                (2, now),
            )

    @classmethod
    def default_path(cls, home: Path) -> Path:
        """wortexホームからDBパスを返す"""
        return home / DB_FILENAME
