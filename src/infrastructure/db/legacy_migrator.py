"""LegacyMigrator - 旧世代（state.json + tools.db）から現行スキーマへの移行

旧世代の成果物:
- state.json: {"version": 1, "entries": [...]} のフラットなエントリ一覧
- tools.db: tool_calls(id, session_id, hook_type, tool_name, input, timestamp)
  session_idが現行のprocess_idに相当し、sequence列を持たない
- state.lock: フラットファイル時代の排他ロックファイル（移行後に削除）

エントリ・ツール呼び出しはそれぞれ独立したトランザクションで移行し、
成果物ごとの完了マーカー（legacy_migrations）で再実行を防ぐ。
"""

import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from domain.models.records import (
    ClaudeCommand,
    HookType,
    ProcessStatus,
    command_from_dict,
    command_to_dict,
    exit_kill_from_json,
    exit_kill_to_json,
)
from infrastructure.db.tool_call_repository import next_sequence
from infrastructure.db.wortex_state_db import WortexStateDB
from shared.constants import (
    LEGACY_BACKUP_SUFFIX,
    LEGACY_LOCK_FILENAME,
    LEGACY_STATE_FILENAME,
    LEGACY_TOOLS_DB_FILENAME,
)
from shared.errors import LegacyParseError, SerializationError, StorageError

logger = logging.getLogger(__name__)


@dataclass
class MigrationReport:
    """マイグレーション結果（Noneは未実行）"""

    processes_migrated: Optional[int] = None
    tool_calls_migrated: Optional[int] = None
    tool_calls_dropped: int = 0

    @property
    def migrated_any(self) -> bool:
        return self.processes_migrated is not None or self.tool_calls_migrated is not None


class LegacyMigrator:
    """旧世代成果物の一回限り・冪等な移行"""

    def __init__(self, db: WortexStateDB):
        """初期化

        Args:
            db: 接続済みのWortexStateDB（スキーマ作成済み）
        """
        self._db = db
        self._state_path = db.home / LEGACY_STATE_FILENAME
        self._tools_path = db.home / LEGACY_TOOLS_DB_FILENAME
        self._lock_path = db.home / LEGACY_LOCK_FILENAME

    def run(self) -> MigrationReport:
        """移行を実行する

        Returns:
            MigrationReport

        Raises:
            LegacyParseError: 旧世代成果物の解析失敗（コミット済みの部分は戻さない）
        """
        report = MigrationReport()

        if self._state_path.exists():
            report.processes_migrated = self._migrate_entries()

        if self._tools_path.exists():
            migrated, dropped = self._migrate_tool_calls()
            report.tool_calls_migrated = migrated
            report.tool_calls_dropped = dropped

        # 旧世代成果物が全て片付いたらロックファイルも不要
        if self._lock_path.exists() and not self._state_path.exists() and not self._tools_path.exists():
            self._lock_path.unlink(missing_ok=True)
            logger.info("旧ロックファイル削除: %s", self._lock_path)

        if report.migrated_any:
            logger.info(
                "旧世代マイグレーション完了: processes=%s tool_calls=%s dropped=%d",
                report.processes_migrated, report.tool_calls_migrated, report.tool_calls_dropped,
            )
        return report

    # === エントリ（state.json） ===
    def _migrate_entries(self) -> Optional[int]:
        """state.jsonをprocessesへ移行

        プロセス数0かつ完了マーカーなしの場合のみ実行（排他トランザクション内で再確認）。

        Returns:
            移行件数（スキップ時None）
        """
        with self._db.exclusive("migrate legacy entries") as conn:
            if self._is_marked(conn, LEGACY_STATE_FILENAME):
                migrated = None
            elif not self._state_path.exists():
                # 並列起動した別プロセスが移行・退避済み
                return None
            else:
                count = conn.execute("SELECT COUNT(*) FROM processes").fetchone()[0]
                if count > 0:
                    logger.warning(
                        "レジストリが空でないため旧エントリ移行をスキップ: %s (processes=%d)",
                        self._state_path, count,
                    )
                    return None

                migrated = 0
                for row in self._read_legacy_entries():
                    cursor = conn.execute(
                        """
                        INSERT OR IGNORE INTO processes
                        (id, project, branch, directory, session, window, command, prompt,
                         exit_kill, exit_code, status, created_at, updated_at)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        row,
                    )
                    migrated += cursor.rowcount
                self._mark(conn, LEGACY_STATE_FILENAME, migrated)

        self._backup(self._state_path)
        return migrated

    def _read_legacy_entries(self) -> List[Tuple[Any, ...]]:
        """state.jsonを読み込みINSERT用タプルに変換

        Raises:
            LegacyParseError: JSON不正・必須フィールド欠落
        """
        try:
            data = json.loads(self._state_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise LegacyParseError(self._state_path, str(e)) from e

        if isinstance(data, dict):
            entries = data.get("entries", [])
        else:
            entries = data
        if not isinstance(entries, list):
            raise LegacyParseError(self._state_path, "entries must be a list")

        return [self._convert_entry(entry, index) for index, entry in enumerate(entries)]

    def _convert_entry(self, entry: Any, index: int) -> Tuple[Any, ...]:
        """旧エントリ1件をprocesses行に変換"""
        if not isinstance(entry, dict):
            raise LegacyParseError(self._state_path, f"entry #{index} is not an object")

        try:
            command = command_from_dict(entry["command"])
            exit_kill = exit_kill_from_json(entry.get("exit_kill"))
            exit_code = entry.get("exit_code")
            if exit_code is not None:
                exit_code = int(exit_code)
            status = ProcessStatus.SPAWNED if exit_code is None else ProcessStatus.EXITED
            prompt = command.prompt if isinstance(command, ClaudeCommand) else None
            exit_kill_value = exit_kill_to_json(exit_kill)
            created_at = str(entry["created_at"])
            return (
                str(entry["id"]),
                str(entry["project"]),
                str(entry["branch"]),
                str(entry["path"]),
                str(entry["tmux_session"]),
                str(entry["tmux_window"]),
                json.dumps(command_to_dict(command), ensure_ascii=False),
                prompt,
                json.dumps(exit_kill_value) if exit_kill_value is not None else None,
                exit_code,
                status.value,
                created_at,
                created_at,
            )
        except KeyError as e:
            raise LegacyParseError(self._state_path, f"entry #{index} is missing field {e}") from e
        except (SerializationError, TypeError, ValueError) as e:
            raise LegacyParseError(self._state_path, f"entry #{index}: {e}") from e

    # === ツール呼び出し（tools.db） ===
    def _migrate_tool_calls(self) -> Tuple[Optional[int], int]:
        """tools.dbをtool_callsへ移行

        移行済みプロセスに紐づかないレコードは黙って捨てる。
        残ったレコードには元の時系列順でプロセス単位のsequenceを振り直す。

        Returns:
            (移行件数 or None, 破棄件数)
        """
        dropped = 0
        with self._db.exclusive("migrate legacy tool calls") as conn:
            if self._is_marked(conn, LEGACY_TOOLS_DB_FILENAME):
                migrated = None
            elif not self._tools_path.exists():
                return None, 0
            else:
                migrated = 0
                for record in self._read_legacy_tool_calls():
                    process_id = record["session_id"]
                    exists = conn.execute(
                        "SELECT 1 FROM processes WHERE id = ?", (process_id,)
                    ).fetchone()
                    if exists is None:
                        logger.debug("孤立した旧ツール呼び出しを破棄: id=%s session_id=%s", record["id"], process_id)
                        dropped += 1
                        continue

                    conn.execute(
                        """
                        INSERT INTO tool_calls
                        (process_id, hook_type, tool_name, tool_input, timestamp, sequence)
                        VALUES (?, ?, ?, ?, ?, ?)
                        """,
                        (
                            process_id,
                            record["hook_type"],
                            record["tool_name"],
                            record["input"],
                            record["timestamp"],
                            next_sequence(conn, process_id),
                        ),
                    )
                    migrated += 1
                self._mark(conn, LEGACY_TOOLS_DB_FILENAME, migrated)

        self._backup(self._tools_path)
        return migrated, dropped

    def _read_legacy_tool_calls(self) -> List[Dict[str, Any]]:
        """tools.dbを読み取り専用で開き、id昇順（記録順）で全件返す

        Raises:
            LegacyParseError: SQLiteとして読めない・hook_type不正
        """
        uri = self._tools_path.resolve().as_uri() + "?mode=ro"
        try:
            legacy = sqlite3.connect(uri, uri=True)
        except sqlite3.Error as e:
            raise LegacyParseError(self._tools_path, str(e)) from e

        try:
            has_table = legacy.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='tool_calls'"
            ).fetchone()
            if has_table is None:
                return []
            rows = legacy.execute(
                """
                SELECT id, session_id, hook_type, tool_name, input, timestamp
                FROM tool_calls
                ORDER BY id ASC
                """
            ).fetchall()
        except sqlite3.Error as e:
            raise LegacyParseError(self._tools_path, str(e)) from e
        finally:
            legacy.close()

        records = []
        for row in rows:
            try:
                hook_type = HookType(row[2]).value
            except ValueError as e:
                raise LegacyParseError(self._tools_path, f"record {row[0]} has invalid hook_type {row[2]!r}") from e
            records.append({
                "id": row[0],
                "session_id": str(row[1]),
                "hook_type": hook_type,
                "tool_name": row[3],
                "input": row[4],
                "timestamp": row[5],
            })
        return records

    # === マーカー・退避 ===
    @staticmethod
    def _is_marked(conn: sqlite3.Connection, artifact: str) -> bool:
        row = conn.execute(
            "SELECT 1 FROM legacy_migrations WHERE artifact = ?", (artifact,)
        ).fetchone()
        return row is not None

    @staticmethod
    def _mark(conn: sqlite3.Connection, artifact: str, row_count: int) -> None:
        now = datetime.now(timezone.utc).isoformat()
        conn.execute(
            "INSERT OR REPLACE INTO legacy_migrations (artifact, migrated_at, row_count) VALUES (?, ?, ?)",
            (artifact, now, row_count),
        )

    @staticmethod
    def _backup(path: Path) -> None:
        """成果物を .bak へリネーム（削除はしない）"""
        if not path.exists():
            return
        backup = path.with_name(path.name + LEGACY_BACKUP_SUFFIX)
        try:
            path.replace(backup)
        except FileNotFoundError:
            # 並列起動した別プロセスが退避済み
            logger.debug("旧世代成果物は退避済み: %s", path)
            return
        except OSError as e:
            raise StorageError(f"Failed to back up legacy artifact {path}: {e}") from e
        logger.info("旧世代成果物を退避: %s -> %s", path, backup)
