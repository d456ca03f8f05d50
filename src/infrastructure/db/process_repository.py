"""ProcessRepository - プロセスレジストリのCRUD"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from domain.models.records import (
    Process,
    ProcessStatus,
    command_from_dict,
    command_to_dict,
    exit_kill_from_json,
    exit_kill_to_json,
)
from infrastructure.db.wortex_state_db import WortexStateDB
from shared.errors import SerializationError, StorageError

logger = logging.getLogger(__name__)

_PROCESS_COLUMNS = """
    id, project, branch, directory, session, window,
    command, exit_kill, exit_code, created_at, updated_at
"""


class ProcessRepository:
    """プロセスの登録・検索・終了コード記録・削除。

    ドメイン規則（branch一意性・ディレクトリ衝突）は呼び出し側で検証済みの前提。
    """

    def __init__(self, db: WortexStateDB):
        """初期化

        Args:
            db: WortexStateDBインスタンス
        """
        self._db = db

    def insert(self, process: Process) -> None:
        """新規プロセスを登録

        Args:
            process: 登録するプロセス

        Raises:
            StorageError: id重複などストレージ制約違反
        """
        command_json = json.dumps(command_to_dict(process.command), ensure_ascii=False)
        exit_kill_value = exit_kill_to_json(process.exit_kill)
        exit_kill_json = json.dumps(exit_kill_value) if exit_kill_value is not None else None

        with self._db.exclusive("insert process") as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO processes
                    (id, project, branch, directory, session, window, command, prompt,
                     exit_kill, exit_code, status, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        process.id, process.project, process.branch, process.directory,
                        process.session, process.window, command_json, process.prompt,
                        exit_kill_json, process.exit_code, process.status.value,
                        process.created_at, process.updated_at,
                    ),
                )
            except sqlite3.IntegrityError as e:
                raise StorageError(f"Process '{process.id}' could not be inserted: {e}") from e
        logger.info("プロセス登録: id=%s branch=%s", process.id, process.branch)

    def delete(self, process_id: str) -> None:
        """プロセスと配下のツール呼び出しを削除（存在しないidはno-op）

        Args:
            process_id: プロセスID
        """
        with self._db.exclusive("delete process") as conn:
            conn.execute("DELETE FROM tool_calls WHERE process_id = ?", (process_id,))
            cursor = conn.execute("DELETE FROM processes WHERE id = ?", (process_id,))
            deleted = cursor.rowcount
        if deleted:
            logger.info("プロセス削除: id=%s", process_id)
        else:
            logger.debug("削除対象なし（no-op）: id=%s", process_id)

    def set_exit_code(self, process_id: str, code: int) -> None:
        """終了コードを記録（一度だけ。未存在・記録済みはno-op）

        Args:
            process_id: プロセスID
            code: 終了コード
        """
        now = datetime.now(timezone.utc).isoformat()
        with self._db.exclusive("set exit code") as conn:
            cursor = conn.execute(
                """
                UPDATE processes
                SET exit_code = ?, status = ?, updated_at = ?
                WHERE id = ? AND exit_code IS NULL
                """,
                (code, ProcessStatus.EXITED.value, now, process_id),
            )
            updated = cursor.rowcount
        if updated:
            logger.info("終了コード記録: id=%s exit_code=%d", process_id, code)
        else:
            logger.debug("終了コード記録対象なし（no-op）: id=%s", process_id)

    def get_by_id(self, process_id: str) -> Optional[Process]:
        """idでプロセスを取得

        Returns:
            Process または None
        """
        row = self._db.fetch_one(
            f"SELECT {_PROCESS_COLUMNS} FROM processes WHERE id = ?",
            (process_id,),
            operation="get process",
        )
        return self._row_to_process(row) if row is not None else None

    def get_by_branch(self, branch: str) -> Optional[Process]:
        """branchでプロセスを取得（重複時は最古）

        Returns:
            Process または None
        """
        row = self._db.fetch_one(
            f"""
            SELECT {_PROCESS_COLUMNS} FROM processes
            WHERE branch = ?
            ORDER BY created_at ASC, rowid ASC
            LIMIT 1
            """,
            (branch,),
            operation="get process",
        )
        return self._row_to_process(row) if row is not None else None

    def list_all(self) -> List[Process]:
        """全プロセスを作成順で取得"""
        rows = self._db.fetch_all(
            f"SELECT {_PROCESS_COLUMNS} FROM processes ORDER BY created_at ASC, rowid ASC",
            operation="list processes",
        )
        return [self._row_to_process(row) for row in rows]

    def count(self) -> int:
        """登録プロセス数"""
        row = self._db.fetch_one("SELECT COUNT(*) FROM processes", operation="count processes")
        return row[0] if row else 0

    @staticmethod
    def _row_to_process(row: tuple) -> Process:
        """DB行をProcessに変換

        Raises:
            SerializationError: command / exit_kill のJSONが不正
        """
        process_id = row[0]
        try:
            command = command_from_dict(json.loads(row[6]))
            exit_kill = exit_kill_from_json(json.loads(row[7])) if row[7] is not None else None
        except json.JSONDecodeError as e:
            raise SerializationError(f"Process '{process_id}' has malformed stored payload: {e}") from e

        return Process(
            id=process_id,
            project=row[1],
            branch=row[2],
            directory=row[3],
            session=row[4],
            window=row[5],
            command=command,
            exit_kill=exit_kill,
            exit_code=row[8],
            created_at=row[9],
            updated_at=row[10],
        )
