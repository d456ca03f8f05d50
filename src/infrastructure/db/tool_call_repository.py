"""ToolCallRepository - ツール呼び出しログの記録・照会"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import List, Union

from domain.models.records import HookType, ToolCall
from infrastructure.db.wortex_state_db import WortexStateDB
from shared.errors import InvalidHookTypeError, StorageError

logger = logging.getLogger(__name__)

_TOOL_CALL_COLUMNS = "id, process_id, hook_type, tool_name, tool_input, timestamp, sequence"


def next_sequence(conn: sqlite3.Connection, process_id: str) -> int:
    """process_id配下の次のsequence（初回は1）

    排他トランザクション内で呼ぶこと。
    """
    row = conn.execute(
        "SELECT COALESCE(MAX(sequence), 0) FROM tool_calls WHERE process_id = ?",
        (process_id,),
    ).fetchone()
    return row[0] + 1


class ToolCallRepository:
    """ツール呼び出しログの記録・照会。sequenceはプロセス単位で1から連番。"""

    def __init__(self, db: WortexStateDB):
        """初期化

        Args:
            db: WortexStateDBインスタンス
        """
        self._db = db

    def insert_tool_call(
        self,
        process_id: str,
        hook_type: Union[HookType, str],
        tool_name: str,
        tool_input: str,
    ) -> ToolCall:
        """ツール呼び出しを追記

        sequence算出（MAX+1）とINSERTを同一の排他トランザクションで行う。

        Args:
            process_id: 所属プロセスID
            hook_type: pre / post
            tool_name: ツール名
            tool_input: 入力ペイロード（そのまま保存）

        Returns:
            登録したToolCall

        Raises:
            StorageError: 所属プロセスが存在しない等の制約違反
        """
        try:
            hook = HookType(hook_type)
        except ValueError as e:
            raise InvalidHookTypeError(str(hook_type)) from e
        now = datetime.now(timezone.utc).isoformat()

        with self._db.exclusive("insert tool call") as conn:
            sequence = next_sequence(conn, process_id)
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO tool_calls
                    (process_id, hook_type, tool_name, tool_input, timestamp, sequence)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (process_id, hook.value, tool_name, tool_input, now, sequence),
                )
            except sqlite3.IntegrityError as e:
                raise StorageError(f"Tool call for process '{process_id}' could not be inserted: {e}") from e
            row_id = cursor.lastrowid

        logger.debug("ツール呼び出し記録: process_id=%s seq=%d tool=%s", process_id, sequence, tool_name)
        return ToolCall(
            id=row_id,
            process_id=process_id,
            hook_type=hook,
            tool_name=tool_name,
            tool_input=tool_input,
            timestamp=now,
            sequence=sequence,
        )

    def get_tool_calls_by_process(self, process_id: str) -> List[ToolCall]:
        """プロセスのツール呼び出しをsequence昇順で取得"""
        rows = self._db.fetch_all(
            f"""
            SELECT {_TOOL_CALL_COLUMNS} FROM tool_calls
            WHERE process_id = ?
            ORDER BY sequence ASC
            """,
            (process_id,),
            operation="get tool calls",
        )
        return [self._row_to_tool_call(row) for row in rows]

    def get_all_tool_calls(self) -> List[ToolCall]:
        """全ツール呼び出しを新しい順で取得"""
        rows = self._db.fetch_all(
            f"SELECT {_TOOL_CALL_COLUMNS} FROM tool_calls ORDER BY timestamp DESC, id DESC",
            operation="get tool calls",
        )
        return [self._row_to_tool_call(row) for row in rows]

    def count(self) -> int:
        """全ツール呼び出し数"""
        row = self._db.fetch_one("SELECT COUNT(*) FROM tool_calls", operation="count tool calls")
        return row[0] if row else 0

    @staticmethod
    def _row_to_tool_call(row: tuple) -> ToolCall:
        return ToolCall(
            id=row[0],
            process_id=row[1],
            hook_type=HookType(row[2]),
            tool_name=row[3],
            tool_input=row[4],
            timestamp=row[5],
            sequence=row[6],
        )
