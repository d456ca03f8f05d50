"""PreToolUse / PostToolUse hook: ツール呼び出しをレジストリに記録"""

import json
import logging
import sys
import uuid
from typing import Any, Dict, Optional, TextIO

from domain.models.records import HookType, ToolCall
from infrastructure.db.process_repository import ProcessRepository
from infrastructure.db.tool_call_repository import ToolCallRepository
from shared.errors import EntryNotFoundError, InvalidHookTypeError, SerializationError

logger = logging.getLogger(__name__)


class LogToolHook:
    """Claude Code hookのstdin入力（tool_name, tool_input）を記録する

    settings.local.json から `wortex __log-tool <process_id> <pre|post>` として呼ばれる。
    """

    def __init__(
        self,
        processes: ProcessRepository,
        tool_calls: ToolCallRepository,
        stdin: Optional[TextIO] = None,
    ):
        self._processes = processes
        self._tool_calls = tool_calls
        self._stdin = stdin if stdin is not None else sys.stdin

    def read_input(self) -> Dict[str, Any]:
        """標準入力からhook入力JSONを読み取る

        Raises:
            SerializationError: JSONとして解析できない・必須キー欠落
        """
        raw = self._stdin.read()
        logger.debug("hook入力: %d bytes", len(raw))
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SerializationError(f"Invalid hook input: {e}") from e

        if not isinstance(data, dict) or "tool_name" not in data or "tool_input" not in data:
            raise SerializationError("Invalid hook input: tool_name and tool_input are required")
        return data

    def run(self, process_id: str, hook_type: str) -> ToolCall:
        """hook入力を読み取りToolCallとして記録

        Args:
            process_id: プロセスID（UUID）
            hook_type: "pre" / "post"

        Returns:
            記録したToolCall
        """
        try:
            # 大文字・波括弧・ハイフンなしの表記も正規形に揃える
            process_id = str(uuid.UUID(process_id))
        except ValueError as e:
            raise EntryNotFoundError(process_id) from e

        try:
            hook = HookType.parse(hook_type)
        except ValueError as e:
            raise InvalidHookTypeError(hook_type) from e

        data = self.read_input()

        if self._processes.get_by_id(process_id) is None:
            raise EntryNotFoundError(process_id)

        # tool_inputは解釈せずJSON文字列として保存
        tool_input = json.dumps(data["tool_input"], ensure_ascii=False)
        return self._tool_calls.insert_tool_call(process_id, hook, str(data["tool_name"]), tool_input)
