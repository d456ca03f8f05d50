"""tools コマンド - ツール呼び出しログの表示"""

import json
from datetime import datetime
from typing import Any, List, Optional

from application.runtime import Runtime
from domain.models.records import HookType, ToolCall
from shared.constants import TOOL_INPUT_DISPLAY_LIMIT
from shared.errors import EntryNotFoundError, InvalidHookTypeError


def truncate(text: str, limit: int = TOOL_INPUT_DISPLAY_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def format_timestamp(timestamp: str) -> str:
    """ISO8601をローカル時刻の `%Y-%m-%d %H:%M:%S` に整形（解析不能ならそのまま）"""
    try:
        parsed = datetime.fromisoformat(timestamp)
    except ValueError:
        return timestamp
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.strftime("%Y-%m-%d %H:%M:%S")


def format_input(tool_input: str) -> List[str]:
    """tool_input（生JSON文字列）を表示用の行に整形

    オブジェクトは `key: value` 行、それ以外は整形済みJSONを1行で表示する。
    """
    try:
        value: Any = json.loads(tool_input)
    except ValueError:
        return [truncate(tool_input)]

    if isinstance(value, dict):
        lines = []
        for key, item in value.items():
            rendered = item if isinstance(item, str) else json.dumps(item, ensure_ascii=False)
            lines.append(f"{key}: {truncate(rendered)}")
        return lines
    return [truncate(json.dumps(value, ensure_ascii=False))]


class ToolsCommand:
    """ツール呼び出しログの一覧（branch・hook種別・件数で絞り込み）"""

    def __init__(
        self,
        runtime: Runtime,
        branch: Optional[str] = None,
        hook_type: Optional[str] = None,
        limit: Optional[int] = None,
        as_json: bool = False,
    ):
        self.runtime = runtime
        self.branch = branch
        self.hook_type = hook_type
        self.limit = limit
        self.as_json = as_json

    def collect(self) -> List[ToolCall]:
        """絞り込み済みのツール呼び出しを取得

        branch指定時はsequence昇順、未指定時は新しい順。
        """
        hook_filter = None
        if self.hook_type is not None:
            try:
                hook_filter = HookType.parse(self.hook_type)
            except ValueError:
                raise InvalidHookTypeError(self.hook_type) from None

        if self.branch is not None:
            process = self.runtime.processes.get_by_branch(self.branch)
            if process is None:
                raise EntryNotFoundError(self.branch)
            calls = self.runtime.tool_calls.get_tool_calls_by_process(process.id)
        else:
            calls = self.runtime.tool_calls.get_all_tool_calls()

        if hook_filter is not None:
            calls = [c for c in calls if c.hook_type == hook_filter]
        if self.limit is not None:
            if self.limit < 0:
                raise ValueError(f"limit must be non-negative: {self.limit}")
            calls = calls[: self.limit]
        return calls

    def execute(self) -> int:
        calls = self.collect()

        if self.as_json:
            print(json.dumps([c.to_dict() for c in calls], indent=2, ensure_ascii=False))
            return 0

        if not calls:
            print("No tool calls found.")
            return 0

        for call in calls:
            hook = "PRE " if call.hook_type == HookType.PRE else "POST"
            print(f"[{format_timestamp(call.timestamp)}] {hook} {call.tool_name} {call.process_id}")
            for line in format_input(call.tool_input):
                print(f"    {line}")
            print()

        print(f"Total: {len(calls)} tool call(s)")
        return 0
