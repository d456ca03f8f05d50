"""LogToolHookのテスト - hook入力の記録"""

import io
import json

import pytest

from domain.hooks.log_tool_hook import LogToolHook
from domain.models.records import HookType
from infrastructure.db.process_repository import ProcessRepository
from infrastructure.db.tool_call_repository import ToolCallRepository
from shared.errors import EntryNotFoundError, InvalidHookTypeError, SerializationError


@pytest.fixture
def repos(db):
    return ProcessRepository(db), ToolCallRepository(db)


@pytest.fixture
def process(repos, make_process):
    p = make_process()
    repos[0].insert(p)
    return p


def make_hook(repos, payload):
    raw = payload if isinstance(payload, str) else json.dumps(payload)
    return LogToolHook(repos[0], repos[1], stdin=io.StringIO(raw))


class TestLogToolHook:
    def test_ツール呼び出しを記録(self, repos, process):
        hook = make_hook(repos, {
            "session_id": "claude-session",
            "tool_name": "Bash",
            "tool_input": {"command": "ls -la", "description": "一覧"},
        })

        call = hook.run(process.id, "pre")

        assert call.hook_type == HookType.PRE
        assert call.tool_name == "Bash"
        assert call.sequence == 1
        assert json.loads(call.tool_input) == {"command": "ls -la", "description": "一覧"}
        # 非ASCIIはエスケープせず保存
        assert "一覧" in call.tool_input
        assert repos[1].get_tool_calls_by_process(process.id) == [call]

    def test_pre_postで連番(self, repos, process):
        payload = {"tool_name": "Read", "tool_input": {"file_path": "a.py"}}

        first = make_hook(repos, payload).run(process.id, "pre")
        second = make_hook(repos, payload).run(process.id, "post")

        assert (first.sequence, second.sequence) == (1, 2)
        assert second.hook_type == HookType.POST

    def test_UUIDでないidはEntryNotFoundError(self, repos):
        hook = make_hook(repos, {"tool_name": "Bash", "tool_input": {}})

        with pytest.raises(EntryNotFoundError):
            hook.run("not-a-uuid", "pre")

    def test_大文字のidは正規形で記録(self, repos, process):
        hook = make_hook(repos, {"tool_name": "Bash", "tool_input": {}})

        call = hook.run(process.id.upper(), "pre")

        assert call.process_id == process.id
        assert repos[1].get_tool_calls_by_process(process.id) == [call]

    def test_未登録プロセスはEntryNotFoundError(self, repos):
        hook = make_hook(repos, {"tool_name": "Bash", "tool_input": {}})

        with pytest.raises(EntryNotFoundError):
            hook.run("00000000-0000-0000-0000-000000000000", "pre")

    def test_不正なhook種別(self, repos, process):
        hook = make_hook(repos, {"tool_name": "Bash", "tool_input": {}})

        with pytest.raises(InvalidHookTypeError):
            hook.run(process.id, "during")

    @pytest.mark.parametrize("payload", [
        "not json",
        {"tool_name": "Bash"},
        {"tool_input": {}},
        "[1, 2]",
    ])
    def test_入力不正はSerializationError(self, repos, process, payload):
        hook = make_hook(repos, payload)

        with pytest.raises(SerializationError):
            hook.run(process.id, "pre")

        assert repos[1].count() == 0
