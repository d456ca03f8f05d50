"""データモデルのテスト"""

import pytest

from domain.models.records import (
    AnyExitKill,
    ClaudeCommand,
    CodesExitKill,
    HookType,
    ProcessStatus,
    RawCommand,
    ToolCall,
    command_from_dict,
    command_to_dict,
    exit_kill_from_json,
    exit_kill_to_json,
)
from shared.errors import SerializationError


class TestCommand:
    def test_claudeのタグ付き辞書(self):
        assert command_to_dict(ClaudeCommand(prompt="x", agent="a")) == {
            "type": "claude", "prompt": "x", "agent": "a",
        }

    def test_rawのタグ付き辞書(self):
        assert command_to_dict(RawCommand(cmd="ls")) == {"type": "raw", "cmd": "ls"}

    def test_agent省略(self):
        assert command_from_dict({"type": "claude", "prompt": "x"}) == ClaudeCommand(prompt="x")

    @pytest.mark.parametrize("data", [
        {"type": "vim"},
        {"type": "raw"},
        {"prompt": "x"},
        ["claude"],
        None,
    ])
    def test_不正な形式(self, data):
        with pytest.raises(SerializationError):
            command_from_dict(data)

    def test_未知のバリアントはTypeError(self):
        with pytest.raises(TypeError):
            command_to_dict("claude")


class TestExitKill:
    def test_JSON形式(self):
        assert exit_kill_to_json(None) is None
        assert exit_kill_to_json(AnyExitKill()) == "any"
        assert exit_kill_to_json(CodesExitKill([1, 0])) == {"codes": [0, 1]}

    def test_復元(self):
        assert exit_kill_from_json(None) is None
        assert exit_kill_from_json("any") == AnyExitKill()
        assert exit_kill_from_json({"codes": [0, 1]}) == CodesExitKill(frozenset({0, 1}))

    @pytest.mark.parametrize("data", ["all", {"codes": "0"}, {"codes": ["a"]}, 0])
    def test_不正な形式(self, data):
        with pytest.raises(SerializationError):
            exit_kill_from_json(data)

    def test_codesはfrozensetに正規化(self):
        assert CodesExitKill([0, 1, 1]) == CodesExitKill(frozenset({0, 1}))
        assert isinstance(CodesExitKill([0]).codes, frozenset)


class TestProcess:
    def test_statusはexit_codeから導出(self, make_process):
        assert make_process().status == ProcessStatus.SPAWNED
        assert make_process(exit_code=0).status == ProcessStatus.EXITED

    def test_prompt(self, make_process):
        assert make_process(command=ClaudeCommand(prompt="p")).prompt == "p"
        assert make_process(command=RawCommand(cmd="ls")).prompt is None

    def test_to_dict(self, make_process):
        process = make_process(exit_kill=AnyExitKill(), exit_code=1)

        data = process.to_dict()

        assert data["id"] == process.id
        assert data["command"] == {"type": "claude", "prompt": "do it", "agent": None}
        assert data["exit_kill"] == "any"
        assert data["status"] == "exited"


class TestHookType:
    def test_parse(self):
        assert HookType.parse("pre") == HookType.PRE
        assert HookType.parse("post") == HookType.POST

    def test_不正値(self):
        with pytest.raises(ValueError):
            HookType.parse("PRE")

    def test_ToolCallのto_dict(self):
        call = ToolCall(1, "p", HookType.PRE, "Bash", "{}", "2026-01-01T00:00:00+00:00", 1)
        assert call.to_dict()["hook_type"] == "pre"
