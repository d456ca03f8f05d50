"""データモデル定義"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Union

from shared.errors import SerializationError


class ProcessStatus(str, Enum):
    """プロセス状態（exit_codeから導出、独立には更新しない）"""

    SPAWNED = "spawned"
    EXITED = "exited"


class HookType(str, Enum):
    """ツール呼び出しフック種別"""

    PRE = "pre"
    POST = "post"

    @classmethod
    def parse(cls, value: str) -> "HookType":
        """文字列からHookTypeへ変換（不正値はValueError）"""
        return cls(value)


# === Command（閉じた直和型） ===
@dataclass(frozen=True)
class ClaudeCommand:
    """claude起動（対話型）"""

    prompt: str
    agent: Optional[str] = None


@dataclass(frozen=True)
class RawCommand:
    """任意シェルコマンド"""

    cmd: str


Command = Union[ClaudeCommand, RawCommand]


def command_to_dict(command: Command) -> Dict[str, Any]:
    """Commandを {"type": ...} タグ付き辞書に変換"""
    if isinstance(command, ClaudeCommand):
        return {"type": "claude", "prompt": command.prompt, "agent": command.agent}
    if isinstance(command, RawCommand):
        return {"type": "raw", "cmd": command.cmd}
    raise TypeError(f"Unknown command variant: {command!r}")


def command_from_dict(data: Any) -> Command:
    """タグ付き辞書からCommandを復元

    Raises:
        SerializationError: タグ不明・必須フィールド欠落
    """
    if not isinstance(data, dict):
        raise SerializationError(f"command must be an object, got {type(data).__name__}")

    tag = data.get("type")
    try:
        if tag == "claude":
            return ClaudeCommand(prompt=str(data["prompt"]), agent=data.get("agent"))
        if tag == "raw":
            return RawCommand(cmd=str(data["cmd"]))
    except KeyError as e:
        raise SerializationError(f"command '{tag}' is missing field {e}") from e
    raise SerializationError(f"Unknown command type: {tag!r}")


# === ExitKill（閉じた直和型） ===
@dataclass(frozen=True)
class AnyExitKill:
    """任意の終了コードで破棄"""

    def matches(self, code: int) -> bool:
        return True


@dataclass(frozen=True)
class CodesExitKill:
    """指定終了コードのいずれかで破棄"""

    codes: FrozenSet[int] = field(default_factory=frozenset)

    def __post_init__(self):
        # list等で渡されてもfrozensetに正規化（構造比較のため）
        object.__setattr__(self, "codes", frozenset(int(c) for c in self.codes))

    def matches(self, code: int) -> bool:
        return code in self.codes


ExitKill = Union[AnyExitKill, CodesExitKill]


def exit_kill_to_json(policy: Optional[ExitKill]) -> Any:
    """ExitKillをJSON互換値に変換: "any" | {"codes": [...]} | None"""
    if policy is None:
        return None
    if isinstance(policy, AnyExitKill):
        return "any"
    if isinstance(policy, CodesExitKill):
        return {"codes": sorted(policy.codes)}
    raise TypeError(f"Unknown exit_kill variant: {policy!r}")


def exit_kill_from_json(data: Any) -> Optional[ExitKill]:
    """JSON互換値からExitKillを復元

    Raises:
        SerializationError: 形式不正
    """
    if data is None:
        return None
    if data == "any":
        return AnyExitKill()
    if isinstance(data, dict) and isinstance(data.get("codes"), list):
        try:
            return CodesExitKill(frozenset(int(c) for c in data["codes"]))
        except (TypeError, ValueError) as e:
            raise SerializationError(f"exit_kill codes must be integers: {data['codes']!r}") from e
    raise SerializationError(f"Unknown exit_kill value: {data!r}")


# === エンティティ ===
@dataclass
class Process:
    """追跡対象プロセス（worktree + tmuxウィンドウ）"""

    id: str
    project: str
    branch: str
    directory: str
    session: str
    window: str
    command: Command
    exit_kill: Optional[ExitKill]
    exit_code: Optional[int]
    created_at: str
    updated_at: str

    @property
    def status(self) -> ProcessStatus:
        if self.exit_code is None:
            return ProcessStatus.SPAWNED
        return ProcessStatus.EXITED

    @property
    def prompt(self) -> Optional[str]:
        if isinstance(self.command, ClaudeCommand):
            return self.command.prompt
        return None

    def to_dict(self) -> Dict[str, Any]:
        """JSON出力用の辞書"""
        return {
            "id": self.id,
            "project": self.project,
            "branch": self.branch,
            "directory": self.directory,
            "session": self.session,
            "window": self.window,
            "command": command_to_dict(self.command),
            "exit_kill": exit_kill_to_json(self.exit_kill),
            "exit_code": self.exit_code,
            "status": self.status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class ToolCall:
    """ツール呼び出しログレコード（作成後不変）"""

    id: int
    process_id: str
    hook_type: HookType
    tool_name: str
    tool_input: str         # 生JSON文字列（解釈しない）
    timestamp: str
    sequence: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "process_id": self.process_id,
            "hook_type": self.hook_type.value,
            "tool_name": self.tool_name,
            "tool_input": self.tool_input,
            "timestamp": self.timestamp,
            "sequence": self.sequence,
        }


@dataclass
class StaleEntry:
    """Stale判定結果"""

    id: str
    branch: str
    reasons: List[str]
