"""wortex例外定義

全例外はWortexErrorを基底とし、str()で1行のユーザー向けメッセージを返す。
"""

from pathlib import Path


class WortexError(Exception):
    """wortex例外の基底クラス"""


# === ストア・マイグレーション層 ===
class NotInitializedError(WortexError):
    """wortexホームが未作成"""

    def __init__(self):
        super().__init__("Run `wortex init` first")


class ContentionError(WortexError):
    """排他アクセスがタイムアウト内に取得できなかった"""

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(
            f"Registry is busy: could not acquire exclusive access for {operation} within {timeout:g}s"
        )


class LegacyParseError(WortexError):
    """旧世代成果物の解析失敗（起動全体を中断する）"""

    def __init__(self, path: Path, detail: str):
        self.path = path
        super().__init__(f"Failed to parse legacy artifact {path}: {detail}")


class SerializationError(WortexError):
    """保存済みペイロード（command / exit_kill）の形式不正"""


class StorageError(WortexError):
    """SQLite・I/O層のエラー（文脈付きでラップ）"""


# === コマンド層 ===
class NotInTmuxError(WortexError):
    def __init__(self):
        super().__init__("Must run inside tmux session")


class NotGitRepoError(WortexError):
    def __init__(self):
        super().__init__("Not a git repository")


class InsideWorktreeError(WortexError):
    def __init__(self):
        super().__init__("Must run from main repo, not a worktree")


class RemoteNotFoundError(WortexError):
    def __init__(self, remote: str):
        super().__init__(f"Remote '{remote}' not found")


class BranchExistsError(WortexError):
    def __init__(self, branch: str):
        super().__init__(f"Branch '{branch}' already exists")


class EntryExistsError(WortexError):
    def __init__(self, branch: str):
        super().__init__(
            f"Entry for branch '{branch}' already exists in state "
            "(run `wortex cleanup` to remove stale entries)"
        )


class DirectoryExistsError(WortexError):
    def __init__(self, path: Path):
        super().__init__(f"Directory '{path}' already exists")


class NoCommandError(WortexError):
    def __init__(self):
        super().__init__("Must specify --prompt or --cmd")


class ConflictingCommandsError(WortexError):
    def __init__(self):
        super().__init__("--prompt and --cmd are mutually exclusive")


class EntryNotFoundError(WortexError):
    def __init__(self, key: str):
        super().__init__(f"Entry not found: {key}")


class WindowNotFoundError(WortexError):
    def __init__(self, window: str):
        super().__init__(f"Tmux window '{window}' not found")


class InvalidHookTypeError(WortexError):
    def __init__(self, hook_type: str):
        super().__init__(f"Invalid hook type: {hook_type}")


class GitError(WortexError):
    def __init__(self, detail: str):
        super().__init__(f"Git error: {detail}")


class TmuxError(WortexError):
    def __init__(self, detail: str):
        super().__init__(f"Tmux error: {detail}")
