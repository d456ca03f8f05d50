"""new コマンド - worktree + tmuxウィンドウの作成とプロセス登録"""

import json
import logging
import shlex
import sys
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from application.runtime import Runtime
from domain.models.records import ClaudeCommand, Command, Process, RawCommand
from domain.services.exit_kill_policy import parse_exit_kill_request
from shared.errors import (
    BranchExistsError,
    ConflictingCommandsError,
    DirectoryExistsError,
    EntryExistsError,
    InsideWorktreeError,
    NoCommandError,
    NotGitRepoError,
    NotInTmuxError,
    RemoteNotFoundError,
)

logger = logging.getLogger(__name__)


def wortex_executable() -> str:
    """hook・__run から呼び戻すためのwortex実行ファイルパス"""
    argv0 = Path(sys.argv[0]) if sys.argv and sys.argv[0] else None
    if argv0 is not None and argv0.name != "-c" and argv0.exists():
        return str(argv0.resolve())
    return "wortex"


def build_hooks_settings(wortex_bin: str, process_id: str) -> Dict[str, Any]:
    """ツール呼び出し記録用の .claude/settings.local.json 内容"""
    base = f"{shlex.quote(wortex_bin)} __log-tool {process_id}"

    def _entry(hook_type: str) -> Dict[str, Any]:
        return {
            "matcher": ".*",
            "hooks": [{"type": "command", "command": f"{base} {hook_type}"}],
        }

    return {
        "hooks": {
            "PreToolUse": [_entry("pre")],
            "PostToolUse": [_entry("post")],
        }
    }


@dataclass
class NewArgs:
    branch: str
    prompt: Optional[str] = None
    cmd: Optional[str] = None
    agent: Optional[str] = None
    exit_kill: Optional[str] = None
    remote: str = "origin"
    base: str = "main"


class NewCommand:
    """worktreeを作成し、tmuxウィンドウで `wortex __run <id>` を起動する"""

    def __init__(self, runtime: Runtime, args: NewArgs):
        self.runtime = runtime
        self.args = args

    def execute(self) -> int:
        args = self.args
        git = self.runtime.git
        tmux = self.runtime.tmux

        command = self._build_command()

        if not tmux.is_inside_tmux():
            raise NotInTmuxError()
        if not git.is_git_repo():
            raise NotGitRepoError()
        if git.is_worktree():
            raise InsideWorktreeError()
        if not git.remote_exists(args.remote):
            raise RemoteNotFoundError(args.remote)

        prefix = git.project_prefix(args.remote)

        if git.branch_exists(args.branch):
            raise BranchExistsError(args.branch)
        if self.runtime.processes.get_by_branch(args.branch) is not None:
            raise EntryExistsError(args.branch)

        worktree_path = Path.cwd().parent / f"{prefix}-{args.branch}"
        if worktree_path.exists():
            raise DirectoryExistsError(worktree_path)

        print(f"Fetching from {args.remote}...")
        git.fetch(args.remote)

        print(f"Creating worktree at {worktree_path}...")
        git.add_worktree(worktree_path, args.branch, f"{args.remote}/{args.base}")

        wortex_bin = wortex_executable()
        session = tmux.get_current_session()
        now = datetime.now(timezone.utc).isoformat()

        process = Process(
            id=str(uuid.uuid4()),
            project=prefix,
            branch=args.branch,
            directory=str(worktree_path),
            session=session,
            window=args.branch,
            command=command,
            exit_kill=parse_exit_kill_request(args.exit_kill),
            exit_code=None,
            created_at=now,
            updated_at=now,
        )

        # ウィンドウ作成前に登録（__run が参照するため）
        self.runtime.processes.insert(process)

        if isinstance(command, ClaudeCommand):
            print("Setting up Claude hooks for tool logging...")
            self._write_hooks_config(worktree_path, wortex_bin, process.id)

        run_command = f"{shlex.quote(wortex_bin)} __run {process.id}"
        print(f"Creating tmux window '{args.branch}'...")
        tmux.create_window(session, args.branch, worktree_path, run_command)

        print(f"Created worktree and tmux window for branch '{args.branch}'")
        return 0

    def _build_command(self) -> Command:
        """--prompt / --cmd からCommandを組み立てる（どちらか一方のみ）"""
        if self.args.prompt is None and self.args.cmd is None:
            raise NoCommandError()
        if self.args.prompt is not None and self.args.cmd is not None:
            raise ConflictingCommandsError()
        if self.args.prompt is not None:
            return ClaudeCommand(prompt=self.args.prompt, agent=self.args.agent)
        return RawCommand(cmd=self.args.cmd)

    @staticmethod
    def _write_hooks_config(worktree_path: Path, wortex_bin: str, process_id: str) -> Path:
        claude_dir = worktree_path / ".claude"
        claude_dir.mkdir(parents=True, exist_ok=True)
        settings_path = claude_dir / "settings.local.json"
        settings = build_hooks_settings(wortex_bin, process_id)
        settings_path.write_text(json.dumps(settings, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("hooks設定作成: %s", settings_path)
        return settings_path
