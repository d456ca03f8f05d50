"""list / status / switch コマンド - 追跡中プロセスの参照"""

import json
from pathlib import Path

from application.runtime import Runtime
from shared.errors import EntryNotFoundError, WindowNotFoundError, WortexError

ROW_FORMAT = "{:<20} {:<25} {:<40} {:<10} {:<5}"


def shorten_home(path: str) -> str:
    """ホームディレクトリを ~ に置換"""
    home = str(Path.home())
    if path == home or path.startswith(home + "/"):
        return "~" + path[len(home):]
    return path


class ListCommand:
    """追跡中のworktree一覧"""

    def __init__(self, runtime: Runtime, as_json: bool = False):
        self.runtime = runtime
        self.as_json = as_json

    def execute(self) -> int:
        processes = self.runtime.processes.list_all()

        if self.as_json:
            print(json.dumps([p.to_dict() for p in processes], indent=2, ensure_ascii=False))
            return 0

        if not processes:
            print("No tracked worktrees.")
            return 0

        print(ROW_FORMAT.format("BRANCH", "TMUX", "PATH", "STATUS", "EXIT"))
        for process in processes:
            if process.exit_code is not None:
                status = "exited"
            elif self._window_exists(process.session, process.window):
                status = "running"
            else:
                status = "stale"

            exit_str = str(process.exit_code) if process.exit_code is not None else "-"
            print(ROW_FORMAT.format(
                process.branch,
                f"{process.session}:{process.window}",
                shorten_home(process.directory),
                status,
                exit_str,
            ))

        print()
        print("Tip: Use `wortex switch <branch>` or `tmux select-window -t <session>:<window>`")
        return 0

    def _window_exists(self, session: str, window: str) -> bool:
        try:
            return self.runtime.tmux.window_exists(session, window)
        except WortexError:
            return False


class StatusCommand:
    """全worktreeの git status -s"""

    def __init__(self, runtime: Runtime):
        self.runtime = runtime

    def execute(self) -> int:
        processes = self.runtime.processes.list_all()
        if not processes:
            print("No tracked worktrees.")
            return 0

        for process in processes:
            print(f"=== {process.branch} ===")
            directory = Path(process.directory)
            if not directory.exists():
                print("  (worktree not found)")
                print()
                continue

            status = self.runtime.git.status_short(directory)
            if not status.strip():
                print("  (clean)")
            else:
                for line in status.splitlines():
                    print(f"  {line}")
            print()
        return 0


class SwitchCommand:
    """branchのtmuxウィンドウへ切り替え"""

    def __init__(self, runtime: Runtime, branch: str):
        self.runtime = runtime
        self.branch = branch

    def execute(self) -> int:
        process = self.runtime.processes.get_by_branch(self.branch)
        if process is None:
            raise EntryNotFoundError(self.branch)

        if not self.runtime.tmux.window_exists(process.session, process.window):
            raise WindowNotFoundError(self.branch)

        self.runtime.tmux.select_window(process.session, process.window)
        return 0
