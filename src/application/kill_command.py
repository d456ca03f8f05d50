"""kill コマンド - ウィンドウ・worktree・branch・登録の破棄"""

from pathlib import Path

from application.runtime import Runtime
from domain.services.process_lifecycle import ProcessLifecycle
from shared.errors import EntryNotFoundError


class KillCommand:
    """branchのプロセスを明示的に破棄する（spawned / exited どちらからでも）"""

    def __init__(self, runtime: Runtime, branch: str, keep_worktree: bool = False):
        self.runtime = runtime
        self.branch = branch
        self.keep_worktree = keep_worktree

    def execute(self) -> int:
        process = self.runtime.processes.get_by_branch(self.branch)
        if process is None:
            raise EntryNotFoundError(self.branch)

        tmux = self.runtime.tmux
        git = self.runtime.git

        if tmux.window_exists(process.session, process.window):
            print(f"Killing tmux window '{process.window}'...")
            tmux.kill_window(process.session, process.window)

        directory = Path(process.directory)
        if not self.keep_worktree and directory.exists():
            print(f"Removing worktree at {directory}...")
            git.remove_worktree(directory)

        if git.branch_exists(process.branch):
            print(f"Deleting local branch '{process.branch}'...")
            git.delete_branch(process.branch)

        ProcessLifecycle(self.runtime.processes, tmux).kill(process)

        print(f"Killed worktree for branch '{self.branch}'")
        return 0
