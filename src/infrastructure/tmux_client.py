"""TmuxClient - tmuxコマンドの薄いラッパー"""

import logging
import os
import subprocess
from pathlib import Path
from typing import List

from domain.models.records import Process
from shared.errors import TmuxError

logger = logging.getLogger(__name__)


class TmuxClient:
    """ウィンドウの作成・検索・選択・破棄"""

    def _run(self, args: List[str]) -> subprocess.CompletedProcess:
        logger.debug("tmux %s", " ".join(args))
        try:
            return subprocess.run(["tmux", *args], capture_output=True, text=True)
        except OSError as e:
            raise TmuxError(f"failed to run tmux: {e}") from e

    @staticmethod
    def is_inside_tmux() -> bool:
        return "TMUX" in os.environ

    def get_current_session(self) -> str:
        result = self._run(["display-message", "-p", "#S"])
        if result.returncode != 0:
            raise TmuxError("Failed to get current session")
        return result.stdout.strip()

    def create_window(self, session: str, window: str, working_dir: Path, command: str) -> None:
        """ウィンドウを作成しremain-on-exitを有効化"""
        # 数値ウィンドウ番号との曖昧さを避けるためセッション名末尾にコロン
        result = self._run([
            "new-window", "-t", f"{session}:", "-n", window, "-c", str(working_dir), command,
        ])
        if result.returncode != 0:
            raise TmuxError(f"Failed to create window: {result.stderr.strip()}")

        result = self._run(["set-option", "-t", f"{session}:{window}", "remain-on-exit", "on"])
        if result.returncode != 0:
            raise TmuxError(f"Failed to set remain-on-exit: {result.stderr.strip()}")

    def window_exists(self, session: str, window: str) -> bool:
        result = self._run(["list-windows", "-t", session, "-F", "#W"])
        if result.returncode != 0:
            # セッション自体が存在しない
            return False
        return window in result.stdout.splitlines()

    def kill_window(self, session: str, window: str) -> None:
        result = self._run(["kill-window", "-t", f"{session}:{window}"])
        if result.returncode != 0:
            raise TmuxError(f"Failed to kill window: {result.stderr.strip()}")

    def select_window(self, session: str, window: str) -> None:
        result = self._run(["select-window", "-t", f"{session}:{window}"])
        if result.returncode != 0:
            raise TmuxError(f"Failed to select window: {result.stderr.strip()}")


class TmuxWindowChecker:
    """Stale判定用のウィンドウ存在確認（tmux失敗は不在扱い）"""

    def __init__(self, tmux: TmuxClient):
        self._tmux = tmux

    def window_exists(self, process: Process) -> bool:
        try:
            return self._tmux.window_exists(process.session, process.window)
        except TmuxError:
            return False
