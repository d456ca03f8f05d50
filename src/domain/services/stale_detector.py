"""Stale判定 - 実体を失ったプロセス・branch重複の検出"""

from pathlib import Path
from typing import List, Protocol, Sequence, Set

from domain.models.records import Process, StaleEntry
from shared.constants import (
    REASON_DUPLICATE_BRANCH,
    REASON_WINDOW_MISSING,
    REASON_WORKTREE_MISSING,
)


class DirectoryExistenceChecker(Protocol):
    """プロセスのworktreeが存在するか"""

    def directory_exists(self, process: Process) -> bool:
        ...


class WindowExistenceChecker(Protocol):
    """プロセスのtmuxウィンドウが存在するか"""

    def window_exists(self, process: Process) -> bool:
        ...


class FilesystemDirectoryChecker:
    """ファイルシステム上のディレクトリ存在確認"""

    def directory_exists(self, process: Process) -> bool:
        return Path(process.directory).exists()


def find_stale_entries(
    processes: Sequence[Process],
    directory_checker: DirectoryExistenceChecker,
    window_checker: WindowExistenceChecker,
) -> List[StaleEntry]:
    """Staleなプロセスを入力順で返す（副作用なし）

    判定順（理由の出力順）:
    1. worktreeなし -> "worktree missing"
    2. ウィンドウなし -> "window missing"
    3. 先行エントリと同一branch -> "duplicate branch"

    branchは判定後に既出集合へ追加するため、最初の出現は重複扱いにならない
    （その出現自体が他の理由でStaleでも同様）。

    Args:
        processes: 作成順のプロセス一覧
        directory_checker: worktree存在確認
        window_checker: ウィンドウ存在確認

    Returns:
        StaleEntryのリスト
    """
    stale_entries: List[StaleEntry] = []
    seen_branches: Set[str] = set()

    for process in processes:
        reasons: List[str] = []

        if not directory_checker.directory_exists(process):
            reasons.append(REASON_WORKTREE_MISSING)
        if not window_checker.window_exists(process):
            reasons.append(REASON_WINDOW_MISSING)
        if process.branch in seen_branches:
            reasons.append(REASON_DUPLICATE_BRANCH)

        if reasons:
            stale_entries.append(StaleEntry(id=process.id, branch=process.branch, reasons=reasons))

        seen_branches.add(process.branch)

    return stale_entries
