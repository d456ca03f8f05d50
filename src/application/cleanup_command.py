"""cleanup コマンド - Staleエントリの報告・削除"""

import logging

from application.runtime import Runtime
from domain.services.stale_detector import FilesystemDirectoryChecker, find_stale_entries
from infrastructure.tmux_client import TmuxWindowChecker

logger = logging.getLogger(__name__)


class CleanupCommand:
    """Staleなエントリをレジストリから取り除く（--dry-runは報告のみ）"""

    def __init__(self, runtime: Runtime, dry_run: bool = False):
        self.runtime = runtime
        self.dry_run = dry_run

    def execute(self) -> int:
        stale_entries = find_stale_entries(
            self.runtime.processes.list_all(),
            FilesystemDirectoryChecker(),
            TmuxWindowChecker(self.runtime.tmux),
        )

        if not stale_entries:
            print("No stale entries found.")
            return 0

        print(f"Found {len(stale_entries)} stale entries:")
        for entry in stale_entries:
            print(f"  {entry.branch} ({', '.join(entry.reasons)})")

        if self.dry_run:
            print("\nDry run - no changes made.")
            return 0

        for entry in stale_entries:
            self.runtime.processes.delete(entry.id)
            logger.info("stale削除: branch=%s reasons=%s", entry.branch, entry.reasons)
        print("\nRemoved stale entries from state.")
        return 0
