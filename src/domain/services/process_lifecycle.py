"""ProcessLifecycle - 終了時の状態遷移

spawned --(終了・ポリシー一致)--> 削除（ウィンドウも破棄）
spawned --(終了・ポリシーなし/不一致)--> exited（終了コードを記録して残す）
"""

import logging
from enum import Enum
from typing import Protocol

from domain.models.records import Process
from domain.services.exit_kill_policy import should_tear_down
from shared.errors import WortexError

logger = logging.getLogger(__name__)


class ProcessStore(Protocol):
    def delete(self, process_id: str) -> None:
        ...

    def set_exit_code(self, process_id: str, code: int) -> None:
        ...


class WindowTeardown(Protocol):
    def kill_window(self, session: str, window: str) -> None:
        ...


class ExitOutcome(str, Enum):
    """終了時遷移の結果"""

    DELETED = "deleted"
    EXITED = "exited"


class ProcessLifecycle:
    """プロセス終了時の遷移を適用する"""

    def __init__(self, store: ProcessStore, windows: WindowTeardown):
        self._store = store
        self._windows = windows

    def complete(self, process: Process, exit_code: int) -> ExitOutcome:
        """終了コードに応じて削除または終了コード記録

        ウィンドウ破棄は自ウィンドウを閉じるため失敗しても無視する（ログのみ）。

        Args:
            process: 終了したプロセス
            exit_code: 終了コード

        Returns:
            ExitOutcome
        """
        if should_tear_down(process.exit_kill, exit_code):
            self._store.delete(process.id)
            logger.info("exit-kill一致: branch=%s exit_code=%d -> 削除", process.branch, exit_code)
            try:
                self._windows.kill_window(process.session, process.window)
            except WortexError as e:
                logger.warning("ウィンドウ破棄失敗（無視）: %s", e)
            return ExitOutcome.DELETED

        self._store.set_exit_code(process.id, exit_code)
        logger.info("プロセス終了: branch=%s exit_code=%d", process.branch, exit_code)
        return ExitOutcome.EXITED

    def kill(self, process: Process) -> None:
        """明示的な破棄（spawned / exited どちらからでも削除）

        ウィンドウ・worktreeの後始末は呼び出し側で済ませておくこと。
        """
        self._store.delete(process.id)
        logger.info("明示的破棄: branch=%s status=%s", process.branch, process.status.value)
