"""__run コマンド - tmuxウィンドウ内でプロセスを実行し、終了時の遷移を適用"""

import logging
import subprocess
import sys
from typing import List

from application.runtime import Runtime
from domain.models.records import ClaudeCommand, Process, RawCommand
from domain.services.process_lifecycle import ProcessLifecycle
from shared.errors import EntryNotFoundError

logger = logging.getLogger(__name__)

# 起動自体に失敗した場合の終了コード（シェル慣例）
LAUNCH_FAILURE_EXIT_CODE = 127


class RunCommand:
    """登録済みプロセスのコマンドを実行する（内部コマンド）"""

    def __init__(self, runtime: Runtime, process_id: str):
        self.runtime = runtime
        self.process_id = process_id

    def build_argv(self, process: Process) -> List[str]:
        command = process.command
        if isinstance(command, ClaudeCommand):
            argv = [self.runtime.config.claude_binary]
            if command.agent:
                argv += ["--agent", command.agent]
            argv.append(command.prompt)
            return argv
        if isinstance(command, RawCommand):
            return [self.runtime.config.shell_binary, "-c", command.cmd]
        raise TypeError(f"Unknown command variant: {command!r}")

    def execute(self) -> int:
        """コマンドを実行し、その終了コードを返す

        シグナル終了（負の戻り値）は1として扱う。
        """
        process = self.runtime.processes.get_by_id(self.process_id)
        if process is None:
            raise EntryNotFoundError(self.process_id)

        argv = self.build_argv(process)
        logger.info("プロセス起動: branch=%s argv=%s", process.branch, argv[0])
        try:
            result = subprocess.run(argv, cwd=process.directory)
            exit_code = result.returncode if result.returncode >= 0 else 1
        except OSError as e:
            print(f"Error: failed to launch {argv[0]}: {e}", file=sys.stderr)
            logger.error("プロセス起動失敗: %s", e)
            exit_code = LAUNCH_FAILURE_EXIT_CODE

        lifecycle = ProcessLifecycle(self.runtime.processes, self.runtime.tmux)
        lifecycle.complete(process, exit_code)
        return exit_code
