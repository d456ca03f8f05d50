"""ドメインサービス"""

from .exit_kill_policy import default_exit_kill, parse_exit_kill_request, should_tear_down
from .process_lifecycle import ExitOutcome, ProcessLifecycle
from .stale_detector import FilesystemDirectoryChecker, find_stale_entries

__all__ = [
    'default_exit_kill',
    'parse_exit_kill_request',
    'should_tear_down',
    'ExitOutcome',
    'ProcessLifecycle',
    'FilesystemDirectoryChecker',
    'find_stale_entries',
]
