#!/usr/bin/env python3
"""wortex CLI エントリーポイント"""

import argparse
import logging
import sys
from typing import List, Optional

from domain.services.exit_kill_policy import EXIT_KILL_DEFAULT
from infrastructure.config.config_manager import ConfigManager
from shared.errors import WortexError
from shared.logging_config import setup_logging

logger = logging.getLogger(__name__)

# ヘルプに表示するコマンド（__run, __log-tool は内部用）
PUBLIC_COMMANDS = "{init,new,list,switch,kill,cleanup,status,tools}"


def non_negative_int(value: str) -> int:
    """0以上の整数のみ受け付けるargparse型"""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: '{value}'") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be non-negative: {number}")
    return number


def build_parser(config: ConfigManager) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wortex",
        description="git worktree + tmuxウィンドウでエージェントプロセスを管理",
    )
    parser.add_argument(
        "--version", action="store_true", help="バージョン表示"
    )

    subparsers = parser.add_subparsers(dest="command", metavar=PUBLIC_COMMANDS, help="サブコマンド")

    # init サブコマンド
    subparsers.add_parser("init", help="wortexホームを初期化")

    # new サブコマンド
    new_parser = subparsers.add_parser(
        "new",
        help="worktreeとtmuxウィンドウを作成してプロセスを起動"
    )
    new_parser.add_argument("branch", help="作成するbranch名")
    new_parser.add_argument("--prompt", "-p", help="claudeに渡すプロンプト")
    new_parser.add_argument("--cmd", "-c", help="実行する任意コマンド（--promptと排他）")
    new_parser.add_argument("--agent", help="claudeの --agent 指定")
    new_parser.add_argument(
        "--exit-kill", nargs="?", const=EXIT_KILL_DEFAULT, default=None,
        help="終了時に破棄する終了コード（値なし=0, 'any', '0,1'）"
    )
    new_parser.add_argument(
        "--remote", default=config.default_remote,
        help=f"起点のリモート（既定: {config.default_remote}）"
    )
    new_parser.add_argument(
        "--base", default=config.default_base,
        help=f"起点のbranch（既定: {config.default_base}）"
    )

    # __run サブコマンド（内部）
    run_parser = subparsers.add_parser("__run")
    run_parser.add_argument("process_id")

    # list サブコマンド
    list_parser = subparsers.add_parser("list", help="追跡中のworktree一覧")
    list_parser.add_argument("--json", action="store_true", help="JSONで出力")

    # switch サブコマンド
    switch_parser = subparsers.add_parser("switch", help="branchのtmuxウィンドウへ切り替え")
    switch_parser.add_argument("branch")

    # kill サブコマンド
    kill_parser = subparsers.add_parser("kill", help="ウィンドウ・worktree・branchを破棄")
    kill_parser.add_argument("branch")
    kill_parser.add_argument(
        "--keep-worktree", action="store_true",
        help="worktreeディレクトリを残す"
    )

    # cleanup サブコマンド
    cleanup_parser = subparsers.add_parser(
        "cleanup", aliases=["clean"],
        help="Staleエントリを削除"
    )
    cleanup_parser.add_argument(
        "--dry-run", action="store_true",
        help="対象を表示するのみ（実際には削除しない）"
    )

    # status サブコマンド
    subparsers.add_parser("status", help="全worktreeの git status")

    # __log-tool サブコマンド（内部、hookから呼ばれる）
    log_tool_parser = subparsers.add_parser("__log-tool")
    log_tool_parser.add_argument("process_id")
    log_tool_parser.add_argument("hook_type")

    # tools サブコマンド
    tools_parser = subparsers.add_parser("tools", help="ツール呼び出しログを表示")
    tools_parser.add_argument("branch", nargs="?", help="対象branch（省略時は全体）")
    tools_parser.add_argument("--hook-type", "-t", help="pre / post で絞り込み")
    tools_parser.add_argument("--limit", "-n", type=non_negative_int, help="表示件数の上限")
    tools_parser.add_argument("--json", action="store_true", help="JSONで出力")

    return parser


def dispatch(args: argparse.Namespace, config: ConfigManager) -> int:
    """サブコマンドを実行する（init以外はレジストリを開いてから）"""
    if args.command == "init":
        from application.init_command import InitCommand
        return InitCommand(config).execute()

    from application.runtime import Runtime

    with Runtime.open(config) as runtime:
        if args.command == "new":
            from application.new_command import NewArgs, NewCommand
            new_args = NewArgs(
                branch=args.branch,
                prompt=args.prompt,
                cmd=args.cmd,
                agent=args.agent,
                exit_kill=args.exit_kill,
                remote=args.remote,
                base=args.base,
            )
            return NewCommand(runtime, new_args).execute()

        if args.command == "__run":
            from application.run_command import RunCommand
            return RunCommand(runtime, args.process_id).execute()

        if args.command == "list":
            from application.list_command import ListCommand
            return ListCommand(runtime, as_json=args.json).execute()

        if args.command == "switch":
            from application.list_command import SwitchCommand
            return SwitchCommand(runtime, args.branch).execute()

        if args.command == "kill":
            from application.kill_command import KillCommand
            return KillCommand(runtime, args.branch, keep_worktree=args.keep_worktree).execute()

        if args.command in ("cleanup", "clean"):
            from application.cleanup_command import CleanupCommand
            return CleanupCommand(runtime, dry_run=args.dry_run).execute()

        if args.command == "status":
            from application.list_command import StatusCommand
            return StatusCommand(runtime).execute()

        if args.command == "__log-tool":
            from domain.hooks.log_tool_hook import LogToolHook
            hook = LogToolHook(runtime.processes, runtime.tool_calls)
            hook.run(args.process_id, args.hook_type)
            return 0

        if args.command == "tools":
            from application.tools_command import ToolsCommand
            return ToolsCommand(
                runtime,
                branch=args.branch,
                hook_type=args.hook_type,
                limit=args.limit,
                as_json=args.json,
            ).execute()

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """メインエントリーポイント"""
    config = ConfigManager()
    setup_logging(config.log_file, config.log_level)

    parser = build_parser(config)
    args = parser.parse_args(argv)

    if args.version:
        from shared.version import __version__
        print(f"wortex v{__version__}")
        return 0

    if args.command is None:
        # コマンド未指定時はヘルプ表示
        parser.print_help()
        return 0

    try:
        return dispatch(args, config)
    except WortexError as e:
        logger.error("%s failed: %s", args.command, e)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
