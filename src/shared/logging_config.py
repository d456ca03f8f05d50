"""ロギング設定"""

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"


def setup_logging(log_file: Optional[Path], level: str = "INFO") -> None:
    """ロギングの設定

    ログはファイルのみに出力（標準出力はコマンド出力専用）。
    ホーム未作成（init前）の場合は何も出力しない。

    Args:
        log_file: ログファイルのパス
        level: ログレベル名（DEBUG, INFO, ...）
    """
    root = logging.getLogger()
    if log_file is None or not log_file.parent.exists():
        root.addHandler(logging.NullHandler())
        return

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.FileHandler(log_file, encoding="utf-8")],
    )
