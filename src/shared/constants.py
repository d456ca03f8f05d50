"""共通定数"""

# wortexホームディレクトリ（WORTEX_HOMEで上書き可能）
WORTEX_HOME_DIRNAME = ".wortex"
WORTEX_HOME_ENV = "WORTEX_HOME"
WORTEX_CONFIG_ENV = "WORTEX_CONFIG"

# 現行DB・設定・ログのファイル名
DB_FILENAME = "wortex.db"
CONFIG_FILENAME = "config.yaml"
LOG_FILENAME = "wortex.log"

# 旧世代（フラットファイル時代）の成果物
LEGACY_STATE_FILENAME = "state.json"
LEGACY_TOOLS_DB_FILENAME = "tools.db"
LEGACY_LOCK_FILENAME = "state.lock"
LEGACY_BACKUP_SUFFIX = ".bak"

# 排他取得の待機上限（秒）
DEFAULT_BUSY_TIMEOUT = 5.0

# Stale判定理由（出力順固定）
REASON_WORKTREE_MISSING = "worktree missing"
REASON_WINDOW_MISSING = "window missing"
REASON_DUPLICATE_BRANCH = "duplicate branch"

# toolsコマンドの入力表示の切り詰め長
TOOL_INPUT_DISPLAY_LIMIT = 100
