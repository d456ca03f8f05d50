"""pytest設定 - テストモジュールのパス設定と共通フィクスチャ"""

import sys
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# プロジェクトルートとsrcディレクトリのパス
project_root = Path(__file__).parent.parent
src_dir = project_root / "src"

# 正しいパスを先頭に追加（既存の場合は一度削除してから先頭へ）
for path in [str(src_dir), str(project_root)]:
    if path in sys.path:
        sys.path.remove(path)
    sys.path.insert(0, path)

from domain.models.records import ClaudeCommand, CodesExitKill, Process  # noqa: E402
from infrastructure.db.wortex_state_db import WortexStateDB  # noqa: E402


@pytest.fixture
def wortex_home(tmp_path, monkeypatch):
    """作成済みのwortexホーム（WORTEX_HOMEも向ける）"""
    home = tmp_path / ".wortex"
    home.mkdir()
    monkeypatch.setenv("WORTEX_HOME", str(home))
    monkeypatch.delenv("WORTEX_CONFIG", raising=False)
    return home


@pytest.fixture
def db(wortex_home):
    """テスト毎に独立したWortexStateDB"""
    state_db = WortexStateDB(wortex_home / "wortex.db")
    state_db.connect()
    yield state_db
    state_db.close()


@pytest.fixture
def make_process(tmp_path):
    """Process生成ヘルパー（created_atは呼び出し順に単調増加）"""
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make(branch="feature-a", **overrides):
        counter["n"] += 1
        created = (base + timedelta(seconds=counter["n"])).isoformat()
        fields = dict(
            id=str(uuid.uuid4()),
            project="wx",
            branch=branch,
            directory=str(tmp_path / f"wx-{branch}"),
            session="main",
            window=branch,
            command=ClaudeCommand(prompt="do it"),
            exit_kill=CodesExitKill(frozenset({0})),
            exit_code=None,
            created_at=created,
            updated_at=created,
        )
        fields.update(overrides)
        return Process(**fields)

    return _make
