"""ToolCallRepositoryのテスト

sequenceの採番（プロセス単位・並列書き込み）と照会順
"""

from concurrent.futures import ThreadPoolExecutor, as_completed

import pytest

from domain.models.records import HookType
from infrastructure.db.process_repository import ProcessRepository
from infrastructure.db.tool_call_repository import ToolCallRepository
from infrastructure.db.wortex_state_db import WortexStateDB
from shared.errors import InvalidHookTypeError, StorageError


@pytest.fixture
def repo(db):
    """ToolCallRepositoryインスタンス"""
    return ToolCallRepository(db)


@pytest.fixture
def process(db, make_process):
    """登録済みプロセス"""
    p = make_process()
    ProcessRepository(db).insert(p)
    return p


class TestSequence:
    def test_sequenceは1から連番(self, repo, process):
        calls = [
            repo.insert_tool_call(process.id, "pre", f"Tool{i}", "{}") for i in range(5)
        ]

        assert [c.sequence for c in calls] == [1, 2, 3, 4, 5]
        stored = repo.get_tool_calls_by_process(process.id)
        assert [c.sequence for c in stored] == [1, 2, 3, 4, 5]
        assert [c.tool_name for c in stored] == [f"Tool{i}" for i in range(5)]

    def test_プロセスごとに独立した採番(self, db, repo, process, make_process):
        """交互に記録しても2つ目のプロセスは1から始まる"""
        other = make_process("feature-b")
        ProcessRepository(db).insert(other)

        repo.insert_tool_call(process.id, "pre", "A", "{}")
        repo.insert_tool_call(process.id, "post", "A", "{}")
        first_other = repo.insert_tool_call(other.id, "pre", "B", "{}")
        repo.insert_tool_call(process.id, "pre", "C", "{}")
        second_other = repo.insert_tool_call(other.id, "post", "B", "{}")

        assert first_other.sequence == 1
        assert second_other.sequence == 2
        assert [c.sequence for c in repo.get_tool_calls_by_process(process.id)] == [1, 2, 3]

    def test_並列書き込みでsequence衝突なし(self, db, process):
        """接続を分けた複数ワーカーが同時に記録しても1..Nが欠番・重複なく振られる"""
        workers = 4
        per_worker = 10

        def worker(worker_id):
            worker_db = WortexStateDB(db.db_path)
            try:
                worker_repo = ToolCallRepository(worker_db)
                return [
                    worker_repo.insert_tool_call(process.id, "pre", f"w{worker_id}", "{}").sequence
                    for _ in range(per_worker)
                ]
            finally:
                worker_db.close()

        sequences = []
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(worker, i) for i in range(workers)]
            for future in as_completed(futures):
                sequences.extend(future.result())

        expected = list(range(1, workers * per_worker + 1))
        assert sorted(sequences) == expected
        stored = ToolCallRepository(db).get_tool_calls_by_process(process.id)
        assert [c.sequence for c in stored] == expected


class TestInsert:
    def test_記録内容(self, repo, process):
        call = repo.insert_tool_call(process.id, HookType.POST, "Edit", '{"file_path": "a.py"}')

        assert call.id is not None
        assert call.process_id == process.id
        assert call.hook_type == HookType.POST
        assert call.tool_name == "Edit"
        assert call.tool_input == '{"file_path": "a.py"}'
        assert call.timestamp

        stored = repo.get_tool_calls_by_process(process.id)
        assert stored == [call]

    def test_不正なhook_type(self, repo, process):
        with pytest.raises(InvalidHookTypeError):
            repo.insert_tool_call(process.id, "during", "Bash", "{}")

        assert repo.count() == 0

    def test_未登録プロセスはStorageError(self, repo):
        with pytest.raises(StorageError):
            repo.insert_tool_call("no-such-process", "pre", "Bash", "{}")

        assert repo.count() == 0


class TestQuery:
    def test_全件は新しい順(self, db, repo, process):
        first = repo.insert_tool_call(process.id, "pre", "First", "{}")
        second = repo.insert_tool_call(process.id, "post", "Second", "{}")
        # タイムスタンプ同値でもid降順で安定
        with db.exclusive("align timestamps") as conn:
            conn.execute("UPDATE tool_calls SET timestamp = '2026-01-01T00:00:00+00:00'")

        calls = repo.get_all_tool_calls()

        assert [c.id for c in calls] == [second.id, first.id]

    def test_記録なし(self, repo, process):
        assert repo.get_tool_calls_by_process(process.id) == []
        assert repo.get_all_tool_calls() == []
