"""データベースインフラストラクチャ"""

from domain.models.records import Process, ToolCall
from infrastructure.db.legacy_migrator import LegacyMigrator, MigrationReport
from infrastructure.db.process_repository import ProcessRepository
from infrastructure.db.tool_call_repository import ToolCallRepository
from infrastructure.db.wortex_state_db import WortexStateDB

__all__ = [
    "WortexStateDB",
    "Process",
    "ToolCall",
    "LegacyMigrator",
    "MigrationReport",
    "ProcessRepository",
    "ToolCallRepository",
]
