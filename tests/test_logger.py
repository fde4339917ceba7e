"""
Tests for the terminal/storage logger and its use by the storage layer.

Run with: python -m pytest tests/test_logger.py -v
"""

import json
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shelfsync.config import Settings
from shelfsync.services import FirestoreGateway, ShelfSyncLogger, SyncCoordinator, SyncError


class TestTerminalOutput:

    def setup_method(self):
        self.logger = ShelfSyncLogger()

    def test_sync_lines_truncate_principal(self, capsys):
        self.logger.sync_started("save_all_data", "abcdefghijkl")
        self.logger.sync_completed("save_all_data", "abcdefghijkl", 1.25)

        out = capsys.readouterr().out
        assert "Sync started: save_all_data (User: abcdefgh)" in out
        assert "in 1.2s" in out or "in 1.3s" in out
        assert "abcdefghijkl" not in out

    def test_session_lines(self, capsys):
        self.logger.session_changed("u1")
        self.logger.session_changed(None)

        out = capsys.readouterr().out
        assert "Signed in: u1" in out
        assert "Signed out" in out

    def test_storage_lines_need_debug_storage(self, capsys):
        self.logger.storage_operation("set", "users/u1/data/books", "Fields: books")
        assert capsys.readouterr().out == ""


class TestStorageLog:

    @pytest.fixture(autouse=True)
    def _logger(self, tmp_path, firestore_client):
        settings = Settings(debug_storage=True, debug_log_dir=str(tmp_path / "debug"))
        self.logger = ShelfSyncLogger(settings=settings)
        self.client = firestore_client
        self.gateway = FirestoreGateway(client=firestore_client, logger=self.logger, max_workers=2)
        yield
        self.gateway.shutdown()

    def entries(self):
        return [json.loads(line) for line in self.logger.storage_log.read_text().splitlines()]

    async def test_gateway_calls_logged_as_json_lines(self, capsys):
        await self.gateway.write_document("u1", "books", {"books": []})
        await self.gateway.read_document("u1", "books")

        entries = self.entries()
        assert [e["type"] for e in entries] == ["storage_operation", "storage_read"]
        assert entries[0]["operation"] == "set"
        assert entries[0]["path"] == "users/u1/data/books"
        assert entries[0]["data_summary"] == "Fields: books"
        assert entries[1]["result_summary"] == "Document found"
        assert "Storage SET" in capsys.readouterr().out

    async def test_coordinator_reports_failures(self, capsys):
        coordinator = SyncCoordinator("u1", self.gateway, logger=self.logger)
        self.client.fail_on("data/history")

        with pytest.raises(SyncError):
            await coordinator.save_all_data({"books": []})

        assert "Sync failed: save_all_data" in capsys.readouterr().out
