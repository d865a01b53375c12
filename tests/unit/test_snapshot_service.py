"""Unit tests for SnapshotService."""

from datetime import datetime
from pathlib import Path

import pytest

from core.exceptions import PreconditionError, RollbackError, StepError
from core.models.snapshot import Snapshot
from core.services.snapshot_service import SnapshotService
from infrastructure.storage.file_storage import FileStorage

from conftest import read_tree


class TestSnapshotService:
    """Test cases for snapshot creation and restore."""

    def setup_method(self):
        self.service = SnapshotService(FileStorage())

    def test_snapshot_is_timestamped_sibling_copy(self, waf_layout):
        target, _ = waf_layout
        snapshot = self.service.create_snapshot(str(target), now=datetime(2026, 10, 18, 9, 5, 7))

        assert snapshot.snapshot_path == str(target.parent / "modsec-backup-20261018-090507")
        assert read_tree(target) == read_tree(target.parent / "modsec-backup-20261018-090507")

    def test_missing_target_creates_nothing(self, tmp_path):
        with pytest.raises(PreconditionError, match="not found"):
            self.service.create_snapshot(str(tmp_path / "modsec"))

        assert list(tmp_path.iterdir()) == []

    def test_existing_snapshot_is_never_overwritten(self, waf_layout):
        target, _ = waf_layout
        now = datetime(2026, 10, 18, 9, 5, 7)
        first = self.service.create_snapshot(str(target), now=now)
        (target / "main.conf").write_text("changed\n")

        with pytest.raises(StepError, match="already exists"):
            self.service.create_snapshot(str(target), now=now)

        assert b"changed" not in (
            target.parent / "modsec-backup-20261018-090507" / "main.conf"
        ).read_bytes()
        assert first.name == "modsec-backup-20261018-090507"

    def test_restore_makes_target_identical_to_snapshot(self, waf_layout):
        target, _ = waf_layout
        snapshot = self.service.create_snapshot(str(target))
        expected = read_tree(target)

        (target / "main.conf").write_text("broken\n")
        (target / "added.conf").write_text("new\n")
        (target / "unicode.mapping").unlink()

        self.service.restore_snapshot(snapshot.snapshot_path, str(target))

        assert read_tree(target) == expected
        assert read_tree(Path(snapshot.snapshot_path)) == expected

    def test_restore_from_missing_snapshot_raises_rollback_error(self, waf_layout):
        target, _ = waf_layout
        missing = str(target.parent / "modsec-backup-19990101-000000")

        with pytest.raises(RollbackError) as exc_info:
            self.service.restore_snapshot(missing, str(target))

        assert exc_info.value.snapshot_path == missing
        assert (target / "main.conf").exists()

    def test_list_snapshots_sorted_oldest_first(self, waf_layout):
        target, _ = waf_layout
        self.service.create_snapshot(str(target), now=datetime(2026, 10, 18, 10, 0, 0))
        self.service.create_snapshot(str(target), now=datetime(2026, 1, 2, 3, 4, 5))

        names = [path.rsplit("/", 1)[-1] for path in self.service.list_snapshots(str(target))]

        assert names == ["modsec-backup-20260102-030405", "modsec-backup-20261018-100000"]


class TestSnapshotModel:

    def test_trailing_slash_is_ignored(self):
        snapshot = Snapshot(source_path="/etc/nginx/modsec/", created_time=datetime(2026, 10, 18, 1, 2, 3))

        assert snapshot.snapshot_path == "/etc/nginx/modsec-backup-20261018-010203"
        assert snapshot.timestamp == "20261018-010203"
