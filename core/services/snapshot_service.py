"""Snapshot service: timestamped copies of the WAF config directory."""

import logging
from pathlib import Path
from typing import List, Optional
from datetime import datetime

from core.exceptions import PreconditionError, RollbackError, StepError
from core.interfaces.snapshot_interface import ISnapshotService
from core.models.snapshot import Snapshot
from infrastructure.storage.file_storage import FileStorage


class SnapshotService(ISnapshotService):
    """Creates and restores sibling backup directories.

    Snapshots are never deleted or modified by this service.
    """

    def __init__(self, file_storage: FileStorage):
        self.file_storage = file_storage
        self.logger = logging.getLogger(__name__)

    def create_snapshot(self, target_dir: str, now: Optional[datetime] = None) -> Snapshot:
        """Copy the target directory to `<target>-backup-<timestamp>`."""
        if not self.file_storage.directory_exists(target_dir):
            raise PreconditionError(f"{target_dir} not found.", path=target_dir)

        snapshot = Snapshot(source_path=target_dir, created_time=now or datetime.now())
        if Path(snapshot.snapshot_path).exists():
            raise StepError(
                f"Backup path {snapshot.snapshot_path} already exists; refusing to overwrite it"
            )

        self.logger.info(f"Creating backup at {snapshot.snapshot_path}")
        self.file_storage.copy_tree(target_dir, snapshot.snapshot_path)
        return snapshot

    def restore_snapshot(self, snapshot_path: str, target_dir: str) -> None:
        """Replace the target directory with the snapshot contents."""
        self.logger.warning(f"Restoring {target_dir} from {snapshot_path}")
        try:
            self.file_storage.replace_directory(snapshot_path, target_dir)
        except Exception as e:
            raise RollbackError(snapshot_path, str(e)) from e
        self.logger.info(f"Restored {target_dir} from {snapshot_path}")

    def list_snapshots(self, target_dir: str) -> List[str]:
        """List existing backups of the target; timestamps sort oldest first."""
        target = Path(target_dir)
        if not target.parent.is_dir():
            return []
        return self.file_storage.list_directories(
            str(target.parent), pattern=f"{target.name}-backup-*"
        )
