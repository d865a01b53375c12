"""Snapshot service interface."""

from abc import ABC, abstractmethod
from typing import List
from core.models.snapshot import Snapshot


class ISnapshotService(ABC):
    """Interface for taking and restoring directory snapshots."""

    @abstractmethod
    def create_snapshot(self, target_dir: str) -> Snapshot:
        """Copy `target_dir` to a timestamped sibling.

        Raises:
            PreconditionError: If the target directory does not exist
            StepError: If the snapshot path is already taken
        """
        pass

    @abstractmethod
    def restore_snapshot(self, snapshot_path: str, target_dir: str) -> None:
        """Make `target_dir` identical to the snapshot.

        Raises:
            RollbackError: If the restore fails
        """
        pass

    @abstractmethod
    def list_snapshots(self, target_dir: str) -> List[str]:
        """List snapshot directories for a target, oldest first."""
        pass
