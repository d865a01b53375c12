"""Writes local rule files into the WAF configuration directory."""

import logging
from pathlib import Path
from typing import List, Tuple

from core.exceptions import PreconditionError, StepError
from infrastructure.storage.file_storage import FileStorage


class RuleFileService:
    """Selective overwrite and non-deleting sync of rule files."""

    def __init__(self, file_storage: FileStorage):
        self.file_storage = file_storage
        self.logger = logging.getLogger(__name__)

    def _require_directories(self, source_dir: str, target_dir: str) -> None:
        if not self.file_storage.directory_exists(target_dir):
            raise PreconditionError(f"{target_dir} not found.", path=target_dir)
        if not self.file_storage.directory_exists(source_dir):
            raise PreconditionError(
                f"Local rules directory {source_dir} not found.", path=source_dir
            )

    def overwrite_managed_files(
        self, source_dir: str, target_dir: str, managed_files: List[str]
    ) -> Tuple[List[str], List[str]]:
        """Copy each managed file that exists locally over the target copy.

        Returns:
            (updated, skipped) file name lists in managed-file order
        """
        self._require_directories(source_dir, target_dir)

        updated, skipped = [], []
        for name in managed_files:
            source = Path(source_dir) / name
            if not self.file_storage.file_exists(str(source)):
                self.logger.warning(f"Skipped {name} (not found locally)")
                skipped.append(name)
                continue

            try:
                self.file_storage.copy_file(str(source), str(Path(target_dir) / name))
            except OSError as e:
                raise StepError(f"Failed to update {name}: {str(e)}") from e
            self.logger.info(f"Updated {name}")
            updated.append(name)

        return updated, skipped

    def sync_tree(self, source_dir: str, target_dir: str) -> List[str]:
        """Mirror the whole local tree onto the target without deleting anything."""
        self._require_directories(source_dir, target_dir)

        try:
            written = self.file_storage.merge_tree(source_dir, target_dir)
        except OSError as e:
            raise StepError(f"Failed to sync {source_dir} into {target_dir}: {str(e)}") from e

        for relative in written:
            self.logger.info(f"Synced {relative}")
        return written
