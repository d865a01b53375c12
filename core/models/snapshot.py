"""Snapshot data model."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

SNAPSHOT_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


@dataclass
class Snapshot:
    """Point-in-time copy of a target directory."""

    # Required fields
    source_path: str

    created_time: datetime = field(default_factory=datetime.now)
    snapshot_path: Optional[str] = None

    def __post_init__(self):
        """Derive the sibling backup path if not provided."""
        if not self.snapshot_path:
            self.snapshot_path = str(snapshot_path_for(self.source_path, self.created_time))

    @property
    def timestamp(self) -> str:
        return self.created_time.strftime(SNAPSHOT_TIMESTAMP_FORMAT)

    @property
    def name(self) -> str:
        return Path(self.snapshot_path).name


def snapshot_path_for(source_path: str, created_time: datetime) -> Path:
    """Return `<parent>/<name>-backup-<YYYYMMDD-HHMMSS>` for a directory."""
    source = Path(source_path)
    timestamp = created_time.strftime(SNAPSHOT_TIMESTAMP_FORMAT)
    return source.parent / f"{source.name}-backup-{timestamp}"
