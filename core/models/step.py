"""Step descriptor and step result models."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Any, Optional


class StepType(Enum):
    """Kinds of provisioning steps."""
    PRECONDITION = "precondition"
    SNAPSHOT = "snapshot"
    OVERWRITE = "overwrite"
    SYNC = "sync"
    VERIFY_RELOAD = "verify_reload"
    TEXT_PATCH = "text_patch"
    COMMAND = "command"
    FILESYSTEM = "filesystem"
    VERSION_CHECK = "version_check"


class StepStatus(Enum):
    """Step execution status."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class StepResult:
    """Result of a single step execution."""
    name: str
    step_type: StepType
    status: StepStatus = StepStatus.PENDING

    # Timing
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    message: Optional[str] = None
    error_message: Optional[str] = None

    # Step specific output (updated files, command output, ...)
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> Optional[timedelta]:
        """Calculate step duration."""
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return None

    @property
    def is_successful(self) -> bool:
        """Completed and skipped steps both let the pipeline continue."""
        return self.status in (StepStatus.COMPLETED, StepStatus.SKIPPED)

    @property
    def is_failed(self) -> bool:
        return self.status == StepStatus.FAILED

    def mark_started(self) -> None:
        """Mark step as started."""
        self.status = StepStatus.RUNNING
        self.start_time = datetime.now()

    def mark_completed(self, message: Optional[str] = None, **details: Any) -> None:
        """Mark step as completed."""
        self.status = StepStatus.COMPLETED
        self.end_time = datetime.now()
        if message:
            self.message = message
        self.details.update(details)

    def mark_failed(self, error: str) -> None:
        """Mark step as failed."""
        self.status = StepStatus.FAILED
        self.end_time = datetime.now()
        self.error_message = error

    def mark_skipped(self, reason: str) -> None:
        """Mark step as skipped."""
        self.status = StepStatus.SKIPPED
        self.end_time = datetime.now()
        self.message = reason
