from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Any
from uuid import uuid4

from .step import StepResult


class WorkflowStatus(Enum):
    """Overall workflow status."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


@dataclass
class WorkflowResult:
    """Complete workflow execution result."""

    # Basic identification
    workflow_id: str = field(default_factory=lambda: str(uuid4()))
    workflow_name: str = "ModSecurity Provisioning"

    # Status and timing
    status: WorkflowStatus = WorkflowStatus.PENDING
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    # Step results in execution order
    step_results: List[StepResult] = field(default_factory=list)

    # Rollback point taken during the run
    snapshot_path: Optional[str] = None

    # Set when a step ends the pipeline early without failing
    stopped_early: bool = False
    stop_reason: Optional[str] = None

    # Error tracking
    errors: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Initialize workflow result."""
        if self.start_time is None:
            self.start_time = datetime.now()

    @property
    def duration(self) -> Optional[timedelta]:
        """Calculate total workflow duration."""
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return None

    @property
    def is_successful(self) -> bool:
        """Check if workflow completed successfully."""
        return self.status == WorkflowStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        """Failed and rolled back runs both count as failures."""
        return self.status in (WorkflowStatus.FAILED, WorkflowStatus.ROLLED_BACK)

    def get_step_result(self, name: str) -> Optional[StepResult]:
        """Get result for a step by name."""
        for result in self.step_results:
            if result.name == name:
                return result
        return None

    def add_step_result(self, step_result: StepResult) -> None:
        self.step_results.append(step_result)

    def add_error(self, error: str) -> None:
        """Add an error to the workflow result."""
        self.errors.append(error)

    def mark_started(self) -> None:
        """Mark workflow as started."""
        self.status = WorkflowStatus.RUNNING
        if self.start_time is None:
            self.start_time = datetime.now()

    def mark_completed(self) -> None:
        """Mark workflow as completed."""
        self.status = WorkflowStatus.COMPLETED
        self.end_time = datetime.now()

    def mark_failed(self, error: str) -> None:
        """Mark workflow as failed."""
        self.status = WorkflowStatus.FAILED
        self.end_time = datetime.now()
        self.add_error(error)

    def mark_rolled_back(self, error: str) -> None:
        """Mark workflow as failed with the snapshot restored."""
        self.status = WorkflowStatus.ROLLED_BACK
        self.end_time = datetime.now()
        self.add_error(error)

    def get_summary(self) -> Dict[str, Any]:
        """Get workflow execution summary."""
        return {
            'workflow_id': self.workflow_id,
            'workflow_name': self.workflow_name,
            'status': self.status.value,
            'duration': str(self.duration) if self.duration else None,
            'snapshot_path': self.snapshot_path,
            'steps_completed': len([s for s in self.step_results if s.status.value == 'completed']),
            'steps_skipped': len([s for s in self.step_results if s.status.value == 'skipped']),
            'steps_failed': len([s for s in self.step_results if s.is_failed]),
            'stopped_early': self.stopped_early,
            'total_errors': len(self.errors),
        }
