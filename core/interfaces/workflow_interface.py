"""Workflow orchestrator interface."""

from abc import ABC, abstractmethod
from typing import List, Optional
from core.interfaces.step_interface import IStep
from core.models.context import StepContext
from core.models.workflow import WorkflowResult


class IWorkflowOrchestrator(ABC):
    """Interface for workflow orchestration."""

    @abstractmethod
    async def run_steps(self, name: str, steps: List[IStep],
                        context: Optional[StepContext] = None) -> WorkflowResult:
        """Run steps in order, stopping at the first failure.

        Args:
            name: Workflow name for logs and the result
            steps: Ordered step list
            context: Shared run state, created if omitted

        Returns:
            WorkflowResult with one StepResult per executed step
        """
        pass

    @abstractmethod
    async def run_patch_workflow(self) -> WorkflowResult:
        """Snapshot the WAF directory and write local rule files into it."""
        pass

    @abstractmethod
    async def run_install_workflow(self) -> WorkflowResult:
        """Build and install ModSecurity, the nginx connector and the CRS."""
        pass
