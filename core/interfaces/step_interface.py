"""Provisioning step interface."""

from abc import ABC, abstractmethod
from core.models.context import StepContext
from core.models.step import StepResult, StepType


class IStep(ABC):
    """Interface for a single pipeline step.

    Attributes:
        name: Human readable step name used in logs and results
        step_type: Kind of step
        section: Heading the step is grouped under in the log output
        mutating: Whether the step changes host state
    """

    name: str
    step_type: StepType
    section: str = ""
    mutating: bool = False

    @abstractmethod
    async def execute(self, context: StepContext, result: StepResult) -> None:
        """Run the step.

        Implementations record outcome details on `result` and may call
        `result.mark_skipped()`. A step that returns without marking its
        result counts as completed.

        Args:
            context: Shared run state
            result: Result object for this step

        Raises:
            ProvisioningError: If the step fails
        """
        pass
