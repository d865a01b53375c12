"""Core interfaces for the provisioner."""

from .step_interface import IStep
from .command_interface import ICommandRunner
from .snapshot_interface import ISnapshotService
from .config_interface import IConfigService
from .workflow_interface import IWorkflowOrchestrator

__all__ = [
    'IStep',
    'ICommandRunner',
    'ISnapshotService',
    'IConfigService',
    'IWorkflowOrchestrator'
]
