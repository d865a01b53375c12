"""Core data models for the provisioner."""

from .config import (
    ProvisionConfig,
    PatchConfig,
    InstallConfig,
    NginxConfig,
    LoggingConfig,
    LogLevel,
    PatchMode,
)
from .step import StepType, StepStatus, StepResult
from .workflow import WorkflowResult, WorkflowStatus
from .snapshot import Snapshot
from .patch_directive import PatchDirective, Substitution, InsertionPoint
from .command import CommandResult
from .context import StepContext

__all__ = [
    'ProvisionConfig',
    'PatchConfig',
    'InstallConfig',
    'NginxConfig',
    'LoggingConfig',
    'LogLevel',
    'PatchMode',
    'StepType',
    'StepStatus',
    'StepResult',
    'WorkflowResult',
    'WorkflowStatus',
    'Snapshot',
    'PatchDirective',
    'Substitution',
    'InsertionPoint',
    'CommandResult',
    'StepContext',
]
