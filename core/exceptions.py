"""Exception hierarchy for provisioning failures."""

from typing import List, Optional


class ProvisioningError(Exception):
    """Base class for every provisioning failure."""


class ConfigurationError(ProvisioningError):
    """Raised when the configuration file is missing fields or invalid."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Configuration validation failed: {'; '.join(errors)}")


class PreconditionError(ProvisioningError):
    """Raised when a required path, binary or privilege is missing."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class CommandError(ProvisioningError):
    """Raised when an external command exits with a nonzero status."""

    def __init__(self, command: List[str], returncode: int, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        message = f"Command '{' '.join(command)}' failed with exit code {returncode}"
        if stderr:
            message = f"{message}: {stderr.strip()}"
        super().__init__(message)


class StepError(ProvisioningError):
    """Raised when a step cannot complete for a reason other than a command."""


class RollbackError(ProvisioningError):
    """Raised when restoring a snapshot fails."""

    def __init__(self, snapshot_path: str, reason: str):
        self.snapshot_path = snapshot_path
        super().__init__(
            f"Rollback from {snapshot_path} failed: {reason}. Restore it manually."
        )


class VerificationError(StepError):
    """Raised when the server rejects the patched configuration.

    The runner restores the run's snapshot when it sees this error.
    """

    def __init__(self, message: str, output: str = ""):
        self.output = output
        super().__init__(message)
