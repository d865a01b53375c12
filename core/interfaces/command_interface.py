"""Command runner interface."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
from core.models.command import CommandResult


class ICommandRunner(ABC):
    """Interface for running external host commands."""

    @abstractmethod
    async def run(self, command: List[str],
                  cwd: Optional[str] = None,
                  env: Optional[Dict[str, str]] = None,
                  check: bool = True) -> CommandResult:
        """Run a command to completion.

        Args:
            command: argv list
            cwd: Working directory
            env: Extra environment variables
            check: Raise CommandError on nonzero exit

        Returns:
            CommandResult with exit status and output
        """
        pass

    @abstractmethod
    def which(self, binary: str) -> Optional[str]:
        """Locate a binary on PATH.

        Returns:
            Absolute path, or None if not found
        """
        pass
