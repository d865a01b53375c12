"""Async wrapper around host commands (apt-get, git, make, nginx, ...)."""

import asyncio
import os
import shutil
from datetime import datetime
from typing import Dict, List, Optional

from core.exceptions import CommandError
from core.interfaces.command_interface import ICommandRunner
from core.models.command import CommandResult
from core.utils.logger import get_infrastructure_logger


class CommandRunner(ICommandRunner):
    """Runs external commands one at a time and captures their output."""

    def __init__(self, timeout_seconds: Optional[int] = None):
        self.timeout_seconds = timeout_seconds
        self.logger = get_infrastructure_logger("command_runner")

    def _handle_error(self, operation: str, error: Exception) -> None:
        """Centralized error handling and logging."""
        self.logger.error(f"{operation} failed: {str(error)}")
        raise error

    async def run(
        self,
        command: List[str],
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        check: bool = True,
    ) -> CommandResult:
        """Run a command to completion.

        Args:
            command: argv list, never passed through a shell
            cwd: Working directory for the command
            env: Extra environment variables merged over os.environ
            check: Raise CommandError on a nonzero exit status

        Returns:
            CommandResult with the exit status and decoded output
        """
        if not command:
            raise ValueError("Command must not be empty")

        self.logger.debug(f"Executing: {' '.join(command)} (cwd={cwd or os.getcwd()})")
        merged_env = {**os.environ, **env} if env else None
        start_time = datetime.now()

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=cwd,
                env=merged_env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            # Missing executable behaves like the shell's exit 127
            result = CommandResult(
                command=list(command),
                returncode=127,
                stderr=str(e),
                start_time=start_time,
                end_time=datetime.now(),
            )
            if check:
                self._handle_error(f"'{result.command_line}'", CommandError(result.command, 127, str(e)))
            return result

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            self._handle_error(
                f"'{' '.join(command)}'",
                CommandError(list(command), -1, f"timed out after {self.timeout_seconds}s"),
            )

        result = CommandResult(
            command=list(command),
            returncode=process.returncode,
            stdout=stdout.decode('utf-8', errors='replace').strip(),
            stderr=stderr.decode('utf-8', errors='replace').strip(),
            start_time=start_time,
            end_time=datetime.now(),
        )

        if result.success:
            self.logger.debug(f"Success: {result.command_line}")
        else:
            self.logger.debug(f"Exit {result.returncode}: {result.command_line}: {result.stderr}")
            if check:
                self._handle_error(
                    f"'{result.command_line}'",
                    CommandError(result.command, result.returncode, result.stderr),
                )

        return result

    def which(self, binary: str) -> Optional[str]:
        """Locate a binary on PATH."""
        return shutil.which(binary)
