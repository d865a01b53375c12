"""External command result model."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class CommandResult:
    """Outcome of one external command invocation."""
    command: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        return " ".join(self.command)

    @property
    def output(self) -> str:
        """Combined stdout and stderr; nginx writes most output to stderr."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)
