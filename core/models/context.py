"""Shared state handed from step to step during one run."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .config import ProvisionConfig
from .snapshot import Snapshot


@dataclass
class StepContext:
    """Run-scoped values that later steps read from earlier ones."""
    config: ProvisionConfig = field(default_factory=ProvisionConfig)
    snapshot: Optional[Snapshot] = None

    # Template values for command arguments and paths, e.g. nginx_version
    variables: Dict[str, Any] = field(default_factory=dict)

    stop_requested: bool = False
    stop_reason: Optional[str] = None

    def render(self, value: str) -> str:
        """Fill `{name}` placeholders from the collected variables.

        Only known variable names are replaced; any other braces, such as
        ones in configured paths, are left as they are.
        """
        for name, replacement in self.variables.items():
            value = value.replace("{" + name + "}", str(replacement))
        return value

    def request_stop(self, reason: str) -> None:
        """Ask the runner to end the pipeline successfully after this step."""
        self.stop_requested = True
        self.stop_reason = reason
