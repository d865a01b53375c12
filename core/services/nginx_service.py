"""nginx host control: version detection, config test and reload."""

import logging
import re
from typing import Optional

from core.exceptions import CommandError
from core.interfaces.command_interface import ICommandRunner
from core.models.command import CommandResult
from core.models.config import NginxConfig

VERSION_PATTERN = re.compile(r"nginx/([0-9][0-9.]*[0-9]|[0-9])")


def compare_versions(left: str, right: str) -> int:
    """Compare dotted numeric versions.

    Missing components count as zero, so 1.9.11 == 1.9.11.0.

    Returns:
        -1, 0 or 1 like a classic cmp()
    """
    left_parts = [int(part) for part in left.split(".") if part != ""]
    right_parts = [int(part) for part in right.split(".") if part != ""]
    width = max(len(left_parts), len(right_parts))
    left_parts += [0] * (width - len(left_parts))
    right_parts += [0] * (width - len(right_parts))

    if left_parts > right_parts:
        return 1
    if left_parts < right_parts:
        return -1
    return 0


class NginxService:
    """Wraps the nginx commands the provisioner relies on."""

    def __init__(self, command_runner: ICommandRunner, nginx_config: NginxConfig):
        self.command_runner = command_runner
        self.nginx_config = nginx_config
        self.logger = logging.getLogger(__name__)

    def is_installed(self) -> bool:
        return self.command_runner.which(self.nginx_config.binary) is not None

    async def get_version(self) -> Optional[str]:
        """Read the version from `nginx -v`, which prints to stderr."""
        result = await self.command_runner.run(
            [self.nginx_config.binary, "-v"], check=False
        )
        match = VERSION_PATTERN.search(result.output)
        if not match:
            self.logger.warning(f"Could not parse nginx version from: {result.output!r}")
            return None
        return match.group(1)

    async def test_config(self) -> CommandResult:
        """Run the configuration self-test without raising on failure."""
        self.logger.info(f"Testing configuration: {' '.join(self.nginx_config.test_command)}")
        return await self.command_runner.run(self.nginx_config.test_command, check=False)

    async def reload(self) -> CommandResult:
        """Reload the server.

        Raises:
            CommandError: If the reload command fails
        """
        self.logger.info(f"Reloading: {' '.join(self.nginx_config.reload_command)}")
        try:
            return await self.command_runner.run(self.nginx_config.reload_command)
        except CommandError:
            self.logger.error("Reload failed")
            raise
