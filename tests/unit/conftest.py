"""Shared fixtures: an in-memory command runner and helpers for directory trees."""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from core.exceptions import CommandError
from core.interfaces.command_interface import ICommandRunner
from core.models.command import CommandResult
from core.models.config import ProvisionConfig


class FakeCommandRunner(ICommandRunner):
    """Records commands instead of running them.

    `results` and `side_effects` are keyed by argv prefixes; the longest
    matching prefix wins. Unknown commands succeed with empty output.
    """

    def __init__(self, results: Optional[Dict[Tuple[str, ...], Tuple[int, str, str]]] = None,
                 binaries: Optional[Dict[str, str]] = None,
                 side_effects: Optional[Dict[Tuple[str, ...], Callable]] = None):
        self.results = results or {}
        self.binaries = binaries or {}
        self.side_effects = side_effects or {}
        self.calls: List[Tuple[List[str], Optional[str], Optional[Dict[str, str]]]] = []

    @staticmethod
    def _longest_match(mapping, command):
        best = None
        for prefix in mapping:
            if tuple(command[:len(prefix)]) == prefix:
                if best is None or len(prefix) > len(best):
                    best = prefix
        return mapping[best] if best is not None else None

    async def run(self, command, cwd=None, env=None, check=True) -> CommandResult:
        self.calls.append((list(command), cwd, env))
        returncode, stdout, stderr = self._longest_match(self.results, command) or (0, "", "")

        effect = self._longest_match(self.side_effects, command)
        if effect is not None and returncode == 0:
            effect(list(command), cwd)

        result = CommandResult(command=list(command), returncode=returncode,
                               stdout=stdout, stderr=stderr)
        if check and returncode != 0:
            raise CommandError(list(command), returncode, stderr)
        return result

    def which(self, binary: str) -> Optional[str]:
        return self.binaries.get(binary)

    @property
    def commands(self) -> List[List[str]]:
        return [call[0] for call in self.calls]


def read_tree(root: Path) -> Dict[str, bytes]:
    """Map every file under root (relative path) to its bytes."""
    return {
        str(path.relative_to(root)): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def fake_runner() -> FakeCommandRunner:
    return FakeCommandRunner(binaries={"nginx": "/usr/sbin/nginx"})


@pytest.fixture
def waf_layout(tmp_path):
    """A WAF directory under etc/nginx/modsec and an empty local rules directory."""
    target = tmp_path / "etc" / "nginx" / "modsec"
    target.mkdir(parents=True)
    (target / "main.conf").write_text("Include /etc/nginx/modsec/modsecurity.conf\n")
    (target / "modsecurity.conf").write_text("SecRuleEngine On\n")
    (target / "sec_actions.conf").write_text("# old actions\n")
    (target / "unicode.mapping").write_text("20127\n")
    crs = target / "coreruleset" / "rules"
    crs.mkdir(parents=True)
    (crs / "REQUEST-901-INITIALIZATION.conf").write_text("# crs\n")

    rules = tmp_path / "work" / "rules"
    rules.mkdir(parents=True)
    return target, rules


@pytest.fixture
def patch_config(waf_layout):
    target, rules = waf_layout
    config = ProvisionConfig()
    config.patch.target_dir = str(target)
    config.patch.rules_dir = str(rules)
    return config
