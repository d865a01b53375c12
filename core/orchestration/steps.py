"""Typed provisioning steps executed by the workflow orchestrator."""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from core.exceptions import CommandError, PreconditionError, StepError, VerificationError
from core.interfaces.command_interface import ICommandRunner
from core.interfaces.step_interface import IStep
from core.models.context import StepContext
from core.models.patch_directive import PatchDirective, Substitution
from core.models.step import StepResult, StepType
from core.services.nginx_service import NginxService, compare_versions
from core.services.rule_file_service import RuleFileService
from core.services.snapshot_service import SnapshotService
from core.services.text_patch_service import TextPatchService
from infrastructure.storage.file_storage import FileStorage


class BaseStep(IStep):
    """Common constructor and logger for concrete steps."""

    step_type = StepType.COMMAND
    mutating = True

    def __init__(self, name: str, section: str = ""):
        self.name = name
        self.section = section
        self.logger = logging.getLogger(__name__)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class Requirement(Enum):
    """What a precondition step checks."""
    DIRECTORY = "directory"
    FILE = "file"
    BINARY = "binary"
    ROOT = "root"


class PreconditionStep(BaseStep):
    """Abort the run when a required directory, file, binary or privilege is missing."""

    step_type = StepType.PRECONDITION
    mutating = False

    def __init__(self, name: str, requirement: Requirement, target: str = "",
                 command_runner: Optional[ICommandRunner] = None,
                 error_message: Optional[str] = None, section: str = ""):
        super().__init__(name, section)
        self.requirement = requirement
        self.target = target
        self.command_runner = command_runner
        self.error_message = error_message

    async def execute(self, context: StepContext, result: StepResult) -> None:
        target = context.render(self.target)

        if self.requirement == Requirement.ROOT:
            if os.geteuid() != 0:
                raise PreconditionError(self.error_message or "Please run as root")
            result.mark_completed("Running as root")
            return

        if self.requirement == Requirement.BINARY:
            location = self.command_runner.which(target) if self.command_runner else None
            if not location:
                raise PreconditionError(
                    self.error_message or f"{target} could not be found on PATH", path=target
                )
            result.mark_completed(f"{target} found at {location}", location=location)
            return

        exists = Path(target).is_dir() if self.requirement == Requirement.DIRECTORY else Path(target).is_file()
        if not exists:
            raise PreconditionError(self.error_message or f"{target} not found.", path=target)
        result.mark_completed(f"{target} exists")


class SnapshotStep(BaseStep):
    """Copy the target directory to a timestamped sibling before any mutation."""

    step_type = StepType.SNAPSHOT
    mutating = False

    def __init__(self, name: str, target_dir: str, snapshot_service: SnapshotService,
                 section: str = ""):
        super().__init__(name, section)
        self.target_dir = target_dir
        self.snapshot_service = snapshot_service

    async def execute(self, context: StepContext, result: StepResult) -> None:
        if context.snapshot is not None:
            raise StepError(
                f"A snapshot was already taken this run: {context.snapshot.snapshot_path}"
            )

        snapshot = self.snapshot_service.create_snapshot(context.render(self.target_dir))
        context.snapshot = snapshot
        result.mark_completed(
            f"Backup created at {snapshot.snapshot_path}",
            snapshot_path=snapshot.snapshot_path,
        )


class OverwriteStep(BaseStep):
    """Copy the managed files that exist locally over their target copies."""

    step_type = StepType.OVERWRITE

    def __init__(self, name: str, source_dir: str, target_dir: str, managed_files: List[str],
                 rule_file_service: RuleFileService, section: str = ""):
        super().__init__(name, section)
        self.source_dir = source_dir
        self.target_dir = target_dir
        self.managed_files = list(managed_files)
        self.rule_file_service = rule_file_service

    async def execute(self, context: StepContext, result: StepResult) -> None:
        updated, skipped = self.rule_file_service.overwrite_managed_files(
            context.render(self.source_dir),
            context.render(self.target_dir),
            self.managed_files,
        )
        result.mark_completed(
            f"{len(updated)} updated, {len(skipped)} skipped",
            updated=updated,
            skipped=skipped,
        )


class SyncStep(BaseStep):
    """Mirror the local rules tree onto the target, never deleting target files."""

    step_type = StepType.SYNC

    def __init__(self, name: str, source_dir: str, target_dir: str,
                 rule_file_service: RuleFileService, section: str = ""):
        super().__init__(name, section)
        self.source_dir = source_dir
        self.target_dir = target_dir
        self.rule_file_service = rule_file_service

    async def execute(self, context: StepContext, result: StepResult) -> None:
        written = self.rule_file_service.sync_tree(
            context.render(self.source_dir), context.render(self.target_dir)
        )
        result.mark_completed(f"{len(written)} files synced", synced=written)


class VerifyReloadStep(BaseStep):
    """Run the config self-test and reload on success.

    A failed self-test or a failed reload raises VerificationError, which
    makes the runner restore the run's snapshot.
    """

    step_type = StepType.VERIFY_RELOAD

    def __init__(self, name: str, nginx_service: NginxService, section: str = ""):
        super().__init__(name, section)
        self.nginx_service = nginx_service

    async def execute(self, context: StepContext, result: StepResult) -> None:
        test = await self.nginx_service.test_config()
        result.details["test_output"] = test.output
        if not test.success:
            raise VerificationError(
                f"Configuration test failed (exit {test.returncode})", output=test.output
            )
        self.logger.info("Configuration test passed")

        try:
            await self.nginx_service.reload()
        except CommandError as e:
            raise VerificationError(
                f"Reload failed (exit {e.returncode})", output=e.stderr
            ) from e
        result.mark_completed("Configuration verified and server reloaded")


class TextPatchStep(BaseStep):
    """Apply idempotent insertions and substitutions to one file."""

    step_type = StepType.TEXT_PATCH

    def __init__(self, name: str, file_path: str, text_patch_service: TextPatchService,
                 directives: Optional[List[PatchDirective]] = None,
                 substitutions: Optional[List[Substitution]] = None,
                 optional: bool = False, section: str = ""):
        super().__init__(name, section)
        self.file_path = file_path
        self.text_patch_service = text_patch_service
        self.directives = directives or []
        self.substitutions = substitutions or []
        self.optional = optional

    async def execute(self, context: StepContext, result: StepResult) -> None:
        path = context.render(self.file_path)
        if not Path(path).is_file():
            if self.optional:
                self.logger.warning(f"{path} not found. Skipping {self.name}.")
                result.mark_skipped(f"{path} not found")
                return
            raise StepError(f"Cannot patch {path}: file not found")

        try:
            changes = self.text_patch_service.patch_file(path, self.directives, self.substitutions)
        except ValueError as e:
            raise StepError(f"Cannot patch {path}: {str(e)}") from e

        message = f"{changes} change(s) applied to {path}" if changes else f"{path} already up to date"
        result.mark_completed(message, changes=changes)


class CommandStep(BaseStep):
    """Run one external command, or a short sequence of them.

    Arguments, working directory and environment values may contain
    `{variable}` placeholders filled from the step context. With
    `only_if`, the commands run only when the guard command exits 0.
    """

    step_type = StepType.COMMAND

    def __init__(self, name: str, command: List[str], command_runner: ICommandRunner,
                 cwd: Optional[str] = None, env: Optional[Dict[str, str]] = None,
                 ignore_errors: bool = False, only_if: Optional[List[str]] = None,
                 then: Optional[List[List[str]]] = None, section: str = ""):
        super().__init__(name, section)
        self.commands = [list(command)] + [list(c) for c in (then or [])]
        self.command_runner = command_runner
        self.cwd = cwd
        self.env = env or {}
        self.ignore_errors = ignore_errors
        self.only_if = only_if

    async def execute(self, context: StepContext, result: StepResult) -> None:
        if self.only_if:
            guard = [context.render(part) for part in self.only_if]
            check = await self.command_runner.run(guard, check=False)
            if not check.success:
                result.mark_skipped(f"Guard '{check.command_line}' not satisfied")
                return

        cwd = context.render(self.cwd) if self.cwd else None
        env = {key: context.render(value) for key, value in self.env.items()}
        ran = []

        for command in self.commands:
            command = [context.render(part) for part in command]
            try:
                run = await self.command_runner.run(command, cwd=cwd, env=env or None)
            except CommandError as e:
                if not self.ignore_errors:
                    raise
                self.logger.warning(f"Ignoring failure of optional command: {str(e)}")
                continue
            ran.append(run.command_line)

        result.mark_completed(
            f"{len(ran)}/{len(self.commands)} command(s) succeeded", commands=ran
        )


class EnsureDirectoryStep(BaseStep):
    """Create a directory (and parents) if it does not exist."""

    step_type = StepType.FILESYSTEM

    def __init__(self, name: str, path: str, file_storage: FileStorage, section: str = ""):
        super().__init__(name, section)
        self.path = path
        self.file_storage = file_storage

    async def execute(self, context: StepContext, result: StepResult) -> None:
        path = context.render(self.path)
        if self.file_storage.ensure_directory_exists(path):
            result.mark_completed(f"Created {path}")
        else:
            result.mark_completed(f"Directory exists: {path}")


class RemovePathStep(BaseStep):
    """Delete a stale file or directory; a missing path is not an error."""

    step_type = StepType.FILESYSTEM

    def __init__(self, name: str, path: str, file_storage: FileStorage, section: str = ""):
        super().__init__(name, section)
        self.path = path
        self.file_storage = file_storage

    async def execute(self, context: StepContext, result: StepResult) -> None:
        path = context.render(self.path)
        if self.file_storage.delete_path(path):
            result.mark_completed(f"Removed {path}")
        else:
            result.mark_skipped(f"{path} does not exist")


class WriteFileStep(BaseStep):
    """Write fixed content to a file.

    `unless_contains` is a (glob, marker) pair; the write is skipped when any
    file matching the glob already contains the marker.
    """

    step_type = StepType.FILESYSTEM

    def __init__(self, name: str, path: str, content: str, file_storage: FileStorage,
                 unless_contains: Optional[Tuple[str, str]] = None, section: str = ""):
        super().__init__(name, section)
        self.path = path
        self.content = content
        self.file_storage = file_storage
        self.unless_contains = unless_contains

    async def execute(self, context: StepContext, result: StepResult) -> None:
        path = context.render(self.path)
        if self.unless_contains:
            pattern, marker = self.unless_contains
            if self.file_storage.any_file_contains(context.render(pattern), marker):
                result.mark_skipped(f"'{marker}' already configured")
                return

        self.file_storage.write_file(path, self.content)
        result.mark_completed(f"Wrote {path}")


class CopyFileStep(BaseStep):
    """Copy a single file into place."""

    step_type = StepType.FILESYSTEM

    def __init__(self, name: str, source: str, destination: str, file_storage: FileStorage,
                 section: str = ""):
        super().__init__(name, section)
        self.source = source
        self.destination = destination
        self.file_storage = file_storage

    async def execute(self, context: StepContext, result: StepResult) -> None:
        source = context.render(self.source)
        destination = context.render(self.destination)
        try:
            self.file_storage.copy_file(source, destination)
        except OSError as e:
            raise StepError(f"Failed to copy {source} to {destination}: {str(e)}") from e
        result.mark_completed(f"Copied {source} -> {destination}")


class VersionCheckStep(BaseStep):
    """Detect the nginx version and stop the run when it is too old.

    Too old means no dynamic module support; the run then ends
    successfully with nothing installed. The detected version is stored
    as the `nginx_version` context variable.
    """

    step_type = StepType.VERSION_CHECK
    mutating = False

    def __init__(self, name: str, nginx_service: NginxService, min_version: str,
                 section: str = ""):
        super().__init__(name, section)
        self.nginx_service = nginx_service
        self.min_version = min_version

    async def execute(self, context: StepContext, result: StepResult) -> None:
        version = await self.nginx_service.get_version()
        if not version:
            raise PreconditionError("Could not determine the nginx version")

        context.variables["nginx_version"] = version
        self.logger.info(f"Detected Nginx version: {version}")
        result.details["nginx_version"] = version

        if compare_versions(version, self.min_version) < 0:
            reason = (
                f"Nginx version {version} is older than {self.min_version}; "
                "dynamic modules are not supported"
            )
            self.logger.error(reason)
            context.request_stop(reason)
            result.mark_completed(reason)
            return

        result.mark_completed(f"Version check passed: {version} >= {self.min_version}")
