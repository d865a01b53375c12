import logging
from typing import List, Optional

from core.exceptions import RollbackError, StepError, VerificationError
from core.interfaces.command_interface import ICommandRunner
from core.interfaces.step_interface import IStep
from core.interfaces.workflow_interface import IWorkflowOrchestrator
from core.models.config import PatchMode, ProvisionConfig
from core.models.context import StepContext
from core.models.step import StepResult, StepStatus, StepType
from core.models.workflow import WorkflowResult
from core.orchestration.pipelines import PipelineBuilder
from infrastructure.storage.file_storage import FileStorage


class WorkflowOrchestrator(IWorkflowOrchestrator):
    """Runs provisioning pipelines one step at a time.

    Steps run strictly in order and the first failure ends the run. A
    VerificationError restores the snapshot taken earlier in the same run.
    Only one orchestrator may touch a given target directory at a time;
    nothing here locks it.
    """

    def __init__(
        self,
        config: ProvisionConfig,
        file_storage: FileStorage,
        command_runner: ICommandRunner,
        pipeline_builder: Optional[PipelineBuilder] = None,
    ):
        self.config = config
        self.file_storage = file_storage
        self.command_runner = command_runner
        self.pipeline_builder = pipeline_builder or PipelineBuilder(
            config, file_storage, command_runner
        )
        self.snapshot_service = self.pipeline_builder.snapshot_service
        self.logger = logging.getLogger(__name__)

    def _handle_error(self, message: str, error: Exception) -> str:
        """Centralized error handling."""
        error_msg = f"{message}: {str(error)}"
        self.logger.error(error_msg)
        return error_msg

    def _log_section(self, title: str) -> None:
        self.logger.info("=" * 60)
        self.logger.info(f"  {title}")
        self.logger.info("=" * 60)

    def _log_step_outcome(self, step_result: StepResult) -> None:
        if step_result.status == StepStatus.SKIPPED:
            self.logger.warning(f"  - Skipped {step_result.name}: {step_result.message}")
        else:
            self.logger.info(f"  ✔ {step_result.message or step_result.name}")

    async def run_steps(
        self,
        name: str,
        steps: List[IStep],
        context: Optional[StepContext] = None,
    ) -> WorkflowResult:
        """Run steps in order, stopping at the first failure."""
        context = context or StepContext(config=self.config)
        workflow_result = WorkflowResult(workflow_name=name)
        workflow_result.mark_started()
        self.logger.info(f"Starting workflow: {name} ({len(steps)} steps)")

        # Pipelines that take a snapshot may not mutate anything before it
        snapshot_first = any(step.step_type == StepType.SNAPSHOT for step in steps)

        current_section = None
        for step in steps:
            if step.section and step.section != current_section:
                current_section = step.section
                self._log_section(current_section)

            step_result = StepResult(name=step.name, step_type=step.step_type)
            workflow_result.add_step_result(step_result)
            step_result.mark_started()
            self.logger.info(f"  ➜ {step.name}...")

            try:
                if snapshot_first and step.mutating and context.snapshot is None:
                    raise StepError(f"{step.name} would modify the target before it is backed up")
                await step.execute(context, step_result)
            except VerificationError as e:
                step_result.mark_failed(str(e))
                if e.output:
                    self.logger.error(e.output)
                await self._rollback(workflow_result, context, f"{step.name}: {str(e)}")
                return workflow_result
            except Exception as e:
                step_result.mark_failed(str(e))
                self._sync_snapshot(workflow_result, context)
                workflow_result.mark_failed(self._handle_error(step.name, e))
                self._log_failure_hint(workflow_result)
                return workflow_result

            if step_result.status == StepStatus.RUNNING:
                step_result.mark_completed()
            self._sync_snapshot(workflow_result, context)
            self._log_step_outcome(step_result)

            if context.stop_requested:
                workflow_result.stopped_early = True
                workflow_result.stop_reason = context.stop_reason
                self.logger.warning(f"Stopping workflow early: {context.stop_reason}")
                break

        workflow_result.mark_completed()
        self.logger.info(f"Workflow completed: {name}")
        if workflow_result.snapshot_path:
            self.logger.info(f"Backup available at: {workflow_result.snapshot_path}")
        return workflow_result

    def _sync_snapshot(self, workflow_result: WorkflowResult, context: StepContext) -> None:
        if context.snapshot is not None:
            workflow_result.snapshot_path = context.snapshot.snapshot_path

    def _log_failure_hint(self, workflow_result: WorkflowResult) -> None:
        if workflow_result.snapshot_path:
            self.logger.error(
                f"Changes may be partially applied. Backup available at: "
                f"{workflow_result.snapshot_path}"
            )
        else:
            self.logger.error("No changes were made.")

    async def _rollback(
        self, workflow_result: WorkflowResult, context: StepContext, error: str
    ) -> None:
        """Restore the run's snapshot after a failed verification."""
        self.logger.error(error)
        snapshot = context.snapshot
        if snapshot is None:
            workflow_result.mark_failed(f"{error}; no snapshot was taken, nothing restored")
            return

        workflow_result.snapshot_path = snapshot.snapshot_path
        try:
            self.snapshot_service.restore_snapshot(snapshot.snapshot_path, snapshot.source_path)
        except RollbackError as e:
            workflow_result.mark_failed(f"{error}; {self._handle_error('Rollback failed', e)}")
            return

        workflow_result.mark_rolled_back(error)
        self.logger.error(
            f"Rolled back {snapshot.source_path} from {snapshot.snapshot_path}"
        )

    async def run_patch_workflow(self, mode: Optional[PatchMode] = None) -> WorkflowResult:
        """Snapshot the WAF directory and write local rule files into it."""
        mode = mode or self.config.patch.mode
        steps = self.pipeline_builder.build_patch_pipeline(mode)
        name = "ModSecurity rule sync" if mode == PatchMode.SYNC else "ModSecurity rule patch"

        result = await self.run_steps(name, steps)
        if result.is_successful and not self.config.verify_reload:
            self._log_next_steps()
        return result

    async def run_install_workflow(self) -> WorkflowResult:
        """Build and install ModSecurity, the nginx connector and the CRS."""
        steps = self.pipeline_builder.build_install_pipeline()
        result = await self.run_steps("NGINX MODSECURITY3 INSTALLATION", steps)

        if result.is_successful and not result.stopped_early:
            install = self.config.install
            self._log_section("INSTALLATION COMPLETE")
            self.logger.info(f"ModSecurity Version : {install.modsecurity_version}")
            version_step = result.get_step_result("Check version compatibility")
            if version_step:
                self.logger.info(f"Nginx Version       : {version_step.details.get('nginx_version')}")
            self.logger.info(f"Module Path         : {install.module_path}/{install.so_filename}")
            self.logger.info(f"Config Directory    : {install.modsec_conf_dir}")
            if not self.config.verify_reload:
                self._log_next_steps()
        return result

    def list_snapshots(self) -> List[str]:
        """Existing backups of the patch target, oldest first."""
        return self.snapshot_service.list_snapshots(self.config.patch.target_dir)

    def _log_next_steps(self) -> None:
        self.logger.info("Next steps:")
        self.logger.info(f"  sudo {' '.join(self.config.nginx.test_command)}")
        self.logger.info(f"  sudo {' '.join(self.config.nginx.reload_command)}")
