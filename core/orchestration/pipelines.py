"""Declarative step lists for the patch, sync and install workflows."""

import os
from pathlib import Path
from typing import List, Optional

from core.interfaces.command_interface import ICommandRunner
from core.interfaces.step_interface import IStep
from core.models.config import PatchMode, ProvisionConfig
from core.models.patch_directive import InsertionPoint, PatchDirective, Substitution
from core.services.nginx_service import NginxService
from core.services.rule_file_service import RuleFileService
from core.services.snapshot_service import SnapshotService
from core.services.text_patch_service import TextPatchService
from core.orchestration.steps import (
    CommandStep,
    CopyFileStep,
    EnsureDirectoryStep,
    OverwriteStep,
    PreconditionStep,
    RemovePathStep,
    Requirement,
    SnapshotStep,
    SyncStep,
    TextPatchStep,
    VerifyReloadStep,
    VersionCheckStep,
    WriteFileStep,
)
from infrastructure.storage.file_storage import FileStorage

UTF8_MARKER = "# UTF-8 Encoding Support"

UTF8_SECACTION = """
# UTF-8 Encoding Support
SecAction \\
 "id:900220,\\
 phase:1,\\
 pass,\\
 t:none,\\
 nolog,\\
 tag:'OWASP_CRS',\\
 ver:'OWASP_CRS/4.21.0-dev',\\
 setvar:'tx.allowed_request_content_type=|application/x-www-form-urlencoded| |multipart/form-data| |text/xml| |application/xml| |application/soap+xml| |application/json| |application/reports+json| |application/csp-report|',\\
 setvar:tx.crs_validate_utf8_encoding=1"
"""

MAIN_CONF_TEMPLATE = """# =============================================================================
# ModSecurity Main Configuration
# =============================================================================

# 1. Include the Base Configuration
Include {conf_dir}/modsecurity.conf

# 2. Include the OWASP CRS Setup
Include {conf_dir}/coreruleset/crs-setup.conf

# 3. Include the OWASP Rules
Include {conf_dir}/coreruleset/rules/*.conf
"""

NONINTERACTIVE = {"DEBIAN_FRONTEND": "noninteractive"}


class PipelineBuilder:
    """Turns a ProvisionConfig into ordered step lists."""

    def __init__(
        self,
        config: ProvisionConfig,
        file_storage: FileStorage,
        command_runner: ICommandRunner,
        snapshot_service: Optional[SnapshotService] = None,
        rule_file_service: Optional[RuleFileService] = None,
        text_patch_service: Optional[TextPatchService] = None,
        nginx_service: Optional[NginxService] = None,
    ):
        self.config = config
        self.file_storage = file_storage
        self.command_runner = command_runner
        self.snapshot_service = snapshot_service or SnapshotService(file_storage)
        self.rule_file_service = rule_file_service or RuleFileService(file_storage)
        self.text_patch_service = text_patch_service or TextPatchService(file_storage)
        self.nginx_service = nginx_service or NginxService(command_runner, config.nginx)

    def resolve_rules_dir(self) -> str:
        """Relative rules directories are taken from the invocation directory."""
        rules_dir = Path(self.config.patch.rules_dir)
        if not rules_dir.is_absolute():
            rules_dir = Path.cwd() / rules_dir
        return str(rules_dir)

    def _verify_steps(self) -> List[IStep]:
        if not self.config.verify_reload:
            return []
        return [
            VerifyReloadStep(
                "Verify configuration and reload nginx",
                self.nginx_service,
                section="VERIFY AND RELOAD",
            )
        ]

    def build_patch_pipeline(self, mode: Optional[PatchMode] = None) -> List[IStep]:
        """Preconditions, snapshot, overwrite or sync, then optional verify+reload."""
        mode = mode or self.config.patch.mode
        target_dir = self.config.patch.target_dir
        rules_dir = self.resolve_rules_dir()

        steps: List[IStep] = [
            PreconditionStep(
                "Check WAF config directory",
                Requirement.DIRECTORY,
                target_dir,
                error_message=f"ERROR: {target_dir} not found.",
                section="VALIDATION",
            ),
            PreconditionStep(
                "Check local rules directory",
                Requirement.DIRECTORY,
                rules_dir,
                error_message=f"ERROR: Local rules directory {rules_dir} not found.",
                section="VALIDATION",
            ),
            SnapshotStep(
                "Backup WAF config directory",
                target_dir,
                self.snapshot_service,
                section="BACKUP",
            ),
        ]

        if mode == PatchMode.SYNC:
            steps.append(SyncStep(
                "Sync local rules tree",
                rules_dir,
                target_dir,
                self.rule_file_service,
                section="UPDATE RULE FILES",
            ))
        else:
            steps.append(OverwriteStep(
                "Update selected rule files",
                rules_dir,
                target_dir,
                self.config.patch.managed_files,
                self.rule_file_service,
                section="UPDATE RULE FILES",
            ))

        return steps + self._verify_steps()

    def build_install_pipeline(self) -> List[IStep]:
        """ModSecurity library, nginx connector and CRS installation."""
        return (
            self._validation_steps()
            + self._libmodsecurity_steps()
            + self._connector_steps()
            + self._configuration_steps()
            + self._verify_steps()
        )

    def _validation_steps(self) -> List[IStep]:
        section = "1. VALIDATION"
        install = self.config.install
        steps: List[IStep] = []

        if install.require_root:
            steps.append(PreconditionStep(
                "Check root privileges", Requirement.ROOT,
                error_message="Please run as root", section=section,
            ))

        steps += [
            PreconditionStep(
                "Check Nginx installation",
                Requirement.BINARY,
                self.config.nginx.binary,
                command_runner=self.command_runner,
                error_message="Nginx could not be found. Please install Nginx first.",
                section=section,
            ),
            VersionCheckStep(
                "Check version compatibility",
                self.nginx_service,
                self.config.nginx.min_version,
                section=section,
            ),
            EnsureDirectoryStep(
                "Ensure module directory exists", install.module_path,
                self.file_storage, section=section,
            ),
        ]
        return steps

    def _libmodsecurity_steps(self) -> List[IStep]:
        section = "2. LIBMODSECURITY COMPILATION"
        install = self.config.install
        source = f"{install.source_dir}/ModSecurity"
        runner = self.command_runner
        steps: List[IStep] = []

        if install.conflicting_packages:
            packages = install.conflicting_packages
            steps.append(CommandStep(
                "Remove apt-installed libmodsecurity",
                ["apt-get", "remove", "-y", *packages],
                runner,
                env=NONINTERACTIVE,
                ignore_errors=True,
                only_if=["dpkg", "-s", packages[0]],
                then=[["apt-get", "purge", "-y", *packages], ["apt-get", "autoremove", "-y"]],
                section=section,
            ))

        steps += [
            CommandStep("Update package lists", ["apt-get", "update", "-qq"], runner,
                        env=NONINTERACTIVE, section=section),
            CommandStep("Install build dependencies",
                        ["apt-get", "install", "-y", "-qq", *install.build_packages],
                        runner, env=NONINTERACTIVE, section=section),
            EnsureDirectoryStep("Ensure source directory exists", install.source_dir,
                                self.file_storage, section=section),
            RemovePathStep("Remove previous ModSecurity source", source,
                           self.file_storage, section=section),
            CommandStep(
                "Clone ModSecurity repository",
                ["git", "clone", "--depth", "1", "-b", install.modsecurity_version,
                 install.modsecurity_repo, source],
                runner, cwd=install.source_dir, section=section,
            ),
            CommandStep("Initialize submodules", ["git", "submodule", "init"], runner,
                        cwd=source, then=[["git", "submodule", "update"]], section=section),
            CommandStep("Run build.sh", ["./build.sh"], runner, cwd=source, section=section),
            CommandStep("Configure ModSecurity", ["./configure"], runner, cwd=source,
                        section=section),
            CommandStep("Compile ModSecurity", ["make", f"-j{os.cpu_count() or 1}"], runner,
                        cwd=source, section=section),
            CommandStep("Install ModSecurity", ["make", "install"], runner, cwd=source,
                        section=section),
            CommandStep("Update library cache", ["ldconfig"], runner, section=section),
        ]
        return steps

    def _connector_steps(self) -> List[IStep]:
        section = "3. NGINX CONNECTOR COMPILATION"
        install = self.config.install
        runner = self.command_runner
        nginx_source = install.source_dir + "/nginx-{nginx_version}"
        tarball = nginx_source + ".tar.gz"
        connector = f"{install.source_dir}/ModSecurity-nginx"
        build_env = {
            "MODSECURITY_INC": f"{install.modsecurity_prefix}/include",
            "MODSECURITY_LIB": f"{install.modsecurity_prefix}/lib",
        }

        return [
            RemovePathStep("Remove previous Nginx tarball", tarball, self.file_storage,
                           section=section),
            RemovePathStep("Remove previous Nginx source", nginx_source, self.file_storage,
                           section=section),
            CommandStep(
                "Download Nginx source",
                ["wget", "-q", install.nginx_source_url.replace("{version}", "{nginx_version}"),
                 "-O", tarball],
                runner, cwd=install.source_dir, section=section,
            ),
            CommandStep("Extract Nginx source",
                        ["tar", "-zxf", tarball, "-C", install.source_dir],
                        runner, section=section),
            RemovePathStep("Remove previous connector source", connector, self.file_storage,
                           section=section),
            CommandStep(
                "Clone ModSecurity-nginx connector",
                ["git", "clone", "--depth", "1", install.connector_repo, connector],
                runner, cwd=install.source_dir, section=section,
            ),
            CommandStep(
                "Configure Nginx module (--with-compat)",
                ["./configure", "--with-compat", "--add-dynamic-module=../ModSecurity-nginx"],
                runner, cwd=nginx_source, env=build_env, section=section,
            ),
            CommandStep("Compile dynamic module", ["make", "modules"], runner,
                        cwd=nginx_source, env=build_env, section=section),
            CopyFileStep(
                "Install compiled module",
                f"{nginx_source}/objs/{install.so_filename}",
                f"{install.module_path}/{install.so_filename}",
                self.file_storage,
                section=section,
            ),
        ]

    def _configuration_steps(self) -> List[IStep]:
        section = "4. MODSECURITY & OWASP CORE RULE SET CONFIGURATION"
        install = self.config.install
        runner = self.command_runner
        conf_dir = install.modsec_conf_dir
        library_dir = f"{install.modsecurity_prefix}/lib"
        crs_dir = f"{conf_dir}/coreruleset"
        ld_conf_glob = str(Path(install.ld_conf_path).parent / "*.conf")

        nginx_directives = [
            PatchDirective(
                marker=install.so_filename,
                content=f"load_module {install.module_path}/{install.so_filename};",
                insertion_point=InsertionPoint.FILE_START,
            ),
            PatchDirective(
                marker="modsecurity on;",
                content=(
                    "    modsecurity on;\n"
                    f"    modsecurity_rules_file {conf_dir}/main.conf;"
                ),
                insertion_point=InsertionPoint.BLOCK_START,
                block_name="http",
            ),
        ]

        return [
            WriteFileStep(
                "Configure library path",
                install.ld_conf_path,
                f"{library_dir}\n",
                self.file_storage,
                unless_contains=(ld_conf_glob, library_dir),
                section=section,
            ),
            CommandStep("Refresh library cache", ["ldconfig"], runner, section=section),
            TextPatchStep(
                "Add ModSecurity directives to nginx.conf",
                self.config.nginx.conf_path,
                self.text_patch_service,
                directives=nginx_directives,
                optional=True,
                section=section,
            ),
            EnsureDirectoryStep("Create ModSecurity config directory", conf_dir,
                                self.file_storage, section=section),
            CommandStep(
                "Download recommended ModSecurity config",
                ["wget", "-q", install.recommended_conf_url, "-O", f"{conf_dir}/modsecurity.conf"],
                runner, section=section,
            ),
            CommandStep(
                "Download unicode.mapping",
                ["wget", "-q", install.unicode_mapping_url, "-O", f"{conf_dir}/unicode.mapping"],
                runner, section=section,
            ),
            TextPatchStep(
                "Enable SecRuleEngine",
                f"{conf_dir}/modsecurity.conf",
                self.text_patch_service,
                substitutions=[Substitution("SecRuleEngine DetectionOnly", "SecRuleEngine On")],
                section=section,
            ),
            RemovePathStep("Remove existing coreruleset directory", crs_dir,
                           self.file_storage, section=section),
            CommandStep(
                "Clone OWASP Core Rule Set",
                ["git", "clone", "-q", "--depth", "1", install.crs_repo, crs_dir],
                runner, section=section,
            ),
            CopyFileStep(
                "Create crs-setup.conf",
                f"{crs_dir}/crs-setup.conf.example",
                f"{crs_dir}/crs-setup.conf",
                self.file_storage,
                section=section,
            ),
            WriteFileStep(
                "Create main.conf",
                f"{conf_dir}/main.conf",
                MAIN_CONF_TEMPLATE.format(conf_dir=conf_dir),
                self.file_storage,
                section=section,
            ),
            TextPatchStep(
                "Add UTF-8 support configuration",
                f"{crs_dir}/crs-setup.conf",
                self.text_patch_service,
                directives=[PatchDirective(
                    marker=UTF8_MARKER,
                    content=UTF8_SECACTION,
                    insertion_point=InsertionPoint.FILE_END,
                )],
                section=section,
            ),
        ]
