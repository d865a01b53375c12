"""Install pipeline with a fake command runner that simulates the toolchain."""

import asyncio
from pathlib import Path

import pytest

from core.models.config import ProvisionConfig
from core.models.step import StepStatus
from core.orchestration.pipelines import UTF8_MARKER
from core.orchestration.workflow_orchestrator import WorkflowOrchestrator
from infrastructure.storage.file_storage import FileStorage

from conftest import FakeCommandRunner

NGINX_CONF = "user www-data;\nevents {\n}\nhttp {\n    sendfile on;\n}\n"


def _write_output_of_wget(command, cwd):
    target = Path(command[command.index("-O") + 1])
    if target.name == "modsecurity.conf":
        target.write_text("SecRuleEngine DetectionOnly\nSecRequestBodyAccess On\n")
    else:
        target.write_text("downloaded\n")


def _extract_tarball(command, cwd):
    source_dir = Path(command[command.index("-C") + 1])
    name = Path(command[2]).name.replace(".tar.gz", "")
    (source_dir / name).mkdir()


def _clone(command, cwd):
    destination = Path(command[-1])
    destination.mkdir(parents=True)
    if destination.name == "coreruleset":
        (destination / "crs-setup.conf.example").write_text(
            "# SecAction \\\n#  \"id:900220,\\\n"
        )


def _build_module(command, cwd):
    objs = Path(cwd) / "objs"
    objs.mkdir()
    (objs / "ngx_http_modsecurity_module.so").write_bytes(b"\x7fELF")


def toolchain(version="1.24.0"):
    return FakeCommandRunner(
        binaries={"nginx": "/usr/sbin/nginx"},
        results={
            ("nginx", "-v"): (0, "", f"nginx version: nginx/{version}"),
            ("dpkg", "-s"): (1, "", "package 'libmodsecurity3' is not installed"),
        },
        side_effects={
            ("wget",): _write_output_of_wget,
            ("tar",): _extract_tarball,
            ("git", "clone"): _clone,
            ("make", "modules"): _build_module,
        },
    )


@pytest.fixture
def install_config(tmp_path):
    config = ProvisionConfig()
    install = config.install
    install.require_root = False
    install.module_path = str(tmp_path / "etc" / "nginx" / "modules")
    install.modsec_conf_dir = str(tmp_path / "etc" / "nginx" / "modsec")
    install.source_dir = str(tmp_path / "usr" / "local" / "src")
    install.modsecurity_prefix = str(tmp_path / "usr" / "local" / "modsecurity")
    install.ld_conf_path = str(tmp_path / "etc" / "ld.so.conf.d" / "modsecurity.conf")
    config.nginx.conf_path = str(tmp_path / "etc" / "nginx" / "nginx.conf")
    Path(config.nginx.conf_path).parent.mkdir(parents=True)
    Path(config.nginx.conf_path).write_text(NGINX_CONF)
    return config


class TestInstallWorkflow:

    def test_full_install(self, install_config):
        runner = toolchain()
        orchestrator = WorkflowOrchestrator(install_config, FileStorage(), runner)

        result = asyncio.run(orchestrator.run_install_workflow())

        assert result.is_successful, result.errors
        install = install_config.install
        conf_dir = Path(install.modsec_conf_dir)

        assert (Path(install.module_path) / install.so_filename).read_bytes() == b"\x7fELF"

        nginx_conf = Path(install_config.nginx.conf_path).read_text().splitlines()
        assert nginx_conf[0] == f"load_module {install.module_path}/{install.so_filename};"
        http = nginx_conf.index("http {")
        assert nginx_conf[http + 1] == "    modsecurity on;"
        assert nginx_conf[http + 2] == f"    modsecurity_rules_file {conf_dir}/main.conf;"

        assert "SecRuleEngine On" in (conf_dir / "modsecurity.conf").read_text()
        assert "DetectionOnly" not in (conf_dir / "modsecurity.conf").read_text()
        assert f"Include {conf_dir}/coreruleset/rules/*.conf" in (conf_dir / "main.conf").read_text()

        crs_setup = (conf_dir / "coreruleset" / "crs-setup.conf").read_text()
        assert crs_setup.startswith("# SecAction")
        assert UTF8_MARKER in crs_setup
        assert "setvar:tx.crs_validate_utf8_encoding=1" in crs_setup

        assert Path(install.ld_conf_path).read_text() == f"{install.modsecurity_prefix}/lib\n"

        clone = next(c for c in runner.commands if c[:2] == ["git", "clone"])
        assert clone[:6] == ["git", "clone", "--depth", "1", "-b", "v3.0.12"]
        wget_nginx = next(c for c in runner.commands if c[0] == "wget")
        assert wget_nginx[2] == "http://nginx.org/download/nginx-1.24.0.tar.gz"

        conflicts = result.get_step_result("Remove apt-installed libmodsecurity")
        assert conflicts.status == StepStatus.SKIPPED
        assert not any(c[:2] == ["apt-get", "remove"] for c in runner.commands)

    def test_connector_build_gets_modsecurity_paths(self, install_config):
        runner = toolchain()
        orchestrator = WorkflowOrchestrator(install_config, FileStorage(), runner)

        asyncio.run(orchestrator.run_install_workflow())

        configure = next(call for call in runner.calls if call[0][:2] == ["./configure", "--with-compat"])
        _, cwd, env = configure
        assert cwd.endswith("nginx-1.24.0")
        assert env["MODSECURITY_INC"] == f"{install_config.install.modsecurity_prefix}/include"

    def test_second_run_does_not_duplicate_edits(self, install_config):
        orchestrator = WorkflowOrchestrator(install_config, FileStorage(), toolchain())
        asyncio.run(orchestrator.run_install_workflow())
        nginx_conf_once = Path(install_config.nginx.conf_path).read_text()

        # Sources left behind by the first run are removed and fetched again
        second = WorkflowOrchestrator(install_config, FileStorage(), toolchain())
        result = asyncio.run(second.run_install_workflow())

        assert result.is_successful, result.errors
        assert Path(install_config.nginx.conf_path).read_text() == nginx_conf_once
        ld_step = result.get_step_result("Configure library path")
        assert ld_step.status == StepStatus.SKIPPED

    def test_old_nginx_stops_early_and_succeeds(self, install_config):
        runner = toolchain(version="1.9.10")
        orchestrator = WorkflowOrchestrator(install_config, FileStorage(), runner)

        result = asyncio.run(orchestrator.run_install_workflow())

        assert result.is_successful
        assert result.stopped_early
        assert "1.9.10" in result.stop_reason
        assert runner.commands == [["nginx", "-v"]]
        assert Path(install_config.nginx.conf_path).read_text() == NGINX_CONF

    def test_missing_nginx_binary_fails(self, install_config):
        runner = FakeCommandRunner()
        orchestrator = WorkflowOrchestrator(install_config, FileStorage(), runner)

        result = asyncio.run(orchestrator.run_install_workflow())

        assert result.is_failed
        assert "Nginx could not be found" in result.errors[0]
        assert runner.calls == []

    def test_missing_nginx_conf_is_skipped(self, install_config):
        Path(install_config.nginx.conf_path).unlink()
        orchestrator = WorkflowOrchestrator(install_config, FileStorage(), toolchain())

        result = asyncio.run(orchestrator.run_install_workflow())

        assert result.is_successful, result.errors
        step = result.get_step_result("Add ModSecurity directives to nginx.conf")
        assert step.status == StepStatus.SKIPPED

    def test_compile_failure_stops_pipeline(self, install_config):
        runner = toolchain()
        runner.results[("./build.sh",)] = (2, "", "autogen failed")
        orchestrator = WorkflowOrchestrator(install_config, FileStorage(), runner)

        result = asyncio.run(orchestrator.run_install_workflow())

        assert result.is_failed
        assert result.step_results[-1].name == "Run build.sh"
        assert ["./configure"] not in runner.commands
        assert "autogen failed" in result.errors[0]
