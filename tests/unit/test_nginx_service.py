"""Unit tests for NginxService and version comparison."""

import asyncio

import pytest

from core.exceptions import CommandError
from core.models.config import NginxConfig
from core.services.nginx_service import NginxService, compare_versions

from conftest import FakeCommandRunner


class TestCompareVersions:

    @pytest.mark.parametrize("left,right,expected", [
        ("1.9.10", "1.9.11", -1),
        ("1.18.0", "1.9.11", 1),
        ("1.9.11", "1.9.11", 0),
        ("1.9.11", "1.9.11.0", 0),
        ("1.10", "1.9.11", 1),
        ("2", "1.99.99", 1),
    ])
    def test_numeric_component_ordering(self, left, right, expected):
        assert compare_versions(left, right) == expected


class TestNginxService:

    def test_version_parsed_from_stderr(self):
        runner = FakeCommandRunner(results={
            ("nginx", "-v"): (0, "", "nginx version: nginx/1.24.0 (Ubuntu)"),
        })
        service = NginxService(runner, NginxConfig())

        assert asyncio.run(service.get_version()) == "1.24.0"

    def test_unparseable_version_returns_none(self):
        runner = FakeCommandRunner(results={("nginx", "-v"): (0, "", "openresty")})
        service = NginxService(runner, NginxConfig())

        assert asyncio.run(service.get_version()) is None

    def test_config_test_failure_is_reported_not_raised(self):
        runner = FakeCommandRunner(results={
            ("nginx", "-t"): (1, "", "nginx: [emerg] unknown directive \"modsecurity\""),
        })
        service = NginxService(runner, NginxConfig())

        result = asyncio.run(service.test_config())

        assert not result.success
        assert "unknown directive" in result.output

    def test_reload_uses_configured_command(self):
        runner = FakeCommandRunner()
        config = NginxConfig(reload_command=["nginx", "-s", "reload"])

        asyncio.run(NginxService(runner, config).reload())

        assert runner.commands == [["nginx", "-s", "reload"]]

    def test_reload_failure_raises(self):
        runner = FakeCommandRunner(results={("systemctl",): (1, "", "Unit nginx.service not found.")})

        with pytest.raises(CommandError):
            asyncio.run(NginxService(runner, NginxConfig()).reload())

    def test_is_installed_checks_path(self):
        assert NginxService(FakeCommandRunner(binaries={"nginx": "/usr/sbin/nginx"}), NginxConfig()).is_installed()
        assert not NginxService(FakeCommandRunner(), NginxConfig()).is_installed()
