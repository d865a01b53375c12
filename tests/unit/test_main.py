"""Command line entry point tests."""

import asyncio

import pytest
import yaml

import main


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    """Keep the CLI from reconfiguring the root logger during tests."""
    calls = []
    monkeypatch.setattr(main, "setup_logging", lambda *args, **kwargs: calls.append((args, kwargs)))
    return calls


@pytest.fixture
def config_file(tmp_path, waf_layout):
    target, rules = waf_layout

    def write(**overrides):
        raw = {
            "patch": {"target_dir": str(target), "rules_dir": str(rules)},
            "logging": {"level": "DEBUG", "file": None},
        }
        raw.update(overrides)
        path = tmp_path / "provision.yml"
        path.write_text(yaml.safe_dump(raw))
        return str(path)

    return write


class TestParseArguments:

    def test_action_is_required(self):
        with pytest.raises(SystemExit):
            main.parse_arguments([])

    def test_actions_are_exclusive(self):
        with pytest.raises(SystemExit):
            main.parse_arguments(["--patch", "--sync"])

    def test_verify_reload_defaults_to_config(self):
        assert main.parse_arguments(["--patch"]).verify_reload is None
        assert main.parse_arguments(["--patch", "--verify-reload"]).verify_reload is True
        assert main.parse_arguments(["--sync", "--no-verify-reload"]).verify_reload is False


class TestMain:

    def test_patch_succeeds(self, config_file, waf_layout, no_logging_setup):
        target, rules = waf_layout
        (rules / "modsecurity.conf").write_text("SecRuleEngine DetectionOnly\n")

        assert asyncio.run(main.main(["--patch", "--config", config_file()])) == 0
        assert (target / "modsecurity.conf").read_text() == "SecRuleEngine DetectionOnly\n"
        assert no_logging_setup[-1][1]["level"] == "DEBUG"
        assert no_logging_setup[-1][1]["log_file"] is None

    def test_sync_succeeds(self, config_file, waf_layout):
        target, rules = waf_layout
        (rules / "extra").mkdir()
        (rules / "extra" / "local.conf").write_text("# local\n")

        assert asyncio.run(main.main(["--sync", "--config", config_file()])) == 0
        assert (target / "extra" / "local.conf").exists()

    def test_missing_target_exits_nonzero(self, config_file, tmp_path, waf_layout):
        _, rules = waf_layout
        path = config_file(patch={"target_dir": str(tmp_path / "nope"), "rules_dir": str(rules)})

        assert asyncio.run(main.main(["--patch", "--config", path])) == 1
        assert list(tmp_path.glob("nope-backup-*")) == []

    def test_missing_config_file_is_reported(self, tmp_path, capsys):
        code = asyncio.run(main.main(["--patch", "--config", str(tmp_path / "absent.yml")]))

        assert code == 1
        assert "[!] ERROR" in capsys.readouterr().err

    def test_list_backups(self, config_file, waf_layout, capsys):
        target, _ = waf_layout
        path = config_file()

        assert asyncio.run(main.main(["--list-backups", "--config", path])) == 0
        assert "No backups found." in capsys.readouterr().out

        asyncio.run(main.main(["--patch", "--config", path]))
        capsys.readouterr()
        asyncio.run(main.main(["--list-backups", "--config", path]))
        assert f"{target.name}-backup-" in capsys.readouterr().out

    def test_cli_flag_overrides_config(self, config_file):
        path = config_file(verify_reload=False)

        orchestrator = asyncio.run(main.build_orchestrator(path, verify_reload=True))

        assert orchestrator.config.verify_reload is True

    def test_logging_is_ready_before_config_loads(self, config_file, no_logging_setup, monkeypatch):
        path = config_file(install={"unknown_setting": 1})
        seen = []
        original = main.ConfigService.load_config

        async def load_config(service, config_path=None):
            seen.append(len(no_logging_setup))
            return await original(service, config_path)

        monkeypatch.setattr(main.ConfigService, "load_config", load_config)
        asyncio.run(main.build_orchestrator(path))

        assert seen == [1]
        assert no_logging_setup[0] == ((False,), {})
        assert len(no_logging_setup) == 2


class TestCli:

    def test_ctrl_c_exits_cleanly(self, monkeypatch, capsys):
        def interrupted(coroutine):
            coroutine.close()
            raise KeyboardInterrupt

        monkeypatch.setattr(main.asyncio, "run", interrupted)

        with pytest.raises(SystemExit) as exc_info:
            main.cli()

        assert exc_info.value.code == 1
        assert "Operation cancelled by user" in capsys.readouterr().out

    def test_exit_code_comes_from_main(self, monkeypatch):
        async def fake_main(argv=None):
            return 0

        monkeypatch.setattr(main, "main", fake_main)

        with pytest.raises(SystemExit) as exc_info:
            main.cli()

        assert exc_info.value.code == 0
