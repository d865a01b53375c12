"""Configuration service implementation."""

import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import asdict

from core.exceptions import ConfigurationError
from core.interfaces.config_interface import IConfigService
from core.models.config import (
    ProvisionConfig,
    PatchConfig,
    InstallConfig,
    NginxConfig,
    LoggingConfig,
    LogLevel,
    PatchMode,
)

DEFAULT_CONFIG_PATH = "config/default.yml"


class ConfigService(IConfigService):
    """Implementation of configuration service."""

    def __init__(self, config_file_path: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        self._config_file_path = config_file_path
        self._config: Optional[ProvisionConfig] = None
        self._environment_overrides: Dict[str, Any] = {}

        if config_file_path:
            self._load_config_sync(config_file_path)

    def _handle_error(self, operation: str, error: Exception) -> None:
        """Centralized error handling and logging."""
        self.logger.error(f"Error {operation}: {str(error)}")
        if isinstance(error, ConfigurationError):
            raise error
        raise ConfigurationError([str(error)]) from error

    async def load_config(self, config_path: Optional[str] = None) -> ProvisionConfig:
        """Load configuration from default or specified path.

        A missing default file means built-in defaults; a missing explicit
        file is an error.
        """
        if config_path is None:
            if not Path(DEFAULT_CONFIG_PATH).exists():
                self.logger.info(
                    f"{DEFAULT_CONFIG_PATH} not found, using built-in defaults"
                )
                return self.load_from_dict({})
            config_path = DEFAULT_CONFIG_PATH

        return self._load_config_sync(config_path)

    def _load_config_sync(self, config_file_path: str) -> ProvisionConfig:
        """Synchronous implementation of config loading."""
        try:
            config_path = Path(config_file_path)

            if not config_path.exists():
                raise FileNotFoundError(
                    f"Configuration file not found: {config_file_path}"
                )

            with open(config_path, "r", encoding="utf-8") as file:
                raw_config = yaml.safe_load(file)

            if raw_config is None:
                raw_config = {}
            if not isinstance(raw_config, dict):
                raise ValueError("Configuration file must contain a mapping")

            config = self.load_from_dict(raw_config)
            self._config_file_path = config_file_path
            return config

        except Exception as e:
            self._handle_error("loading configuration", e)

    def load_from_dict(self, raw_config: Dict[str, Any]) -> ProvisionConfig:
        """Parse, override and validate a raw configuration mapping."""
        self._apply_environment_overrides(raw_config)
        config = self._parse_config(raw_config)

        errors = config.validate()
        if errors:
            raise ConfigurationError(errors)

        self._config = config
        return config

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get a configuration setting by key path (e.g., 'patch.target_dir')."""
        if not self._config:
            return default

        value = asdict(self._config)
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def get_config(self) -> Optional[ProvisionConfig]:
        """Get the complete configuration."""
        return self._config

    def set_environment_override(self, key: str, value: Any) -> None:
        """Set an override applied on the next load."""
        self._environment_overrides[key] = value

    def _parse_config(self, raw_config: Dict[str, Any]) -> ProvisionConfig:
        """Parse raw configuration into ProvisionConfig object."""
        try:
            return ProvisionConfig(
                name=raw_config.get("name", "ModSecurity Provisioning"),
                nginx=self._parse_nginx_config(raw_config.get("nginx") or {}),
                patch=self._parse_patch_config(raw_config.get("patch") or {}),
                install=self._parse_install_config(raw_config.get("install") or {}),
                logging=self._parse_logging_config(raw_config.get("logging") or {}),
                verify_reload=self._parse_bool(raw_config.get("verify_reload", False)),
                command_timeout_seconds=raw_config.get("command_timeout_seconds"),
            )
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError([f"Error parsing configuration: {str(e)}"]) from e

    def _parse_nginx_config(self, data: Dict[str, Any]) -> NginxConfig:
        defaults = NginxConfig()
        return NginxConfig(
            binary=data.get("binary", defaults.binary),
            conf_path=data.get("conf_path", defaults.conf_path),
            test_command=self._parse_command(data.get("test_command"), defaults.test_command),
            reload_command=self._parse_command(data.get("reload_command"), defaults.reload_command),
            min_version=str(data.get("min_version", defaults.min_version)),
        )

    def _parse_patch_config(self, data: Dict[str, Any]) -> PatchConfig:
        defaults = PatchConfig()
        mode = data.get("mode", defaults.mode.value)
        try:
            patch_mode = PatchMode(str(mode).lower())
        except ValueError:
            raise ConfigurationError([f"Unknown patch mode: {mode}"])

        return PatchConfig(
            target_dir=data.get("target_dir", defaults.target_dir),
            rules_dir=data.get("rules_dir", defaults.rules_dir),
            managed_files=list(data.get("managed_files", defaults.managed_files)),
            mode=patch_mode,
        )

    def _parse_install_config(self, data: Dict[str, Any]) -> InstallConfig:
        defaults = asdict(InstallConfig())
        unknown = sorted(set(data) - set(defaults))
        if unknown:
            self.logger.warning(f"Ignoring unknown install settings: {', '.join(unknown)}")
        return InstallConfig(**{k: data.get(k, v) for k, v in defaults.items()})

    def _parse_logging_config(self, data: Dict[str, Any]) -> LoggingConfig:
        return LoggingConfig(
            level=self._parse_log_level(data.get("level", "INFO")),
            file=data.get("file", "provision.log"),
        )

    def _parse_command(self, value: Any, default: List[str]) -> List[str]:
        """Accept either an argv list or a whitespace separated string."""
        if value is None:
            return list(default)
        if isinstance(value, str):
            return value.split()
        return [str(part) for part in value]

    def _parse_log_level(self, log_level_str: str) -> LogLevel:
        """Parse log level string into LogLevel enum."""
        try:
            return LogLevel[log_level_str.upper()]
        except (KeyError, AttributeError):
            return LogLevel.INFO

    def _parse_bool(self, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in ["true", "yes", "1", "on"]
        return bool(value)

    def _apply_environment_overrides(self, config: Dict[str, Any]) -> None:
        """Apply environment variables, then explicit overrides, to configuration."""
        env_mappings = {
            "MODSEC_TARGET_DIR": "patch.target_dir",
            "MODSEC_RULES_DIR": "patch.rules_dir",
            "MODSEC_VERIFY_RELOAD": "verify_reload",
            "MODSEC_LOG_LEVEL": "logging.level",
            "MODSEC_VERSION": "install.modsecurity_version",
        }

        for env_var, config_key in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                if env_value.lower() in ["true", "false"]:
                    env_value = env_value.lower() == "true"

                self._set_nested_value(config, config_key, env_value)

        for key, value in self._environment_overrides.items():
            self._set_nested_value(config, key, value)

    def _set_nested_value(
        self, config: Dict[str, Any], key_path: str, value: Any
    ) -> None:
        """Set a nested value in configuration dictionary."""
        keys = key_path.split(".")
        current = config

        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value
