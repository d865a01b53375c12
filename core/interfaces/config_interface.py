"""Configuration service interface."""

from abc import ABC, abstractmethod
from typing import Any, Optional
from core.models.config import ProvisionConfig


class IConfigService(ABC):
    """Interface for configuration management."""

    @abstractmethod
    async def load_config(self, config_path: Optional[str] = None) -> ProvisionConfig:
        """Load configuration from file.

        Args:
            config_path: Path to the configuration file

        Returns:
            ProvisionConfig object

        Raises:
            ConfigurationError: If config is invalid
        """
        pass

    @abstractmethod
    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get a configuration setting by key.

        Args:
            key: Setting key (supports dot notation)
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        pass

    @abstractmethod
    def get_config(self) -> Optional[ProvisionConfig]:
        """Get the loaded configuration."""
        pass

    @abstractmethod
    def set_environment_override(self, key: str, value: Any) -> None:
        """Override a dotted configuration key before parsing."""
        pass
