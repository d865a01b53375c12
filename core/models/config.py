from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class LogLevel(Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class PatchMode(Enum):
    """How local rule files are written into the target directory."""
    SELECTIVE = "selective"
    SYNC = "sync"


DEFAULT_MANAGED_FILES = [
    "main.conf",
    "modsecurity.conf",
    "sec_actions.conf",
    "sec_base_modsecurity_disable.conf",
    "sec_rule_removal.conf",
]

DEFAULT_BUILD_PACKAGES = [
    "git", "build-essential", "libpcre3", "libpcre3-dev", "libssl-dev",
    "zlib1g-dev", "libtool", "autoconf", "automake", "pkg-config",
    "libcurl4-openssl-dev", "libgeoip-dev", "liblmdb-dev", "libxml2-dev",
    "libyajl-dev", "wget",
]


@dataclass
class NginxConfig:
    """Host nginx binary, main config file and control commands."""
    binary: str = "nginx"
    conf_path: str = "/etc/nginx/nginx.conf"
    test_command: List[str] = field(default_factory=lambda: ["nginx", "-t"])
    reload_command: List[str] = field(
        default_factory=lambda: ["systemctl", "reload", "nginx"]
    )
    min_version: str = "1.9.11"


@dataclass
class PatchConfig:
    """Rule patch settings."""
    target_dir: str = "/etc/nginx/modsec"
    rules_dir: str = "rules"
    managed_files: List[str] = field(default_factory=lambda: list(DEFAULT_MANAGED_FILES))
    mode: PatchMode = PatchMode.SELECTIVE


@dataclass
class InstallConfig:
    """ModSecurity, connector and CRS installation settings."""
    modsecurity_version: str = "v3.0.12"
    module_path: str = "/etc/nginx/modules"
    so_filename: str = "ngx_http_modsecurity_module.so"
    modsec_conf_dir: str = "/etc/nginx/modsec"
    source_dir: str = "/usr/local/src"
    modsecurity_prefix: str = "/usr/local/modsecurity"
    ld_conf_path: str = "/etc/ld.so.conf.d/modsecurity.conf"
    modsecurity_repo: str = "https://github.com/owasp-modsecurity/ModSecurity.git"
    connector_repo: str = "https://github.com/owasp-modsecurity/ModSecurity-nginx.git"
    crs_repo: str = "https://github.com/coreruleset/coreruleset"
    nginx_source_url: str = "http://nginx.org/download/nginx-{version}.tar.gz"
    recommended_conf_url: str = (
        "https://raw.githubusercontent.com/SpiderLabs/ModSecurity/v3/master/"
        "modsecurity.conf-recommended"
    )
    unicode_mapping_url: str = (
        "https://raw.githubusercontent.com/SpiderLabs/ModSecurity/v3/master/"
        "unicode.mapping"
    )
    build_packages: List[str] = field(default_factory=lambda: list(DEFAULT_BUILD_PACKAGES))
    conflicting_packages: List[str] = field(
        default_factory=lambda: ["libmodsecurity3", "libmodsecurity-dev"]
    )
    require_root: bool = True


@dataclass
class LoggingConfig:
    """Logging output settings."""
    level: LogLevel = LogLevel.INFO
    file: Optional[str] = "provision.log"


@dataclass
class ProvisionConfig:
    """Top level provisioner configuration."""

    name: str = "ModSecurity Provisioning"

    nginx: NginxConfig = field(default_factory=NginxConfig)
    patch: PatchConfig = field(default_factory=PatchConfig)
    install: InstallConfig = field(default_factory=InstallConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Gate the reload on `nginx -t` and roll back when it fails
    verify_reload: bool = False
    command_timeout_seconds: Optional[int] = None

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.patch.target_dir:
            errors.append("patch.target_dir must be set")

        if not self.patch.rules_dir:
            errors.append("patch.rules_dir must be set")

        if not self.patch.managed_files and self.patch.mode == PatchMode.SELECTIVE:
            errors.append("patch.managed_files must list at least one file")

        for name in self.patch.managed_files:
            if "/" in name or name in (".", ".."):
                errors.append(f"Managed file must be a plain file name: {name}")

        if not self.nginx.test_command:
            errors.append("nginx.test_command must not be empty")

        if not self.nginx.reload_command:
            errors.append("nginx.reload_command must not be empty")

        if self.command_timeout_seconds is not None and self.command_timeout_seconds <= 0:
            errors.append("command_timeout_seconds must be positive")

        return errors
