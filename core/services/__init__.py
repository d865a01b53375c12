"""Core services for the provisioner."""

from .config_service import ConfigService
from .snapshot_service import SnapshotService
from .rule_file_service import RuleFileService
from .text_patch_service import TextPatchService
from .nginx_service import NginxService

__all__ = [
    'ConfigService',
    'SnapshotService',
    'RuleFileService',
    'TextPatchService',
    'NginxService',
]
