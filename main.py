#!/usr/bin/env python3
"""
ModSecurity Provisioner - Main Entry Point

Installs ModSecurity v3 into an existing nginx host and patches the WAF
configuration directory from a local rules folder.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from core.exceptions import ConfigurationError
from core.models.config import PatchMode
from core.orchestration.workflow_orchestrator import WorkflowOrchestrator
from core.services.config_service import ConfigService
from core.utils.logger import setup_logging
from infrastructure.shell.command_runner import CommandRunner
from infrastructure.storage.file_storage import FileStorage


async def build_orchestrator(
    config_path: Optional[str] = None,
    verify_reload: Optional[bool] = None,
    verbose: bool = False,
) -> WorkflowOrchestrator:
    """Load configuration, configure logging and wire the services."""
    # Console logging while the config (and its warnings) load
    setup_logging(verbose)

    config_service = ConfigService()
    if verify_reload is not None:
        config_service.set_environment_override("verify_reload", verify_reload)

    config = await config_service.load_config(config_path)
    setup_logging(verbose, level=config.logging.level.value, log_file=config.logging.file)

    return WorkflowOrchestrator(
        config=config,
        file_storage=FileStorage(),
        command_runner=CommandRunner(timeout_seconds=config.command_timeout_seconds),
    )


async def run_patch(
    mode: Optional[PatchMode],
    config_path: Optional[str] = None,
    verify_reload: Optional[bool] = None,
    verbose: bool = False,
) -> bool:
    """Run the rule patch (selective) or rule sync workflow."""
    orchestrator = await build_orchestrator(config_path, verify_reload, verbose)
    logger = logging.getLogger(__name__)
    logger.info("Starting ModSecurity rule patch...")

    result = await orchestrator.run_patch_workflow(mode)
    if not result.is_successful:
        for error in result.errors:
            logger.error(f"Error: {error}")
        return False

    logger.info("Patch completed.")
    return True


async def run_install(
    config_path: Optional[str] = None,
    verify_reload: Optional[bool] = None,
    verbose: bool = False,
) -> bool:
    """Run the ModSecurity installation workflow."""
    orchestrator = await build_orchestrator(config_path, verify_reload, verbose)
    logger = logging.getLogger(__name__)

    result = await orchestrator.run_install_workflow()
    if not result.is_successful:
        for error in result.errors:
            logger.error(f"Error: {error}")
        return False

    logger.info(f"Duration: {result.duration}")
    return True


async def run_list_backups(config_path: Optional[str] = None, verbose: bool = False) -> bool:
    """Print existing backups of the WAF config directory."""
    orchestrator = await build_orchestrator(config_path, verbose=verbose)
    snapshots = orchestrator.list_snapshots()
    if not snapshots:
        print("No backups found.")
    for path in snapshots:
        print(path)
    return True


def parse_arguments(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='ModSecurity Provisioner - install and patch the nginx WAF',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Overwrite the selected rule files from ./rules
  python main.py --patch

  # Mirror the whole ./rules tree into the WAF directory
  python main.py --sync

  # Test the config, reload nginx and roll back on failure
  python main.py --patch --verify-reload

  # Compile and install ModSecurity, the connector and the CRS
  sudo python main.py --install
        """
    )

    # Main action groups
    action_group = parser.add_mutually_exclusive_group(required=True)
    action_group.add_argument(
        '--patch',
        action='store_true',
        help='Overwrite the managed rule files from the local rules directory'
    )
    action_group.add_argument(
        '--sync',
        action='store_true',
        help='Copy the entire local rules tree into the WAF directory (never deletes)'
    )
    action_group.add_argument(
        '--install',
        action='store_true',
        help='Install ModSecurity v3, the nginx connector and the OWASP CRS'
    )
    action_group.add_argument(
        '--list-backups',
        action='store_true',
        help='List existing backups of the WAF directory'
    )

    # Configuration options
    parser.add_argument(
        '--config',
        default=None,
        help='Path to configuration file (default: config/default.yml if present)'
    )

    verify_group = parser.add_mutually_exclusive_group()
    verify_group.add_argument(
        '--verify-reload',
        dest='verify_reload',
        action='store_true',
        default=None,
        help='Run the nginx config test, reload on success and roll back on failure'
    )
    verify_group.add_argument(
        '--no-verify-reload',
        dest='verify_reload',
        action='store_false',
        help='Leave testing and reloading nginx to the operator'
    )

    # Output options
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser.parse_args(argv)


async def main(argv=None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)

    try:
        if args.patch:
            success = await run_patch(
                PatchMode.SELECTIVE, args.config, args.verify_reload, args.verbose
            )
        elif args.sync:
            success = await run_patch(
                PatchMode.SYNC, args.config, args.verify_reload, args.verbose
            )
        elif args.install:
            success = await run_install(args.config, args.verify_reload, args.verbose)
        elif args.list_backups:
            success = await run_list_backups(args.config, args.verbose)
        else:
            print("No action specified. Use --help for usage information.")
            return 1

        return 0 if success else 1

    except ConfigurationError as e:
        print(f"[!] ERROR: {str(e)}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Unexpected error: {str(e)}")
        return 1


def cli() -> None:
    """Console script entry point."""
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        code = 1
    sys.exit(code)


if __name__ == '__main__':
    cli()
