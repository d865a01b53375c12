"""Centralized logging configuration for the provisioner."""

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False, level: str = "INFO", log_file: str = None) -> None:
    """Setup root logging with console and optional file output.

    Examples:
        # Console only
        setup_logging()

        # Console + logs/provision.log, DEBUG level
        setup_logging(verbose=True, log_file="provision.log")
    """
    if verbose:
        level = "DEBUG"

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path("logs").mkdir(exist_ok=True)
        handlers.append(logging.FileHandler(f"logs/{log_file}"))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def get_infrastructure_logger(module_name: str) -> logging.Logger:
    """Get logger for infrastructure modules."""
    return logging.getLogger(f"infrastructure.{module_name}")
