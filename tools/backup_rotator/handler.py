"""Scheduled entry point (e.g. an AWS Lambda target) for the backup rotator."""

import os
from datetime import datetime
from typing import Any

from shared.logger import get_logger, setup_logger

from .catalog import BackupCatalogClient, DynamoDBCatalogClient
from .config import RetentionConfig
from .errors import InvalidConfiguration
from .rotator import run_rotation

ENV_LOG_LEVEL = "LOG_LEVEL"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

logger = get_logger(__name__)


def build_catalog(config: RetentionConfig) -> BackupCatalogClient:
    """Create the catalog client for the configured region."""
    return DynamoDBCatalogClient(region=config.region)


def handler(event: Any = None, context: Any = None) -> str:
    """
    Run one rotation cycle from the environment configuration.

    The event payload is ignored.

    Returns:
        Completion message

    Raises:
        InvalidConfiguration: If the environment configuration is invalid
        PartialCycleFailure: If at least one table failed its cycle
    """
    setup_logger(__name__, level=_log_level())
    logger.info(f"[{_timestamp()}] BACKUP START")
    config = RetentionConfig.from_env()
    report = run_rotation(config, build_catalog(config))
    report.raise_for_failures()
    return f"[{_timestamp()}] BACKUP DONE"


def _log_level() -> str:
    level = os.environ.get(ENV_LOG_LEVEL, "").strip().upper() or "INFO"
    if level not in LOG_LEVELS:
        raise InvalidConfiguration(
            f"{ENV_LOG_LEVEL} should be one of {', '.join(LOG_LEVELS)}, got {level!r}"
        )
    return level


def _timestamp() -> str:
    return datetime.now().astimezone().isoformat(timespec="seconds")
