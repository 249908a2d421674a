"""Backup Rotator - Scheduled DynamoDB on-demand backups with retention."""

from .catalog import BackupCatalogClient, BackupPage, BackupSummary, DynamoDBCatalogClient
from .config import RetentionConfig
from .errors import BackupServiceError, InvalidConfiguration, PartialCycleFailure
from .policy import RetentionPolicy, outdated_boundary
from .rotator import CycleReport, RotationOrchestrator, TableResult, TableState

__all__ = [
    "BackupCatalogClient",
    "BackupPage",
    "BackupServiceError",
    "BackupSummary",
    "CycleReport",
    "DynamoDBCatalogClient",
    "InvalidConfiguration",
    "PartialCycleFailure",
    "RetentionConfig",
    "RetentionPolicy",
    "RotationOrchestrator",
    "TableResult",
    "TableState",
    "outdated_boundary",
]
