"""Backup catalog clients: the interface the rotator needs and a DynamoDB implementation."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from shared.logger import get_logger

from .errors import BackupNotFound, BackupServiceError

logger = get_logger(__name__)

# Listings exclude their upper bound and DynamoDB truncates bounds to whole
# seconds, so closed ranges are listed with this margin and filtered locally.
RANGE_MARGIN = timedelta(seconds=1)


@dataclass(frozen=True)
class BackupSummary:
    """A backup as reported by the catalog."""

    table_name: str
    backup_arn: str
    creation_time: datetime
    backup_name: str = ""
    backup_status: str = ""
    size_bytes: Optional[int] = None


@dataclass(frozen=True)
class BackupPage:
    """One page of a backup listing."""

    items: Tuple[BackupSummary, ...]
    continuation_token: Optional[str] = None

    @property
    def is_last(self) -> bool:
        """True when no further page follows."""
        return self.continuation_token is None

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class BackupHandle:
    """A freshly created backup."""

    table_name: str
    backup_arn: str
    backup_name: str
    creation_time: Optional[datetime] = None


class BackupCatalogClient(ABC):
    """
    Operations the rotator needs from a backup service.

    Implementations raise BackupServiceError on any failure and do not
    retry. Listings are ordered by creation time within a page only.
    """

    @abstractmethod
    async def create_backup(self, table_name: str, backup_name_hint: str) -> BackupHandle:
        """Create an on-demand backup of a table."""

    @abstractmethod
    async def list_backups(
        self,
        table_name: str,
        lower_bound: Optional[datetime] = None,
        upper_bound: Optional[datetime] = None,
        continuation_token: Optional[str] = None,
    ) -> BackupPage:
        """
        List one page of a table's backups.

        Args:
            table_name: Table to list
            lower_bound: Only backups created at or after this instant
            upper_bound: Only backups created before this instant
            continuation_token: Token of the previous page

        Returns:
            BackupPage, whose continuation_token is None on the last page
        """

    @abstractmethod
    async def delete_backup(self, backup_arn: str) -> None:
        """Delete a backup. Raises BackupNotFound if the service no longer has it."""

    async def count_backups_in_range(
        self, table_name: str, lower_bound: datetime, upper_bound: datetime
    ) -> int:
        """Count backups created within [lower_bound, upper_bound], both ends included, across all pages."""
        backups = await self.list_all_backups(
            table_name, lower_bound=lower_bound, upper_bound=upper_bound + RANGE_MARGIN
        )
        return sum(1 for b in backups if lower_bound <= b.creation_time <= upper_bound)

    async def list_all_backups(
        self,
        table_name: str,
        lower_bound: Optional[datetime] = None,
        upper_bound: Optional[datetime] = None,
    ) -> List[BackupSummary]:
        """Collect every page of a listing."""
        backups: List[BackupSummary] = []
        token = None
        while True:
            page = await self.list_backups(
                table_name,
                lower_bound=lower_bound,
                upper_bound=upper_bound,
                continuation_token=token,
            )
            backups.extend(page.items)
            if page.is_last:
                return backups
            token = page.continuation_token


class DynamoDBCatalogClient(BackupCatalogClient):
    """
    Backup catalog backed by DynamoDB on-demand backups.

    Attributes:
        region: AWS region of the tables
        page_size: Optional Limit passed to ListBackups
    """

    def __init__(self, region: Optional[str] = None, client: Any = None, page_size: Optional[int] = None):
        """
        Initialize the catalog.

        Args:
            region: AWS region (ignored when client is given)
            client: Preconfigured boto3 DynamoDB client (optional)
            page_size: Maximum backups per ListBackups page (optional)
        """
        self.region = region
        self.page_size = page_size
        self._client = client

    @property
    def client(self) -> Any:
        """Lazily created boto3 DynamoDB client."""
        if self._client is None:
            self._client = boto3.client("dynamodb", region_name=self.region)
            logger.debug(f"Created DynamoDB client for region {self.region}")
        return self._client

    async def create_backup(self, table_name: str, backup_name_hint: str) -> BackupHandle:
        response = await self._call("CreateBackup", TableName=table_name, BackupName=backup_name_hint)
        details = response["BackupDetails"]
        return BackupHandle(
            table_name=table_name,
            backup_arn=details["BackupArn"],
            backup_name=details.get("BackupName", backup_name_hint),
            creation_time=details.get("BackupCreationDateTime"),
        )

    async def list_backups(
        self,
        table_name: str,
        lower_bound: Optional[datetime] = None,
        upper_bound: Optional[datetime] = None,
        continuation_token: Optional[str] = None,
    ) -> BackupPage:
        params: Dict[str, Any] = {"TableName": table_name}
        if lower_bound is not None:
            params["TimeRangeLowerBound"] = lower_bound
        if upper_bound is not None:
            params["TimeRangeUpperBound"] = upper_bound
        if continuation_token:
            params["ExclusiveStartBackupArn"] = continuation_token
        if self.page_size:
            params["Limit"] = self.page_size

        response = await self._call("ListBackups", **params)
        items = tuple(_to_summary(s) for s in response.get("BackupSummaries", []))
        return BackupPage(items=items, continuation_token=response.get("LastEvaluatedBackupArn"))

    async def delete_backup(self, backup_arn: str) -> None:
        await self._call("DeleteBackup", BackupArn=backup_arn)

    async def _call(self, operation: str, **params: Any) -> Dict[str, Any]:
        """
        Run a blocking boto3 call in a worker thread and map its errors.

        Args:
            operation: DynamoDB operation name (e.g. "ListBackups")
            **params: Request parameters

        Returns:
            Response dictionary

        Raises:
            BackupNotFound: If the service reports the backup does not exist
            BackupServiceError: On any other service or transport failure
        """
        method = getattr(self.client, _method_name(operation))
        try:
            return await asyncio.to_thread(method, **params)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            message = e.response.get("Error", {}).get("Message", str(e))
            if code == "BackupNotFoundException":
                raise BackupNotFound(f"{operation}: {message}", operation=operation, code=code) from e
            raise BackupServiceError(f"{operation} failed ({code}): {message}", operation=operation, code=code) from e
        except BotoCoreError as e:
            raise BackupServiceError(f"{operation} failed: {e}", operation=operation) from e


def _method_name(operation: str) -> str:
    """Convert "ListBackups" to "list_backups"."""
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in operation).lstrip("_")


def _to_summary(raw: Dict[str, Any]) -> BackupSummary:
    return BackupSummary(
        table_name=raw.get("TableName", ""),
        backup_arn=raw["BackupArn"],
        creation_time=raw["BackupCreationDateTime"],
        backup_name=raw.get("BackupName", ""),
        backup_status=raw.get("BackupStatus", ""),
        size_bytes=raw.get("BackupSizeBytes"),
    )
