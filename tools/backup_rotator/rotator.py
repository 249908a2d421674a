"""Backup rotation: create a fresh backup per table and prune outdated ones."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from shared.logger import get_logger

from .catalog import BackupCatalogClient, BackupHandle, BackupPage
from .config import RetentionConfig
from .errors import BackupNotFound, BackupServiceError, PartialCycleFailure
from .policy import RetentionPolicy, outdated_boundary

logger = get_logger(__name__)


class TableState(Enum):
    """Progress of one table through a rotation cycle."""

    PENDING = "pending"
    CREATED = "created"
    LISTED = "listed"
    SKIPPED = "skipped"
    DELETING = "deleting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class TableResult:
    """Outcome of one table's rotation cycle."""

    table_name: str
    state: TableState = TableState.PENDING
    created_backup: Optional[BackupHandle] = None
    boundary: Optional[datetime] = None
    outdated_count: int = 0
    recent_count: int = 0
    reason: str = ""
    pages: int = 0
    deleted: List[str] = field(default_factory=list)
    already_deleted: List[str] = field(default_factory=list)
    failed_at: Optional[TableState] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        """True if the cycle completed (done or skipped)."""
        return self.state in (TableState.DONE, TableState.SKIPPED)


@dataclass
class CycleReport:
    """Per-table results of one rotation cycle."""

    results: List[TableResult]
    started_at: datetime
    finished_at: datetime

    @property
    def succeeded(self) -> List[TableResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> List[TableResult]:
        return [r for r in self.results if not r.ok]

    @property
    def skipped(self) -> List[TableResult]:
        return [r for r in self.results if r.state == TableState.SKIPPED]

    @property
    def deleted_total(self) -> int:
        return sum(len(r.deleted) for r in self.results)

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    def raise_for_failures(self) -> None:
        """
        Raise if any table failed.

        Raises:
            PartialCycleFailure: With the failed table results
        """
        if self.failed:
            raise PartialCycleFailure(self.failed)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class RotationOrchestrator:
    """
    Drive the backup rotation cycle for every configured table.

    Each table is processed as its own task: create a backup, list the
    outdated ones, consult the retention policy, then delete page by page.
    A failing table does not stop the others.

    Attributes:
        config: Retention configuration
        catalog: Backup catalog client
        policy: Retention policy built from the configured floor
    """

    def __init__(
        self,
        config: RetentionConfig,
        catalog: BackupCatalogClient,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Retention configuration
            catalog: Backup catalog client
            clock: Returns the current aware datetime
        """
        self.config = config
        self.catalog = catalog
        self.policy = RetentionPolicy(config.min_retained_count)
        self.clock = clock

    async def run_cycle(self) -> CycleReport:
        """
        Rotate all configured tables concurrently.

        Returns:
            CycleReport with one TableResult per table, in configured order
        """
        started_at = self.clock()
        logger.info(f"Backup rotation started for {len(self.config.table_names)} table(s)")

        outcomes = await asyncio.gather(
            *(self.rotate_table(name) for name in self.config.table_names),
            return_exceptions=True,
        )

        results = []
        for name, outcome in zip(self.config.table_names, outcomes):
            if isinstance(outcome, TableResult):
                results.append(outcome)
            elif isinstance(outcome, Exception):
                logger.error(f"[{name}] unexpected error: {outcome!r}")
                results.append(
                    TableResult(table_name=name, state=TableState.FAILED, error=outcome)
                )
            else:
                raise outcome

        report = CycleReport(results=results, started_at=started_at, finished_at=self.clock())
        logger.info(
            f"Backup rotation finished: {len(report.succeeded)} ok, "
            f"{len(report.failed)} failed, {report.deleted_total} deleted"
        )
        return report

    async def rotate_table(self, table_name: str) -> TableResult:
        """
        Run one rotation cycle for a table.

        Service errors abort the table's remaining steps and are recorded in
        the result. A backup created before the failure is kept.

        Args:
            table_name: Table to rotate

        Returns:
            TableResult
        """
        result = TableResult(table_name=table_name)
        try:
            await self._rotate(result)
        except BackupServiceError as e:
            result.failed_at = result.state
            result.state = TableState.FAILED
            result.error = e
            logger.error(f"[{table_name}] rotation failed after {result.failed_at.value}: {e}")
        return result

    async def _rotate(self, result: TableResult) -> None:
        table_name = result.table_name

        handle = await self.catalog.create_backup(table_name, self._backup_name())
        result.created_backup = handle
        result.state = TableState.CREATED
        logger.info(f"[{table_name}] backup created: {handle.backup_arn}")

        now = self.clock()
        boundary = outdated_boundary(self.config.retention_seconds, now)
        result.boundary = boundary

        first_page = await self.catalog.list_backups(table_name, upper_bound=boundary)
        recent_count = await self.catalog.count_backups_in_range(table_name, boundary, now)
        result.outdated_count = len(first_page)
        result.recent_count = recent_count
        result.state = TableState.LISTED

        logger.info(f"[{table_name}] backup outdated boundary: {boundary.isoformat()}")
        logger.info(f"[{table_name}] outdated backup count: {len(first_page)}")
        logger.info(f"[{table_name}] recent backup count: {recent_count}")

        decision = self.policy.decide(len(first_page), not first_page.is_last, recent_count)
        result.reason = decision.reason
        if not decision.proceed:
            result.state = TableState.SKIPPED
            logger.info(f"[{table_name}] skipping deletion: {decision.reason}")
            return

        result.state = TableState.DELETING
        await self._delete_outdated(result, first_page, boundary)
        result.state = TableState.DONE

    async def _delete_outdated(self, result: TableResult, first_page: BackupPage, boundary: datetime) -> None:
        """Delete the first page, then follow continuation tokens until the last page."""
        table_name = result.table_name
        seen_tokens = set()
        page = first_page

        while True:
            result.pages += 1
            logger.debug(f"[{table_name}] deleting page {result.pages} ({len(page)} backup(s))")
            await self._delete_page(result, page)

            if page.is_last:
                return

            token = page.continuation_token
            if token in seen_tokens:
                raise BackupServiceError(
                    f"ListBackups repeated continuation token {token}", operation="ListBackups"
                )
            seen_tokens.add(token)
            page = await self.catalog.list_backups(
                table_name, upper_bound=boundary, continuation_token=token
            )

    async def _delete_page(self, result: TableResult, page: BackupPage) -> None:
        """Delete every backup of a page concurrently and wait for all of them."""
        outcomes = await asyncio.gather(
            *(self._delete_one(result, item.backup_arn) for item in page.items),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

    async def _delete_one(self, result: TableResult, backup_arn: str) -> None:
        try:
            await self.catalog.delete_backup(backup_arn)
        except BackupNotFound:
            result.already_deleted.append(backup_arn)
            logger.warning(f"[{result.table_name}] backup already deleted: {backup_arn}")
            return
        result.deleted.append(backup_arn)
        logger.info(f"[{result.table_name}] backup deleted: {backup_arn}")

    def _backup_name(self) -> str:
        millis = int(self.clock().timestamp() * 1000)
        return f"{self.config.backup_name_prefix}_{millis}"


def run_rotation(config: RetentionConfig, catalog: BackupCatalogClient) -> CycleReport:
    """Run one rotation cycle to completion from synchronous code."""
    return asyncio.run(RotationOrchestrator(config, catalog).run_cycle())
