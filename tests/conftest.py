"""Shared fixtures: an in-memory backup catalog and a ticking clock."""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from tools.backup_rotator.catalog import BackupCatalogClient, BackupHandle, BackupPage, BackupSummary
from tools.backup_rotator.errors import BackupNotFound

NOW = datetime(2024, 1, 10, tzinfo=timezone.utc)
DAY = 86400


class TickingClock:
    """Clock that advances one second on every call."""

    def __init__(self, start: datetime = NOW, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value


class InMemoryCatalog(BackupCatalogClient):
    """
    Backup catalog kept in memory.

    Listings use DynamoDB semantics: lower bound inclusive, upper bound
    exclusive, and the continuation token is the ARN of the last item of
    the previous page.
    """

    def __init__(self, clock=None, page_size: int = 100):
        self.clock = clock or TickingClock()
        self.page_size = page_size
        self.backups: Dict[str, BackupSummary] = {}
        self.created: List[BackupHandle] = []
        self.deleted: List[str] = []
        self.list_calls: List[dict] = []
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self._tokens: Dict[str, Tuple[datetime, str]] = {}
        self._counter = 0

    def add(self, table_name: str, creation_time: datetime) -> BackupSummary:
        self._counter += 1
        arn = f"arn:aws:dynamodb:ap-northeast-1:123456789012:table/{table_name}/backup/{self._counter:05d}"
        summary = BackupSummary(
            table_name=table_name,
            backup_arn=arn,
            creation_time=creation_time,
            backup_name=f"backup-{self._counter}",
            backup_status="AVAILABLE",
        )
        self.backups[arn] = summary
        return summary

    def add_aged(self, table_name: str, now: datetime, ages_seconds) -> List[BackupSummary]:
        return [self.add(table_name, now - timedelta(seconds=age)) for age in ages_seconds]

    def fail(self, operation: str, key: str, exc: Exception) -> None:
        self.failures[(operation, key)] = exc

    def of_table(self, table_name: str) -> List[BackupSummary]:
        return [b for b in self.backups.values() if b.table_name == table_name]

    def _check(self, operation: str, key: str) -> None:
        exc = self.failures.get((operation, key))
        if exc is not None:
            raise exc

    async def create_backup(self, table_name: str, backup_name_hint: str) -> BackupHandle:
        self._check("create", table_name)
        summary = self.add(table_name, self.clock())
        handle = BackupHandle(
            table_name=table_name,
            backup_arn=summary.backup_arn,
            backup_name=backup_name_hint,
            creation_time=summary.creation_time,
        )
        self.created.append(handle)
        return handle

    async def list_backups(
        self,
        table_name: str,
        lower_bound: Optional[datetime] = None,
        upper_bound: Optional[datetime] = None,
        continuation_token: Optional[str] = None,
    ) -> BackupPage:
        self._check("list", table_name)
        self.list_calls.append(
            {
                "table_name": table_name,
                "lower_bound": lower_bound,
                "upper_bound": upper_bound,
                "continuation_token": continuation_token,
            }
        )
        matching = sorted(
            (
                b
                for b in self.of_table(table_name)
                if (lower_bound is None or b.creation_time >= lower_bound)
                and (upper_bound is None or b.creation_time < upper_bound)
            ),
            key=lambda b: (b.creation_time, b.backup_arn),
        )
        if continuation_token is not None:
            start = self._tokens[continuation_token]
            matching = [b for b in matching if (b.creation_time, b.backup_arn) > start]

        items = tuple(matching[: self.page_size])
        token = None
        if len(matching) > self.page_size:
            last = items[-1]
            token = last.backup_arn
            self._tokens[token] = (last.creation_time, last.backup_arn)
        return BackupPage(items=items, continuation_token=token)

    async def delete_backup(self, backup_arn: str) -> None:
        self._check("delete", backup_arn)
        if backup_arn not in self.backups:
            raise BackupNotFound(f"Backup not found: {backup_arn}", operation="DeleteBackup")
        del self.backups[backup_arn]
        self.deleted.append(backup_arn)


@pytest.fixture
def clock():
    """Ticking clock starting at 2024-01-10T00:00:00Z."""
    return TickingClock()


@pytest.fixture
def catalog(clock):
    """In-memory catalog sharing the test clock."""
    return InMemoryCatalog(clock=clock)
