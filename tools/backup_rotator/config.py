"""Retention configuration for the backup rotator."""

import os
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Tuple

from .errors import InvalidConfiguration

DEFAULT_RETENTION_SECONDS = 7 * 86400
DEFAULT_MIN_RETAINED_COUNT = 7
DEFAULT_REGION = "ap-northeast-1"
DEFAULT_NAME_PREFIX = "Scheduled"

# Environment variable names
ENV_TABLES = "TABLES"
ENV_RETENTION = "BACKUP_RETENTION"
ENV_MIN_COUNT = "BACKUP_MIN_COUNT"
ENV_REGION = "AWS_REGION"
ENV_NAME_PREFIX = "BACKUP_NAME_PREFIX"


@dataclass(frozen=True)
class RetentionConfig:
    """
    Settings for one rotation process, loaded once at startup.

    Attributes:
        table_names: Tables to back up, unique, in configured order
        retention_seconds: Age in seconds after which a backup is outdated
        min_retained_count: Recent backups required before outdated ones are pruned
        region: AWS region of the tables
        backup_name_prefix: Prefix of created backup names
    """

    table_names: Tuple[str, ...]
    retention_seconds: int = DEFAULT_RETENTION_SECONDS
    min_retained_count: int = DEFAULT_MIN_RETAINED_COUNT
    region: Optional[str] = DEFAULT_REGION
    backup_name_prefix: str = DEFAULT_NAME_PREFIX

    def __post_init__(self) -> None:
        object.__setattr__(self, "table_names", tuple(self.table_names))
        if not self.table_names:
            raise InvalidConfiguration("At least one table name is required")
        if len(set(self.table_names)) != len(self.table_names):
            raise InvalidConfiguration(f"Duplicate table names: {', '.join(self.table_names)}")
        if not _is_int(self.retention_seconds) or self.retention_seconds < 1:
            raise InvalidConfiguration(
                f"Backup retention should be larger than 0, got {self.retention_seconds!r}"
            )
        if not _is_int(self.min_retained_count) or self.min_retained_count < 0:
            raise InvalidConfiguration(
                f"Minimum retained count should not be negative, got {self.min_retained_count!r}"
            )

    @classmethod
    def build(
        cls,
        tables: Iterable[str],
        retention_seconds: Optional[int] = None,
        min_retained_count: Optional[int] = None,
        region: Optional[str] = None,
        backup_name_prefix: Optional[str] = None,
    ) -> "RetentionConfig":
        """
        Build a config from loose values, applying defaults for anything unset.

        Args:
            tables: Table names (duplicates and blanks are dropped)
            retention_seconds: Retention window in seconds
            min_retained_count: Floor of recent backups
            region: AWS region
            backup_name_prefix: Prefix of created backup names

        Returns:
            RetentionConfig instance
        """
        return cls(
            table_names=normalize_table_names(tables),
            retention_seconds=(
                DEFAULT_RETENTION_SECONDS if retention_seconds is None else retention_seconds
            ),
            min_retained_count=(
                DEFAULT_MIN_RETAINED_COUNT if min_retained_count is None else min_retained_count
            ),
            region=region or DEFAULT_REGION,
            backup_name_prefix=backup_name_prefix or DEFAULT_NAME_PREFIX,
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RetentionConfig":
        """
        Load configuration from environment variables.

        Unset or blank values fall back to the defaults.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            RetentionConfig instance

        Raises:
            InvalidConfiguration: If a value is missing, not an integer or out of range
        """
        env = os.environ if environ is None else environ
        return cls.build(
            tables=split_table_names(env.get(ENV_TABLES, "")),
            retention_seconds=_parse_int(env, ENV_RETENTION),
            min_retained_count=_parse_int(env, ENV_MIN_COUNT),
            region=env.get(ENV_REGION, "").strip() or None,
            backup_name_prefix=env.get(ENV_NAME_PREFIX, "").strip() or None,
        )


def split_table_names(value: str) -> Tuple[str, ...]:
    """Split a comma-separated TABLES value into unique table names."""
    return normalize_table_names(value.split(","))


def normalize_table_names(names: Iterable[str]) -> Tuple[str, ...]:
    """Strip names, drop blanks and collapse duplicates keeping first-seen order."""
    seen = []
    for name in names:
        name = name.strip()
        if name and name not in seen:
            seen.append(name)
    return tuple(seen)


def _parse_int(env: Mapping[str, str], key: str) -> Optional[int]:
    raw = env.get(key, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise InvalidConfiguration(f"{key} should be an integer, got {raw!r}")


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
