"""Retention boundary and deletion policy."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from .errors import InvalidConfiguration


def outdated_boundary(retention_seconds: int, now: datetime) -> datetime:
    """
    Compute the instant before which a backup is outdated.

    The window is subtracted as an absolute duration, so a window spanning
    a DST change or a month end still lands exactly retention_seconds
    before now.

    Args:
        retention_seconds: Retention window in seconds (> 0)
        now: Current timezone-aware time, sampled once per decision

    Returns:
        Boundary as a UTC datetime

    Raises:
        InvalidConfiguration: If retention_seconds is not a positive integer
        ValueError: If now is naive
    """
    if (
        not isinstance(retention_seconds, int)
        or isinstance(retention_seconds, bool)
        or retention_seconds < 1
    ):
        raise InvalidConfiguration(
            f"Backup retention should be larger than 0, got {retention_seconds!r}"
        )
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")

    # Aware arithmetic within one zone is wall-clock arithmetic; UTC has no DST.
    return now.astimezone(timezone.utc) - timedelta(seconds=retention_seconds)


@dataclass(frozen=True)
class RetentionDecision:
    """Outcome of a retention check for one table."""

    proceed: bool
    reason: str


class RetentionPolicy:
    """
    Decide whether a table's outdated backups may be deleted this cycle.

    Deletion proceeds only if there is something outdated, and either the
    outdated listing spans more than one page or the recent backups alone
    already meet the minimum retained count. The check runs once, before
    any deletion, on the first outdated page.
    """

    def __init__(self, min_retained_count: int):
        """
        Initialize the policy.

        Args:
            min_retained_count: Floor of recent backups (>= 0)
        """
        if (
            not isinstance(min_retained_count, int)
            or isinstance(min_retained_count, bool)
            or min_retained_count < 0
        ):
            raise InvalidConfiguration(
                f"Minimum retained count should not be negative, got {min_retained_count!r}"
            )
        self.min_retained_count = min_retained_count

    def should_delete(self, outdated_count: int, has_more_pages: bool, recent_count: int) -> bool:
        """Return True if outdated backups may be deleted."""
        return self.decide(outdated_count, has_more_pages, recent_count).proceed

    def decide(self, outdated_count: int, has_more_pages: bool, recent_count: int) -> RetentionDecision:
        """
        Evaluate the policy and explain the outcome.

        Args:
            outdated_count: Backups on the first outdated page
            has_more_pages: Whether the outdated listing continues past that page
            recent_count: Backups created within the retention window

        Returns:
            RetentionDecision
        """
        if outdated_count < 1:
            return RetentionDecision(False, "no outdated backups")

        if has_more_pages:
            return RetentionDecision(True, "outdated backups span multiple pages")

        if recent_count < self.min_retained_count:
            return RetentionDecision(
                False,
                f"only {recent_count} recent backup(s), minimum is {self.min_retained_count}",
            )

        return RetentionDecision(
            True, f"{recent_count} recent backup(s) meet minimum of {self.min_retained_count}"
        )
