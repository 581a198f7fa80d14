"""
Run log
Append-only, run-scoped event log threaded through every sync stage

Every entry is mirrored to the process logger. At the end of a run the log
is reduced to ONE summary record which is what gets persisted to the
audit table.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from salesync.models.schemas.sales import LogEntry, LogStatus, RunSummary

logger = logging.getLogger(__name__)

_FINAL_STATUSES = (LogStatus.SUCCESS, LogStatus.ERROR)
_FALLBACK_STATUSES = (LogStatus.WARN, LogStatus.INFO)


class RunLog:
    """
    Collects log entries for one sync run.

    Created at run start, passed by reference to every stage, read by
    summarize() at run end and discarded after the audit row is written.
    """

    def __init__(self):
        self._entries: List[LogEntry] = []

    @property
    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, status: LogStatus, message: str, context: Optional[Dict[str, Any]] = None) -> LogEntry:
        """
        Append an entry and mirror it to the process log.

        Args:
            status: SUCCESS, ERROR, INFO or WARN
            message: Human readable message
            context: Arbitrary key/value details

        Returns:
            The appended entry
        """
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            status=LogStatus(status),
            message=message,
            context=context or {},
        )
        self._entries.append(entry)

        suffix = f" {entry.context}" if entry.context else ""
        if entry.status == LogStatus.ERROR:
            logger.error(f"{entry.status.value}: {message}{suffix}")
        elif entry.status == LogStatus.WARN:
            logger.warning(f"{entry.status.value}: {message}{suffix}")
        else:
            logger.info(f"{entry.status.value}: {message}{suffix}")
        return entry

    def success(self, message: str, context: Optional[Dict[str, Any]] = None) -> LogEntry:
        return self.add(LogStatus.SUCCESS, message, context)

    def error(self, message: str, context: Optional[Dict[str, Any]] = None) -> LogEntry:
        return self.add(LogStatus.ERROR, message, context)

    def info(self, message: str, context: Optional[Dict[str, Any]] = None) -> LogEntry:
        return self.add(LogStatus.INFO, message, context)

    def warn(self, message: str, context: Optional[Dict[str, Any]] = None) -> LogEntry:
        return self.add(LogStatus.WARN, message, context)

    def last_with_status(self, statuses: Iterable[LogStatus]) -> Optional[LogEntry]:
        """Latest entry whose status is in `statuses` (reverse scan, stops at first hit)."""
        wanted = tuple(statuses)
        for entry in reversed(self._entries):
            if entry.status in wanted:
                return entry
        return None

    def summarize(self) -> RunSummary:
        """
        Reduce the run to a single audit record.

        Picks the latest SUCCESS/ERROR entry; without one, the latest
        WARN/INFO entry; with an empty log, a default INFO record.
        """
        entry = self.last_with_status(_FINAL_STATUSES) or self.last_with_status(_FALLBACK_STATUSES)
        if entry is None:
            return RunSummary(status=LogStatus.INFO, message="No logs found", context={})
        return RunSummary(status=entry.status, message=entry.message, context=entry.context)
