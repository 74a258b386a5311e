from __future__ import annotations

import threading
from datetime import datetime

from nocodebot.domain import CompletionRecord


class CompletionLedger:
    """Append-only, thread-safe history of finished interactive actions.

    Snapshots copy the list under the lock and return a tuple, so readers never
    hold the lock while rendering.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[CompletionRecord] = []

    def append(self, record: CompletionRecord) -> None:
        with self._lock:
            self._records.append(record)

    def record_action(
        self, user: str, value: str, timestamp: datetime, message: str | None = None
    ) -> CompletionRecord:
        record = CompletionRecord(user=user, timestamp=timestamp, value=value, message=message)
        self.append(record)
        return record

    def snapshot(self) -> tuple[CompletionRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
