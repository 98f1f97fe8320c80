#!/usr/bin/env python3
"""
Quality metrics history.

Append-only JSON list of QualityMetricsSnapshot dictionaries. Entries older
than the retention window are pruned when the file is loaded and before it
is rewritten. Writes go through a temp file and an atomic replace.
"""

import json
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, List, Tuple, Union

import pytz

from ordercheck.exceptions import HistoryWriteError
from ordercheck.models.metrics import QualityMetricsSnapshot
from ordercheck.time_parser import now_utc

logger = logging.getLogger(__name__)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else pytz.UTC.localize(value)


class MetricsHistoryRepository:
    """Owns the metrics history file."""

    def __init__(self,
                 path: Union[str, Path],
                 retention_days: int = 30,
                 clock: Callable[[], datetime] = now_utc):
        """
        Initialize repository. Nothing is read until load().

        Args:
            path: History JSON file
            retention_days: Entries older than this are dropped
            clock: Current time source
        """
        self.path = Path(path)
        self.retention_days = retention_days
        self._clock = clock
        self._entries: List[QualityMetricsSnapshot] = []
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    def load(self) -> List[QualityMetricsSnapshot]:
        """
        Read the history file and prune expired entries.

        A missing file is an empty history. An unreadable file is logged and
        treated as empty; the next append replaces it.
        """
        self._entries = []
        self._loaded = True

        if not self.path.exists():
            logger.debug(f"No metrics history at {self.path}")
            return list(self._entries)

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Error loading metrics history {self.path}: {e}")
            return list(self._entries)

        if isinstance(raw, dict):
            raw = raw.get('entries', [])

        for item in raw:
            try:
                self._entries.append(QualityMetricsSnapshot.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed metrics history entry: {e}")

        pruned = self._prune()
        logger.info(f"Loaded {len(self._entries)} metrics history entries ({pruned} expired)")
        return list(self._entries)

    def entries(self) -> Tuple[QualityMetricsSnapshot, ...]:
        """Entries in the order they were recorded."""
        if not self._loaded:
            self.load()
        return tuple(self._entries)

    def recent(self, count: int) -> Tuple[QualityMetricsSnapshot, ...]:
        if count <= 0:
            return ()
        return self.entries()[-count:]

    def append(self, snapshot: QualityMetricsSnapshot) -> None:
        """
        Record a snapshot and rewrite the file.

        Raises:
            HistoryWriteError: If the file cannot be written
        """
        if not self._loaded:
            self.load()
        self._entries.append(snapshot)
        self._prune()
        self._save()
        logger.debug(f"Recorded quality snapshot {snapshot.run_id} ({len(self._entries)} entries)")

    def _cutoff(self) -> datetime:
        return _aware(self._clock()) - timedelta(days=self.retention_days)

    def _prune(self) -> int:
        cutoff = self._cutoff()
        before = len(self._entries)
        self._entries = [entry for entry in self._entries if _aware(entry.timestamp) >= cutoff]
        return before - len(self._entries)

    def _save(self) -> None:
        temp_path = self.path.with_suffix('.tmp')
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump([entry.to_dict() for entry in self._entries], f, ensure_ascii=False, indent=2)
            temp_path.replace(self.path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise HistoryWriteError(str(self.path), e) from e
