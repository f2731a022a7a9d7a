"""Bounded, most-recent-first history of lookups.

The history is kept under a single key of a small JSON key-value file, the
local equivalent of browser storage. Other keys in the file are preserved.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from tubethumb.domain.thumbnails import VideoLookupRecord

logger = logging.getLogger(__name__)

DEFAULT_KEY: str = "thumb_history"

_RECORDS: TypeAdapter[list[VideoLookupRecord]] = TypeAdapter(list[VideoLookupRecord])


class HistoryStore:
    """History of past lookups persisted to a JSON file.

    Notes
    -----
    - Loaded once at construction; a missing file means empty history.
    - Unparsable content or records failing validation are logged and treated as
      empty history; this never raises to the caller.
    - Every mutation rewrites the file through a temporary file and ``os.replace``.
    - Not safe for concurrent writers; the orchestrator is the only caller.
    """

    def __init__(self, path: Path, capacity: int, key: str = DEFAULT_KEY) -> None:
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self._path: Path = path.expanduser()
        self._capacity: int = capacity
        self._key: str = key
        self._records: list[VideoLookupRecord] = self._load()

    @property
    def capacity(self) -> int:
        return self._capacity

    def all(self) -> list[VideoLookupRecord]:
        """Return the records, most recent first."""

        return list(self._records)

    def get(self, video_id: str) -> Optional[VideoLookupRecord]:
        """Return the stored record for ``video_id`` if present."""

        return next((r for r in self._records if r.id == video_id), None)

    def append(self, record: VideoLookupRecord) -> None:
        """Insert ``record`` at the front, collapsing older entries for the same id.

        Notes
        -----
        - The list is truncated to ``capacity`` after insertion, evicting the oldest.
        """

        remaining: list[VideoLookupRecord] = [r for r in self._records if r.id != record.id]
        self._records = [record, *remaining][: self._capacity]
        self._save()

    def clear(self) -> None:
        """Drop all records and remove the history key from storage."""

        self._records = []
        data: dict[str, Any] = self._read_storage()
        data.pop(self._key, None)
        self._write_storage(data)

    def _load(self) -> list[VideoLookupRecord]:
        raw: Any = self._read_storage().get(self._key)
        if raw is None:
            return []
        try:
            records: list[VideoLookupRecord] = _RECORDS.validate_python(raw)
        except ValidationError as ex:
            logger.warning("Failed to parse history, starting empty: %s", ex, extra={"path": str(self._path)})
            return []
        return records[: self._capacity]

    def _read_storage(self) -> dict[str, Any]:
        try:
            text: str = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as ex:
            logger.warning("Failed to read history storage: %s", ex, extra={"path": str(self._path)})
            return {}
        try:
            data: Any = json.loads(text)
        except json.JSONDecodeError as ex:
            logger.warning("History storage is not valid JSON: %s", ex, extra={"path": str(self._path)})
            return {}
        if not isinstance(data, dict):
            logger.warning("History storage is not a JSON object", extra={"path": str(self._path)})
            return {}
        return data

    def _save(self) -> None:
        data: dict[str, Any] = self._read_storage()
        data[self._key] = _RECORDS.dump_python(self._records, mode="json")
        self._write_storage(data)

    def _write_storage(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp: Path = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self._path)
