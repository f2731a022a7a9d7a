"""Unit tests for the JSON-backed HistoryStore."""
from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from typing import Any

from tubethumb.domain.thumbnails import VideoLookupRecord
from tubethumb.infra.history import HistoryStore
from tubethumb.services.thumbnails import build_thumbnails


def _record(n: int, ts: int = 0, url: str | None = None) -> VideoLookupRecord:
    video_id: str = f"vid{n:08d}"
    return VideoLookupRecord(
        id=video_id,
        originalUrl=url or f"https://youtu.be/{video_id}",
        thumbnails=build_thumbnails(video_id),
        timestamp=ts,
    )


class TestHistoryStore(unittest.TestCase):
    """Tests for append/clear/all semantics and persistence."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path: Path = Path(self._tmp.name) / "storage.json"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_file_is_empty(self) -> None:
        store: HistoryStore = HistoryStore(self.path, capacity=9)
        self.assertEqual(store.all(), [])
        self.assertFalse(self.path.exists())

    def test_most_recent_first(self) -> None:
        store: HistoryStore = HistoryStore(self.path, capacity=9)
        store.append(_record(1, ts=1))
        store.append(_record(2, ts=2))
        self.assertEqual([r.id for r in store.all()], ["vid00000002", "vid00000001"])

    def test_duplicate_id_collapses_to_newest(self) -> None:
        """Re-appending an id leaves a single entry for it, positioned first."""
        store: HistoryStore = HistoryStore(self.path, capacity=9)
        store.append(_record(1, ts=1))
        store.append(_record(2, ts=2))
        store.append(_record(1, ts=3, url="https://www.youtube.com/watch?v=vid00000001"))
        records: list[VideoLookupRecord] = store.all()
        self.assertEqual([r.id for r in records], ["vid00000001", "vid00000002"])
        self.assertEqual(records[0].timestamp, 3)
        self.assertEqual(records[0].originalUrl, "https://www.youtube.com/watch?v=vid00000001")

    def test_capacity_evicts_oldest(self) -> None:
        """Appending beyond capacity keeps the N most recent distinct ids."""
        store: HistoryStore = HistoryStore(self.path, capacity=3)
        for n in range(1, 6):
            store.append(_record(n, ts=n))
        self.assertEqual([r.id for r in store.all()], ["vid00000005", "vid00000004", "vid00000003"])

    def test_capacity_is_configurable(self) -> None:
        store: HistoryStore = HistoryStore(self.path, capacity=15)
        for n in range(20):
            store.append(_record(n, ts=n))
        self.assertEqual(len(store.all()), 15)
        self.assertEqual(store.capacity, 15)

    def test_invalid_capacity_rejected(self) -> None:
        with self.assertRaises(ValueError):
            HistoryStore(self.path, capacity=0)

    def test_persists_across_instances(self) -> None:
        store: HistoryStore = HistoryStore(self.path, capacity=9)
        store.append(_record(1, ts=1))
        store.append(_record(2, ts=2))
        reloaded: HistoryStore = HistoryStore(self.path, capacity=9)
        self.assertEqual(reloaded.all(), store.all())
        data: dict[str, Any] = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual([r["id"] for r in data["thumb_history"]], ["vid00000002", "vid00000001"])

    def test_custom_key(self) -> None:
        store: HistoryStore = HistoryStore(self.path, capacity=9, key="other_history")
        store.append(_record(1))
        data: dict[str, Any] = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertIn("other_history", data)
        self.assertNotIn("thumb_history", data)

    def test_corrupt_json_is_empty_history(self) -> None:
        """Unparsable storage is logged and treated as empty, never raised."""
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertLogs("tubethumb.infra.history", level="WARNING"):
            store: HistoryStore = HistoryStore(self.path, capacity=9)
        self.assertEqual(store.all(), [])
        store.append(_record(1))
        self.assertEqual(len(HistoryStore(self.path, capacity=9).all()), 1)

    def test_invalid_records_are_empty_history(self) -> None:
        self.path.write_text(json.dumps({"thumb_history": [{"id": "x"}]}), encoding="utf-8")
        with self.assertLogs("tubethumb.infra.history", level="WARNING"):
            store: HistoryStore = HistoryStore(self.path, capacity=9)
        self.assertEqual(store.all(), [])

    def test_non_object_storage_is_empty_history(self) -> None:
        self.path.write_text("[1, 2, 3]", encoding="utf-8")
        with self.assertLogs("tubethumb.infra.history", level="WARNING"):
            store: HistoryStore = HistoryStore(self.path, capacity=9)
        self.assertEqual(store.all(), [])

    def test_clear_removes_only_history_key(self) -> None:
        self.path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")
        store: HistoryStore = HistoryStore(self.path, capacity=9)
        store.append(_record(1))
        store.clear()
        self.assertEqual(store.all(), [])
        data: dict[str, Any] = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(data, {"theme": "dark"})
        self.assertEqual(HistoryStore(self.path, capacity=9).all(), [])

    def test_get(self) -> None:
        store: HistoryStore = HistoryStore(self.path, capacity=9)
        store.append(_record(1))
        self.assertIsNotNone(store.get("vid00000001"))
        self.assertIsNone(store.get("vid00000009"))

    def test_all_returns_copy(self) -> None:
        store: HistoryStore = HistoryStore(self.path, capacity=9)
        store.append(_record(1))
        store.all().clear()
        self.assertEqual(len(store.all()), 1)


if __name__ == "__main__":
    unittest.main()
