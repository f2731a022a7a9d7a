"""Unit tests for the JSON log formatter."""
from __future__ import annotations

import json
import logging
import unittest
from pathlib import Path
from typing import Any

from tubethumb.core.logging_cfg import JsonFormatter


class TestJsonFormatter(unittest.TestCase):
    """Tests for JsonFormatter output shape."""

    def _format(self, **extra: Any) -> dict[str, Any]:
        record: logging.LogRecord = logging.getLogger("tubethumb.test").makeRecord(
            "tubethumb.test", logging.WARNING, __file__, 12, "fetch failed: %s", ("404",), None, extra=extra
        )
        return json.loads(JsonFormatter().format(record))

    def test_standard_fields(self) -> None:
        payload: dict[str, Any] = self._format()
        self.assertEqual(payload["level"], "WARNING")
        self.assertEqual(payload["message"], "fetch failed: 404")
        self.assertEqual(payload["name"], "tubethumb.test")
        self.assertEqual(payload["line"], 12)
        self.assertNotIn("args", payload)
        self.assertNotIn("msg", payload)

    def test_extra_context_is_top_level(self) -> None:
        """Keys passed through ``extra=`` appear in the JSON line; odd values are stringified."""
        payload: dict[str, Any] = self._format(videoId="dQw4w9WgXcQ", target=Path("/tmp/x.png"))
        self.assertEqual(payload["videoId"], "dQw4w9WgXcQ")
        self.assertEqual(payload["target"], "/tmp/x.png")


if __name__ == "__main__":
    unittest.main()
