"""Unit tests for lookup session progress and snapshots."""
from __future__ import annotations

import unittest

from tubethumb.domain.lookups import LookupPhase, LookupSession


def _session(delay: float = 2.0) -> LookupSession:
    return LookupSession(id="l1", video_id="dQw4w9WgXcQ", url="https://youtu.be/dQw4w9WgXcQ", started_at=10.0, settle_delay=delay)


class TestLookupSession(unittest.TestCase):
    """Tests for LookupSession.progress_percent and snapshot."""

    def test_idle_session_has_no_progress(self) -> None:
        self.assertEqual(_session().progress_percent(100.0, 90.0), 0.0)

    def test_progress_grows_and_caps_while_in_flight(self) -> None:
        session: LookupSession = _session()
        session.phase = LookupPhase.IN_FLIGHT
        self.assertEqual(session.progress_percent(10.0, 90.0), 0.0)
        self.assertAlmostEqual(session.progress_percent(11.0, 90.0), 45.0)
        self.assertEqual(session.progress_percent(50.0, 90.0), 90.0)
        # Clock readings before the start never produce negative progress.
        self.assertEqual(session.progress_percent(5.0, 90.0), 0.0)

    def test_zero_delay_reports_cap_until_settled(self) -> None:
        session: LookupSession = _session(delay=0.0)
        session.phase = LookupPhase.IN_FLIGHT
        self.assertEqual(session.progress_percent(10.0, 90.0), 90.0)

    def test_settled_is_complete(self) -> None:
        session: LookupSession = _session()
        session.phase = LookupPhase.SETTLED
        snap = session.snapshot(10.5, 90.0)
        self.assertEqual(snap.progressPercent, 100.0)
        self.assertEqual(snap.lookupId, "l1")
        self.assertEqual(snap.videoId, "dQw4w9WgXcQ")
        self.assertFalse(snap.superseded)
        self.assertIsNone(snap.record)


if __name__ == "__main__":
    unittest.main()
