"""Domain models for lookup sessions and application status.

A lookup session tracks one URL-to-thumbnail-set resolution from the moment it
is accepted until it settles. Progress is cosmetic: it is computed from elapsed
time on demand instead of being advanced by timers, so there is nothing to
cancel when a session is superseded.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from tubethumb.domain.thumbnails import VideoLookupRecord


class AppStatus(str, Enum):
    """Four-state status shown to the user.

    Notes
    -----
    - ``ERROR`` is reserved for a lookup that failed after being accepted; an
      unparseable URL only sets the error message and leaves the status alone.
    """

    IDLE = "idle"
    ANALYZING = "analyzing"
    READY = "ready"
    ERROR = "error"


class LookupPhase(str, Enum):
    """Lifecycle of a single lookup session.

    Notes
    -----
    - Transitions are ``IDLE -> IN_FLIGHT -> SETTLED`` and never go backwards.
    """

    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SETTLED = "settled"


class LookupSnapshot(BaseModel):
    """Serializable snapshot of a lookup session for API responses."""

    lookupId: str = Field(description="Unique lookup identifier")
    videoId: str = Field(description="Extracted video identifier")
    url: str = Field(description="URL as entered by the user")
    phase: LookupPhase = Field(description="Current lifecycle phase")
    progressPercent: float = Field(description="Cosmetic progress percent [0-100]")
    superseded: bool = Field(default=False, description="True when a newer lookup replaced this one")
    record: Optional[VideoLookupRecord] = Field(default=None, description="Lookup result once settled")


class StateSnapshot(BaseModel):
    """Snapshot of the orchestrator state."""

    status: AppStatus
    errorMessage: Optional[str] = None
    current: Optional[LookupSnapshot] = None


@dataclass
class LookupSession:
    """Internal state of one lookup, owned by the orchestrator.

    Notes
    -----
    - ``started_at``/``settled_at`` are monotonic clock readings.
    - ``record`` is only set when the session settles without being superseded.
    """

    id: str
    video_id: str
    url: str
    started_at: float
    settle_delay: float
    phase: LookupPhase = LookupPhase.IDLE
    settled_at: Optional[float] = None
    superseded: bool = False
    record: Optional[VideoLookupRecord] = None
    task: Optional[asyncio.Task[Any]] = None

    def progress_percent(self, now: float, cap: float) -> float:
        """Return the cosmetic progress value at ``now``.

        Notes
        -----
        - Grows linearly with elapsed time up to ``cap`` while in flight.
        - Jumps to 100 once settled; 0 before the session starts.
        """

        if self.phase is LookupPhase.SETTLED:
            return 100.0
        if self.phase is LookupPhase.IDLE:
            return 0.0
        if self.settle_delay <= 0:
            return cap
        elapsed: float = max(0.0, now - self.started_at)
        return min(cap, (elapsed / self.settle_delay) * cap)

    def snapshot(self, now: float, cap: float) -> LookupSnapshot:
        """Return a serializable snapshot of the session at ``now``."""

        return LookupSnapshot(
            lookupId=self.id,
            videoId=self.video_id,
            url=self.url,
            phase=self.phase,
            progressPercent=self.progress_percent(now, cap),
            superseded=self.superseded,
            record=self.record,
        )
