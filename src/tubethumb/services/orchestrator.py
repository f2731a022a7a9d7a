"""Sequencing of lookups, downloads and analyses for one user session.

The orchestrator owns the application status, the single active lookup
session and the history store. It is created once per application and passed
explicitly to the API layer (see ``main.create_app``).
"""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Callable, Optional

import httpx

from tubethumb.core.config import Settings
from tubethumb.domain.analysis import AnalysisResult
from tubethumb.domain.lookups import AppStatus, LookupPhase, LookupSession, LookupSnapshot, StateSnapshot
from tubethumb.domain.thumbnails import ImageFormat, ThumbnailVariant, VideoLookupRecord
from tubethumb.infra.history import HistoryStore
from tubethumb.services.analysis import AnalysisClient, AnalysisError, AnalysisUnavailableError
from tubethumb.services.converter import Delivery, fetch_and_deliver, fetch_image, thumbnail_filename
from tubethumb.services.extractor import extract_video_id
from tubethumb.services.thumbnails import best_variant, build_thumbnails, find_variant

logger = logging.getLogger(__name__)

INVALID_URL_MESSAGE: str = "Invalid YouTube URL. Please check and try again."
_MAX_TRACKED_SESSIONS: int = 16


class AnalysisInProgressError(Exception):
    """An analysis for the same video is already running."""


class UnknownVariantError(LookupError):
    """The requested variant key does not exist in the thumbnail set."""


class Orchestrator:
    """Coordinates lookups and the on-demand download/analysis flows.

    Notes
    -----
    - At most one lookup is in flight: starting a new one cancels the pending
      settle task of the previous session, which is marked superseded and commits
      nothing.
    - Progress is computed from elapsed time when asked for; no timers tick.
    - Only one analysis per video id may be in flight at a time.
    """

    def __init__(
        self,
        settings: Settings,
        history: HistoryStore,
        analysis_client: AnalysisClient,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings: Settings = settings
        self.history: HistoryStore = history
        self.analysis_client: AnalysisClient = analysis_client
        self._http_client: Optional[httpx.AsyncClient] = http_client
        self._clock: Callable[[], float] = clock
        self.status: AppStatus = AppStatus.IDLE
        self.error_message: Optional[str] = None
        self.current: Optional[LookupSession] = None
        self._sessions: dict[str, LookupSession] = {}
        self._analyzing: set[str] = set()

    # Lookups

    def start_lookup(self, url: str) -> Optional[LookupSession]:
        """Accept a URL and start a lookup session.

        Returns
        -------
        Optional[LookupSession]
            The new in-flight session, or ``None`` when the URL is invalid. In that
            case only ``error_message`` changes.

        Notes
        -----
        - Must be called from the running event loop; the settle step is scheduled
          as an asyncio task.
        """

        self.error_message = None
        video_id: Optional[str] = extract_video_id(url)
        if video_id is None:
            self.error_message = INVALID_URL_MESSAGE
            logger.info("Rejected invalid URL")
            return None

        self._supersede_current()

        session: LookupSession = LookupSession(
            id=uuid.uuid4().hex,
            video_id=video_id,
            url=url,
            started_at=self._clock(),
            settle_delay=self.settings.settle_delay_sec,
        )
        session.phase = LookupPhase.IN_FLIGHT
        self._sessions[session.id] = session
        while len(self._sessions) > _MAX_TRACKED_SESSIONS:
            self._sessions.pop(next(iter(self._sessions)))
        self.current = session
        self.status = AppStatus.ANALYZING
        session.task = asyncio.create_task(self._settle(session))
        logger.info("Lookup started", extra={"videoId": video_id, "lookupId": session.id})
        return session

    def _supersede_current(self) -> None:
        previous: Optional[LookupSession] = self.current
        if previous is None or previous.phase is not LookupPhase.IN_FLIGHT:
            return
        if previous.task is not None and not previous.task.done():
            previous.task.cancel()
        previous.superseded = True
        previous.phase = LookupPhase.SETTLED
        previous.settled_at = self._clock()
        logger.info("Lookup superseded", extra={"videoId": previous.video_id, "lookupId": previous.id})

    async def _settle(self, session: LookupSession) -> None:
        if session.settle_delay > 0:
            await asyncio.sleep(session.settle_delay)
        if session.superseded:
            return

        record: VideoLookupRecord = VideoLookupRecord(
            id=session.video_id,
            originalUrl=session.url,
            thumbnails=build_thumbnails(session.video_id),
            timestamp=int(time.time() * 1000),
        )
        session.record = record
        session.phase = LookupPhase.SETTLED
        session.settled_at = self._clock()
        try:
            self.history.append(record)
        except OSError as ex:
            logger.error("Failed to persist history: %s", ex, extra={"videoId": record.id})
        self.status = AppStatus.READY
        logger.info("Lookup settled", extra={"videoId": record.id, "lookupId": session.id})

    async def wait(self, session: LookupSession) -> LookupSession:
        """Wait until ``session`` has settled (or was superseded)."""

        if session.task is not None:
            try:
                await asyncio.shield(session.task)
            except asyncio.CancelledError:
                if not session.superseded:
                    raise
        return session

    async def lookup(self, url: str) -> Optional[VideoLookupRecord]:
        """Run a lookup to completion and return its record (``None`` if invalid or superseded)."""

        session: Optional[LookupSession] = self.start_lookup(url)
        if session is None:
            return None
        await self.wait(session)
        return session.record

    def reopen(self, video_id: str) -> Optional[LookupSession]:
        """Start a new lookup from the original URL of a history entry."""

        record: Optional[VideoLookupRecord] = self.history.get(video_id)
        if record is None:
            return None
        return self.start_lookup(record.originalUrl)

    def get_session(self, lookup_id: str) -> Optional[LookupSession]:
        return self._sessions.get(lookup_id)

    def snapshot(self, session: LookupSession) -> LookupSnapshot:
        return session.snapshot(self._clock(), self.settings.progress_cap_percent)

    def state(self) -> StateSnapshot:
        return StateSnapshot(
            status=self.status,
            errorMessage=self.error_message,
            current=self.snapshot(self.current) if self.current is not None else None,
        )

    def clear_history(self) -> None:
        self.history.clear()

    # Thumbnails

    def thumbnails_for(self, video_id: str) -> list[ThumbnailVariant]:
        """Return the thumbnail set of ``video_id``.

        Notes
        -----
        - Prefers a known record (current lookup, then history); otherwise builds the
          set, which is identical because the builder is pure.
        """

        current: Optional[LookupSession] = self.current
        if current is not None and current.record is not None and current.record.id == video_id:
            return current.record.thumbnails
        record: Optional[VideoLookupRecord] = self.history.get(video_id)
        if record is not None:
            return record.thumbnails
        return build_thumbnails(video_id)

    def resolve_variant(self, video_id: str, key: str) -> ThumbnailVariant:
        variant: Optional[ThumbnailVariant] = find_variant(self.thumbnails_for(video_id), key)
        if variant is None:
            raise UnknownVariantError(key)
        return variant

    async def deliver(self, video_id: str, key: str, fmt: ImageFormat) -> Delivery:
        """Fetch variant ``key`` of ``video_id`` and convert it to ``fmt``.

        Raises
        ------
        UnknownVariantError
            If ``key`` is not part of the thumbnail set.
        """

        variant: ThumbnailVariant = self.resolve_variant(video_id, key)
        filename: str = thumbnail_filename(variant.key, fmt, variant.url)
        return await fetch_and_deliver(
            variant.url,
            filename,
            fmt,
            client=self._http_client,
            timeout=self.settings.fetch_timeout_sec,
        )

    # Analysis

    async def analyze(self, video_id: str) -> AnalysisResult:
        """Critique the best thumbnail of ``video_id``.

        Raises
        ------
        AnalysisUnavailableError
            If the AI feature is not configured; nothing is fetched.
        AnalysisInProgressError
            If an analysis for ``video_id`` is already running.
        AnalysisError
            If the image cannot be fetched or the model call fails.
        """

        if not self.analysis_client.enabled:
            raise AnalysisUnavailableError("API Key is missing. AI features are unavailable.")
        if video_id in self._analyzing:
            raise AnalysisInProgressError(video_id)

        self._analyzing.add(video_id)
        try:
            variant: ThumbnailVariant = best_variant(self.thumbnails_for(video_id))
            try:
                image, content_type = await fetch_image(
                    variant.url, client=self._http_client, timeout=self.settings.fetch_timeout_sec
                )
            except httpx.HTTPError as ex:
                logger.warning("Could not fetch thumbnail for analysis: %s", ex, extra={"videoId": video_id})
                raise AnalysisError("Could not fetch image for AI analysis. Access restriction.") from ex
            result: AnalysisResult = await self.analysis_client.analyze(image, content_type or "image/jpeg")
            logger.info("Analysis complete", extra={"videoId": video_id, "score": result.score})
            return result
        finally:
            self._analyzing.discard(video_id)

    async def shutdown(self) -> None:
        """Cancel an outstanding settle task."""

        current: Optional[LookupSession] = self.current
        if current is not None and current.task is not None and not current.task.done():
            current.task.cancel()
            try:
                await current.task
            except asyncio.CancelledError:
                pass

