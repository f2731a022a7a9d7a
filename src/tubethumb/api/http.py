"""HTTP API routes for the thumbnail service."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse, Response

from tubethumb.core.config import Settings
from tubethumb.domain.analysis import AnalysisResult, AnalyzeRequest
from tubethumb.domain.lookups import LookupSnapshot, StateSnapshot
from tubethumb.domain.thumbnails import (
    DownloadRequest,
    DownloadResult,
    HistoryEntry,
    ImageFormat,
    LookupRequest,
    ThumbnailVariant,
)
from tubethumb.infra.fs import resolve_target_dir, to_host_display_path
from tubethumb.services.analysis import AnalysisError, AnalysisUnavailableError
from tubethumb.services.converter import DeliveredImage, Delivery, save_delivery
from tubethumb.services.extractor import is_video_id
from tubethumb.services.orchestrator import AnalysisInProgressError, Orchestrator, UnknownVariantError
from tubethumb.services.thumbnails import preview_variant

router: APIRouter = APIRouter(prefix="/api", tags=["api"])


def get_orchestrator(request: Request) -> Orchestrator:
    """Return the orchestrator created by ``create_app``."""

    return request.app.state.orchestrator


def _require_video_id(video_id: str) -> str:
    if not is_video_id(video_id):
        raise HTTPException(status_code=400, detail="Invalid video id")
    return video_id


async def _deliver(orchestrator: Orchestrator, video_id: str, key: str, fmt: ImageFormat) -> Delivery:
    try:
        return await orchestrator.deliver(_require_video_id(video_id), key, fmt)
    except UnknownVariantError as ex:
        raise HTTPException(status_code=404, detail=f"Unknown thumbnail variant: {key}") from ex


@router.post("/lookup", response_model=LookupSnapshot)
async def post_lookup(payload: LookupRequest, orchestrator: Orchestrator = Depends(get_orchestrator)) -> LookupSnapshot:
    """Start a lookup for a pasted URL.

    Notes
    -----
    - Returns immediately with an in-flight snapshot; poll ``GET /api/lookups/{id}`` or
      subscribe to ``/ws/lookups/{id}`` for progress. With ``wait=true`` the response
      is the settled snapshot including the record.
    - A new lookup supersedes one still in flight.

    Raises
    ------
    HTTPException
        400 with a user-facing message when no video id can be extracted.
    """

    session = orchestrator.start_lookup(payload.url)
    if session is None:
        raise HTTPException(status_code=400, detail=orchestrator.error_message)
    if payload.wait:
        await orchestrator.wait(session)
    return orchestrator.snapshot(session)


@router.get("/lookups/{lookup_id}", response_model=LookupSnapshot)
async def get_lookup(lookup_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> LookupSnapshot:
    """Return a snapshot of a lookup; 404 if the id is unknown or too old."""

    session = orchestrator.get_session(lookup_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Lookup not found")
    return orchestrator.snapshot(session)


@router.get("/state", response_model=StateSnapshot)
async def get_state(orchestrator: Orchestrator = Depends(get_orchestrator)) -> StateSnapshot:
    """Return the application status, the last error message and the current lookup."""

    return orchestrator.state()


@router.get("/thumbnails/{video_id}", response_model=list[ThumbnailVariant])
async def get_thumbnails(video_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> list[ThumbnailVariant]:
    """Return the thumbnail variants of a video without performing a lookup."""

    return orchestrator.thumbnails_for(_require_video_id(video_id))


@router.get("/download")
async def get_download(
    videoId: str,
    key: str,
    format: ImageFormat = ImageFormat.ORIGINAL,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> Response:
    """Download a thumbnail variant as an attachment.

    Notes
    -----
    - When the image cannot be fetched or converted the client is redirected (307)
      to the source image so it can be saved manually.
    """

    delivery: Delivery = await _deliver(orchestrator, videoId, key, format)
    if not isinstance(delivery, DeliveredImage):
        return RedirectResponse(url=delivery.url, status_code=307)
    return Response(
        content=delivery.content,
        media_type=delivery.media_type,
        headers={"Content-Disposition": f'attachment; filename="{delivery.filename}"'},
    )


@router.post("/download", response_model=DownloadResult)
async def post_download(payload: DownloadRequest, orchestrator: Orchestrator = Depends(get_orchestrator)) -> DownloadResult:
    """Save a thumbnail variant into the downloads directory.

    Notes
    -----
    - The target directory is resolved and sandboxed under ``allowed_base_dir``.
    - Existing files are never overwritten; a `` (n)`` suffix is added instead.
    - On fetch/conversion failure nothing is written and ``fallbackUrl`` is set.
    """

    settings: Settings = orchestrator.settings
    try:
        target_dir: Path = resolve_target_dir(payload.targetDir, settings)
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve)) from ve

    delivery: Delivery = await _deliver(orchestrator, payload.videoId, payload.key, payload.format)
    if not isinstance(delivery, DeliveredImage):
        return DownloadResult(fallbackUrl=delivery.url, error=delivery.reason)

    path: Path = save_delivery(delivery, target_dir)
    host_path: Optional[Path] = to_host_display_path(path, settings)
    return DownloadResult(
        filename=path.name,
        filePath=str(path),
        hostFilePath=str(host_path) if host_path else None,
        converted=delivery.converted,
    )


@router.post("/analyze", response_model=AnalysisResult, response_model_exclude_none=True)
async def post_analyze(payload: AnalyzeRequest, orchestrator: Orchestrator = Depends(get_orchestrator)) -> AnalysisResult:
    """Ask the AI model to critique the best thumbnail of a video.

    Raises
    ------
    HTTPException
        503 when AI is not configured, 409 while an analysis of the same video is
        running, 502 when the model call or the image fetch fails.
    """

    video_id: str = _require_video_id(payload.videoId)
    try:
        return await orchestrator.analyze(video_id)
    except AnalysisUnavailableError as ex:
        raise HTTPException(status_code=503, detail=str(ex)) from ex
    except AnalysisInProgressError as ex:
        raise HTTPException(status_code=409, detail="Analysis already in progress") from ex
    except AnalysisError as ex:
        raise HTTPException(status_code=502, detail=str(ex)) from ex


@router.get("/history", response_model=list[HistoryEntry])
async def get_history(orchestrator: Orchestrator = Depends(get_orchestrator)) -> list[HistoryEntry]:
    """Return past lookups, most recent first."""

    return [
        HistoryEntry(record=record, previewUrl=preview_variant(record.thumbnails).url)
        for record in orchestrator.history.all()
    ]


@router.delete("/history")
async def delete_history(orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    """Clear the lookup history."""

    orchestrator.clear_history()
    return {"ok": True}


@router.post("/history/{video_id}/reopen", response_model=LookupSnapshot)
async def post_reopen(video_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> LookupSnapshot:
    """Start a new lookup from the URL stored in a history entry; 404 if absent."""

    session = orchestrator.reopen(video_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Video not in history")
    return orchestrator.snapshot(session)
