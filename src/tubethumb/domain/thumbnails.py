"""Domain models for thumbnail variants and lookup records.

These models define the thumbnail set produced for a video and the record that
is persisted to history after a successful lookup.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

VIDEO_ID_LENGTH: int = 11
THUMBNAIL_SET_SIZE: int = 5


class ImageFormat(str, Enum):
    """Output formats a thumbnail can be delivered in.

    Notes
    -----
    - ``ORIGINAL`` delivers the bytes exactly as served by the CDN.
    """

    ORIGINAL = "original"
    PNG = "png"
    WEBP = "webp"
    JPG = "jpg"


class ThumbnailVariant(BaseModel):
    """One resolution/format rendition of a video's thumbnail."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(description="Human-readable variant name")
    resolution: str = Field(description="Nominal resolution label, e.g. 1280 x 720")
    url: str = Field(description="CDN URL derived from the video id and key")
    key: str = Field(description="Stable variant key, unique within a set")
    isBest: bool = Field(default=False, description="True only for the maximum-resolution variant")


class VideoLookupRecord(BaseModel):
    """Result of one successful URL-to-thumbnail-set resolution.

    Notes
    -----
    - ``timestamp`` is epoch milliseconds.
    - Exactly one variant is flagged ``isBest`` and it sits at position 0; records
      that violate this (e.g. hand-edited storage) fail validation.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=VIDEO_ID_LENGTH, max_length=VIDEO_ID_LENGTH, description="Video identifier")
    originalUrl: str = Field(description="URL as entered by the user")
    thumbnails: list[ThumbnailVariant] = Field(
        min_length=THUMBNAIL_SET_SIZE,
        max_length=THUMBNAIL_SET_SIZE,
        description="Variants in fixed order, best first",
    )
    timestamp: int = Field(description="Creation instant in epoch milliseconds")

    @model_validator(mode="after")
    def _check_best_variant(self) -> "VideoLookupRecord":
        best_positions: list[int] = [i for i, v in enumerate(self.thumbnails) if v.isBest]
        if best_positions != [0]:
            raise ValueError("exactly one variant must be flagged isBest and it must be first")
        return self


class LookupRequest(BaseModel):
    """Request payload to look up a video URL."""

    url: str = Field(description="YouTube URL as typed or pasted by the user")
    wait: bool = Field(default=False, description="Block until the lookup has settled")


class HistoryEntry(BaseModel):
    """History record as returned by the API, with its preview image URL."""

    record: VideoLookupRecord
    previewUrl: str = Field(description="URL of the variant used to represent the entry")


class DownloadRequest(BaseModel):
    """Request payload to save a thumbnail variant into the downloads directory.

    Notes
    -----
    - ``targetDir`` is sandboxed under ``allowed_base_dir`` and may be omitted to
      fall back to ``default_download_dir``.
    """

    videoId: str = Field(description="Video identifier")
    key: str = Field(description="Variant key, e.g. maxres or hq")
    format: ImageFormat = Field(default=ImageFormat.ORIGINAL, description="Output format")
    targetDir: Optional[str] = Field(default=None, description="Target directory to store the file")


class DownloadResult(BaseModel):
    """Outcome of saving a thumbnail to disk.

    Notes
    -----
    - On fetch/decode failure nothing is written and ``fallbackUrl`` points at the
      source image so the user can retrieve it manually.
    """

    filename: Optional[str] = None
    filePath: Optional[str] = None
    hostFilePath: Optional[str] = None
    converted: bool = False
    fallbackUrl: Optional[str] = None
    error: Optional[str] = None
