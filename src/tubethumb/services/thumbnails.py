"""Deterministic construction of a video's thumbnail set.

URLs follow the CDN's path conventions and are never probed, so a variant may
404 when the upload lacks that resolution (``maxresdefault`` in particular).
"""
from __future__ import annotations

from typing import Final, NamedTuple, Optional, Sequence

from tubethumb.domain.thumbnails import ThumbnailVariant

CDN_BASE: Final[str] = "https://img.youtube.com"

BEST_POSITION: Final[int] = 0
PREVIEW_POSITION: Final[int] = 4


class _VariantSpec(NamedTuple):
    key: str
    label: str
    resolution: str
    path: str


# Order is significant: consumers address variants by position.
_VARIANT_SPECS: Final[tuple[_VariantSpec, ...]] = (
    _VariantSpec("maxres", "Maximum Resolution (HD/4K)", "1280 x 720", "vi/{id}/maxresdefault.jpg"),
    _VariantSpec("sd", "Standard Quality", "640 x 480", "vi/{id}/sddefault.jpg"),
    _VariantSpec("hq", "High Quality", "480 x 360", "vi/{id}/hqdefault.jpg"),
    _VariantSpec("mq", "Medium Quality", "320 x 180", "vi/{id}/mqdefault.jpg"),
    _VariantSpec("webp", "WebP Format", "640 x 480 (WebP)", "vi_webp/{id}/sddefault.webp"),
)

VARIANT_KEYS: Final[tuple[str, ...]] = tuple(spec.key for spec in _VARIANT_SPECS)


def thumbnail_url(video_id: str, key: str) -> str:
    """Return the CDN URL of variant ``key`` for ``video_id``.

    Raises
    ------
    KeyError
        If ``key`` is not a known variant key.
    """

    for spec in _VARIANT_SPECS:
        if spec.key == key:
            return f"{CDN_BASE}/{spec.path.format(id=video_id)}"
    raise KeyError(key)


def build_thumbnails(video_id: str) -> list[ThumbnailVariant]:
    """Build the ordered thumbnail variants for a video.

    Parameters
    ----------
    video_id: str
        An identifier produced by ``extract_video_id``.

    Returns
    -------
    list[ThumbnailVariant]
        Five variants; the first is the maximum resolution and the only one
        flagged ``isBest``.

    Notes
    -----
    - Pure and offline: the same id always yields an identical list.
    """

    return [
        ThumbnailVariant(
            label=spec.label,
            resolution=spec.resolution,
            url=thumbnail_url(video_id, spec.key),
            key=spec.key,
            isBest=position == BEST_POSITION,
        )
        for position, spec in enumerate(_VARIANT_SPECS)
    ]


def best_variant(variants: Sequence[ThumbnailVariant]) -> ThumbnailVariant:
    """Return the maximum-resolution variant."""

    return variants[BEST_POSITION]


def preview_variant(variants: Sequence[ThumbnailVariant]) -> ThumbnailVariant:
    """Return the variant used to represent a history entry."""

    return variants[PREVIEW_POSITION]


def find_variant(variants: Sequence[ThumbnailVariant], key: str) -> Optional[ThumbnailVariant]:
    return next((v for v in variants if v.key == key), None)
