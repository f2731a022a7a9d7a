"""Fetch thumbnails and re-encode them into the requested image format."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path, PurePosixPath
from typing import Final, Optional, Union
from urllib.parse import urlparse

import httpx
from PIL import Image, UnidentifiedImageError

from tubethumb.domain.thumbnails import ImageFormat
from tubethumb.infra.fs import unique_path

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC: Final[float] = 15.0

_FORMAT_MIME: Final[dict[ImageFormat, str]] = {
    ImageFormat.JPG: "image/jpeg",
    ImageFormat.PNG: "image/png",
    ImageFormat.WEBP: "image/webp",
}
_MIME_FORMAT: Final[dict[str, ImageFormat]] = {
    "image/jpeg": ImageFormat.JPG,
    "image/jpg": ImageFormat.JPG,
    "image/pjpeg": ImageFormat.JPG,
    "image/png": ImageFormat.PNG,
    "image/webp": ImageFormat.WEBP,
}
_PIL_NAMES: Final[dict[ImageFormat, str]] = {
    ImageFormat.JPG: "JPEG",
    ImageFormat.PNG: "PNG",
    ImageFormat.WEBP: "WEBP",
}


@dataclass(frozen=True)
class DeliveredImage:
    """Image bytes ready to be handed to the user under ``filename``."""

    filename: str
    media_type: str
    content: bytes
    converted: bool = False


@dataclass(frozen=True)
class FallbackLink:
    """Direct link to the source image, used when fetching or converting failed."""

    url: str
    reason: str


Delivery = Union[DeliveredImage, FallbackLink]


def thumbnail_filename(key: str, fmt: ImageFormat, source_url: str) -> str:
    """Build the saved file name, e.g. ``thumbnail-hq.png``.

    Notes
    -----
    - For ``ImageFormat.ORIGINAL`` the extension is taken from the source URL path.
    """

    if fmt is ImageFormat.ORIGINAL:
        ext: str = PurePosixPath(urlparse(source_url).path).suffix.lstrip(".").lower() or "jpg"
    else:
        ext = fmt.value
    return f"thumbnail-{key}.{ext}"


async def fetch_image(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_TIMEOUT_SEC,
) -> tuple[bytes, Optional[str]]:
    """Fetch raw image bytes and the declared MIME type.

    Parameters
    ----------
    url: str
        Image URL.
    client: Optional[httpx.AsyncClient]
        Shared client; a short-lived one is created when omitted.
    timeout: float
        Request timeout in seconds for a short-lived client.

    Returns
    -------
    tuple[bytes, Optional[str]]
        The body and the ``Content-Type`` without parameters (``None`` if absent).

    Raises
    ------
    httpx.HTTPError
        On transport errors and non-2xx responses.
    """

    if client is None:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as owned:
            return await _get_image(owned, url)
    return await _get_image(client, url)


async def _get_image(client: httpx.AsyncClient, url: str) -> tuple[bytes, Optional[str]]:
    response: httpx.Response = await client.get(url)
    response.raise_for_status()
    content_type: str = response.headers.get("content-type", "").split(";")[0].strip().lower()
    return response.content, content_type or None


def detect_format(data: bytes, content_type: Optional[str]) -> Optional[ImageFormat]:
    """Determine the native encoding of ``data``.

    Notes
    -----
    - Trusts a recognized ``Content-Type``; otherwise sniffs the header with Pillow.
    - Returns ``None`` for encodings outside jpg/png/webp or undecodable bytes.
    """

    if content_type and content_type in _MIME_FORMAT:
        return _MIME_FORMAT[content_type]
    try:
        with Image.open(BytesIO(data)) as img:
            pil_name: Optional[str] = img.format
    except (UnidentifiedImageError, OSError):
        return None
    for fmt, name in _PIL_NAMES.items():
        if name == pil_name:
            return fmt
    return None


def convert_image(data: bytes, fmt: ImageFormat) -> bytes:
    """Decode ``data`` and re-encode it as ``fmt``.

    Notes
    -----
    - PNG is lossless; JPEG and WebP are written at quality 100.
    - JPEG has no alpha channel, so images are flattened to RGB first.

    Raises
    ------
    ValueError
        If ``fmt`` is ``ImageFormat.ORIGINAL``.
    PIL.UnidentifiedImageError, OSError
        If the bytes cannot be decoded or encoded.
    """

    if fmt is ImageFormat.ORIGINAL:
        raise ValueError("ORIGINAL is not an encoding target")
    out: BytesIO = BytesIO()
    with Image.open(BytesIO(data)) as img:
        img.load()
        surface: Image.Image = img
        if fmt is ImageFormat.JPG and img.mode not in ("RGB", "L"):
            surface = img.convert("RGB")
        elif fmt is ImageFormat.WEBP and img.mode not in ("RGB", "RGBA"):
            has_alpha: bool = "A" in img.getbands() or "transparency" in img.info
            surface = img.convert("RGBA" if has_alpha else "RGB")

        if fmt is ImageFormat.PNG:
            surface.save(out, _PIL_NAMES[fmt], optimize=True)
        else:
            surface.save(out, _PIL_NAMES[fmt], quality=100)
    return out.getvalue()


async def fetch_and_deliver(
    url: str,
    filename: str,
    fmt: ImageFormat,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_TIMEOUT_SEC,
) -> Delivery:
    """Fetch an image and produce a downloadable object in the requested format.

    Parameters
    ----------
    url: str
        Source image URL.
    filename: str
        Name the delivered file should carry.
    fmt: ImageFormat
        Requested output format; ``ORIGINAL`` keeps the source encoding.
    client: Optional[httpx.AsyncClient]
        Shared HTTP client, mainly for tests.
    timeout: float
        Request timeout in seconds.

    Returns
    -------
    Delivery
        ``DeliveredImage`` on success, ``FallbackLink`` pointing at ``url`` when the
        fetch or the conversion failed.

    Notes
    -----
    - Never raises for fetch/decode problems; failures are logged and degrade to
      the direct link so the user can save the image manually.
    - No retry and no caching: each call re-fetches and re-converts.
    """

    context: dict[str, str] = {"sourceUrl": url, "format": fmt.value}
    try:
        data, content_type = await fetch_image(url, client=client, timeout=timeout)
    except httpx.HTTPError as ex:
        logger.warning("Thumbnail fetch failed, falling back to direct link: %s", ex, extra=context)
        return FallbackLink(url=url, reason=f"fetch failed: {ex}")

    native: Optional[ImageFormat] = detect_format(data, content_type)
    if fmt is ImageFormat.ORIGINAL or fmt is native:
        media_type: str = _FORMAT_MIME[native] if native is not None else (content_type or "application/octet-stream")
        return DeliveredImage(filename=filename, media_type=media_type, content=data)

    try:
        encoded: bytes = convert_image(data, fmt)
    except (UnidentifiedImageError, OSError, ValueError) as ex:
        logger.warning("Thumbnail conversion failed, falling back to direct link: %s", ex, extra=context)
        return FallbackLink(url=url, reason=f"conversion failed: {ex}")

    logger.debug("Converted thumbnail", extra={**context, "bytes": len(encoded)})
    return DeliveredImage(filename=filename, media_type=_FORMAT_MIME[fmt], content=encoded, converted=True)


def save_delivery(delivery: DeliveredImage, target_dir: Path) -> Path:
    """Write a delivered image into ``target_dir`` without overwriting existing files."""

    path: Path = unique_path(target_dir / delivery.filename)
    path.write_bytes(delivery.content)
    return path
