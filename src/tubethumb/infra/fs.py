"""Filesystem helpers for saving thumbnails inside the allowed downloads area."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from tubethumb.core.config import Settings


def resolve_target_dir(path_str: Optional[str], settings: Settings) -> Path:
    """Resolve the directory a thumbnail should be saved into.

    Parameters
    ----------
    path_str: Optional[str]
        Directory requested by the client, or None for ``default_download_dir``.
    settings: Settings
        Provides the default and the sandbox root ``allowed_base_dir``.

    Returns
    -------
    Path
        An existing directory under ``allowed_base_dir`` (created when missing).

    Raises
    ------
    ValueError
        If the directory escapes ``allowed_base_dir`` or is not a directory.
    """

    base: Path = settings.allowed_base_dir.expanduser().resolve()
    raw: Path = Path(path_str) if path_str else settings.default_download_dir
    target: Path = raw.expanduser().resolve()

    if not target.is_relative_to(base):
        raise ValueError("Target directory is outside the allowed base directory")

    target.mkdir(parents=True, exist_ok=True)
    if not target.is_dir():
        raise ValueError("Target path is not a directory")
    return target


def unique_path(p: Path) -> Path:
    """Return ``p``, or ``p`` with a `` (n)`` suffix when the file already exists.

    Notes
    -----
    - Mirrors how browsers name repeated downloads (``thumbnail-hq (1).png``).
    """

    if not p.exists():
        return p
    i: int = 1
    while True:
        candidate: Path = p.with_name(f"{p.stem} ({i}){p.suffix}")
        if not candidate.exists():
            return candidate
        i += 1


def to_host_display_path(container_path: Optional[Path], settings: Settings) -> Optional[Path]:
    """Map a saved file path to the path the host user sees.

    Notes
    -----
    - Only meaningful in Docker, where ``allowed_base_dir`` (``/downloads``) is a bind
      mount of ``host_downloads_dir``.
    - Returns ``None`` when no mapping is configured or the file lies outside the base.
    """

    if container_path is None or settings.host_downloads_dir is None:
        return None

    base: Path = settings.allowed_base_dir.expanduser().resolve()
    resolved: Path = container_path.expanduser().resolve()
    if not resolved.is_relative_to(base):
        return None
    return settings.host_downloads_dir.expanduser().resolve() / resolved.relative_to(base)
