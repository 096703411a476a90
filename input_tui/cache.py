"""
Image Cache

Exported drawings are written to a per-user cache directory and handed back
as file paths:

    <cache root>/images/img_<timestamp>_<random>.png

Entries are written once and never updated. A sweep on startup removes
entries older than the retention period (7 days by default).
"""

import logging
import os
import secrets
import string
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from .constants import (
    CACHE_APP_NAME, CACHE_IMAGES_SUBDIR, DEFAULT_RETENTION_DAYS, ENV_CACHE_DIR,
)
from .errors import CacheWriteError
from .protocol import decode_data_url

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60

# File extensions for cached images (anything unknown is stored as .png)
MIME_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/bmp": "bmp",
}

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def get_cache_dir() -> Path:
    """
    Get the cache directory for this OS.

    - macOS: ~/Library/Caches/input-mcp
    - Windows: %LOCALAPPDATA%/input-mcp/Cache
    - Linux and others: $XDG_CACHE_HOME/input-mcp (default ~/.cache/input-mcp)

    INPUT_TUI_CACHE_DIR overrides all of these.
    """
    override = os.environ.get(ENV_CACHE_DIR)
    if override:
        return Path(override).expanduser()

    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Caches" / CACHE_APP_NAME
    if sys.platform == "win32":
        local = os.environ.get("LOCALAPPDATA") or str(home / "AppData" / "Local")
        return Path(local) / CACHE_APP_NAME / "Cache"
    xdg = os.environ.get("XDG_CACHE_HOME") or str(home / ".cache")
    return Path(xdg) / CACHE_APP_NAME


def generate_image_filename(extension: str = "png", now: Optional[datetime] = None) -> str:
    """Sortable timestamp plus a short random suffix."""
    now = now or datetime.now()
    timestamp = now.strftime("%Y-%m-%d_%H-%M-%S-") + f"{now.microsecond // 1000:03d}"
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    return f"img_{timestamp}_{suffix}.{extension}"


class ImageCache:
    """Write-once image store with age-based eviction."""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root is not None else get_cache_dir()

    @property
    def images_dir(self) -> Path:
        return self.root / CACHE_IMAGES_SUBDIR

    def ensure_images_dir(self) -> Path:
        self.images_dir.mkdir(parents=True, exist_ok=True)
        return self.images_dir

    def image_path(self, filename: str) -> Path:
        return self.images_dir / filename

    def save(self, data_url: str) -> Path:
        """Decode a base64 data URL and store it. Returns the absolute path."""
        try:
            mime_type, data = decode_data_url(data_url)
        except ValueError as e:
            raise CacheWriteError(f"Cannot decode image data: {e}") from e

        extension = MIME_EXTENSIONS.get(mime_type, "png")
        try:
            images_dir = self.ensure_images_dir()
            path = images_dir / generate_image_filename(extension)
            path.write_bytes(data)
        except OSError as e:
            raise CacheWriteError(f"Cannot write image to cache: {e}") from e

        logger.debug(f"Image saved to cache: {path}")
        return path.resolve()

    def list_images(self) -> list[str]:
        """Names of cached images, oldest first (names sort by time)."""
        try:
            return sorted(p.name for p in self.images_dir.iterdir() if p.is_file())
        except FileNotFoundError:
            return []

    def clean_old(self, days: float = DEFAULT_RETENTION_DAYS, now: Optional[float] = None) -> int:
        """
        Delete cached images last modified more than `days` ago.

        Returns how many were deleted. A missing cache directory is not an
        error. A file that cannot be inspected or removed is logged and
        skipped so it cannot block the rest of the sweep.
        """
        now = time.time() if now is None else now
        threshold = now - days * SECONDS_PER_DAY

        try:
            entries = list(self.images_dir.iterdir())
        except FileNotFoundError:
            return 0
        except OSError as e:
            logger.warning(f"Cannot list cache directory {self.images_dir}: {e}")
            return 0

        deleted = 0
        for path in entries:
            try:
                if path.stat().st_mtime < threshold:
                    path.unlink()
                    deleted += 1
            except OSError as e:
                logger.warning(f"Skipping cache entry {path.name}: {e}")

        if deleted:
            logger.info(f"Cleaned {deleted} old cached images")
        return deleted


def save_image_to_cache(data_url: str, root: Optional[Path] = None) -> Path:
    return ImageCache(root).save(data_url)


def clean_old_cache(days: float = DEFAULT_RETENTION_DAYS, root: Optional[Path] = None) -> int:
    return ImageCache(root).clean_old(days)
