"""
Collect Input

The one call most callers need:

    collected = await collect_input("pixelart", message="Draw a mushroom", grid_width=8)
    collected.result   # TextResult or ImageResult
    collected.path     # cached file for image results, else None

Chains spec normalization, the prompt subprocess, reply classification and
(for pictures) the image cache. The first call in a process also sweeps
stale images out of the cache.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .cache import ImageCache
from .constants import DEFAULT_RETENTION_DAYS, ENV_RETENTION_DAYS
from .launcher import LaunchConfig, launch_input_prompt
from .protocol import ImageResult, SubmissionResult
from .spec import normalize_spec

logger = logging.getLogger(__name__)

_swept_roots: set[Path] = set()


@dataclass(frozen=True)
class CollectedInput:
    result: SubmissionResult
    path: Optional[Path] = None

    @property
    def text(self) -> Optional[str]:
        return getattr(self.result, "value", None)


def retention_days() -> float:
    raw = os.environ.get(ENV_RETENTION_DAYS)
    if not raw:
        return DEFAULT_RETENTION_DAYS
    try:
        days = float(raw)
    except ValueError:
        logger.warning(f"Ignoring {ENV_RETENTION_DAYS}={raw!r}: not a number")
        return DEFAULT_RETENTION_DAYS
    return days if days >= 0 else DEFAULT_RETENTION_DAYS


def sweep_cache_once(cache: ImageCache) -> int:
    """Clean old images the first time a cache root is used in this process."""
    root = cache.root.resolve()
    if root in _swept_roots:
        return 0
    _swept_roots.add(root)
    return cache.clean_old(retention_days())


async def collect_input(
    kind: Optional[str] = None,
    *,
    config: Optional[LaunchConfig] = None,
    cache: Optional[ImageCache] = None,
    **overrides: Any,
) -> CollectedInput:
    """
    Show one prompt and return what the user entered.

    Raises ValidationError for a bad request, InputCancelledError when the
    user backs out, InputFailedError or a LaunchError subclass when the
    prompt could not complete, and CacheWriteError if a picture could not
    be stored.
    """
    spec = normalize_spec(kind, **overrides)
    cache = cache or ImageCache()
    sweep_cache_once(cache)

    logger.debug(f"Collecting {spec.kind} input")
    result = await launch_input_prompt(spec, config)

    if isinstance(result, ImageResult):
        path = cache.save(result.data_url)
        logger.info(f"Saved {result.kind} input to {path}")
        return CollectedInput(result=result, path=path)
    return CollectedInput(result=result)
