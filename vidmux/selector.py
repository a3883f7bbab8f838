"""Pick the rendition and subtitle track to download."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from .errors import SelectError, SelectErrorKind
from .models import MediaManifest, SubtitleTrack, VideoRendition

logger = logging.getLogger("vidmux.selector")

_LEADING_NUMBER = re.compile(r"^\s*(\d+(?:\.\d+)?)")


def is_resolvable(locator: str) -> bool:
    parsed = urlparse(locator)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def label_rank(label: str) -> Tuple[int, float, str]:
    """Sort key for resolution labels; numeric labels outrank the rest."""
    match = _LEADING_NUMBER.match(label)
    if match:
        return (1, float(match.group(1)), "")
    return (0, 0.0, label)


def _best(candidates: List[VideoRendition]) -> VideoRendition:
    # max() keeps the first of equal keys, so manifest order breaks ties.
    return max(
        candidates,
        key=lambda item: (item.bitrate_hint or 0, label_rank(item.resolution_label)),
    )


def select_rendition(manifest: MediaManifest) -> VideoRendition:
    usable = [r for r in manifest.renditions if is_resolvable(r.source_locator)]
    if not usable:
        raise SelectError(SelectErrorKind.NO_USABLE_RENDITION)
    with_bitrate = [r for r in usable if r.bitrate_hint is not None]
    chosen = _best(with_bitrate or usable)
    logger.info(
        "Selected rendition %s (bitrate=%s)", chosen.resolution_label or "?", chosen.bitrate_hint
    )
    return chosen


def select_subtitle(
    manifest: MediaManifest, preferred_language: Optional[str] = None
) -> Optional[SubtitleTrack]:
    recognized = [
        track
        for track in manifest.subtitles
        if track.format.recognized and is_resolvable(track.source_locator)
    ]
    if not recognized:
        return None
    if preferred_language:
        wanted = preferred_language.lower()
        for track in recognized:
            if track.language_code.lower() == wanted:
                return track
        logger.info("No %s subtitle track; using %s", preferred_language, recognized[0].language_code)
    return recognized[0]


def select_streams(
    manifest: MediaManifest, preferred_language: Optional[str] = None
) -> Tuple[VideoRendition, Optional[SubtitleTrack]]:
    """Return the best rendition and the subtitle track to embed, if any."""
    rendition = select_rendition(manifest)
    subtitle = select_subtitle(manifest, preferred_language)
    if subtitle:
        logger.info("Selected %s subtitle (%s)", subtitle.language_code, subtitle.format.value)
    return rendition, subtitle
