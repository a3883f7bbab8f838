"""Locate and validate the media payload embedded in a catalog page."""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Sequence
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .errors import ExtractError, ExtractErrorKind
from .models import MediaManifest, SubtitleFormat, SubtitleTrack, TranscriptCue, VideoRendition
from .utils import locator_suffix

logger = logging.getLogger("vidmux.extractor")

PAYLOAD_SCRIPT_TYPES = ("application/json", "application/ld+json")
RENDITION_KEYS = ("renditions", "sources")
SUBTITLE_KEYS = ("subtitles", "captions", "tracks")
LOCATOR_FIELDS = ("url", "src", "contentUrl")
LABEL_FIELDS = ("label", "resolution", "quality", "height")
BITRATE_FIELDS = ("bitrate", "bandwidth")
LANGUAGE_FIELDS = ("language", "lang", "srclang")
FORMAT_FIELDS = ("format", "kind", "mimeType")
TITLE_FIELDS = ("title", "name")

_FORMAT_ALIASES = {
    "vtt": SubtitleFormat.WEBVTT,
    "webvtt": SubtitleFormat.WEBVTT,
    "text/vtt": SubtitleFormat.WEBVTT,
    "srt": SubtitleFormat.SRT,
    "subrip": SubtitleFormat.SRT,
    "application/x-subrip": SubtitleFormat.SRT,
    "text/srt": SubtitleFormat.SRT,
}


def _first(node: Mapping[str, Any], fields: Sequence[str]) -> Any:
    for field in fields:
        value = node.get(field)
        if value not in (None, ""):
            return value
    return None


def _iter_payload_blocks(soup: BeautifulSoup) -> Iterator[str]:
    """Yield the raw text of candidate structured-data scripts in page order."""
    for script in soup.find_all("script"):
        script_type = (script.get("type") or "").split(";")[0].strip().lower()
        if script_type in PAYLOAD_SCRIPT_TYPES:
            yield script.string or script.get_text() or ""


def _walk(tree: Any) -> Iterator[Mapping[str, Any]]:
    """Depth-first traversal over every JSON object in document order."""
    stack = [tree]
    while stack:
        node = stack.pop()
        if isinstance(node, dict):
            yield node
            stack.extend(reversed(list(node.values())))
        elif isinstance(node, list):
            stack.extend(reversed(node))


def _rendition_list(node: Mapping[str, Any]) -> Optional[list]:
    for key in RENDITION_KEYS:
        value = node.get(key)
        if isinstance(value, list):
            return value
    return None


def _find_media_node(trees: Iterable[Any]) -> Optional[Mapping[str, Any]]:
    """First object whose rendition list holds objects.

    Keys with other value types are unrelated fields and are skipped. A node
    with an empty or object-free list is only used when nothing better exists.
    """
    fallback = None
    for tree in trees:
        for node in _walk(tree):
            value = _rendition_list(node)
            if value is None:
                continue
            if any(isinstance(entry, dict) for entry in value):
                return node
            if fallback is None:
                fallback = node
    return fallback


def _parse_bitrate(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return None


def parse_subtitle_format(value: Any, locator: str = "") -> SubtitleFormat:
    """Map a declared format (or the locator suffix) to a SubtitleFormat."""
    if isinstance(value, str):
        declared = _FORMAT_ALIASES.get(value.split(";")[0].strip().lower())
        if declared:
            return declared
        if value.strip().lower() not in ("subtitles", "captions"):
            return SubtitleFormat.UNKNOWN
    return _FORMAT_ALIASES.get(locator_suffix(locator), SubtitleFormat.UNKNOWN)


def _resolve(page_url: str, locator: Any) -> str:
    if not isinstance(locator, str) or not locator.strip():
        return ""
    return urljoin(page_url, locator.strip())


def _parse_renditions(raw: Any, page_url: str) -> List[VideoRendition]:
    if not isinstance(raw, list):
        raise ExtractError(
            ExtractErrorKind.MALFORMED_PAYLOAD, "rendition list is not an array"
        )
    renditions: List[VideoRendition] = []
    seen = set()
    for entry in raw:
        if not isinstance(entry, dict):
            raise ExtractError(
                ExtractErrorKind.MALFORMED_PAYLOAD, "rendition entry is not an object"
            )
        locator = _resolve(page_url, _first(entry, LOCATOR_FIELDS))
        if locator and locator in seen:
            logger.debug("Dropping duplicate rendition %s", locator)
            continue
        seen.add(locator)
        label = _first(entry, LABEL_FIELDS)
        renditions.append(
            VideoRendition(
                resolution_label=str(label) if label is not None else "",
                bitrate_hint=_parse_bitrate(_first(entry, BITRATE_FIELDS)),
                source_locator=locator,
            )
        )
    return renditions


def _parse_subtitles(raw: Any, page_url: str) -> List[SubtitleTrack]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ExtractError(
            ExtractErrorKind.MALFORMED_PAYLOAD, "subtitle list is not an array"
        )
    tracks: List[SubtitleTrack] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        locator = _resolve(page_url, _first(entry, LOCATOR_FIELDS))
        language = _first(entry, LANGUAGE_FIELDS)
        tracks.append(
            SubtitleTrack(
                language_code=str(language) if language else "und",
                format=parse_subtitle_format(_first(entry, FORMAT_FIELDS), locator),
                source_locator=locator,
            )
        )
    return tracks


def extract_transcript(soup: BeautifulSoup) -> List[TranscriptCue]:
    """Collect timed sentences from an inline ``.transcript`` section."""
    cues: List[TranscriptCue] = []
    for element in soup.select(".transcript [data-start]"):
        try:
            start = float(element["data-start"])
        except (TypeError, ValueError):
            continue
        text = element.get_text(" ", strip=True)
        if text:
            cues.append(TranscriptCue(start_ms=int(start * 1000), text=text))
    return cues


def extract_manifest(html: str, page_url: str) -> MediaManifest:
    """Build a MediaManifest from the structured data embedded in a page."""
    soup = BeautifulSoup(html, "html.parser")

    blocks = list(_iter_payload_blocks(soup))
    if not blocks:
        raise ExtractError(ExtractErrorKind.PAYLOAD_NOT_FOUND)

    trees = []
    for block in blocks:
        try:
            trees.append(json.loads(block))
        except ValueError:
            logger.debug("Skipping undecodable payload block (%d chars)", len(block))
    if not trees:
        raise ExtractError(
            ExtractErrorKind.MALFORMED_PAYLOAD, "no payload block is valid JSON"
        )

    node = _find_media_node(trees)
    if node is None:
        raise ExtractError(
            ExtractErrorKind.PAYLOAD_NOT_FOUND, "no payload carries a rendition list"
        )

    renditions = _parse_renditions(_rendition_list(node), page_url)
    if not renditions:
        raise ExtractError(ExtractErrorKind.NO_RENDITIONS)

    subtitles = _parse_subtitles(_first(node, SUBTITLE_KEYS), page_url)

    title = _first(node, TITLE_FIELDS)
    if not isinstance(title, str):
        title = None
    if not title and soup.title and soup.title.string:
        title = soup.title.string.strip()

    transcript = extract_transcript(soup)
    logger.info(
        "Found %d rendition(s), %d subtitle track(s), %d transcript cue(s)",
        len(renditions),
        len(subtitles),
        len(transcript),
    )
    return MediaManifest(
        page_url=page_url,
        title=title or None,
        renditions=tuple(renditions),
        subtitles=tuple(subtitles),
        transcript=tuple(transcript),
    )
