"""Data models used throughout the download pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union
from urllib.parse import urlparse

from .errors import InvalidPageReference


class SubtitleFormat(Enum):
    WEBVTT = "vtt"
    SRT = "srt"
    UNKNOWN = "unknown"

    @property
    def recognized(self) -> bool:
        return self is not SubtitleFormat.UNKNOWN


class AssetKind(Enum):
    VIDEO = "video"
    SUBTITLE = "subtitle"


class Stage(Enum):
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    SELECTING = "selecting"
    DOWNLOADING = "downloading"
    MUXING = "muxing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class PageReference:
    """A validated HTTPS URL identifying one catalog page."""

    url: str

    def __post_init__(self) -> None:
        parsed = urlparse(self.url)
        if parsed.scheme != "https":
            raise InvalidPageReference(f"Expected an https URL, got {self.url!r}")
        if not parsed.hostname:
            raise InvalidPageReference(f"URL has no host: {self.url!r}")

    @classmethod
    def parse(cls, url: str) -> "PageReference":
        return cls(url.strip())


@dataclass(frozen=True)
class VideoRendition:
    """One quality variant of the page's video."""

    resolution_label: str
    bitrate_hint: Optional[int]
    source_locator: str


@dataclass(frozen=True)
class SubtitleTrack:
    """A subtitle file referenced by the page payload."""

    language_code: str
    format: SubtitleFormat
    source_locator: str


@dataclass(frozen=True)
class TranscriptCue:
    """One timed sentence from an inline page transcript."""

    start_ms: int
    text: str


@dataclass(frozen=True)
class MediaManifest:
    """Everything the extractor learned about a page."""

    page_url: str
    title: Optional[str]
    renditions: Tuple[VideoRendition, ...]
    subtitles: Tuple[SubtitleTrack, ...] = ()
    transcript: Tuple[TranscriptCue, ...] = ()


@dataclass(frozen=True)
class DownloadedAsset:
    """A stream persisted to local temporary storage."""

    kind: AssetKind
    local_path: Path
    byte_length: int
    complete: bool
    extension: str


@dataclass(frozen=True)
class Success:
    final_path: Path
    sidecar_path: Optional[Path] = None

    ok = True

    @property
    def paths(self) -> Tuple[Path, ...]:
        if self.sidecar_path is None:
            return (self.final_path,)
        return (self.final_path, self.sidecar_path)


@dataclass(frozen=True)
class Failure:
    stage: Stage
    reason: str

    ok = False


PipelineOutcome = Union[Success, Failure]
