"""High-level orchestration from catalog page to final media file."""

from __future__ import annotations

import logging
import shutil
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional, Tuple

import requests

from .config import PipelineConfig
from .downloader import download_asset
from .errors import DownloadError, PipelineError
from .extractor import extract_manifest
from .fetcher import build_session, fetch_page
from .models import (
    AssetKind,
    DownloadedAsset,
    Failure,
    MediaManifest,
    PageReference,
    PipelineOutcome,
    Stage,
    SubtitleTrack,
    VideoRendition,
)
from .muxer import Muxer
from .selector import select_streams
from .subtitles import subtitle_extension, write_transcript_srt
from .utils import derive_output_name

logger = logging.getLogger("vidmux.pipeline")

SessionFactory = Callable[[], requests.Session]
INTERRUPTED_REASON = "interrupted"
WORKDIR_PREFIX = ".vidmux-"


class StageTracker:
    """Current pipeline stage; moves forward one step at a time or to FAILED."""

    def __init__(self) -> None:
        self.stage = Stage.FETCHING

    def advance(self, stage: Stage) -> None:
        logger.debug("Stage %s -> %s", self.stage.value, stage.value)
        self.stage = stage

    def fail(self, reason: str) -> Failure:
        failed_at = self.stage
        self.stage = Stage.FAILED
        return Failure(stage=failed_at, reason=reason)


def download_streams(
    rendition: VideoRendition,
    track: Optional[SubtitleTrack],
    workdir: Path,
    config: PipelineConfig,
    session_factory: SessionFactory,
    cancel: threading.Event,
) -> Tuple[DownloadedAsset, Optional[DownloadedAsset]]:
    """Fetch video and subtitle concurrently; only the video is required."""
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="vidmux-download") as pool:
        video_future = pool.submit(
            download_asset,
            rendition.source_locator,
            AssetKind.VIDEO,
            workdir / "video.part",
            config,
            session_factory(),
            cancel,
        )
        subtitle_future = None
        if track is not None:
            subtitle_future = pool.submit(
                download_asset,
                track.source_locator,
                AssetKind.SUBTITLE,
                workdir / "subtitle.part",
                config,
                session_factory(),
                cancel,
                subtitle_extension(track.format),
            )

        try:
            video = video_future.result()
        except BaseException:
            cancel.set()
            raise

        subtitle = None
        if subtitle_future is not None:
            try:
                subtitle = subtitle_future.result()
            except DownloadError as exc:
                logger.warning("Continuing without subtitle: %s", exc)
    return video, subtitle


def _fallback_subtitle(
    manifest: MediaManifest, workdir: Path
) -> Optional[DownloadedAsset]:
    if not manifest.transcript:
        return None
    return write_transcript_srt(manifest.transcript, workdir / "transcript.srt")


def _remove_workdir(workdir: Optional[Path]) -> None:
    if workdir is None:
        return
    try:
        shutil.rmtree(workdir)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove temporary directory %s: %s", workdir, exc)


def run_pipeline(
    page: PageReference,
    destination: Path,
    config: Optional[PipelineConfig] = None,
    muxer: Optional[Muxer] = None,
    session_factory: Optional[SessionFactory] = None,
) -> PipelineOutcome:
    """Resolve one catalog page into a local media file.

    Always returns an outcome: component errors become ``Failure`` values
    carrying the stage they happened in. Temporary downloads are removed on
    every exit path; only the files named by a ``Success`` remain.
    """
    config = config or PipelineConfig()
    muxer = muxer or Muxer(config.mux_tool, config.mux_timeout)
    session_factory = session_factory or (lambda: build_session(config))
    tracker = StageTracker()
    cancel = threading.Event()
    workdir: Optional[Path] = None

    try:
        html = fetch_page(page, config, session_factory())

        tracker.advance(Stage.EXTRACTING)
        manifest = extract_manifest(html, page.url)

        tracker.advance(Stage.SELECTING)
        rendition, track = select_streams(manifest, config.preferred_language)

        tracker.advance(Stage.DOWNLOADING)
        destination.mkdir(parents=True, exist_ok=True)
        workdir = Path(tempfile.mkdtemp(prefix=WORKDIR_PREFIX, dir=destination))
        video, subtitle = download_streams(
            rendition, track, workdir, config, session_factory, cancel
        )
        language = track.language_code if track is not None else "und"
        if track is None:
            subtitle = _fallback_subtitle(manifest, workdir)
            language = config.preferred_language or "und"

        tracker.advance(Stage.MUXING)
        name = derive_output_name(manifest.title, rendition.source_locator)
        output_path = destination / f"{name}.{video.extension}"
        outcome = muxer.mux(
            video,
            subtitle if subtitle is not None and subtitle.complete else None,
            output_path,
            language_code=language,
            overwrite=config.overwrite,
        )

        tracker.advance(Stage.DONE)
        return outcome
    except (PipelineError, OSError) as exc:
        logger.error("Failed while %s: %s", tracker.stage.value, exc)
        return tracker.fail(str(exc))
    except KeyboardInterrupt:
        cancel.set()
        logger.error("Interrupted while %s", tracker.stage.value)
        return tracker.fail(INTERRUPTED_REASON)
    finally:
        cancel.set()
        _remove_workdir(workdir)
