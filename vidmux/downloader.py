"""Streaming asset downloads with bounded retries and length verification."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Optional, Tuple

import requests
from filetype import guess
from tqdm import tqdm

from .config import PipelineConfig
from .errors import DownloadError, DownloadErrorKind, FetchError, FetchErrorKind
from .fetcher import build_session, classify_request_error, classify_status
from .models import AssetKind, DownloadedAsset
from .utils import backoff_delays, locator_suffix

logger = logging.getLogger("vidmux.downloader")

VIDEO_EXTENSIONS = {"mp4", "m4v", "mov", "mkv", "webm", "avi", "flv", "ts"}
DEFAULT_VIDEO_EXTENSION = "mp4"
RETRYABLE_KINDS = {FetchErrorKind.TIMEOUT, FetchErrorKind.NETWORK}


class LengthMismatch(Exception):
    """Bytes on disk differ from what the server declared or sent."""


def detect_video_extension(path: Path, locator: str) -> str:
    """Sniff the container from the file signature, then fall back to the URL."""
    kind = guess(str(path))
    if kind and kind.mime.startswith("video/"):
        return kind.extension.lower()
    suffix = locator_suffix(locator)
    if suffix in VIDEO_EXTENSIONS:
        return suffix
    return DEFAULT_VIDEO_EXTENSION


def _declared_length(resp: requests.Response) -> Optional[int]:
    value = resp.headers.get("Content-Length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _check_cancel(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise DownloadError(DownloadErrorKind.INTERRUPTED)


def _transfer(
    session: requests.Session,
    locator: str,
    destination: Path,
    config: PipelineConfig,
    cancel: Optional[threading.Event],
    description: str,
) -> Tuple[int, Optional[int]]:
    """Stream one attempt to ``destination``; returns (written, declared)."""
    try:
        with session.get(
            locator,
            stream=True,
            timeout=config.timeout,
            headers={"Accept-Encoding": "identity"},
        ) as resp:
            if resp.status_code >= 400:
                raise classify_status(resp.status_code, locator)
            declared = _declared_length(resp)
            written = 0
            with destination.open("wb") as handle, tqdm(
                total=declared,
                unit="B",
                unit_scale=True,
                desc=description,
                disable=not config.show_progress,
                leave=False,
            ) as pbar:
                for chunk in resp.iter_content(chunk_size=config.chunk_size):
                    _check_cancel(cancel)
                    if not chunk:
                        continue
                    handle.write(chunk)
                    written += len(chunk)
                    pbar.update(len(chunk))
    except requests.RequestException as exc:
        raise classify_request_error(exc) from exc
    return written, declared


def _verify(destination: Path, written: int, declared: Optional[int]) -> None:
    on_disk = destination.stat().st_size
    if declared is not None and declared != written:
        raise LengthMismatch(f"declared {declared} bytes, received {written}")
    if on_disk != written:
        raise LengthMismatch(f"received {written} bytes, {on_disk} on disk")


def _discard(destination: Path) -> None:
    try:
        destination.unlink()
    except FileNotFoundError:
        pass


def _backoff(delay: float, cancel: Optional[threading.Event]) -> None:
    if cancel is None:
        time.sleep(delay)
    elif cancel.wait(delay):
        raise DownloadError(DownloadErrorKind.INTERRUPTED)


def download_asset(
    locator: str,
    kind: AssetKind,
    destination: Path,
    config: PipelineConfig,
    session: Optional[requests.Session] = None,
    cancel: Optional[threading.Event] = None,
    extension: Optional[str] = None,
) -> DownloadedAsset:
    """Download ``locator`` to ``destination``; raises DownloadError on failure.

    Timeouts, connection failures and length mismatches are retried with
    exponential backoff, each time into a truncated destination file. HTTP
    errors and local I/O errors fail immediately. A partial file never
    survives a failure.
    """
    session = session or build_session(config)
    delays = backoff_delays(config.max_attempts, config.backoff_base, config.backoff_cap)
    description = f"{kind.value} {destination.name}"
    last_error = "no attempt made"

    for attempt in range(1, config.max_attempts + 1):
        try:
            _check_cancel(cancel)
            logger.info("Downloading %s (attempt %d/%d): %s", kind.value, attempt, config.max_attempts, locator)
            written, declared = _transfer(session, locator, destination, config, cancel, description)
            _verify(destination, written, declared)
        except FetchError as exc:
            if exc.kind not in RETRYABLE_KINDS:
                _discard(destination)
                raise DownloadError(DownloadErrorKind.UNRECOVERABLE, str(exc)) from exc
            last_error = str(exc)
        except LengthMismatch as exc:
            last_error = str(exc)
        except DownloadError:
            _discard(destination)
            raise
        except OSError as exc:
            _discard(destination)
            raise DownloadError(DownloadErrorKind.UNRECOVERABLE, f"cannot write {destination}: {exc}") from exc
        else:
            asset = DownloadedAsset(
                kind=kind,
                local_path=destination,
                byte_length=written,
                complete=True,
                extension=extension or detect_video_extension(destination, locator),
            )
            logger.info("Downloaded %s (%d bytes)", kind.value, written)
            return asset

        logger.warning(
            "Attempt %d/%d for %s failed: %s", attempt, config.max_attempts, locator, last_error
        )
        _discard(destination)
        if attempt < config.max_attempts:
            _backoff(delays[attempt - 1], cancel)

    raise DownloadError(
        DownloadErrorKind.UNRECOVERABLE,
        f"{locator} failed after {config.max_attempts} attempts ({last_error})",
    )
