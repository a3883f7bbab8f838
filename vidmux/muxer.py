"""Embed subtitles with an external muxing tool, or place them alongside."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Callable, List, Optional

from .config import DEFAULT_MUX_TOOL
from .errors import MuxError, MuxErrorKind
from .models import DownloadedAsset, Success

logger = logging.getLogger("vidmux.muxer")

MP4_FAMILY = {"mp4", "m4v", "mov"}
STDERR_TAIL_CHARS = 2000


def subtitle_codec_for(container_ext: str) -> Optional[str]:
    """Soft-subtitle codec accepted by the output container, or None."""
    ext = container_ext.lower()
    if ext in MP4_FAMILY:
        return "mov_text"
    if ext == "webm":
        return "webvtt"
    if ext == "mkv":
        return "srt"
    return None


def _move(source: Path, target: Path) -> None:
    shutil.move(str(source), str(target))
    logger.info("Saved %s", target)


def _remove_partial(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


class Muxer:
    """Adapter around the optional muxing executable (ffmpeg by default)."""

    def __init__(
        self,
        tool: str = DEFAULT_MUX_TOOL,
        timeout: float = 600.0,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.tool = tool
        self.timeout = timeout
        self._which = which

    def probe(self) -> Optional[str]:
        """Return the resolved executable path, or None when it is not on PATH."""
        executable = self._which(self.tool)
        if executable:
            logger.debug("Found %s at %s", self.tool, executable)
        else:
            logger.debug("%s not found on PATH", self.tool)
        return executable

    def build_command(
        self,
        executable: str,
        video: DownloadedAsset,
        subtitle: DownloadedAsset,
        output_path: Path,
        language_code: str,
    ) -> List[str]:
        return [
            executable,
            "-y",
            "-nostdin",
            "-loglevel",
            "error",
            "-i",
            str(video.local_path),
            "-i",
            str(subtitle.local_path),
            "-map",
            "0",
            "-map",
            "1",
            "-c",
            "copy",
            "-c:s",
            subtitle_codec_for(video.extension),
            "-metadata:s:s:0",
            f"language={language_code}",
            str(output_path),
        ]

    def mux(
        self,
        video: DownloadedAsset,
        subtitle: Optional[DownloadedAsset],
        output_path: Path,
        language_code: str = "und",
        overwrite: bool = False,
    ) -> Success:
        """Produce the final artifact(s) at ``output_path``."""
        executable = None
        if subtitle is not None:
            if subtitle_codec_for(video.extension) is None:
                logger.warning(
                    "%s files cannot carry soft subtitles; writing subtitle next to the video",
                    video.extension,
                )
            else:
                executable = self.probe()
                if executable is None:
                    logger.warning(
                        "%s is not available; writing subtitle next to the video", self.tool
                    )
        sidecar_path = None
        if subtitle is not None and executable is None:
            sidecar_path = output_path.with_suffix(f".{subtitle.extension}")

        if not overwrite:
            for target in (output_path, sidecar_path):
                if target is not None and target.exists():
                    raise MuxError(MuxErrorKind.OUTPUT_EXISTS, str(target))

        if subtitle is None:
            _move(video.local_path, output_path)
            return Success(final_path=output_path)

        if executable is None:
            _move(video.local_path, output_path)
            try:
                _move(subtitle.local_path, sidecar_path)
            except OSError:
                _remove_partial(output_path)
                raise
            return Success(final_path=output_path, sidecar_path=sidecar_path)

        command = self.build_command(executable, video, subtitle, output_path, language_code)
        logger.info("Embedding subtitle with %s", self.tool)
        logger.debug("Running %s", " ".join(command))
        try:
            result = subprocess.run(
                command,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            _remove_partial(output_path)
            raise MuxError(
                MuxErrorKind.TIMEOUT, f"{self.tool} exceeded {self.timeout:.0f}s"
            ) from exc
        except OSError as exc:
            _remove_partial(output_path)
            raise MuxError(MuxErrorKind.TOOL_FAILED, f"cannot run {executable}: {exc}") from exc
        except KeyboardInterrupt:
            _remove_partial(output_path)
            raise

        if result.returncode != 0:
            _remove_partial(output_path)
            stderr = (result.stderr or "")[-STDERR_TAIL_CHARS:]
            raise MuxError(
                MuxErrorKind.TOOL_FAILED,
                f"{self.tool} exited with status {result.returncode}",
                exit_code=result.returncode,
                stderr=stderr,
            )

        logger.info("Saved %s", output_path)
        return Success(final_path=output_path)
