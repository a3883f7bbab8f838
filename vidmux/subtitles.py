"""Subtitle helpers: SRT synthesis from inline transcripts."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

from .models import AssetKind, DownloadedAsset, SubtitleFormat, TranscriptCue

logger = logging.getLogger("vidmux.subtitles")

LAST_CUE_DURATION_MS = 3000


def subtitle_extension(fmt: SubtitleFormat) -> str:
    return "srt" if fmt is SubtitleFormat.SRT else "vtt"


def format_timestamp(ms: int) -> str:
    """Render milliseconds as an SRT timestamp (HH:MM:SS,mmm)."""
    ms = max(ms, 0)
    hours, rem = divmod(ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    seconds, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}"


def compose_srt(cues: Sequence[TranscriptCue]) -> str:
    """Each cue lasts until the next one starts; the last lasts three seconds."""
    blocks: List[str] = []
    for index, cue in enumerate(cues):
        if index + 1 < len(cues):
            end_ms = max(cues[index + 1].start_ms, cue.start_ms)
        else:
            end_ms = cue.start_ms + LAST_CUE_DURATION_MS
        blocks.append(
            f"{index + 1}\n"
            f"{format_timestamp(cue.start_ms)} --> {format_timestamp(end_ms)}\n"
            f"{cue.text}\n"
        )
    return "\n".join(blocks)


def write_transcript_srt(cues: Sequence[TranscriptCue], destination: Path) -> DownloadedAsset:
    """Persist transcript cues as an SRT subtitle asset."""
    data = compose_srt(cues).encode("utf-8")
    destination.write_bytes(data)
    logger.info("Generated subtitle from %d transcript cue(s)", len(cues))
    return DownloadedAsset(
        kind=AssetKind.SUBTITLE,
        local_path=destination,
        byte_length=len(data),
        complete=destination.stat().st_size == len(data),
        extension=subtitle_extension(SubtitleFormat.SRT),
    )
