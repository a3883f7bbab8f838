"""Configuration objects and constants for the download pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/101.0.4951.64 Safari/537.36"
)
DEFAULT_MUX_TOOL = "ffmpeg"
MAX_REDIRECTS = 5


@dataclass
class PipelineConfig:
    """Top-level settings that control fetching, downloading and muxing."""

    user_agent: str = DEFAULT_USER_AGENT
    connect_timeout: float = 10.0
    read_timeout: float = 30.0
    max_attempts: int = 3
    backoff_base: float = 0.5
    backoff_cap: float = 4.0
    chunk_size: int = 64 * 1024
    mux_tool: str = DEFAULT_MUX_TOOL
    mux_timeout: float = 600.0
    overwrite: bool = False
    preferred_language: Optional[str] = None
    show_progress: bool = True

    @property
    def timeout(self) -> Tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)
