"""Error taxonomy shared by every pipeline component."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class FetchErrorKind(Enum):
    NOT_FOUND = "not found"
    SERVER_ERROR = "server error"
    TIMEOUT = "timeout"
    NETWORK = "network failure"


class ExtractErrorKind(Enum):
    PAYLOAD_NOT_FOUND = "no embedded media payload"
    MALFORMED_PAYLOAD = "malformed media payload"
    NO_RENDITIONS = "no video renditions"


class SelectErrorKind(Enum):
    NO_USABLE_RENDITION = "no usable rendition"


class DownloadErrorKind(Enum):
    UNRECOVERABLE = "unrecoverable download failure"
    INTERRUPTED = "download interrupted"


class MuxErrorKind(Enum):
    TOOL_FAILED = "mux tool failed"
    TIMEOUT = "mux tool timed out"
    TOOL_ABSENT = "mux tool not available"
    OUTPUT_EXISTS = "output already exists"


class PipelineError(Exception):
    """Base class for failures raised by a pipeline component."""

    def __init__(self, kind: Enum, detail: Optional[str] = None) -> None:
        self.kind = kind
        self.detail = detail
        message = kind.value if not detail else f"{kind.value}: {detail}"
        super().__init__(message)


class FetchError(PipelineError):
    kind: FetchErrorKind


class ExtractError(PipelineError):
    kind: ExtractErrorKind


class SelectError(PipelineError):
    kind: SelectErrorKind


class DownloadError(PipelineError):
    kind: DownloadErrorKind


class MuxError(PipelineError):
    """Muxer failure; ``exit_code`` and ``stderr`` are set for TOOL_FAILED."""

    kind: MuxErrorKind

    def __init__(
        self,
        kind: MuxErrorKind,
        detail: Optional[str] = None,
        exit_code: Optional[int] = None,
        stderr: str = "",
    ) -> None:
        super().__init__(kind, detail)
        self.exit_code = exit_code
        self.stderr = stderr


class InvalidPageReference(ValueError):
    """Raised when a page URL is not an HTTPS URL with a host."""
