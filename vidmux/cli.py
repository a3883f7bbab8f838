"""Command-line entry point for the catalog video downloader."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Sequence

from .config import DEFAULT_MUX_TOOL, PipelineConfig
from .errors import InvalidPageReference
from .models import PageReference
from .pipeline import run_pipeline

logger = logging.getLogger("vidmux.cli")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Download the video behind a catalog page and embed its subtitles "
            "when ffmpeg is available."
        ),
    )
    parser.add_argument("url", help="HTTPS URL of the catalog page")
    parser.add_argument(
        "--output",
        default=".",
        type=Path,
        help="Directory where the video (and subtitle sidecar) should be written",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace existing files instead of failing",
    )
    parser.add_argument(
        "--language",
        default=None,
        help="Preferred subtitle language code (falls back to the first track)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Network read timeout in seconds",
    )
    parser.add_argument(
        "--mux-tool",
        default=DEFAULT_MUX_TOOL,
        help="Name or path of the muxing executable",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Hide download progress bars",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(list(sys.argv[1:] if argv is None else argv))


def _validate_output(path: Path) -> Path:
    resolved = path.expanduser().resolve()
    if resolved.exists() and not resolved.is_dir():
        raise ValueError(f"Output path is not a directory: {resolved}")
    return resolved


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    try:
        page = PageReference.parse(args.url)
        destination = _validate_output(args.output)
    except (InvalidPageReference, ValueError) as exc:
        sys.stderr.write(f"vidmux: error: {exc}\n")
        return 2

    config = PipelineConfig(
        read_timeout=args.timeout,
        mux_tool=args.mux_tool,
        overwrite=args.overwrite,
        preferred_language=args.language,
        show_progress=not args.no_progress,
    )

    overall_start = time.perf_counter()
    outcome = run_pipeline(page, destination, config)
    total_elapsed = time.perf_counter() - overall_start
    logger.debug("Finished in %.2fs", total_elapsed)

    if not outcome.ok:
        sys.stderr.write(f"Failed at {outcome.stage.value}: {outcome.reason}\n")
        return 1
    for path in outcome.paths:
        sys.stdout.write(f"{path}\n")
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
