"""MCP server exposing the vidmux download tool."""

from __future__ import annotations

import logging
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from .config import PipelineConfig
from .models import PageReference
from .pipeline import run_pipeline

logger = logging.getLogger("vidmux.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="vidmux")


@mcp.tool()
def download(
    url: str,
    output: str = ".",
) -> str:
    """Download the video behind a catalog page and return the saved file path(s)."""

    destination = Path(output).expanduser()
    if destination.exists() and not destination.is_dir():
        raise NotADirectoryError(f"Output path is not a directory: {destination}")

    page = PageReference.parse(url)
    outcome = run_pipeline(page, destination, PipelineConfig(show_progress=False))
    if not outcome.ok:
        raise RuntimeError(f"Failed at {outcome.stage.value}: {outcome.reason}")
    return "\n".join(str(path) for path in outcome.paths)

def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()

if __name__ == "__main__":
    main()
