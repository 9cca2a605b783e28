"""Rendering and viewing of graph descriptions.

Rendering runs the Graphviz ``dot`` binary on the emitted DOT text; viewing
opens the resulting image in the default browser. Both are injected into the
pipeline so the core never spawns processes itself.
"""

import subprocess
import webbrowser
from pathlib import Path
from typing import Protocol

import structlog

from taskdep.errors import RenderError

logger = structlog.get_logger(__name__)


class Renderer(Protocol):
    """Turns a graph description into image bytes."""

    def render(self, description: str) -> bytes: ...


class Viewer(Protocol):
    """Displays a rendered image."""

    def open(self, path: Path) -> None: ...


class GraphvizRenderer:
    """Renderer piping DOT text through a Graphviz layout binary.

    Example:
        >>> renderer = GraphvizRenderer(image_format="svg")
        >>> svg = renderer.render('digraph { "a" -> "b"; }')
    """

    def __init__(self, binary: str = "dot", image_format: str = "svg", timeout: float = 60):
        """Initialize the renderer.

        Args:
            binary: Graphviz executable to run
            image_format: Output format passed as ``-T<format>``
            timeout: Maximum run time in seconds
        """
        self.binary = binary
        self.image_format = image_format
        self.timeout = timeout

    def render(self, description: str) -> bytes:
        """Render DOT text to an image.

        Args:
            description: DOT source text

        Returns:
            The rendered image

        Raises:
            RenderError: If the binary is missing, fails, times out or
                produces no output
        """
        command = [self.binary, f"-T{self.image_format}"]
        logger.debug("rendering_graph", command=command, size=len(description))

        try:
            result = subprocess.run(
                command,
                input=description.encode("utf-8"),
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            msg = (
                f"command `{self.binary}` not found "
                "(please, make sure `graphviz` is installed)"
            )
            raise RenderError(msg) from e
        except subprocess.TimeoutExpired as e:
            msg = f"`{self.binary}` did not finish within {self.timeout}s"
            raise RenderError(msg) from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            msg = f"failed to create image: `{self.binary}` exited with {result.returncode}"
            if stderr:
                msg = f"{msg}: {stderr}"
            raise RenderError(msg)

        if not result.stdout:
            msg = f"failed to create image: `{self.binary}` produced no output"
            raise RenderError(msg)

        logger.info("graph_rendered", image_format=self.image_format, size=len(result.stdout))
        return result.stdout


class BrowserViewer:
    """Viewer opening images in the system's default browser."""

    def open(self, path: Path) -> None:
        """Open an image file.

        Args:
            path: Image to display

        Raises:
            RenderError: If no browser could be launched
        """
        url = Path(path).resolve().as_uri()
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error as e:
            msg = f"couldn't open browser for {url}: {e}"
            raise RenderError(msg) from e

        if not opened:
            msg = f"couldn't open browser for {url}"
            raise RenderError(msg)

        logger.info("viewer_opened", url=url)
