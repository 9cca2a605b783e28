"""End-to-end pipeline from Taskfile to rendered dependency graph.

Parse, build, detect cycles, emit DOT, then hand the text to the injected
renderer and viewer. Any error in the first four stages aborts the run
before anything is rendered or written.
"""

from dataclasses import dataclass
from pathlib import Path

import structlog

from taskdep.config import TaskdepConfig
from taskdep.graph import CycleDetector, CycleReport, DependencyGraph, GraphDescriptionEmitter
from taskdep.log_config import bind_context, unbind_context
from taskdep.render import BrowserViewer, GraphvizRenderer, Renderer, Viewer
from taskdep.taskfile import Task, TaskDefinitionParser

logger = structlog.get_logger(__name__)


@dataclass
class PipelineResult:
    """Outcome of a pipeline run.

    Attributes:
        graph: The annotated dependency graph
        report: Cycle detection report
        description: The emitted DOT text
        image_path: Where the rendered image was written, if rendered
    """

    graph: DependencyGraph
    report: CycleReport
    description: str
    image_path: Path | None = None


class TaskGraphPipeline:
    """Pipeline turning a Taskfile into a rendered dependency graph.

    Example:
        >>> pipeline = TaskGraphPipeline(TaskdepConfig(open_viewer=False))
        >>> result = pipeline.run()  # writes Taskfile.svg
    """

    def __init__(
        self,
        config: TaskdepConfig | None = None,
        *,
        parser: TaskDefinitionParser | None = None,
        detector: CycleDetector | None = None,
        emitter: GraphDescriptionEmitter | None = None,
        renderer: Renderer | None = None,
        viewer: Viewer | None = None,
    ):
        """Initialize the pipeline.

        Args:
            config: Settings; defaults to TaskdepConfig()
            parser: Taskfile parser
            detector: Cycle detector
            emitter: DOT emitter; built from the config when omitted
            renderer: Image renderer; a GraphvizRenderer from the config when omitted
            viewer: Image viewer; a BrowserViewer when omitted
        """
        self.config = config or TaskdepConfig()
        self.parser = parser or TaskDefinitionParser()
        self.detector = detector or CycleDetector()
        self.emitter = emitter or GraphDescriptionEmitter(
            cycle_color=self.config.cycle_color,
            rankdir=self.config.rankdir,
        )
        self.renderer = renderer or GraphvizRenderer(
            binary=self.config.renderer,
            image_format=self.config.image_format,
            timeout=self.config.render_timeout_seconds,
        )
        self.viewer = viewer or BrowserViewer()

    def describe(self, text: str, *, base_dir: str | Path | None = None) -> str:
        """Produce the DOT description of Taskfile text."""
        return self._analyze(self.parser.parse(text, base_dir=base_dir)).description

    def describe_file(self, path: str | Path) -> str:
        """Produce the DOT description of a Taskfile on disk."""
        return self.analyze_file(path).description

    def analyze_file(self, path: str | Path) -> PipelineResult:
        """Parse a Taskfile and run graph building, cycle detection and emission.

        Args:
            path: Taskfile to read

        Returns:
            PipelineResult without an image path

        Raises:
            ParseError: If the Taskfile cannot be read or is not valid YAML
            SchemaError: If task declarations are malformed or duplicated
            UnknownDependencyError: If a dependency names an undeclared task
        """
        return self._analyze(self.parser.parse_file(path))

    def _analyze(self, tasks: list[Task]) -> PipelineResult:
        graph = DependencyGraph.from_tasks(tasks)
        report = self.detector.annotate(graph)
        description = self.emitter.emit(graph)
        return PipelineResult(graph=graph, report=report, description=description)

    def run(
        self,
        taskfile: str | Path | None = None,
        output: str | Path | None = None,
        open_viewer: bool | None = None,
    ) -> PipelineResult:
        """Render the dependency graph of a Taskfile to an image.

        Args:
            taskfile: Taskfile to read; defaults to the configured one
            output: Image path; defaults to the configured one
            open_viewer: Whether to open the image; defaults to the config

        Returns:
            PipelineResult including the written image path

        Raises:
            TaskdepError: If any stage fails; no image is written unless
                rendering succeeded
        """
        taskfile = Path(taskfile) if taskfile is not None else self.config.taskfile
        if output is not None:
            image_path = Path(output)
        elif self.config.output is not None:
            image_path = self.config.output
        else:
            image_path = taskfile.with_suffix(f".{self.config.image_format}")
        if open_viewer is None:
            open_viewer = self.config.open_viewer

        bind_context(taskfile=str(taskfile))
        try:
            result = self.analyze_file(taskfile)
            logger.info("graph_analyzed", **result.graph.get_stats())

            image = self.renderer.render(result.description)
            image_path.write_bytes(image)
            result.image_path = image_path
            logger.info("image_written", path=str(image_path), size=len(image))

            if open_viewer:
                self.viewer.open(image_path)
        finally:
            unbind_context("taskfile")

        return result
