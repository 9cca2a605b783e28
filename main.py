#!/usr/bin/env python3
"""Main Entry Point and CLI Integration.

Display a Taskfile dependency graph: consume ``Taskfile.yaml`` and generate
``Taskfile.svg`` showing the dependency graph, with cycles drawn in red.
"""

import argparse
import sys

import structlog
from pydantic import ValidationError

from taskdep import __version__
from taskdep.config import TaskdepConfig, load_config
from taskdep.errors import TaskdepError
from taskdep.log_config import clear_context, configure_logging
from taskdep.pipeline import TaskGraphPipeline

logger = structlog.get_logger(__name__)


def build_config(args: argparse.Namespace) -> TaskdepConfig:
    """Load configuration and apply command-line overrides.

    Args:
        args: Parsed command-line arguments

    Returns:
        Configuration with CLI flags taking precedence over file and environment
    """
    config = load_config(args.config)

    overrides = {
        "taskfile": args.file,
        "output": args.output,
        "image_format": args.format,
        "logging_level": args.log_level,
    }
    if args.silent:
        overrides["open_viewer"] = False
    if args.json_logs:
        overrides["json_logs"] = True

    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return config
    return TaskdepConfig(**{**config.model_dump(), **updates})


def run(args: argparse.Namespace) -> int:
    """Run taskdep for parsed arguments.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    configure_logging(args.log_level or "WARNING")

    try:
        config = build_config(args)
        configure_logging(config.logging_level, json_logs=config.json_logs)

        for warning in config.validate_config():
            logger.warning("configuration_warning", message=warning)

        pipeline = TaskGraphPipeline(config)

        if args.dot:
            sys.stdout.write(pipeline.describe_file(config.taskfile))
            return 0

        result = pipeline.run()
        if result.report.has_cycles:
            logger.warning(
                "circular_dependencies_found",
                cyclic_tasks=sorted(result.report.cyclic_tasks),
            )
        logger.info("taskdep_complete", image=str(result.image_path))

    except TaskdepError as e:
        logger.error("taskdep_failed", error=e.message, error_type=type(e).__name__)
        return 1

    except (ValidationError, ValueError) as e:
        logger.error("configuration_validation_error", error=str(e))
        return 1

    except OSError as e:
        logger.error("io_error", error=str(e))
        return 1

    finally:
        clear_context()

    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Arguments to parse; defaults to sys.argv[1:]

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="taskdep",
        description=(
            "Display Taskfile dependency graph.\n\n"
            "Consume `Taskfile.yaml` and generate `Taskfile.svg` showing the "
            "dependency graph. Cycles in the graph show in color red."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Render Taskfile.yaml to Taskfile.svg and open it in the browser
  taskdep

  # Render without opening the browser
  taskdep --silent

  # Print the Graphviz description instead of rendering it
  taskdep --dot > Taskfile.dot
        """,
    )

    parser.add_argument(
        "-f",
        "--file",
        type=str,
        default=None,
        help="Taskfile to read (default: Taskfile.yaml)",
    )

    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Image file to write (default: Taskfile name with the format's extension)",
    )

    parser.add_argument(
        "-s",
        "--silent",
        action="store_true",
        help="Do not open browser with the image file",
    )

    parser.add_argument(
        "--format",
        type=str,
        choices=["svg", "png", "pdf"],
        default=None,
        help="Image format (default: svg)",
    )

    parser.add_argument(
        "--dot",
        action="store_true",
        help="Print the Graphviz description to stdout instead of rendering it",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=str,
        default=None,
        help="Path to configuration YAML file (default: .taskdep.yaml if present)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set logging level (default: WARNING)",
    )

    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for taskdep.

    This function parses arguments, runs the pipeline and exits with the
    appropriate code.
    """
    args = parse_args(argv)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
