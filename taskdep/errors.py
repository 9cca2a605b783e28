"""Error taxonomy for taskdep.

Every failure the tool reports derives from TaskdepError so the CLI can turn
it into a single log line and a non-zero exit status.
"""


class TaskdepError(Exception):
    """Base class for all taskdep errors."""

    def __init__(self, message: str):
        """Initialize the exception with a descriptive message.

        Args:
            message: Description of the error
        """
        super().__init__(message)
        self.message = message


class ParseError(TaskdepError):
    """Raised when a Taskfile is not well-formed YAML or cannot be read."""


class SchemaError(TaskdepError):
    """Raised when a Taskfile is valid YAML but not a valid task declaration.

    Covers missing or non-string task names, duplicate task names and
    malformed ``deps`` / ``includes`` sections.
    """


class UnknownDependencyError(TaskdepError):
    """Raised when a task depends on a name that no task declares."""

    def __init__(self, task: str, dependency: str):
        """Initialize the exception.

        Args:
            task: Name of the task declaring the dependency
            dependency: The dependency name that could not be resolved
        """
        super().__init__(f"task '{task}' depends on unknown task '{dependency}'")
        self.task = task
        self.dependency = dependency


class RenderError(TaskdepError):
    """Raised when the external renderer or viewer fails."""
