"""Taskfile parsing into Task records.

This module turns the YAML text of a Taskfile (``tasks`` plus optional
``includes``) into an ordered list of Task records. Dependency names are not
resolved here; that happens when the dependency graph is built, so tasks may
reference tasks declared later in the same file.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

import structlog
import yaml

from taskdep.errors import ParseError, SchemaError

logger = structlog.get_logger(__name__)

NAMESPACE_SEPARATOR = ":"
DEFAULT_TASKFILE_NAMES = ("Taskfile.yaml", "Taskfile.yml")
MERGE_TAG = "tag:yaml.org,2002:merge"


@dataclass(frozen=True)
class Task:
    """A single declared task.

    Attributes:
        name: Fully qualified task name (``namespace:name`` for included tasks)
        dependencies: Dependency names in declaration order, possibly unresolved
        description: The task's ``desc`` field, if any
    """

    name: str
    dependencies: tuple[str, ...] = ()
    description: str | None = None


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def _line_of(node: yaml.Node) -> int:
    return node.start_mark.line + 1


class TaskDefinitionParser:
    """Parser for Taskfile documents.

    Supports the Taskfile v3 ``tasks`` mapping, a plain list of
    ``{name, deps, desc}`` entries, and namespaced ``includes``.

    Example:
        >>> parser = TaskDefinitionParser()
        >>> parser.parse("tasks:\\n  a: {}\\n  b:\\n    deps: [a]\\n")
        [Task(name='a', dependencies=(), description=None), Task(name='b', dependencies=('a',), description=None)]
    """

    def __init__(self, read_file: Callable[[Path], str] | None = None):
        """Initialize the parser.

        Args:
            read_file: Callable used to read included Taskfiles. Defaults to
                reading UTF-8 text from the filesystem.
        """
        self._read_file = read_file or _read_text

    def parse(
        self,
        text: str,
        *,
        base_dir: str | Path | None = None,
        source: str = "<string>",
    ) -> list[Task]:
        """Parse Taskfile text into Task records.

        Args:
            text: Raw YAML text
            base_dir: Directory that relative include paths are resolved against
            source: Name used for this document in error messages

        Returns:
            Task records in declaration order, included tasks first

        Raises:
            ParseError: If the text (or an included file) is not valid YAML
            SchemaError: If the document does not describe tasks correctly
        """
        tasks = self._parse_document(
            text,
            source=source,
            base_dir=Path(base_dir) if base_dir is not None else Path(),
            namespace=(),
            include_chain=(),
        )
        logger.info("taskfile_parsed", source=source, task_count=len(tasks))
        return tasks

    def parse_file(self, path: str | Path) -> list[Task]:
        """Read and parse a Taskfile from disk.

        Args:
            path: Path to the Taskfile

        Returns:
            Task records in declaration order

        Raises:
            ParseError: If the file cannot be read or is not valid YAML
            SchemaError: If the document does not describe tasks correctly
        """
        path = Path(path)
        text = self._read(path)
        tasks = self._parse_document(
            text,
            source=str(path),
            base_dir=path.parent,
            namespace=(),
            include_chain=(path.resolve(),),
        )
        logger.info("taskfile_parsed", source=str(path), task_count=len(tasks))
        return tasks

    def _read(self, path: Path) -> str:
        try:
            return self._read_file(path)
        except (OSError, UnicodeDecodeError) as e:
            msg = f"cannot read Taskfile {path}: {e}"
            raise ParseError(msg) from e

    def _parse_document(
        self,
        text: str,
        *,
        source: str,
        base_dir: Path,
        namespace: tuple[str, ...],
        include_chain: tuple[Path, ...],
    ) -> list[Task]:
        loader = None
        try:
            # The reader rejects non-printable characters on construction.
            loader = yaml.SafeLoader(text)
            root = loader.get_single_node()
            if root is None:
                return []
            if not isinstance(root, yaml.MappingNode):
                msg = f"{source}: top level of a Taskfile must be a mapping"
                raise SchemaError(msg)

            loader.flatten_mapping(root)
            sections: dict[str, yaml.Node] = {}
            for key_node, value_node in root.value:
                key = loader.construct_object(key_node, deep=True)
                if key in ("tasks", "includes"):
                    sections[key] = value_node

            if "tasks" not in sections:
                msg = f"{source}: tasks not found"
                raise SchemaError(msg)

            tasks: list[Task] = []
            if "includes" in sections:
                includes = loader.construct_object(sections["includes"], deep=True)
                tasks.extend(
                    self._parse_includes(
                        includes,
                        source=source,
                        base_dir=base_dir,
                        namespace=namespace,
                        include_chain=include_chain,
                    ),
                )
            tasks.extend(self._parse_tasks(loader, sections["tasks"], source, namespace))
        except yaml.YAMLError as e:
            msg = f"{source}: invalid YAML: {e}"
            raise ParseError(msg) from e
        finally:
            if loader is not None:
                loader.dispose()

        return tasks

    def _parse_tasks(
        self,
        loader: yaml.SafeLoader,
        node: yaml.Node,
        source: str,
        namespace: tuple[str, ...],
    ) -> list[Task]:
        if isinstance(node, yaml.MappingNode):
            return self._parse_task_mapping(loader, node, source, namespace)

        entries = loader.construct_object(node, deep=True)
        if entries is None:
            return []
        if not isinstance(entries, list):
            msg = f"{source}: tasks is not a mapping or a list"
            raise SchemaError(msg)

        tasks = []
        for index, entry in enumerate(entries, 1):
            if not isinstance(entry, Mapping) or not isinstance(entry.get("name"), str):
                msg = f"{source}: task entry #{index} lacks a 'name' field"
                raise SchemaError(msg)
            tasks.append(self._make_task(entry["name"], entry, source, namespace))
        return tasks

    def _parse_task_mapping(
        self,
        loader: yaml.SafeLoader,
        node: yaml.MappingNode,
        source: str,
        namespace: tuple[str, ...],
    ) -> list[Task]:
        # Walk the raw node pairs: constructing the mapping would silently
        # keep only the last of two identically named tasks. Keys pulled in
        # through a ``<<`` merge may be overridden by an explicit key.
        explicit = {id(key_node) for key_node, _ in node.value if key_node.tag != MERGE_TAG}
        loader.flatten_mapping(node)

        declared: dict[str, tuple[int, yaml.Node, bool]] = {}
        for key_node, body_node in node.value:
            name = loader.construct_object(key_node, deep=True)
            line = _line_of(key_node)
            if not isinstance(name, str) or not name:
                msg = f"{source}:{line}: task name must be a non-empty string, got {name!r}"
                raise SchemaError(msg)
            is_explicit = id(key_node) in explicit
            if name in declared:
                first_line, _, was_explicit = declared[name]
                if is_explicit and was_explicit:
                    msg = (
                        f"{source}:{line}: duplicate task name '{name}' "
                        f"(first declared on line {first_line})"
                    )
                    raise SchemaError(msg)
            declared[name] = (line, body_node, is_explicit)

        tasks = []
        for name, (_, body_node, _) in declared.items():
            body = loader.construct_object(body_node, deep=True)
            tasks.append(self._make_task(name, body, source, namespace))
        return tasks

    def _make_task(
        self,
        name: str,
        body: object,
        source: str,
        namespace: tuple[str, ...],
    ) -> Task:
        full_name = NAMESPACE_SEPARATOR.join((*namespace, name))

        # A task body may also be a bare command string or list of commands.
        if body is None or isinstance(body, str | list):
            return Task(name=full_name)
        if not isinstance(body, Mapping):
            msg = f"{source}: task '{full_name}' has an invalid definition"
            raise SchemaError(msg)

        raw_deps = body.get("deps")
        if raw_deps is None:
            raw_deps = []
        if not isinstance(raw_deps, list):
            msg = f"{source}: deps of task '{full_name}' is not a list"
            raise SchemaError(msg)

        dependencies = []
        for dep in raw_deps:
            if isinstance(dep, Mapping):
                dep = dep.get("task")
                if not isinstance(dep, str):
                    msg = f"{source}: couldn't find name of a dependency of task '{full_name}'"
                    raise SchemaError(msg)
            elif not isinstance(dep, str):
                msg = f"{source}: incorrect type for a dependency of task '{full_name}': {dep!r}"
                raise SchemaError(msg)
            dependencies.append(self._qualify_dependency(dep, namespace))

        description = body.get("desc")
        return Task(
            name=full_name,
            dependencies=tuple(dependencies),
            description=str(description) if description is not None else None,
        )

    @staticmethod
    def _qualify_dependency(dep: str, namespace: tuple[str, ...]) -> str:
        # A leading separator addresses the root namespace.
        if dep.startswith(NAMESPACE_SEPARATOR):
            return dep[len(NAMESPACE_SEPARATOR) :]
        return NAMESPACE_SEPARATOR.join((*namespace, dep))

    def _parse_includes(
        self,
        includes: object,
        *,
        source: str,
        base_dir: Path,
        namespace: tuple[str, ...],
        include_chain: tuple[Path, ...],
    ) -> list[Task]:
        if includes is None:
            return []
        if not isinstance(includes, Mapping):
            msg = f"{source}: includes is not a mapping"
            raise SchemaError(msg)

        tasks = []
        for include_name, descr in includes.items():
            if not isinstance(include_name, str):
                msg = f"{source}: include namespace is not a string: {include_name!r}"
                raise SchemaError(msg)

            optional = False
            if isinstance(descr, str):
                taskfile = descr
            elif isinstance(descr, Mapping) and isinstance(descr.get("taskfile"), str):
                taskfile = descr["taskfile"]
                optional = bool(descr.get("optional", False))
            elif isinstance(descr, Mapping):
                msg = f"{source}: couldn't find taskfile name to include for '{include_name}'"
                raise SchemaError(msg)
            else:
                msg = f"{source}: incorrect type for include '{include_name}'"
                raise SchemaError(msg)

            path = self._resolve_include_path(base_dir, taskfile)
            resolved = path.resolve()
            if resolved in include_chain:
                chain = " -> ".join(str(p) for p in (*include_chain, resolved))
                msg = f"{source}: recursive include detected: {chain}"
                raise SchemaError(msg)

            try:
                text = self._read(path)
            except ParseError:
                if optional:
                    logger.info("optional_include_skipped", namespace=include_name, path=str(path))
                    continue
                raise

            logger.debug("parsing_included_taskfile", namespace=include_name, path=str(path))
            tasks.extend(
                self._parse_document(
                    text,
                    source=str(path),
                    base_dir=path.parent,
                    namespace=(*namespace, include_name),
                    include_chain=(*include_chain, resolved),
                ),
            )
        return tasks

    @staticmethod
    def _resolve_include_path(base_dir: Path, taskfile: str) -> Path:
        path = Path(taskfile).expanduser()
        if not path.is_absolute():
            path = base_dir / path
        if path.is_dir():
            for name in DEFAULT_TASKFILE_NAMES:
                if (path / name).exists():
                    return path / name
            return path / DEFAULT_TASKFILE_NAMES[0]
        return path
