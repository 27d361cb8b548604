"""Host adapter interface.

The reconciliation engine only talks to SonarQube through ``Host``:

    resolve_file / resolve_directory / resolve_module   -> Resource | None
    active_rules()                                      -> {rule key: ActiveRule}
    known_metrics()                                     -> {metric key: MetricDefinition}
    emit_measure(resource, key, value)
    emit_issue(resource, rule, message, text_range)

Adapters differ in where rules, metrics and resources come from. Emitted
measures and issues are collected on the host for export.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from sonargraph_bridge.naming import Direction
from sonargraph_bridge.paths import identifying_path, is_underneath


class ResourceKind(str, Enum):
    PROJECT = "PROJECT"
    MODULE = "MODULE"
    DIRECTORY = "DIRECTORY"
    FILE = "FILE"


@dataclass(frozen=True)
class Resource:
    kind: ResourceKind
    key: str
    path: str | None = None   # project-relative, forward slashes


@dataclass(frozen=True)
class ActiveRule:
    key: str
    severity: str = "MAJOR"
    name: str = ""


@dataclass(frozen=True)
class MetricDefinition:
    key: str
    name: str
    is_float: bool = False
    description: str = ""
    best_value: float | None = None
    worst_value: float | None = None
    direction: Direction = Direction.NONE


@dataclass(frozen=True)
class TextRange:
    """Issue anchor; positions follow SonarQube's (line, line offset) pointers."""

    start_line: int
    end_line: int
    start_offset: int = 0
    end_offset: int = 1


@dataclass
class Measure:
    resource: Resource
    metric_key: str
    value: int | float | str


@dataclass
class NewIssue:
    resource: Resource
    rule: ActiveRule
    message: str
    text_range: TextRange | None = None


class Host(ABC):
    def __init__(self, project_key: str, base_dir: str | Path) -> None:
        self.project_key = project_key
        self.base_dir = Path(base_dir).absolute()
        self._canonical_base = identifying_path(self.base_dir).rstrip("/")
        self.measures: list[Measure] = []
        self.issues: list[NewIssue] = []

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @abstractmethod
    def active_rules(self) -> dict[str, ActiveRule]:
        """Rules of the plugin's repository activated for the project."""

    @abstractmethod
    def known_metrics(self) -> dict[str, MetricDefinition]:
        """Metrics the host already knows, keyed by metric key."""

    @abstractmethod
    def _has_path(self, relative_path: str, kind: ResourceKind) -> bool:
        ...

    def resolve_file(self, absolute_path: str) -> Resource | None:
        return self._resolve(absolute_path, ResourceKind.FILE)

    def resolve_directory(self, absolute_path: str) -> Resource | None:
        return self._resolve(absolute_path, ResourceKind.DIRECTORY)

    def resolve_module(self, key: str, is_root: bool) -> Resource:
        return Resource(ResourceKind.PROJECT if is_root else ResourceKind.MODULE, key)

    def _resolve(self, absolute_path: str, kind: ResourceKind) -> Resource | None:
        # canonical on both sides so symlinks and ".." segments line up
        candidate = identifying_path(absolute_path)
        if not is_underneath(candidate, self._canonical_base):
            return None
        relative_path = candidate[len(self._canonical_base):].lstrip("/")
        if not relative_path:
            return None
        if not self._has_path(relative_path, kind):
            return None
        return Resource(kind, f"{self.project_key}:{relative_path}", relative_path)

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    def emit_measure(self, resource: Resource, metric_key: str, value: int | float | str) -> None:
        self.measures.append(Measure(resource, metric_key, value))

    def emit_issue(self, resource: Resource, rule: ActiveRule, message: str,
                   text_range: TextRange | None = None) -> None:
        if not message:
            raise ValueError("Issue message must not be empty")
        self.issues.append(NewIssue(resource, rule, message, text_range))
