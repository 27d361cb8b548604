"""In-memory model of a Sonargraph report.

Contains dataclasses for the report graph:
    - SoftwareSystem, Module, RootDirectory, SourceFile
    - MetricLevel, MetricId, MetricValue
    - IssueCategory, IssueType, IssueProvider, AffectedElement
    - Resolution, Issue, DuplicateCodeBlockIssue, DuplicateCodeBlockOccurrence
    - Feature

Instances are built once by ``report.load_report`` and are not modified
during a reconciliation pass.
"""

import math
from dataclasses import dataclass, field
from enum import Enum

from sonargraph_bridge.naming import Direction, direction

SYSTEM_LEVEL = "System"
MODULE_LEVEL = "Module"

ARCHITECTURE_FEATURE = "Architecture"
VIRTUAL_MODELS_FEATURE = "VirtualModels"


class Severity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class ResolutionType(str, Enum):
    FIX = "FIX"
    REFACTORING = "REFACTORING"
    TODO = "TODO"
    IGNORE = "IGNORE"


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MetricLevel:
    name: str
    presentation_name: str = ""
    order_number: int = 0


@dataclass(frozen=True)
class MetricId:
    name: str
    presentation_name: str
    description: str = ""
    is_float: bool = False
    best_value: float = math.nan
    worst_value: float = math.nan
    levels: tuple[str, ...] = ()

    @property
    def direction(self) -> Direction:
        return direction(self.best_value, self.worst_value)


@dataclass(frozen=True)
class MetricValue:
    metric_id: MetricId
    level: str
    fq_name: str
    value: float


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RootDirectory:
    relative_path: str


@dataclass(frozen=True)
class SourceFile:
    fq_name: str
    relative_path: str | None
    relative_root_directory: str
    presentation_name: str


@dataclass(frozen=True)
class AffectedElement:
    """An element an issue points at.

    ``path`` is only set for directories and holds the base-relative path.
    """

    fq_name: str
    name: str
    presentation_kind: str
    path: str | None = None

    @property
    def is_directory(self) -> bool:
        return self.path is not None


@dataclass(frozen=True)
class Feature:
    name: str
    licensed: bool


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IssueCategory:
    name: str
    presentation_name: str = ""


@dataclass(frozen=True)
class IssueType:
    name: str
    presentation_name: str
    category: IssueCategory
    severity: Severity = Severity.WARNING


@dataclass(frozen=True)
class IssueProvider:
    name: str
    presentation_name: str


@dataclass(eq=False)
class Resolution:
    type: ResolutionType
    assignee: str = ""
    priority: str = ""
    description: str = ""
    date: str = ""
    applicable: bool = True
    affected_parser_dependencies: int = 0

    @property
    def is_task(self) -> bool:
        return self.type in (ResolutionType.FIX, ResolutionType.TODO)


@dataclass(eq=False)
class Issue:
    issue_type: IssueType
    description: str
    provider: IssueProvider
    affected: tuple[AffectedElement, ...] = ()
    line: int = -1
    resolution: Resolution | None = None
    ignored: bool = False

    @property
    def presentation_name(self) -> str:
        return self.issue_type.presentation_name

    @property
    def has_resolution(self) -> bool:
        return self.resolution is not None

    def affects(self, fq_name: str) -> bool:
        return any(element.fq_name == fq_name for element in self.affected)


@dataclass(frozen=True, eq=False)
class DuplicateCodeBlockOccurrence:
    source_file: SourceFile
    start_line: int
    block_size: int

    @property
    def end_line(self) -> int:
        """Last line of the block, inclusive."""
        return self.start_line + self.block_size - 1


@dataclass(eq=False)
class DuplicateCodeBlockIssue(Issue):
    occurrences: list[DuplicateCodeBlockOccurrence] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class Module:
    name: str
    fq_name: str
    presentation_name: str = ""
    root_directories: list[RootDirectory] = field(default_factory=list)
    source_files: dict[str, SourceFile] = field(default_factory=dict)
    issues: list[Issue] = field(default_factory=list)


@dataclass(eq=False)
class SoftwareSystem:
    name: str
    fq_name: str
    base_dir: str
    modules: dict[str, Module] = field(default_factory=dict)
    virtual_model: str = ""
    features: list[Feature] = field(default_factory=list)
    metric_levels: list[MetricLevel] = field(default_factory=list)
    metric_ids: list[MetricId] = field(default_factory=list)
    metric_values: list[MetricValue] = field(default_factory=list)
    issue_types: list[IssueType] = field(default_factory=list)
    issues: list[Issue] = field(default_factory=list)

    def all_issues(self) -> list[Issue]:
        collected = list(self.issues)
        for module in self.modules.values():
            collected.extend(module.issues)
        return collected
