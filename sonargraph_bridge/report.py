"""Report loading and read access to the report model.

Usage:
    result = load_report("target/sonargraph/sonargraph-sonarqube-report.json")
    if result.is_failure:
        print(result)                      # description + causes
    system = result.system
    system_info = SystemInfoProcessor(system)
    module_info = ModuleInfoProcessor(system, system.modules["Bank"])

The report is a JSON or YAML mapping (JSON is read through the YAML loader)::

    system:        {name, fq_name, base_dir, virtual_model, features: [{name, licensed}]}
    metric_levels: [{name, presentation_name, order}]
    metric_ids:    [{name, presentation_name, description, float, best, worst, levels}]
    issue_types:   [{name, presentation_name, category, category_presentation_name, severity}]
    modules:       [{name, fq_name, presentation_name, root_directories,
                     source_files: [{fq_name, relative_path, root_directory, presentation_name}],
                     issues}]
    issues:        [system-scoped issues]
    metric_values: [{metric, level, element, value}]

An issue is ``{type, description, provider, line, ignored, affected, resolution,
occurrences}``; ``affected`` entries are element fq names or
``{directory: <base-relative path>}``; ``occurrences`` turns it into a
duplicate code block issue.
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from sonargraph_bridge.model import (
    AffectedElement,
    DuplicateCodeBlockIssue,
    DuplicateCodeBlockOccurrence,
    Feature,
    Issue,
    IssueCategory,
    IssueProvider,
    IssueType,
    MetricId,
    MetricLevel,
    MetricValue,
    Module,
    Resolution,
    ResolutionType,
    RootDirectory,
    Severity,
    SoftwareSystem,
    SourceFile,
    SYSTEM_LEVEL,
)
from sonargraph_bridge.naming import WORKSPACE, WORKSPACE_PREFIX

IssuePredicate = Callable[[Issue], bool]


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

class ResultCause(str, Enum):
    FILE_NOT_FOUND = "File not found"
    READ_FAILED = "Read failed"
    INVALID_FORMAT = "Invalid format"
    NO_MODULES = "No modules"


@dataclass
class ResultMessage:
    is_error: bool
    cause: ResultCause
    text: str

    def __str__(self) -> str:
        kind = "ERROR" if self.is_error else "WARNING"
        return f"[{kind}] {self.cause.value}: {self.text}"


@dataclass
class Result:
    """Outcome of loading a report: messages plus the system on success."""

    description: str
    messages: list[ResultMessage] = field(default_factory=list)
    system: SoftwareSystem | None = None

    def add_error(self, cause: ResultCause, text: str) -> None:
        self.messages.append(ResultMessage(True, cause, text))

    def add_warning(self, cause: ResultCause, text: str) -> None:
        self.messages.append(ResultMessage(False, cause, text))

    @property
    def is_failure(self) -> bool:
        return any(m.is_error for m in self.messages)

    @property
    def is_success(self) -> bool:
        return not self.is_failure

    def __str__(self) -> str:
        lines = [self.description]
        lines.extend(f"  {m}" for m in self.messages)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load_report(report_path: str | Path, base_dir: str | Path | None = None) -> Result:
    """Read and validate a report file.

    *base_dir* replaces the base directory recorded in the report, for
    workspaces that were analysed at another location.
    """
    path = Path(report_path)
    result = Result(f"Reading Sonargraph report from: {path.absolute()}")

    if not path.is_file():
        result.add_error(ResultCause.FILE_NOT_FOUND, f"'{path}' does not exist or is not a file")
        return result

    try:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as exc:
        result.add_error(ResultCause.READ_FAILED, f"Unable to read '{path}': {exc}")
        return result
    except yaml.YAMLError as exc:
        result.add_error(ResultCause.INVALID_FORMAT, f"Failed to parse '{path}': {exc}")
        return result

    if not isinstance(raw, dict):
        result.add_error(ResultCause.INVALID_FORMAT, f"'{path}' must contain a mapping at the top level")
        return result

    try:
        system = _parse_system(raw)
    except (KeyError, TypeError, ValueError) as exc:
        result.add_error(ResultCause.INVALID_FORMAT, f"Malformed report '{path}': {exc!r}")
        return result

    if base_dir is not None:
        system.base_dir = str(Path(base_dir).absolute())
    result.system = system
    return result


def _float(raw: Any) -> float:
    return math.nan if raw is None else float(raw)


def _parse_system(raw: dict) -> SoftwareSystem:
    system_raw = raw["system"]
    system = SoftwareSystem(
        name=system_raw["name"],
        fq_name=system_raw.get("fq_name", WORKSPACE),
        base_dir=system_raw["base_dir"],
        virtual_model=system_raw.get("virtual_model", ""),
        features=[Feature(f["name"], bool(f.get("licensed", False))) for f in system_raw.get("features") or []],
    )

    system.metric_levels = [
        MetricLevel(lv["name"], lv.get("presentation_name", lv["name"]), int(lv.get("order", 0)))
        for lv in raw.get("metric_levels") or []
    ]
    level_names = {lv.name for lv in system.metric_levels}

    metric_ids: dict[str, MetricId] = {}
    for m in raw.get("metric_ids") or []:
        metric_ids[m["name"]] = MetricId(
            name=m["name"],
            presentation_name=m.get("presentation_name", m["name"]),
            description=m.get("description") or "",
            is_float=bool(m.get("float", False)),
            best_value=_float(m.get("best")),
            worst_value=_float(m.get("worst")),
            levels=tuple(m.get("levels") or ()),
        )
    system.metric_ids = list(metric_ids.values())

    issue_types: dict[str, IssueType] = {}
    for t in raw.get("issue_types") or []:
        category = t["category"]
        issue_types[t["name"]] = IssueType(
            name=t["name"],
            presentation_name=t.get("presentation_name", t["name"]),
            category=IssueCategory(category, t.get("category_presentation_name", category)),
            severity=Severity(str(t.get("severity", "WARNING")).upper()),
        )
    system.issue_types = list(issue_types.values())

    elements: dict[str, AffectedElement] = {
        system.fq_name: AffectedElement(system.fq_name, system.name, "System"),
    }
    module_raws = raw.get("modules") or []
    for mr in module_raws:
        module = Module(
            name=mr["name"],
            fq_name=mr.get("fq_name", WORKSPACE_PREFIX + mr["name"]),
            presentation_name=mr.get("presentation_name", mr["name"]),
            root_directories=[RootDirectory(p) for p in mr.get("root_directories") or []],
        )
        for sf in mr.get("source_files") or []:
            source_file = SourceFile(
                fq_name=sf["fq_name"],
                relative_path=sf.get("relative_path"),
                relative_root_directory=sf.get("root_directory", ""),
                presentation_name=sf.get("presentation_name", sf["fq_name"]),
            )
            module.source_files[source_file.fq_name] = source_file
            elements[source_file.fq_name] = AffectedElement(
                source_file.fq_name, source_file.presentation_name, "Source File"
            )
        if module.name in system.modules:
            raise ValueError(f"duplicate module name '{module.name}'")
        system.modules[module.name] = module
        elements[module.fq_name] = AffectedElement(module.fq_name, module.name, "Module")

    source_files = {
        fq: sf for module in system.modules.values() for fq, sf in module.source_files.items()
    }
    parse = _IssueParser(issue_types, elements, source_files)
    system.issues = [parse(i) for i in raw.get("issues") or []]
    for mr, module in zip(module_raws, system.modules.values()):
        module.issues = [parse(i) for i in mr.get("issues") or []]

    for v in raw.get("metric_values") or []:
        if v["level"] not in level_names:
            raise ValueError(f"metric value for '{v['metric']}' uses undeclared level '{v['level']}'")
        system.metric_values.append(
            MetricValue(metric_ids[v["metric"]], v["level"], v["element"], float(v["value"]))
        )

    return system


class _IssueParser:
    def __init__(self, issue_types: dict[str, IssueType], elements: dict[str, AffectedElement],
                 source_files: dict[str, SourceFile]) -> None:
        self._issue_types = issue_types
        self._elements = elements
        self._source_files = source_files

    def __call__(self, raw: dict) -> Issue:
        provider = raw.get("provider") or "Sonargraph"
        if isinstance(provider, dict):
            provider = IssueProvider(provider["name"], provider.get("presentation_name", provider["name"]))
        else:
            provider = IssueProvider(str(provider), str(provider))

        resolution = self._resolution(raw.get("resolution"))
        # an IGNORE resolution always marks the issue as ignored
        ignored = bool(raw.get("ignored", False)) or (
            resolution is not None and resolution.type is ResolutionType.IGNORE
        )
        kwargs = dict(
            issue_type=self._issue_types[raw["type"]],
            description=raw.get("description") or "",
            provider=provider,
            affected=tuple(self._affected(a) for a in raw.get("affected") or []),
            line=int(raw.get("line", -1)),
            resolution=resolution,
            ignored=ignored,
        )
        if "occurrences" in raw:
            occurrences = [
                DuplicateCodeBlockOccurrence(
                    self._source_files[o["source_file"]], int(o["start_line"]), int(o["block_size"])
                )
                for o in raw["occurrences"]
            ]
            return DuplicateCodeBlockIssue(occurrences=occurrences, **kwargs)
        return Issue(**kwargs)

    def _affected(self, raw: Any) -> AffectedElement:
        if isinstance(raw, dict):
            path = raw["directory"]
            return AffectedElement(raw.get("fq_name", path), raw.get("name", path), "Directory", path)
        fq_name = str(raw)
        if fq_name in self._elements:
            return self._elements[fq_name]
        return AffectedElement(fq_name, fq_name.rsplit(":", 1)[-1], "Element")

    @staticmethod
    def _resolution(raw: dict | None) -> Resolution | None:
        if not raw:
            return None
        return Resolution(
            type=ResolutionType(str(raw["type"]).upper()),
            assignee=raw.get("assignee", ""),
            priority=raw.get("priority", ""),
            description=raw.get("description", ""),
            date=str(raw.get("date", "")),
            applicable=bool(raw.get("applicable", True)),
            affected_parser_dependencies=int(raw.get("affected_parser_dependencies", 0)),
        )


# ---------------------------------------------------------------------------
# Info processors
# ---------------------------------------------------------------------------

class InfoProcessor(ABC):
    """Read access shared by the system and module views of a report."""

    def __init__(self, system: SoftwareSystem) -> None:
        self.system = system

    @property
    def base_directory(self) -> str:
        return self.system.base_dir

    def metric_levels(self) -> list[MetricLevel]:
        return list(self.system.metric_levels)

    def metric_level(self, name: str) -> MetricLevel | None:
        return next((lv for lv in self.system.metric_levels if lv.name == name), None)

    def metric_ids_for_level(self, level: MetricLevel) -> list[MetricId]:
        return [m for m in self.system.metric_ids if level.name in m.levels]

    def metric_id(self, level: MetricLevel, name: str) -> MetricId | None:
        return next((m for m in self.metric_ids_for_level(level) if m.name == name), None)

    def metric_value_for_element(self, metric_id: MetricId, level: MetricLevel,
                                 fq_name: str) -> MetricValue | None:
        if level not in self.system.metric_levels:
            raise ValueError(f"Metric level '{level.name}' is not defined in the report")
        for value in self.system.metric_values:
            if value.metric_id.name == metric_id.name and value.level == level.name and value.fq_name == fq_name:
                return value
        return None

    def metric_value(self, metric_name: str) -> MetricValue | None:
        """System-level value of *metric_name* for the software system."""
        for value in self.system.metric_values:
            if value.metric_id.name == metric_name and value.level == SYSTEM_LEVEL \
                    and value.fq_name == self.system.fq_name:
                return value
        return None

    def metric_values(self, level_name: str, metric_name: str) -> dict[str, MetricValue]:
        return {
            v.fq_name: v for v in self.system.metric_values
            if v.level == level_name and v.metric_id.name == metric_name
        }

    @abstractmethod
    def _all_issues(self) -> list[Issue]:
        """Issues visible from this view, system or module."""

    def issues(self, predicate: IssuePredicate | None = None) -> list[Issue]:
        return [i for i in self._all_issues() if predicate is None or predicate(i)]

    def resolutions(self, predicate: Callable[[Resolution], bool] | None = None) -> list[Resolution]:
        seen: dict[int, Resolution] = {}
        for issue in self._all_issues():
            r = issue.resolution
            if r is not None and id(r) not in seen and (predicate is None or predicate(r)):
                seen[id(r)] = r
        return list(seen.values())


class SystemInfoProcessor(InfoProcessor):
    def _all_issues(self) -> list[Issue]:
        return self.system.all_issues()

    def features(self) -> list[Feature]:
        return list(self.system.features)


class ModuleInfoProcessor(InfoProcessor):
    def __init__(self, system: SoftwareSystem, module: Module) -> None:
        super().__init__(system)
        self.module = module

    def _all_issues(self) -> list[Issue]:
        return list(self.module.issues)

    def issues_for_source_files(self, predicate: IssuePredicate | None = None) -> dict[SourceFile, list[Issue]]:
        """Group issues by the module's source files they touch.

        A duplicate code block issue lands in the group of every file that
        holds one of its occurrences.
        """
        grouped: dict[SourceFile, list[Issue]] = {}
        own = self.module.source_files
        for issue in self.issues(predicate):
            if isinstance(issue, DuplicateCodeBlockIssue):
                fq_names = [o.source_file.fq_name for o in issue.occurrences]
            else:
                fq_names = [a.fq_name for a in issue.affected]
            for fq_name in dict.fromkeys(fq_names):
                if fq_name in own:
                    grouped.setdefault(own[fq_name], []).append(issue)
        return grouped

    def issues_for_directories(self, predicate: IssuePredicate | None = None) -> dict[str, list[Issue]]:
        grouped: dict[str, list[Issue]] = {}
        for issue in self.issues(predicate):
            for element in issue.affected:
                if element.is_directory:
                    grouped.setdefault(element.path, []).append(issue)
        return grouped
