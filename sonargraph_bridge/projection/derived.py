"""System-level measures computed from report content.

These are plugin-defined metrics (feature flags, virtual model, structural
debt cost, issue and resolution counters, percentages) emitted on the
project during the system pass only.
"""

from sonargraph_bridge.hosts import Host, MetricDefinition, Resource
from sonargraph_bridge.model import (
    ARCHITECTURE_FEATURE,
    MODULE_LEVEL,
    VIRTUAL_MODELS_FEATURE,
    Issue,
    MetricLevel,
    ResolutionType,
    Severity,
    SoftwareSystem,
)
from sonargraph_bridge.naming import WORKSPACE, is_representable, metric_key
from sonargraph_bridge.report import SystemInfoProcessor
from sonargraph_bridge.reporter import Reporter

# Report metric standard names read here
CORE_COMPONENTS = "CoreComponents"
CORE_UNASSIGNED_COMPONENTS = "CoreUnassignedComponents"
CORE_VIOLATING_COMPONENTS = "CoreViolatingComponents"
CORE_NCCD = "CoreNccd"
JAVA_PACKAGES = "JavaPackages"
JAVA_CYCLIC_PACKAGES = "JavaCyclicPackages"
STRUCTURAL_DEBT_INDEX = "JavaStructuralDebtIndexPackages"
THRESHOLD_VIOLATION = "ThresholdViolation"

ARCHITECTURE_FEATURE_AVAILABLE = metric_key("ArchitectureFeatureAvailable")
VIRTUAL_MODEL_FEATURE_AVAILABLE = metric_key("VirtualModelFeatureAvailable")
CURRENT_VIRTUAL_MODEL = metric_key("CurrentVirtualModel")
STRUCTURAL_DEBT_COST = metric_key("StructuralDebtCost")
NUMBER_OF_ISSUES = metric_key("NumberOfIssues")
NUMBER_OF_CRITICAL_ISSUES_WITHOUT_RESOLUTION = metric_key("NumberOfCriticalIssuesWithoutResolution")
NUMBER_OF_THRESHOLD_VIOLATIONS = metric_key("NumberOfThresholdViolations")
NUMBER_OF_IGNORED_CRITICAL_ISSUES = metric_key("NumberOfIgnoredCriticalIssues")
NUMBER_OF_WORKSPACE_WARNINGS = metric_key("NumberOfWorkspaceWarnings")
NUMBER_OF_RESOLUTIONS = metric_key("NumberOfResolutions")
NUMBER_OF_UNAPPLICABLE_RESOLUTIONS = metric_key("NumberOfUnapplicableResolutions")
NUMBER_OF_TASKS = metric_key("NumberOfTasks")
NUMBER_OF_UNAPPLICABLE_TASKS = metric_key("NumberOfUnapplicableTasks")
NUMBER_OF_REFACTORINGS = metric_key("NumberOfRefactorings")
NUMBER_OF_UNAPPLICABLE_REFACTORINGS = metric_key("NumberOfUnapplicableRefactorings")
NUMBER_OF_PARSER_DEPENDENCIES_AFFECTED_BY_REFACTORINGS = metric_key(
    "NumberOfParserDependenciesAffectedByRefactorings"
)
CYCLIC_PACKAGES_PERCENT = metric_key("CyclicPackagesPercent")
UNASSIGNED_COMPONENTS_PERCENT = metric_key("UnassignedComponentsPercent")
VIOLATING_COMPONENTS_PERCENT = metric_key("ViolatingComponentsPercent")
MAX_MODULE_NCCD = metric_key("MaxModuleNccd")


def _is_critical(issue: Issue) -> bool:
    return issue.issue_type.severity in (Severity.WARNING, Severity.ERROR)


def percent(part: float, whole: float) -> float:
    return round(part / whole * 100.0, 2)


class DerivedMetrics:
    def __init__(self, host: Host, reporter: Reporter, cost_per_index_point: float | None = None) -> None:
        self._host = host
        self._reporter = reporter
        self._cost_per_index_point = cost_per_index_point
        self.workspace_warnings = 0

    def project(self, system: SoftwareSystem, resource: Resource, info: SystemInfoProcessor,
                level: MetricLevel | None, known_metrics: dict[str, MetricDefinition]) -> set[str]:
        """Emit every derived measure on *resource*; return the keys emitted."""
        emitted: dict[str, int | float | str] = {}

        for feature in info.features():
            if feature.licensed and feature.name == ARCHITECTURE_FEATURE:
                emitted[ARCHITECTURE_FEATURE_AVAILABLE] = 1
            if feature.licensed and feature.name == VIRTUAL_MODELS_FEATURE:
                emitted[VIRTUAL_MODEL_FEATURE_AVAILABLE] = 1
        if system.virtual_model:
            emitted[CURRENT_VIRTUAL_MODEL] = system.virtual_model

        cost = self._structural_debt_cost(info)
        if cost is not None:
            emitted[STRUCTURAL_DEBT_COST] = cost

        emitted.update(self._issue_counters(info))
        emitted.update(self._resolution_counters(info))
        if level is not None:
            emitted.update(self._cyclic_packages(info, level, system.fq_name))
        if metric_key(CORE_COMPONENTS) in known_metrics:
            emitted.update(self._architecture_percentages(info))

        nccd_values = info.metric_values(MODULE_LEVEL, CORE_NCCD)
        if nccd_values:
            emitted[MAX_MODULE_NCCD] = max(v.value for v in nccd_values.values())

        for key, value in emitted.items():
            self._host.emit_measure(resource, key, value)
        return set(emitted)

    def _structural_debt_cost(self, info: SystemInfoProcessor) -> float | None:
        if self._cost_per_index_point is None:
            return None
        index = info.metric_value(STRUCTURAL_DEBT_INDEX)
        if index is None:
            self._reporter.debug(f"No '{STRUCTURAL_DEBT_INDEX}' value, structural debt cost not computed")
            return None
        if not is_representable(index.value):
            self._reporter.warning(f"'{STRUCTURAL_DEBT_INDEX}' value {index.value} is not a finite number")
            return None
        cost = float(self._cost_per_index_point) * int(index.value)
        return cost if cost >= 0 else None

    def _issue_counters(self, info: SystemInfoProcessor) -> dict[str, int]:
        self.workspace_warnings = len(info.issues(
            lambda i: not i.has_resolution and i.issue_type.category.name == WORKSPACE
        ))
        ignored_critical = info.resolutions(
            lambda r: r.type is ResolutionType.IGNORE
        )
        ignored_critical_count = sum(
            1 for r in ignored_critical
            if any(i.resolution is r and _is_critical(i) for i in info.issues())
        )
        return {
            NUMBER_OF_ISSUES: len(info.issues()),
            NUMBER_OF_CRITICAL_ISSUES_WITHOUT_RESOLUTION: len(info.issues(
                lambda i: not i.has_resolution and _is_critical(i)
            )),
            NUMBER_OF_THRESHOLD_VIOLATIONS: len(info.issues(
                lambda i: not i.has_resolution and i.issue_type.category.name == THRESHOLD_VIOLATION
            )),
            NUMBER_OF_IGNORED_CRITICAL_ISSUES: ignored_critical_count,
            NUMBER_OF_WORKSPACE_WARNINGS: self.workspace_warnings,
        }

    @staticmethod
    def _resolution_counters(info: SystemInfoProcessor) -> dict[str, int]:
        refactorings = info.resolutions(lambda r: r.type is ResolutionType.REFACTORING)
        applicable_refactorings = [r for r in refactorings if r.applicable]
        return {
            NUMBER_OF_RESOLUTIONS: len(info.resolutions()),
            NUMBER_OF_UNAPPLICABLE_RESOLUTIONS: len(info.resolutions(lambda r: not r.applicable)),
            NUMBER_OF_TASKS: len(info.resolutions(lambda r: r.is_task)),
            NUMBER_OF_UNAPPLICABLE_TASKS: len(info.resolutions(lambda r: r.is_task and not r.applicable)),
            NUMBER_OF_REFACTORINGS: len(refactorings),
            NUMBER_OF_UNAPPLICABLE_REFACTORINGS: len(refactorings) - len(applicable_refactorings),
            NUMBER_OF_PARSER_DEPENDENCIES_AFFECTED_BY_REFACTORINGS: sum(
                r.affected_parser_dependencies for r in applicable_refactorings
            ),
        }

    @staticmethod
    def _cyclic_packages(info: SystemInfoProcessor, level: MetricLevel, fq_name: str) -> dict[str, float]:
        packages_id = info.metric_id(level, JAVA_PACKAGES)
        cyclic_id = info.metric_id(level, JAVA_CYCLIC_PACKAGES)
        if packages_id is None or cyclic_id is None:
            return {}
        packages = info.metric_value_for_element(packages_id, level, fq_name)
        cyclic = info.metric_value_for_element(cyclic_id, level, fq_name)
        if packages is None or cyclic is None or packages.value <= 0:
            return {}
        return {CYCLIC_PACKAGES_PERCENT: percent(cyclic.value, packages.value)}

    @staticmethod
    def _architecture_percentages(info: SystemInfoProcessor) -> dict[str, float]:
        components = info.metric_value(CORE_COMPONENTS)
        if components is None or components.value <= 0:
            return {}
        result = {}
        for name, key in ((CORE_UNASSIGNED_COMPONENTS, UNASSIGNED_COMPONENTS_PERCENT),
                          (CORE_VIOLATING_COMPONENTS, VIOLATING_COMPONENTS_PERCENT)):
            value = info.metric_value(name)
            if value is not None:
                result[key] = percent(value.value, components.value)
        return result
