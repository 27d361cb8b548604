"""Drive one reconciliation pass of a report over a build unit.

Usage:
    reporter = Reporter()
    host = OfflineHost("com.bank:bank", "/work/bank", rules={"THRESHOLD_VIOLATION_ERROR": "MAJOR"})
    reconciler = Reconciler(host, CustomMetricRegistry(reporter), reporter)
    outcome = reconciler.run(load_report(report_file), BuildUnit("com.bank:bank", "/work/bank", is_root=True))
    print(outcome.state, host.measures, host.issues)

States::

    REPORT_LOADED -> MODULE_MATCHED -> MODULE_PASS_COMPLETE -> SYSTEM_PASS_COMPLETE -> DONE
    REPORT_LOADED -> NO_MATCH -> DONE
    LOAD_FAILED -> DONE

The system pass runs for the project root only, with or without a module
match. It skips every metric key and rule key the module pass already
emitted, so a single-module system does not report the same totals twice.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from sonargraph_bridge.hosts import Host, Resource
from sonargraph_bridge.matcher import ModuleMatcher
from sonargraph_bridge.model import MODULE_LEVEL, SYSTEM_LEVEL, Module, SoftwareSystem
from sonargraph_bridge.projection.derived import DerivedMetrics
from sonargraph_bridge.projection.issues import IssueProjector, is_reportable
from sonargraph_bridge.projection.metrics import MetricProjector
from sonargraph_bridge.registry import CustomMetricRegistry
from sonargraph_bridge.report import ModuleInfoProcessor, Result, SystemInfoProcessor
from sonargraph_bridge.reporter import Reporter

MatchBy = Literal["key", "directory"]


class PassState(str, Enum):
    REPORT_LOADED = "REPORT_LOADED"
    LOAD_FAILED = "LOAD_FAILED"
    MODULE_MATCHED = "MODULE_MATCHED"
    NO_MATCH = "NO_MATCH"
    MODULE_PASS_COMPLETE = "MODULE_PASS_COMPLETE"
    SYSTEM_PASS_COMPLETE = "SYSTEM_PASS_COMPLETE"
    DONE = "DONE"


@dataclass(frozen=True)
class BuildUnit:
    """The host module currently analysed."""

    key: str
    base_directory: str
    is_root: bool = False


@dataclass
class PassResult:
    states: list[PassState] = field(default_factory=list)
    module: Module | None = None
    module_measures: set[str] = field(default_factory=set)
    module_rules: set[str] = field(default_factory=set)
    system_measures: set[str] = field(default_factory=set)
    system_rules: set[str] = field(default_factory=set)

    @property
    def state(self) -> PassState | None:
        return self.states[-1] if self.states else None

    def enter(self, state: PassState) -> None:
        self.states.append(state)


class Reconciler:
    def __init__(self, host: Host, registry: CustomMetricRegistry, reporter: Reporter,
                 cost_per_index_point: float | None = None) -> None:
        self._host = host
        self._registry = registry
        self._reporter = reporter
        self._matcher = ModuleMatcher(reporter)
        self._cost_per_index_point = cost_per_index_point

    def run(self, result: Result, unit: BuildUnit, match_by: MatchBy = "key") -> PassResult:
        outcome = PassResult()
        self._reporter.info(
            f"Processing {'root ' if unit.is_root else ''}module '{unit.key}' "
            f"with project base directory '{unit.base_directory}'"
        )

        if result.is_failure or result.system is None:
            self._reporter.error(str(result))
            outcome.enter(PassState.LOAD_FAILED)
            return self._finish(outcome, unit)
        outcome.enter(PassState.REPORT_LOADED)

        system = result.system
        if not system.modules:
            self._reporter.warning("No modules defined in Sonargraph system")
            return self._finish(outcome, unit)

        if match_by == "directory":
            module = self._matcher.match_directory(system, unit.base_directory)
        else:
            module = self._matcher.match_key(system, unit.key, unit.base_directory)
        outcome.module = module
        outcome.enter(PassState.NO_MATCH if module is None else PassState.MODULE_MATCHED)
        if module is None and not unit.is_root:
            return self._finish(outcome, unit)

        rules = self._host.active_rules()
        self._reporter.info(f"{len(rules)} rule(s) activated")
        known_metrics = self._host.known_metrics()
        self._reporter.info(f"{len(known_metrics)} metric(s) defined")

        metrics = MetricProjector(self._host, self._registry, self._reporter, known_metrics)
        issues = IssueProjector(self._host, self._reporter, rules)
        resource = self._host.resolve_module(unit.key, unit.is_root)

        if module is not None:
            self._module_pass(system, module, resource, metrics, issues, outcome)
            outcome.enter(PassState.MODULE_PASS_COMPLETE)

        if unit.is_root:
            self._system_pass(system, resource, metrics, issues, known_metrics, outcome)
            outcome.enter(PassState.SYSTEM_PASS_COMPLETE)

        if metrics.pending:
            self._registry.persist(metrics.pending)
            metrics.pending = None
        return self._finish(outcome, unit)

    def _module_pass(self, system: SoftwareSystem, module: Module, resource: Resource,
                     metrics: MetricProjector, issues: IssueProjector, outcome: PassResult) -> None:
        info = ModuleInfoProcessor(system, module)
        level = info.metric_level(MODULE_LEVEL)
        if level is not None:
            metrics.project(system, module, resource, info, level, set(), outcome.module_measures)

        issues.project_on_component(
            resource, info.issues(lambda i: i.affects(module.fq_name)), collector=outcome.module_rules
        )
        for source_file, grouped in info.issues_for_source_files(is_reportable).items():
            issues.project_on_source_file(info, source_file, grouped)
        for directory, grouped in info.issues_for_directories(is_reportable).items():
            issues.project_on_directory(info, directory, grouped)

    def _system_pass(self, system: SoftwareSystem, resource: Resource, metrics: MetricProjector,
                     issues: IssueProjector, known_metrics: dict, outcome: PassResult) -> None:
        info = SystemInfoProcessor(system)
        level = info.metric_level(SYSTEM_LEVEL)
        if level is not None:
            metrics.project(system, system, resource, info, level, outcome.module_measures,
                            outcome.system_measures)

        issues.project_on_component(
            resource, info.issues(lambda i: i.affects(system.fq_name)),
            suppressed_rule_keys=outcome.module_rules, collector=outcome.system_rules,
        )
        issues.report_workspace_problems(info)

        derived = DerivedMetrics(self._host, self._reporter, self._cost_per_index_point)
        outcome.system_measures |= derived.project(system, resource, info, level, known_metrics)
        if derived.workspace_warnings > 0:
            self._reporter.warning(
                f"Found {derived.workspace_warnings} workspace warnings. Sonargraph metrics might not be "
                "correct. Please check that all root directories of the Sonargraph workspace are correct "
                "and that class files have been generated before creating the report."
            )

    def _finish(self, outcome: PassResult, unit: BuildUnit) -> PassResult:
        outcome.enter(PassState.DONE)
        self._reporter.info(f"Finished processing module '{unit.key}'")
        return outcome
