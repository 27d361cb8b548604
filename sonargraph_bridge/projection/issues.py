"""Project report issues onto host resources.

Issues are attached to one of three kinds of resource:

* the project or module component (system- and module-affecting issues),
* a source file, with a line anchor,
* a directory.

An issue is only created when the host has an active rule for its type.
Duplicate code block issues produce one host issue per occurrence, each
pointing at the other occurrences in its message.
"""

from sonargraph_bridge.hosts import ActiveRule, Host, Resource, TextRange
from sonargraph_bridge.model import (
    DuplicateCodeBlockIssue,
    DuplicateCodeBlockOccurrence,
    Issue,
    IssueType,
    ResolutionType,
    Severity,
    SourceFile,
)
from sonargraph_bridge.naming import SCRIPT_ISSUE_CATEGORY, SCRIPT_ISSUE_NAME, WORKSPACE, rule_key
from sonargraph_bridge.paths import join_normalized
from sonargraph_bridge.report import InfoProcessor
from sonargraph_bridge.reporter import Reporter

# Problems of the analysis environment, not of the analysed code
SUPPRESSED_CATEGORIES = frozenset({WORKSPACE, "InstallationConfiguration"})


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def is_suppressed_category(issue_type: IssueType) -> bool:
    return issue_type.category.name in SUPPRESSED_CATEGORIES


def is_reportable(issue: Issue) -> bool:
    return not issue.ignored and not is_suppressed_category(issue.issue_type)


def is_error_or_warning_workspace_issue(issue: Issue) -> bool:
    return (issue.issue_type.category.name == WORKSPACE
            and issue.issue_type.severity in (Severity.ERROR, Severity.WARNING))


def is_script_issue(issue_type: IssueType) -> bool:
    return issue_type.category.name == SCRIPT_ISSUE_CATEGORY


def rule_key_for(issue_type: IssueType) -> str:
    """Key of the host rule an issue type maps to.

    All script based issue types share one rule.
    """
    if is_script_issue(issue_type):
        return rule_key(SCRIPT_ISSUE_NAME)
    return rule_key(issue_type.name)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

def describe(issue: Issue, detail: str = "") -> str:
    """Build the one-line message shown on the host issue."""
    name = issue.presentation_name
    resolution = issue.resolution
    if resolution is None:
        parts = [f"[{name}]"]
    else:
        if resolution.type is ResolutionType.FIX:
            tag = f"[fix: {name}]"
        elif resolution.type in (ResolutionType.REFACTORING, ResolutionType.TODO):
            tag = f"[{name}]"
        else:
            raise ValueError(f"Unexpected resolution type for a reported issue: {resolution.type.value}")
        parts = [
            tag,
            f"assignee='{resolution.assignee}' priority='{resolution.priority}' "
            f"description='{resolution.description}' created='{resolution.date}'",
        ]

    parts.append(issue.description)
    if detail:
        parts.append(detail)
    parts.append(f"[{issue.provider.presentation_name}]")
    return " ".join(parts)


def _occurrence_location(occurrence: DuplicateCodeBlockOccurrence) -> str:
    source_file = occurrence.source_file
    path = source_file.relative_path if source_file.relative_path is not None else source_file.presentation_name
    return f"{path} line(s) {occurrence.start_line}-{occurrence.end_line}"


def describe_duplicate(issue: DuplicateCodeBlockIssue, occurrence: DuplicateCodeBlockOccurrence,
                       others: list[DuplicateCodeBlockOccurrence]) -> str:
    detail = (f"Line(s) {occurrence.start_line}-{occurrence.end_line} duplicate of "
              + "".join(_occurrence_location(o) for o in others))
    return describe(issue, detail)


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------

class IssueProjector:
    def __init__(self, host: Host, reporter: Reporter, rules: dict[str, ActiveRule]) -> None:
        self._host = host
        self._reporter = reporter
        self._rules = rules

    def _rule(self, issue: Issue) -> ActiveRule | None:
        key = rule_key_for(issue.issue_type)
        rule = self._rules.get(key)
        if rule is None:
            self._reporter.debug(f"Rule '{key}' is not activated")
        return rule

    def project_on_component(self, resource: Resource, issues: list[Issue],
                             suppressed_rule_keys: set[str] | frozenset[str] = frozenset(),
                             collector: set[str] | None = None) -> None:
        """Attach system- or module-affecting *issues* to *resource*.

        Issue types listed in *suppressed_rule_keys* were already reported by
        the module pass and are skipped.
        """
        for issue in filter(is_reportable, issues):
            rule = self._rule(issue)
            type_key = rule_key(issue.issue_type.name)
            if rule is None or type_key in suppressed_rule_keys:
                continue
            self._host.emit_issue(resource, rule, describe(issue))
            if collector is not None:
                collector.add(type_key)

    def project_on_source_file(self, info: InfoProcessor, source_file: SourceFile,
                               issues: list[Issue]) -> None:
        relative_path = source_file.relative_path
        if relative_path is None:
            relative_path = source_file.presentation_name
        location = join_normalized(info.base_directory, source_file.relative_root_directory, relative_path)
        resource = self._host.resolve_file(location)
        if resource is None:
            self._reporter.error(f"Failed to locate '{source_file.fq_name}' at '{location}'")
            return

        for issue in filter(is_reportable, issues):
            rule = self._rule(issue)
            if rule is None:
                continue
            if isinstance(issue, DuplicateCodeBlockIssue):
                for occurrence in issue.occurrences:
                    if occurrence.source_file != source_file:
                        continue
                    others = [o for o in issue.occurrences if o is not occurrence]
                    self._host.emit_issue(
                        resource, rule, describe_duplicate(issue, occurrence, others),
                        TextRange(occurrence.start_line, occurrence.start_line + occurrence.block_size, 0, 1),
                    )
            else:
                line = issue.line if issue.line > 0 else 1
                self._host.emit_issue(resource, rule, describe(issue), TextRange(line, line, 0, 1))

    def project_on_directory(self, info: InfoProcessor, relative_directory: str,
                             issues: list[Issue]) -> None:
        if not relative_directory:
            raise ValueError("Directory issues need a non-empty relative directory")
        location = join_normalized(info.base_directory, relative_directory)
        resource = self._host.resolve_directory(location)
        if resource is None:
            self._reporter.error(
                f"Failed to locate directory resource '{relative_directory}' at '{location}' "
                f"(base directory '{info.base_directory}')"
            )
            return

        for issue in filter(is_reportable, issues):
            rule = self._rule(issue)
            if rule is not None:
                self._host.emit_issue(resource, rule, describe(issue))

    def report_workspace_problems(self, info: InfoProcessor) -> int:
        """Log error and warning workspace issues; they are never emitted."""
        problems = info.issues(is_error_or_warning_workspace_issue)
        if problems:
            self._reporter.warning(f"Found {len(problems)} workspace issue(s)")
            for index, issue in enumerate(problems, start=1):
                self._reporter.warning(f"[{index}] {issue.presentation_name}")
                for element in issue.affected:
                    self._reporter.warning(f" - {element.name} [{element.presentation_kind}]")
        return len(problems)
