"""Turn what a host collected into JSON documents.

Functions:
    build_annotations(host)                 -> dict  (measures + issues, CLI output)
    build_external_issues(host, generation) -> dict  (SonarQube generic issue import)

Generic issue import only accepts issues located in a file or directory, so
project and module issues are left out of that document and logged.
Two generations of the import format exist:

* ``legacy``  - every issue carries engineId, severity and type;
* ``current`` - rules are declared once with a clean code attribute and
  impacts; issues only reference them by id.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

from sonargraph_bridge import PLUGIN_KEY
from sonargraph_bridge.hosts import Host, NewIssue, ResourceKind, TextRange

logger = logging.getLogger(__name__)

Generation = Literal["legacy", "current"]
GENERATIONS = ("legacy", "current")

_SEVERITIES = ("BLOCKER", "CRITICAL", "MAJOR", "MINOR", "INFO")
_IMPACT_SEVERITIES = {
    "BLOCKER":  "HIGH",
    "CRITICAL": "HIGH",
    "MAJOR":    "MEDIUM",
    "MINOR":    "LOW",
    "INFO":     "LOW",
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_annotations(host: Host) -> dict:
    """Everything the last pass emitted, grouped for display."""
    measures = [
        {"component": m.resource.key, "metric": m.metric_key, "value": m.value}
        for m in host.measures
    ]
    issues = [_annotation(i) for i in host.issues]
    return {
        "project_key":  host.project_key,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "summary":      _build_summary(host.issues, len(measures)),
        "measures":     measures,
        "issues":       issues,
    }


def build_external_issues(host: Host, generation: Generation = "current") -> dict:
    if generation not in GENERATIONS:
        raise ValueError(f"Unknown generic issue format '{generation}', expected one of {GENERATIONS}")

    lines = _LineLengths(host.base_dir)
    located = []
    for issue in host.issues:
        if issue.resource.path is None:
            logger.info("Skipping issue on %s '%s', generic import needs a file or directory",
                        issue.resource.kind.value.lower(), issue.resource.key)
            continue
        located.append(issue)

    if generation == "legacy":
        return {"issues": [_legacy_issue(i, lines) for i in located]}

    rules: dict[str, dict] = {}
    for issue in located:
        rules.setdefault(issue.rule.key, _rule(issue))
    return {
        "rules":  list(rules.values()),
        "issues": [{"ruleId": i.rule.key, "primaryLocation": _location(i, lines)} for i in located],
    }


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

class _LineLengths:
    """Line lengths of workspace files, read once per file."""

    def __init__(self, base_dir: Path) -> None:
        self._base_dir = base_dir
        self._cache: dict[str, list[int] | None] = {}

    def __call__(self, relative_path: str) -> list[int] | None:
        if relative_path not in self._cache:
            try:
                text = (self._base_dir / relative_path).read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                logger.debug("Cannot read '%s' to check issue ranges: %s", relative_path, exc)
                self._cache[relative_path] = None
            else:
                self._cache[relative_path] = [len(line) for line in text.splitlines()]
        return self._cache[relative_path]


def _text_range(text_range: TextRange, line_lengths: list[int] | None) -> dict[str, int]:
    """Range as the import expects it; it must stay inside the file."""
    start_line, end_line = text_range.start_line, text_range.end_line
    start_column, end_column = text_range.start_offset, text_range.end_offset
    if line_lengths is not None:
        last = max(len(line_lengths), 1)

        def length(line: int) -> int:
            return line_lengths[line - 1] if line <= len(line_lengths) else 0

        if end_line > last:
            end_line, end_column = last, length(last)
        if start_line > last:
            start_line, start_column = last, 0
        start_column = min(start_column, length(start_line))
        end_column = min(end_column, length(end_line))
        if (start_line, start_column) >= (end_line, end_column):
            # columns are optional; a whole-line range is always accepted
            return {"startLine": start_line, "endLine": end_line}
    return {
        "startLine":   start_line,
        "endLine":     end_line,
        "startColumn": start_column,
        "endColumn":   end_column,
    }


def _location(issue: NewIssue, lines: _LineLengths) -> dict[str, Any]:
    location: dict[str, Any] = {"message": issue.message, "filePath": issue.resource.path}
    if issue.text_range is not None and issue.resource.kind is ResourceKind.FILE:
        location["textRange"] = _text_range(issue.text_range, lines(issue.resource.path))
    return location


def _legacy_issue(issue: NewIssue, lines: _LineLengths) -> dict[str, Any]:
    return {
        "engineId":        PLUGIN_KEY,
        "ruleId":          issue.rule.key,
        "severity":        issue.rule.severity,
        "type":            "CODE_SMELL",
        "primaryLocation": _location(issue, lines),
    }


def _rule(issue: NewIssue) -> dict[str, Any]:
    return {
        "id":                 issue.rule.key,
        "name":               issue.rule.name or issue.rule.key,
        "engineId":           PLUGIN_KEY,
        "cleanCodeAttribute": "MODULAR",
        "impacts": [{
            "softwareQuality": "MAINTAINABILITY",
            "severity":        _IMPACT_SEVERITIES.get(issue.rule.severity, "MEDIUM"),
        }],
    }


def _annotation(issue: NewIssue) -> dict[str, Any]:
    annotation: dict[str, Any] = {
        "component": issue.resource.key,
        "rule":      issue.rule.key,
        "severity":  issue.rule.severity,
        "message":   issue.message,
    }
    if issue.text_range is not None:
        annotation["line"] = issue.text_range.start_line
    return annotation


def _build_summary(issues: list[NewIssue], measure_count: int) -> dict:
    by_severity = {s: 0 for s in _SEVERITIES}
    by_rule: dict[str, int] = {}
    for issue in issues:
        if issue.rule.severity in by_severity:
            by_severity[issue.rule.severity] += 1
        by_rule[issue.rule.key] = by_rule.get(issue.rule.key, 0) + 1

    return {
        "measures":    measure_count,
        "issues":      len(issues),
        "by_severity": by_severity,
        "by_rule":     by_rule,
    }
