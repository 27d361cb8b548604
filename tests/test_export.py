"""Tests for sonargraph_bridge/export.py"""

import pytest

from sonargraph_bridge.export import build_annotations, build_external_issues
from sonargraph_bridge.hosts import ActiveRule, TextRange
from sonargraph_bridge.hosts.offline import OfflineHost

ACCOUNT = "core/src/main/java/com/bank/Account.java"
LEDGER  = "core/src/main/java/com/bank/Ledger.java"
PACKAGE = "core/src/main/java/com/bank"


@pytest.fixture
def host(workspace) -> OfflineHost:
    (workspace / ACCOUNT).write_text("    int field;\n" * 20, encoding="utf-8")
    host = OfflineHost("com.bank:bank", workspace)
    rule = ActiveRule("THRESHOLD_VIOLATION_ERROR", "CRITICAL", "Threshold Violation (Error)")
    cycle = ActiveRule("NAMESPACE_CYCLE_GROUP", "MINOR")

    project = host.resolve_module("com.bank:bank", True)
    host.emit_measure(project, "sg_i.CORE_COMPONENTS", 40)
    host.emit_issue(project, rule, "[Threshold Violation (Error)] Components = 40 (> 30) [Sonargraph]")
    host.emit_issue(host.resolve_file(str(workspace / ACCOUNT)), rule, "on account", TextRange(12, 12, 0, 1))
    host.emit_issue(host.resolve_directory(str(workspace / PACKAGE)), cycle, "cycle")
    return host


# ---------------------------------------------------------------------------
# build_external_issues()
# ---------------------------------------------------------------------------

def test_legacy_generation(host):
    data = build_external_issues(host, "legacy")

    assert len(data["issues"]) == 2
    first = data["issues"][0]
    assert first == {
        "engineId": "sonargraphintegration",
        "ruleId": "THRESHOLD_VIOLATION_ERROR",
        "severity": "CRITICAL",
        "type": "CODE_SMELL",
        "primaryLocation": {
            "message": "on account",
            "filePath": ACCOUNT,
            "textRange": {"startLine": 12, "endLine": 12, "startColumn": 0, "endColumn": 1},
        },
    }
    assert data["issues"][1]["primaryLocation"] == {"message": "cycle", "filePath": PACKAGE}


def test_current_generation_declares_rules_once(host):
    data = build_external_issues(host, "current")

    assert [r["id"] for r in data["rules"]] == ["THRESHOLD_VIOLATION_ERROR", "NAMESPACE_CYCLE_GROUP"]
    threshold, cycle = data["rules"]
    assert threshold["name"] == "Threshold Violation (Error)"
    assert threshold["cleanCodeAttribute"] == "MODULAR"
    assert threshold["impacts"] == [{"softwareQuality": "MAINTAINABILITY", "severity": "HIGH"}]
    assert cycle["name"] == "NAMESPACE_CYCLE_GROUP"
    assert cycle["impacts"][0]["severity"] == "LOW"
    assert [i["ruleId"] for i in data["issues"]] == ["THRESHOLD_VIOLATION_ERROR", "NAMESPACE_CYCLE_GROUP"]
    assert "severity" not in data["issues"][0]


def test_project_issues_are_not_exported(host):
    data = build_external_issues(host, "current")
    assert all(i["primaryLocation"]["filePath"] for i in data["issues"])


def test_unknown_generation(host):
    with pytest.raises(ValueError, match="future"):
        build_external_issues(host, "future")


# ---------------------------------------------------------------------------
# build_annotations()
# ---------------------------------------------------------------------------

def test_annotations(host):
    data = build_annotations(host)

    assert data["project_key"] == "com.bank:bank"
    assert data["measures"] == [{"component": "com.bank:bank", "metric": "sg_i.CORE_COMPONENTS", "value": 40}]
    assert len(data["issues"]) == 3
    assert data["issues"][1] == {
        "component": f"com.bank:bank:{ACCOUNT}",
        "rule": "THRESHOLD_VIOLATION_ERROR",
        "severity": "CRITICAL",
        "message": "on account",
        "line": 12,
    }
    assert "line" not in data["issues"][0]


def test_annotation_summary(host):
    summary = build_annotations(host)["summary"]
    assert summary["measures"] == 1
    assert summary["issues"] == 3
    assert summary["by_severity"]["CRITICAL"] == 2
    assert summary["by_severity"]["MINOR"] == 1
    assert summary["by_severity"]["BLOCKER"] == 0
    assert summary["by_rule"] == {"THRESHOLD_VIOLATION_ERROR": 2, "NAMESPACE_CYCLE_GROUP": 1}


# ---------------------------------------------------------------------------
# Text ranges stay inside the file
# ---------------------------------------------------------------------------

def _duplicate_on_ledger(host, workspace, text_range, content="    int field;\n" * 31 + "}"):
    (workspace / LEDGER).write_text(content, encoding="utf-8")
    host.issues.clear()
    rule = ActiveRule("DUPLICATE_CODE_BLOCK", "MINOR")
    host.emit_issue(host.resolve_file(str(workspace / LEDGER)), rule, "duplicate", text_range)
    [issue] = build_external_issues(host, "legacy")["issues"]
    return issue["primaryLocation"]["textRange"]


def test_block_ending_at_last_line_is_clamped(host, workspace):
    # 3 line block starting on line 30 of a 32 line file
    assert _duplicate_on_ledger(host, workspace, TextRange(30, 33, 0, 1)) == {
        "startLine": 30, "endLine": 32, "startColumn": 0, "endColumn": 1,
    }


def test_range_past_end_of_file_moves_to_last_line(host, workspace):
    assert _duplicate_on_ledger(host, workspace, TextRange(40, 45, 0, 1)) == {
        "startLine": 32, "endLine": 32, "startColumn": 0, "endColumn": 1,
    }


def test_empty_line_keeps_lines_only(host, workspace):
    text_range = _duplicate_on_ledger(host, workspace, TextRange(2, 2, 0, 1), content="class Ledger {\n\n}\n")
    assert text_range == {"startLine": 2, "endLine": 2}


def test_range_inside_file_is_unchanged(host, workspace):
    assert _duplicate_on_ledger(host, workspace, TextRange(10, 14, 0, 1)) == {
        "startLine": 10, "endLine": 14, "startColumn": 0, "endColumn": 1,
    }


def test_engine_anchor_is_not_modified(host, workspace):
    _duplicate_on_ledger(host, workspace, TextRange(30, 33, 0, 1))
    assert host.issues[0].text_range == TextRange(30, 33, 0, 1)
