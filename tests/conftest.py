"""Shared fixtures: a small on-disk workspace and a report describing it.

Layout of the workspace::

    core/src/main/java/com/bank/Account.java
    core/src/main/java/com/bank/Ledger.java
    web/src/main/java/com/bank/web/Page.java
"""

import copy
import json
from pathlib import Path

import pytest

from sonargraph_bridge.reporter import Reporter

ACCOUNT_FQ = "Workspace:Core:./core/src/main/java:com:bank:Account.java"
LEDGER_FQ  = "Workspace:Core:./core/src/main/java:com:bank:Ledger.java"
PAGE_FQ    = "Workspace:Web:./web/src/main/java:com:bank:web:Page.java"

_FILES = (
    "core/src/main/java/com/bank/Account.java",
    "core/src/main/java/com/bank/Ledger.java",
    "web/src/main/java/com/bank/web/Page.java",
)

REPORT = {
    "system": {
        "name": "Bank",
        "fq_name": "Workspace",
        "base_dir": None,                       # filled with the workspace path
        "virtual_model": "Modifiable.vm",
        "features": [
            {"name": "Architecture", "licensed": True},
            {"name": "VirtualModels", "licensed": False},
        ],
    },
    "metric_levels": [
        {"name": "System", "presentation_name": "System", "order": 1},
        {"name": "Module", "presentation_name": "Module", "order": 2},
    ],
    "metric_ids": [
        {"name": "CoreComponents", "presentation_name": "Components", "levels": ["System", "Module"]},
        {"name": "CoreNccd", "presentation_name": "NCCD", "float": True, "best": 0, "worst": 100,
         "levels": ["System", "Module"]},
        {"name": "CoreViolatingComponents", "presentation_name": "Violating Components",
         "levels": ["System"]},
        {"name": "CoreTeamScore", "presentation_name": "Team Score", "description": "Computed by a script",
         "float": True, "best": 100, "worst": 0, "levels": ["System"]},
    ],
    "issue_types": [
        {"name": "ThresholdViolationError", "presentation_name": "Threshold Violation (Error)",
         "category": "ThresholdViolation", "severity": "ERROR"},
        {"name": "DuplicateCodeBlock", "presentation_name": "Duplicate Code Block",
         "category": "DuplicateCode", "severity": "WARNING"},
        {"name": "NamespaceCycleGroup", "presentation_name": "Namespace Cycle Group",
         "category": "CycleGroup", "severity": "WARNING"},
        {"name": "UnresolvedRootDirectory", "presentation_name": "Unresolved Root Directory",
         "category": "Workspace", "severity": "WARNING"},
        {"name": "CheckLoggers", "presentation_name": "Check Loggers",
         "category": "ScriptBased", "severity": "WARNING"},
    ],
    "modules": [
        {
            "name": "Core",
            "root_directories": ["core/src/main/java"],
            "source_files": [
                {"fq_name": ACCOUNT_FQ, "relative_path": "com/bank/Account.java",
                 "root_directory": "core/src/main/java", "presentation_name": "Account.java"},
                {"fq_name": LEDGER_FQ, "relative_path": "com/bank/Ledger.java",
                 "root_directory": "core/src/main/java", "presentation_name": "Ledger.java"},
            ],
            "issues": [
                {"type": "ThresholdViolationError", "description": "Lines of code = 812 (> 750)",
                 "affected": [ACCOUNT_FQ], "line": 12},
                {"type": "DuplicateCodeBlock", "description": "Block of 5 lines",
                 "affected": [ACCOUNT_FQ, LEDGER_FQ],
                 "occurrences": [
                     {"source_file": ACCOUNT_FQ, "start_line": 10, "block_size": 5},
                     {"source_file": LEDGER_FQ, "start_line": 30, "block_size": 3},
                 ]},
                {"type": "ThresholdViolationError", "description": "NCCD = 7.2 (> 6.5)",
                 "affected": ["Workspace:Core"]},
                {"type": "NamespaceCycleGroup", "description": "2 namespaces involved",
                 "affected": [{"directory": "core/src/main/java/com/bank"}]},
                {"type": "UnresolvedRootDirectory", "description": "Root directory missing",
                 "affected": ["Workspace:Core"]},
            ],
        },
        {
            "name": "Web",
            "root_directories": ["web/src/main/java"],
            "source_files": [
                {"fq_name": PAGE_FQ, "relative_path": "com/bank/web/Page.java",
                 "root_directory": "web/src/main/java", "presentation_name": "Page.java"},
            ],
            "issues": [
                {"type": "CheckLoggers", "description": "Logger is not static",
                 "affected": [PAGE_FQ], "line": 0, "provider": {"name": "Script", "presentation_name": "Loggers.scr"}},
            ],
        },
    ],
    "issues": [
        {"type": "ThresholdViolationError", "description": "Components = 40 (> 30)", "affected": ["Workspace"],
         "resolution": {"type": "TODO", "assignee": "dietmar", "priority": "High",
                        "description": "split the system", "date": "2026-09-01"}},
    ],
    "metric_values": [
        {"metric": "CoreComponents", "level": "System", "element": "Workspace", "value": 40},
        {"metric": "CoreNccd", "level": "System", "element": "Workspace", "value": 3.456},
        {"metric": "CoreViolatingComponents", "level": "System", "element": "Workspace", "value": 3},
        {"metric": "CoreTeamScore", "level": "System", "element": "Workspace", "value": 81.5},
        {"metric": "CoreComponents", "level": "Module", "element": "Workspace:Core", "value": 25},
        {"metric": "CoreNccd", "level": "Module", "element": "Workspace:Core", "value": 7.2},
        {"metric": "CoreComponents", "level": "Module", "element": "Workspace:Web", "value": 15},
        {"metric": "CoreNccd", "level": "Module", "element": "Workspace:Web", "value": 1.25},
    ],
}

KNOWN_RULES = {
    "THRESHOLD_VIOLATION_ERROR": "MAJOR",
    "DUPLICATE_CODE_BLOCK": "MINOR",
    "NAMESPACE_CYCLE_GROUP": "MAJOR",
    "UNRESOLVED_ROOT_DIRECTORY": "MAJOR",
    "SCRIPT_ISSUE": "INFO",
}


@pytest.fixture
def workspace(tmp_path) -> Path:
    root = tmp_path / "bank"
    for relative in _FILES:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("class X {}\n", encoding="utf-8")
    return root


@pytest.fixture
def report_data(workspace) -> dict:
    data = copy.deepcopy(REPORT)
    data["system"]["base_dir"] = str(workspace)
    return data


@pytest.fixture
def write_report(tmp_path):
    def _write(data: dict, name: str = "sonargraph-sonarqube-report.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def reporter() -> Reporter:
    return Reporter()
