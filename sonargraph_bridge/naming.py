"""Key derivation shared by metric and issue projection.

Report names are mixed case ("CoreComponents", "Core Components", "CycleGroup").
SonarQube keys are constant case. Every key the engine compares or persists
goes through the functions in this module so module and system passes agree.
"""

import math
import re
from enum import Enum

METRIC_KEY_PREFIX = "sg_i."
MAX_METRIC_KEY_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 255

WORKSPACE = "Workspace"
WORKSPACE_PREFIX = WORKSPACE + ":"
SCRIPT_ISSUE_CATEGORY = "ScriptBased"
SCRIPT_ISSUE_NAME = "ScriptIssue"

# Acronym runs ("NCCD" in "NCCDValue"), capitalised words, lower-case runs.
_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z0-9]+|[A-Z0-9]+")


class Direction(Enum):
    BETTER_IS_HIGHER = 1
    BETTER_IS_LOWER = -1
    NONE = 0


def to_constant_name(name: str) -> str:
    """``"Core Components"`` / ``"CoreComponents"`` -> ``"CORE_COMPONENTS"``."""
    return "_".join(word.upper() for word in _WORD_RE.findall(name))


def metric_key(standard_name: str) -> str:
    return METRIC_KEY_PREFIX + to_constant_name(standard_name)


def custom_metric_key(system_name: str, standard_name: str) -> str:
    """Key used for metrics that only exist in one system's report."""
    return METRIC_KEY_PREFIX + to_constant_name(system_name) + "." + to_constant_name(standard_name)


def rule_key(issue_type_name: str) -> str:
    return to_constant_name(issue_type_name)


def trim_description(description: str | None, max_length: int = MAX_DESCRIPTION_LENGTH) -> str:
    if not description:
        return ""
    if len(description) <= max_length:
        return description
    return description[: max_length - 3] + "..."


def is_representable(value: float | None) -> bool:
    """SonarQube cannot store NaN or infinite best/worst values."""
    return value is not None and not math.isnan(value) and not math.isinf(value)


def direction(best_value: float, worst_value: float) -> Direction:
    if best_value > worst_value:
        return Direction.BETTER_IS_HIGHER
    if best_value < worst_value:
        return Direction.BETTER_IS_LOWER
    return Direction.NONE
