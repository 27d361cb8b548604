"""Host backed by a running SonarQube server.

Rules, metrics and the component tree are read once through the Web API and
cached for the rest of the pass; emitted measures and issues stay on the
host and are exported afterwards.
"""

import logging
from pathlib import Path

from sonargraph_bridge import PLUGIN_KEY
from sonargraph_bridge.client import SonarClient
from sonargraph_bridge.hosts import ActiveRule, Host, MetricDefinition, ResourceKind
from sonargraph_bridge.naming import METRIC_KEY_PREFIX, Direction

logger = logging.getLogger(__name__)

_QUALIFIERS = {"FIL": ResourceKind.FILE, "UTS": ResourceKind.FILE, "DIR": ResourceKind.DIRECTORY}
_DIRECTIONS = {1: Direction.BETTER_IS_HIGHER, -1: Direction.BETTER_IS_LOWER}


def _optional_float(raw) -> float | None:
    if raw in (None, ""):
        return None
    return float(raw)


def _activation_severity(activations: list[dict], profile_key: str) -> str | None:
    """Severity the rule was activated with in *profile_key*, if reported."""
    for activation in activations:
        if activation.get("qProfile") == profile_key:
            return activation.get("severity")
    return None


class ServerHost(Host):
    def __init__(self, client: SonarClient, project_key: str, base_dir: str | Path) -> None:
        super().__init__(project_key, base_dir)
        self._client = client
        self._rules: dict[str, ActiveRule] | None = None
        self._metrics: dict[str, MetricDefinition] | None = None
        self._paths: set[tuple[ResourceKind, str]] | None = None

    def active_rules(self) -> dict[str, ActiveRule]:
        if self._rules is None:
            self._rules = {}
            profiles = self._client.get("/api/qualityprofiles/search", {"project": self.project_key})
            for profile in profiles.get("profiles", []):
                pages = self._client.iter_responses(
                    "/api/rules/search",
                    {"qprofile": profile["key"], "activation": "true", "repositories": PLUGIN_KEY,
                     "f": "name,severity,actives"},
                    results_key="rules",
                )
                for page in pages:
                    actives = page.get("actives", {})
                    for rule in page.get("rules", []):
                        key = rule["key"].split(":", 1)[-1]
                        severity = _activation_severity(actives.get(rule["key"], []), profile["key"])
                        self._rules[key] = ActiveRule(key, severity or rule.get("severity", "MAJOR"),
                                                      rule.get("name", ""))
            logger.debug("%d active rule(s) in %d profile(s)", len(self._rules), len(profiles.get("profiles", [])))
        return self._rules

    def known_metrics(self) -> dict[str, MetricDefinition]:
        if self._metrics is None:
            self._metrics = {}
            for metric in self._client.get_paginated("/api/metrics/search", {}, results_key="metrics"):
                key = metric["key"]
                if not key.startswith(METRIC_KEY_PREFIX):
                    continue
                self._metrics[key] = MetricDefinition(
                    key=key,
                    name=metric.get("name", key),
                    is_float=metric.get("type") == "FLOAT",
                    description=metric.get("description", ""),
                    best_value=_optional_float(metric.get("bestValue")),
                    worst_value=_optional_float(metric.get("worstValue")),
                    direction=_DIRECTIONS.get(metric.get("direction", 0), Direction.NONE),
                )
        return self._metrics

    def _has_path(self, relative_path: str, kind: ResourceKind) -> bool:
        if self._paths is None:
            components = self._client.get_paginated(
                "/api/components/tree",
                {"component": self.project_key, "qualifiers": "FIL,UTS,DIR"},
                results_key="components",
            )
            self._paths = {
                (_QUALIFIERS[c["qualifier"]], c["path"])
                for c in components
                if c.get("qualifier") in _QUALIFIERS and "path" in c
            }
        return (kind, relative_path) in self._paths
