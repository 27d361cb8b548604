"""Host that works without a SonarQube server.

Active rules come from the ``offline.rules`` section of the configuration,
known metrics from ``offline.metrics`` plus the custom metrics persisted by
earlier runs, and resources are whatever exists under the project base
directory.
"""

from collections.abc import Iterable, Mapping
from pathlib import Path

from sonargraph_bridge.hosts import ActiveRule, Host, MetricDefinition, ResourceKind


class OfflineHost(Host):
    def __init__(self, project_key: str, base_dir: str | Path,
                 rules: Mapping[str, str] | None = None,
                 metrics: Iterable[MetricDefinition] = ()) -> None:
        super().__init__(project_key, base_dir)
        self._rules = {key: ActiveRule(key, severity) for key, severity in (rules or {}).items()}
        self._metrics = {m.key: m for m in metrics}

    def active_rules(self) -> dict[str, ActiveRule]:
        return dict(self._rules)

    def known_metrics(self) -> dict[str, MetricDefinition]:
        return dict(self._metrics)

    def _has_path(self, relative_path: str, kind: ResourceKind) -> bool:
        path = self.base_dir / relative_path
        return path.is_file() if kind is ResourceKind.FILE else path.is_dir()
