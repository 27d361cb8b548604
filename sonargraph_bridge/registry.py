"""Store for metrics found in a report but unknown to the host.

A metric discovered during a pass cannot be used in that same pass: the host
builds its metric catalog once at start-up. The registry records the
definition so the next start-up (``OfflineHost`` built from ``definitions()``,
or a server-side plugin reading the same file) knows it. Values of such
metrics are only published from the run after that restart.

The store is a flat YAML mapping::

    sg_i.BANK.MY_METRIC: "My Metric|FLOAT|0.0|inf|Counts things"

i.e. ``presentation name|INT or FLOAT|best|worst|description``.
"""

from dataclasses import dataclass
from pathlib import Path

import yaml

from sonargraph_bridge import PLUGIN_KEY
from sonargraph_bridge.hosts import MetricDefinition
from sonargraph_bridge.model import MetricId, SoftwareSystem
from sonargraph_bridge.naming import (
    MAX_METRIC_KEY_LENGTH,
    custom_metric_key,
    direction,
    is_representable,
    trim_description,
)
from sonargraph_bridge.reporter import Reporter

DEFAULT_STORE = Path.home() / f".{PLUGIN_KEY}" / "custom-metrics.yaml"

_SEPARATOR = "|"
_INT = "INT"
_FLOAT = "FLOAT"


@dataclass(frozen=True)
class CustomMetric:
    key: str
    presentation_name: str
    description: str
    is_float: bool
    best_value: float
    worst_value: float

    def serialize(self) -> str:
        return _SEPARATOR.join((
            self.presentation_name.replace(_SEPARATOR, " "),
            _FLOAT if self.is_float else _INT,
            repr(self.best_value),
            repr(self.worst_value),
            self.description,
        ))

    @classmethod
    def parse(cls, key: str, raw: str) -> "CustomMetric":
        parts = raw.split(_SEPARATOR, 4)
        if len(parts) != 5 or parts[1] not in (_INT, _FLOAT):
            raise ValueError(f"Unable to parse custom metric '{key}': '{raw}'")
        name, kind, best, worst, description = parts
        return cls(key, name, description, kind == _FLOAT, float(best), float(worst))

    def to_definition(self) -> MetricDefinition:
        """Host-side definition; NaN and infinite bounds are left out."""
        return MetricDefinition(
            key=self.key,
            name=self.presentation_name,
            is_float=self.is_float,
            description=self.description,
            best_value=self.best_value if is_representable(self.best_value) else None,
            worst_value=self.worst_value if is_representable(self.worst_value) else None,
            direction=direction(self.best_value, self.worst_value),
        )


class CustomMetricRegistry:
    def __init__(self, reporter: Reporter, path: str | Path = DEFAULT_STORE) -> None:
        self._reporter = reporter
        self.path = Path(path).expanduser()
        self._unreadable = False

    def load(self) -> dict[str, CustomMetric]:
        self._unreadable = False
        if not self.path.exists():
            self._reporter.debug(f"No custom metrics stored at '{self.path}'")
            return {}
        try:
            with self.path.open(encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            self._reporter.error(f"Failed to load custom metrics from '{self.path}': {exc}")
            self._unreadable = True
            return {}
        if not isinstance(raw, dict):
            self._reporter.error(f"Custom metrics file '{self.path}' must contain a mapping")
            self._unreadable = True
            return {}

        loaded: dict[str, CustomMetric] = {}
        for key, value in raw.items():
            try:
                loaded[str(key)] = CustomMetric.parse(str(key), str(value))
            except ValueError as exc:
                self._reporter.warning(str(exc))
        self._reporter.info(f"Loaded {len(loaded)} custom metric(s) from '{self.path}'")
        return loaded

    def add_pending(self, system: SoftwareSystem, metric_id: MetricId,
                    registry: dict[str, CustomMetric]) -> bool:
        """Record *metric_id* in *registry*; False when its key is unusable."""
        key = custom_metric_key(system.name, metric_id.name)
        if len(key) > MAX_METRIC_KEY_LENGTH:
            self._reporter.warning(
                f"Custom metric key '{key}' exceeds {MAX_METRIC_KEY_LENGTH} characters, not registered"
            )
            return False
        registry[key] = CustomMetric(
            key=key,
            presentation_name=metric_id.presentation_name,
            description=trim_description(metric_id.description),
            is_float=metric_id.is_float,
            best_value=metric_id.best_value,
            worst_value=metric_id.worst_value,
        )
        self._reporter.warning(f"Custom metric added '{system.name}/{metric_id.name}'")
        return True

    def persist(self, registry: dict[str, CustomMetric]) -> None:
        """Write *registry* to the store.

        A store the last ``load()`` could not read is left untouched, since
        *registry* lacks whatever it held.
        """
        if self._unreadable and self.path.exists():
            self._reporter.error(
                f"Not saving custom metrics: '{self.path}' could not be read and would be overwritten. "
                "Fix or remove the file to record new custom metrics."
            )
            return
        data = {key: registry[key].serialize() for key in sorted(registry)}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, allow_unicode=True, width=1000)
        except OSError as exc:
            self._reporter.error(f"Failed to save custom metrics to '{self.path}': {exc}")
            return
        self._reporter.saved(f"Saved {len(data)} custom metric(s) to '{self.path}'")

    def definitions(self) -> list[MetricDefinition]:
        return [metric.to_definition() for metric in self.load().values()]
