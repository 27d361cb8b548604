"""Project report metric values onto host measures."""

from sonargraph_bridge.hosts import Host, MetricDefinition, Resource
from sonargraph_bridge.model import MetricLevel, Module, SoftwareSystem
from sonargraph_bridge.naming import custom_metric_key, is_representable, metric_key
from sonargraph_bridge.registry import CustomMetric, CustomMetricRegistry
from sonargraph_bridge.report import InfoProcessor
from sonargraph_bridge.reporter import Reporter


class MetricProjector:
    """Emit one measure per report metric the host knows about.

    Metrics the host does not know are handed to the custom metric registry
    and skipped; ``pending`` holds what was discovered until the caller
    persists it.
    """

    def __init__(self, host: Host, registry: CustomMetricRegistry, reporter: Reporter,
                 known_metrics: dict[str, MetricDefinition]) -> None:
        self._host = host
        self._registry = registry
        self._reporter = reporter
        self._known = known_metrics
        self._stored: dict[str, CustomMetric] | None = None
        self.pending: dict[str, CustomMetric] | None = None

    def project(self, system: SoftwareSystem, container: SoftwareSystem | Module, resource: Resource,
                info: InfoProcessor, level: MetricLevel, already_emitted: set[str],
                collector: set[str] | None = None) -> None:
        for metric_id in info.metric_ids_for_level(level):
            key = metric_key(metric_id.name)
            if key not in self._known:
                key = custom_metric_key(system.name, metric_id.name)
            if key not in self._known:
                if self._stored is None:
                    self._stored = self._registry.load()
                if self._registry.add_pending(system, metric_id, self._stored):
                    self.pending = self._stored
                continue

            value = info.metric_value_for_element(metric_id, level, container.fq_name)
            if value is None:
                self._reporter.warning(f"No value found for metric '{key}'")
                continue
            if key in already_emitted:
                continue

            if metric_id.is_float:
                number = float(value.value)
            elif is_representable(value.value):
                number = int(value.value)
            else:
                self._reporter.warning(f"Value {value.value} of integer metric '{key}' is not a finite number")
                continue
            self._host.emit_measure(resource, key, number)
            if collector is not None:
                collector.add(key)
