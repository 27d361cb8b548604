"""Tests for sonargraph_bridge/registry.py"""

import logging
import math

import pytest
import yaml

from sonargraph_bridge.model import MetricId, SoftwareSystem
from sonargraph_bridge.naming import Direction
from sonargraph_bridge.registry import CustomMetric, CustomMetricRegistry

SYSTEM = SoftwareSystem(name="Bank", fq_name="Workspace", base_dir="/work/bank")


@pytest.fixture
def registry(reporter, tmp_path) -> CustomMetricRegistry:
    return CustomMetricRegistry(reporter, tmp_path / ".sonargraphintegration" / "custom-metrics.yaml")


def _metric_id(name="CoreTeamScore", **kwargs) -> MetricId:
    defaults = dict(presentation_name="Team Score", description="Computed by a script",
                    is_float=True, best_value=100.0, worst_value=0.0)
    defaults.update(kwargs)
    return MetricId(name, **defaults)


# ---------------------------------------------------------------------------
# CustomMetric
# ---------------------------------------------------------------------------

def test_serialize_format():
    metric = CustomMetric("sg_i.BANK.X", "X", "Counts x", False, 0.0, math.inf)
    assert metric.serialize() == "X|INT|0.0|inf|Counts x"


def test_parse_keeps_separator_in_description():
    metric = CustomMetric.parse("sg_i.BANK.X", "X|FLOAT|nan|-inf|a|b")
    assert metric.description == "a|b"
    assert math.isnan(metric.best_value)
    assert metric.worst_value == -math.inf


@pytest.mark.parametrize("raw", ["X|INT|0", "X|DOUBLE|0|1|d", "X|INT|zero|1|d"])
def test_parse_rejects_malformed(raw):
    with pytest.raises(ValueError):
        CustomMetric.parse("sg_i.BANK.X", raw)


def test_definition_drops_unrepresentable_bounds():
    definition = CustomMetric("sg_i.BANK.X", "X", "", True, math.nan, 10.0).to_definition()
    assert definition.best_value is None
    assert definition.worst_value == 10.0
    assert definition.direction is Direction.NONE


def test_definition_direction():
    definition = CustomMetric("sg_i.BANK.X", "X", "", True, 100.0, 0.0).to_definition()
    assert definition.direction is Direction.BETTER_IS_HIGHER


# ---------------------------------------------------------------------------
# load()
# ---------------------------------------------------------------------------

def test_load_missing_store_is_empty(registry):
    assert registry.load() == {}


def test_load_skips_bad_entries(registry, reporter):
    registry.path.parent.mkdir(parents=True)
    registry.path.write_text(
        'sg_i.BANK.GOOD: "Good|INT|0.0|10.0|fine"\nsg_i.BANK.BAD: "nonsense"\n', encoding="utf-8"
    )
    loaded = registry.load()
    assert list(loaded) == ["sg_i.BANK.GOOD"]
    assert reporter.counts["warning"] == 1


def test_load_non_mapping_is_reported(registry, reporter):
    registry.path.parent.mkdir(parents=True)
    registry.path.write_text("- a\n- b\n", encoding="utf-8")
    assert registry.load() == {}
    assert reporter.counts["error"] == 1


# ---------------------------------------------------------------------------
# add_pending()
# ---------------------------------------------------------------------------

def test_add_pending_records_definition(registry, caplog):
    pending: dict = {}
    with caplog.at_level(logging.WARNING, logger="sonargraph_bridge"):
        assert registry.add_pending(SYSTEM, _metric_id(), pending)

    metric = pending["sg_i.BANK.CORE_TEAM_SCORE"]
    assert metric.presentation_name == "Team Score"
    assert "Custom metric added 'Bank/CoreTeamScore'" in caplog.text


def test_add_pending_trims_description(registry):
    pending: dict = {}
    registry.add_pending(SYSTEM, _metric_id(description="d" * 400), pending)
    assert len(pending["sg_i.BANK.CORE_TEAM_SCORE"].description) == 255


def test_add_pending_rejects_long_key(registry, reporter):
    pending: dict = {}
    assert not registry.add_pending(SYSTEM, _metric_id(name="Very" * 20), pending)
    assert pending == {}
    assert reporter.counts["warning"] == 1


# ---------------------------------------------------------------------------
# persist()
# ---------------------------------------------------------------------------

def test_persist_then_load_round_trip(registry):
    pending: dict = {}
    registry.add_pending(SYSTEM, _metric_id(), pending)
    registry.add_pending(SYSTEM, _metric_id("CoreOpenItems", is_float=False, best_value=math.nan,
                                            worst_value=math.inf), pending)
    registry.persist(pending)

    reloaded = registry.load()
    assert set(reloaded) == set(pending)
    score = reloaded["sg_i.BANK.CORE_TEAM_SCORE"]
    assert (score.is_float, score.best_value, score.worst_value) == (True, 100.0, 0.0)
    items = reloaded["sg_i.BANK.CORE_OPEN_ITEMS"]
    assert not items.is_float
    assert math.isnan(items.best_value)
    assert items.worst_value == math.inf


def test_persist_writes_sorted_flat_mapping(registry):
    registry.persist({
        "sg_i.BANK.B": CustomMetric("sg_i.BANK.B", "B", "", False, 0.0, 1.0),
        "sg_i.BANK.A": CustomMetric("sg_i.BANK.A", "A", "", False, 0.0, 1.0),
    })
    text = registry.path.read_text(encoding="utf-8")
    assert text.index("sg_i.BANK.A") < text.index("sg_i.BANK.B")
    assert yaml.safe_load(text) == {"sg_i.BANK.A": "A|INT|0.0|1.0|", "sg_i.BANK.B": "B|INT|0.0|1.0|"}


def test_persist_tells_operators_to_restart(registry, reporter, caplog):
    with caplog.at_level(logging.WARNING, logger="sonargraph_bridge"):
        registry.persist({})
    assert "needs to be restarted" in caplog.text
    assert reporter.counts["saved"] == 1


def test_definitions(registry):
    registry.persist({"sg_i.BANK.A": CustomMetric("sg_i.BANK.A", "A", "d", True, 0.0, 1.0)})
    [definition] = registry.definitions()
    assert definition.key == "sg_i.BANK.A"
    assert definition.is_float


def test_persist_keeps_unreadable_store(registry, reporter):
    registry.path.parent.mkdir(parents=True)
    registry.path.write_text("sg_i.BANK.A: [unclosed\n", encoding="utf-8")
    pending = registry.load()
    registry.add_pending(SYSTEM, _metric_id(), pending)

    registry.persist(pending)

    assert registry.path.read_text(encoding="utf-8") == "sg_i.BANK.A: [unclosed\n"
    assert reporter.counts["saved"] == 0
    assert reporter.counts["error"] == 2


def test_persist_after_store_is_fixed(registry, reporter):
    registry.path.parent.mkdir(parents=True)
    registry.path.write_text("- a\n", encoding="utf-8")
    registry.load()
    registry.path.write_text('sg_i.BANK.GOOD: "Good|INT|0.0|10.0|fine"\n', encoding="utf-8")
    pending = registry.load()
    registry.add_pending(SYSTEM, _metric_id(), pending)

    registry.persist(pending)

    assert set(registry.load()) == {"sg_i.BANK.GOOD", "sg_i.BANK.CORE_TEAM_SCORE"}
    assert reporter.counts["saved"] == 1
