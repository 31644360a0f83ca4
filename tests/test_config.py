import copy

import pytest

from graphview import DEFAULT_CONFIG, GraphView
from graphview.errors import ConfigurationError
from graphview.ingest.config import merge_entity_config


# --- merging through the engine ---

def test_merges_default_into_each_label_config():
    config = {
        "labels": {
            "a": {"caption": "name"},
            DEFAULT_CONFIG: {"test": "test"},
        }
    }
    view = GraphView(config)
    assert dict(view.labels["a"]) == {"caption": "name", "test": "test"}


def test_does_not_change_the_config_sent():
    config = {
        "labels": {
            "a": {"caption": "name"},
            DEFAULT_CONFIG: {"test": "test"},
        },
        "relationships": {
            "a": {"thickness": 0.1},
            DEFAULT_CONFIG: {"test": "test"},
        },
    }
    snapshot = copy.deepcopy(config)
    GraphView(config)
    assert config == snapshot


def test_specific_relationship_overrides_default():
    config = {
        "relationships": {
            "a": {"caption": "name", "overrideThis": "overridden"},
            DEFAULT_CONFIG: {"test": "test", "overrideThis": "override"},
        }
    }
    view = GraphView(config)
    assert dict(view.relationships["a"]) == {
        "caption": "name",
        "test": "test",
        "overrideThis": "overridden",
    }


def test_merges_default_into_each_relationship_config():
    view = GraphView({"relationships": {"a": {"caption": "name"}, DEFAULT_CONFIG: {"test": "test"}}})
    assert dict(view.relationships["a"]) == {"caption": "name", "test": "test"}


def test_specific_label_overrides_default():
    view = GraphView({"labels": {"a": {"overrideThis": "o2"}, DEFAULT_CONFIG: {"test": "t", "overrideThis": "o1"}}})
    assert view.labels["a"]["overrideThis"] == "o2"
    assert view.labels["a"]["test"] == "t"


# --- merge_entity_config ---

def test_default_bucket_is_not_a_concrete_type():
    merged = merge_entity_config({"a": {}, DEFAULT_CONFIG: {"x": 1}})
    assert list(merged) == ["a"]
    assert DEFAULT_CONFIG not in merged
    assert dict(merged.default) == {"x": 1}


def test_undeclared_type_gets_default_bucket():
    merged = merge_entity_config({"a": {}, DEFAULT_CONFIG: {"x": 1}})
    # Late merge for a type only seen at ingestion matches an eager merge of an empty entry.
    assert dict(merged.for_type("Unknown")) == dict(merged["a"]) == {"x": 1}
    assert dict(merged.for_type(None)) == {"x": 1}


def test_merge_without_default():
    merged = merge_entity_config({"a": {"caption": "name"}})
    assert dict(merged["a"]) == {"caption": "name"}
    assert dict(merged.for_type("b")) == {}


def test_nested_values_do_not_share_storage():
    styles = {"font": {"size": 12}}
    config = {"a": {"caption": "name"}, DEFAULT_CONFIG: styles}
    merged = merge_entity_config(config)

    styles["font"]["size"] = 99
    assert merged["a"]["font"] == {"size": 12}
    assert merged.default["font"] == {"size": 12}


def test_effective_config_is_read_only():
    merged = merge_entity_config({"a": {"caption": "name"}})
    with pytest.raises(TypeError):
        merged["a"]["caption"] = "other"  # type: ignore[index]


@pytest.mark.parametrize(
    "config",
    [
        {"a": "not-a-bag"},
        {"a": {}, DEFAULT_CONFIG: ["x"]},
    ],
)
def test_non_mapping_option_bag_is_rejected(config):
    with pytest.raises(ConfigurationError):
        merge_entity_config(config)


def test_engine_rejects_malformed_config():
    with pytest.raises(ConfigurationError):
        GraphView({"labels": ["a", "b"]})
    with pytest.raises(ConfigurationError):
        GraphView({"labels": {"a": 3}})
    with pytest.raises(ConfigurationError):
        GraphView({"label_policy": "most_specific"})
