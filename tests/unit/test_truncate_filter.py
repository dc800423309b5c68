"""Unit tests for TruncateFilter: config, match signal and tag decoration."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from logtrunc.core.errors import ConfigError
from logtrunc.metrics.metrics import MetricsCollector
from logtrunc.plugins.filters.truncate import (
    PLUGIN_METADATA,
    TruncateConfig,
    TruncateFilter,
)

# --- Config ---


def test_config_requires_length_bytes() -> None:
    with pytest.raises(ConfigError) as exc_info:
        TruncateFilter(config={})
    assert exc_info.value.errors[0]["field"] == "length_bytes"


def test_config_rejects_negative_length() -> None:
    with pytest.raises(ConfigError):
        TruncateFilter(config={"length_bytes": -1})


def test_config_rejects_boolean_length() -> None:
    with pytest.raises(ConfigError):
        TruncateFilter(config={"length_bytes": True})


def test_config_rejects_unknown_option() -> None:
    with pytest.raises(ConfigError):
        TruncateFilter(config={"length_bytes": 5, "length": 5})


def test_config_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        TruncateFilter(config={"length_bytes": "lots"})


def test_config_accepts_max_length_bytes_alias() -> None:
    f = TruncateFilter(config={"max_length_bytes": 12})
    assert f.max_bytes == 12


def test_config_accepts_kwargs_and_wrapped_dict() -> None:
    assert TruncateFilter(length_bytes=3).max_bytes == 3
    assert TruncateFilter(config={"config": {"length_bytes": 4}}).max_bytes == 4
    assert TruncateFilter(config=TruncateConfig(length_bytes=0)).max_bytes == 0


def test_config_fields_normalized() -> None:
    f = TruncateFilter(config={"length_bytes": 5, "fields": "example"})
    assert f.fields == ("example",)

    f = TruncateFilter(config={"length_bytes": 5, "fields": ["a", "b", "a"]})
    assert f.fields == ("a", "b")


def test_config_rejects_blank_field_name() -> None:
    with pytest.raises(ConfigError):
        TruncateFilter(config={"length_bytes": 5, "fields": ["ok", " "]})


def test_config_keeps_field_names_verbatim() -> None:
    f = TruncateFilter(length_bytes=1, fields=[" msg"])
    assert f.fields == (" msg",)

    event = {" msg": "abc", "msg": "xyz"}
    assert f.process(event, lambda e: None) is True

    assert event == {" msg": "a", "msg": "xyz"}


@pytest.mark.parametrize("value", ["5", 5.0, "five", None])
def test_config_rejects_non_integer_length(value: object) -> None:
    with pytest.raises(ConfigError) as exc_info:
        TruncateFilter(config={"length_bytes": value})
    assert exc_info.value.errors[0]["field"] == "length_bytes"


def test_config_is_frozen() -> None:
    cfg = TruncateConfig(length_bytes=5)
    with pytest.raises(Exception):
        cfg.length_bytes = 10  # type: ignore[misc]


# --- process / match signal ---


def test_process_truncates_and_marks_once() -> None:
    f = TruncateFilter(length_bytes=5)
    event = {"a": "hello world"}
    mark = MagicMock()

    assert f.process(event, mark) is True

    assert event["a"] == "hello"
    mark.assert_called_once_with(event)


def test_process_marks_once_for_many_truncations() -> None:
    f = TruncateFilter(length_bytes=450)
    event = {
        "foo": {"bar": "a" * 500},
        "one": {"two": {"three": "b" * 600}},
        "baz": "c" * 700,
    }
    mark = MagicMock()

    assert f.process(event, mark) is True

    assert len(event["foo"]["bar"]) == 450
    assert len(event["one"]["two"]["three"]) == 450
    assert len(event["baz"]) == 450
    assert mark.call_count == 1


def test_process_does_not_mark_when_nothing_truncated() -> None:
    f = TruncateFilter(length_bytes=450)
    event = {
        "foo": {"bar": "a" * 300},
        "one": {"two": {"three": "b" * 350}},
        "baz": "c" * 200,
    }
    mark = MagicMock()

    assert f.process(event, mark) is False
    mark.assert_not_called()


def test_process_selected_field_only() -> None:
    f = TruncateFilter(config={"length_bytes": 50, "fields": ["example"]})
    message = "x" * 1000
    event = {"message": message, "example": "x" * 1000}

    assert f.process(event, lambda e: None) is True

    assert len(event["example"].encode("utf-8")) == 50
    assert event["message"] is message


def test_process_selected_list_field() -> None:
    f = TruncateFilter(config={"length_bytes": 50, "fields": ["example"]})
    event = {"example": ["a" * 100 for _ in range(10)]}
    mark = MagicMock()

    f.process(event, mark)

    assert len(event["example"]) == 10
    assert all(len(item) <= 50 for item in event["example"])
    assert mark.call_count == 1


@pytest.mark.parametrize("number", [42, -500, 0, 3.14])
def test_process_non_string_field_untouched(number: float) -> None:
    f = TruncateFilter(config={"length_bytes": 50, "fields": ["example"]})
    event = {"example": number}
    mark = MagicMock()

    assert f.process(event, mark) is False

    assert event["example"] == number
    mark.assert_not_called()


def test_process_is_idempotent() -> None:
    f = TruncateFilter(length_bytes=7)
    event = {"a": "€uro-zone €€€", "b": ["ok", "ünïcödé text"]}

    assert f.process(event, lambda e: None) is True
    snapshot = {"a": event["a"], "b": list(event["b"])}

    mark = MagicMock()
    assert f.process(event, mark) is False
    assert event == snapshot
    mark.assert_not_called()


# --- default mark_matched: tag decoration ---


def test_default_mark_without_tag_options_leaves_event_shape() -> None:
    f = TruncateFilter(length_bytes=1)
    event = {"message": "abc"}
    f.process(event)
    assert event == {"message": "a"}


def test_add_tag_on_match() -> None:
    f = TruncateFilter(
        config={"length_bytes": 3, "fields": ["message"], "add_tag": ["_truncated"]}
    )
    event = {"message": "abcdef", "tags": ["web"]}

    f.process(event)

    assert event["tags"] == ["web", "_truncated"]


def test_add_tag_creates_tags_and_does_not_duplicate() -> None:
    f = TruncateFilter(
        config={"length_bytes": 3, "fields": ["message"], "add_tag": ["_truncated"]}
    )
    event = {"message": "abcdef"}

    f.process(event)
    event["message"] = "abcdef"
    f.process(event)

    assert event["tags"] == ["_truncated"]


def test_add_tag_not_applied_without_match() -> None:
    f = TruncateFilter(config={"length_bytes": 30, "add_tag": ["_truncated"]})
    event = {"message": "short"}
    f.process(event)
    assert "tags" not in event


def test_add_tag_sprintf_reference() -> None:
    f = TruncateFilter(
        config={
            "length_bytes": 2,
            "fields": ["message"],
            "add_tag": ["cut_%{service}", "%{[host][name]}", "%{missing}"],
        }
    )
    event = {"message": "abcdef", "service": "api", "host": {"name": "h1"}}

    f.process(event)

    assert event["tags"] == ["cut_api", "h1", "%{missing}"]


def test_remove_tag_on_match() -> None:
    f = TruncateFilter(
        config={"length_bytes": 2, "fields": ["message"], "remove_tag": ["raw"]}
    )
    event = {"message": "abcdef", "tags": ["raw", "keep"]}

    f.process(event)

    assert event["tags"] == ["keep"]


def test_custom_mark_matched_replaces_decoration() -> None:
    f = TruncateFilter(config={"length_bytes": 2, "add_tag": ["_truncated"]})
    event = {"message": "abcdef"}
    seen: list[dict] = []

    f.process(event, seen.append)

    assert seen == [event]
    assert "tags" not in event


def test_non_list_tags_warns_and_skips(captured_diagnostics: list[dict]) -> None:
    f = TruncateFilter(
        config={"length_bytes": 2, "fields": ["message"], "add_tag": ["t"]}
    )
    event = {"message": "abcdef", "tags": {"not": "a list"}}

    f.process(event)

    assert event["tags"] == {"not": "a list"}
    assert any("tags field" in d["message"] for d in captured_diagnostics)


# --- async plugin surface ---


@pytest.mark.asyncio
async def test_filter_returns_same_event_and_records_metrics() -> None:
    metrics = MetricsCollector(enabled=True)
    f = TruncateFilter(config={"length_bytes": 3}, metrics=metrics)
    event = {"a": "abcdef", "b": ["ghijkl", "x"]}

    result = await f.filter(event)

    assert result is event
    assert event == {"a": "abc", "b": ["ghi", "x"]}
    snap = await metrics.snapshot()
    assert snap.events_truncated == 1
    assert snap.fields_truncated == 2
    reg = metrics.registry
    assert reg is not None
    assert (
        reg.get_sample_value("logtrunc_fields_truncated_total", {"plugin": "truncate"})
        == 2.0
    )


@pytest.mark.asyncio
async def test_filter_without_match_records_nothing() -> None:
    metrics = MetricsCollector(enabled=False)
    f = TruncateFilter(config={"length_bytes": 30}, metrics=metrics)

    await f.filter({"a": "short"})

    snap = await metrics.snapshot()
    assert snap.events_truncated == 0


@pytest.mark.asyncio
async def test_lifecycle_and_health() -> None:
    f = TruncateFilter(length_bytes=0)
    await f.start()
    assert await f.health_check() is True
    await f.stop()


def test_truncation_diagnostic_emitted() -> None:
    f = TruncateFilter(config={"length_bytes": 4})
    event = {"data": {"description": "x" * 10}}
    with patch("logtrunc.plugins.filters.truncate.diagnostics") as mock_diag:
        f.process(event)
        mock_diag.debug.assert_called_once_with(
            "filter",
            "string field truncated",
            filter="truncate",
            path="data.description",
            original_bytes=10,
            truncated_to=4,
        )


def test_plugin_metadata_matches_class() -> None:
    assert PLUGIN_METADATA["name"] == TruncateFilter.name
    assert PLUGIN_METADATA["plugin_type"] == "filter"
    assert "length_bytes" in PLUGIN_METADATA["config_schema"]["required"]


def test_process_deeply_nested_event() -> None:
    f = TruncateFilter(config={"length_bytes": 3, "fields": ["deep"]})
    innermost = ["abcdef"]
    nested: list = innermost
    for _ in range(3000):
        nested = [nested]
    mark = MagicMock()

    assert f.process({"deep": nested}, mark) is True

    assert innermost == ["abc"]
    assert mark.call_count == 1
