"""Tests for the event bus and diagnostics sink."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pacforge.core.config import ConfigResolver
from pacforge.core.diagnostics import build_envelope, diagnostics_path, install_jsonl_sink
from pacforge.core.events import EventBus, get_event_bus


def assert_is_envelope(published_event: str, payload: dict[str, Any]) -> None:
    assert set(payload.keys()) == {"event", "component", "operation", "timestamp", "data"}
    assert payload["event"] == published_event
    assert payload["timestamp"].endswith("Z")
    assert isinstance(payload["data"], dict)


class TestEventBus:
    """Tests for EventBus."""

    def test_subscribe_and_publish(self):
        bus = EventBus()
        seen: list[dict[str, Any]] = []
        bus.subscribe("operation.end", seen.append)

        bus.publish("operation.end", {"x": 1})
        bus.publish("operation.start", {"x": 2})

        assert seen == [{"x": 1}]

    def test_subscribe_all(self):
        bus = EventBus()
        seen: list[tuple[str, dict[str, Any]]] = []

        def _on_all(event: str, data: dict[str, Any]) -> None:
            seen.append((event, data))

        bus.subscribe_all(_on_all)
        bus.publish("a")
        bus.unsubscribe_all(_on_all)
        bus.publish("b")

        assert seen == [("a", {})]

    def test_handler_error_isolated(self, capsys):
        bus = EventBus()
        seen: list[dict[str, Any]] = []

        def _boom(data: dict[str, Any]) -> None:
            raise ValueError("nope")

        bus.subscribe("e", _boom)
        bus.subscribe("e", seen.append)
        bus.publish("e", {"ok": True})

        assert seen == [{"ok": True}]
        assert "ValueError: nope" in capsys.readouterr().err


class TestDiagnostics:
    """Tests for the envelope and JSONL sink."""

    def test_envelope_shape(self):
        env = build_envelope(
            event="operation.start", component="package", operation="package.build", data={}
        )
        assert_is_envelope("operation.start", env)

    def test_sink_disabled_by_default(self, tmp_path: Path, isolated_resolver_paths):
        resolver = ConfigResolver(cli_args={}, **isolated_resolver_paths)

        assert install_jsonl_sink(resolver=resolver) is None

    def test_sink_writes_jsonl(self, tmp_path: Path, isolated_resolver_paths):
        out = tmp_path / "diag" / "events.jsonl"
        resolver = ConfigResolver(
            cli_args={"diagnostics": {"enabled": True, "path": str(out)}},
            **isolated_resolver_paths,
        )

        sink = install_jsonl_sink(resolver=resolver)
        assert sink is not None
        bus = get_event_bus()
        bus.publish(
            "operation.end",
            build_envelope(
                event="operation.end",
                component="package",
                operation="package.build",
                data={"status": "succeeded"},
            ),
        )
        bus.publish("custom", {"k": "v"})
        bus.unsubscribe_all(sink)

        rows = [json.loads(line) for line in out.read_text(encoding="utf-8").splitlines()]
        assert_is_envelope("operation.end", rows[0])
        assert rows[1]["event"] == "custom"
        assert rows[1]["component"] == "unknown"
        assert rows[1]["data"] == {"k": "v"}

    def test_default_path_follows_output_dir(self, tmp_path: Path, isolated_resolver_paths):
        resolver = ConfigResolver(
            cli_args={"output": {"dir": str(tmp_path / "dist")}}, **isolated_resolver_paths
        )

        assert diagnostics_path(resolver) == tmp_path / "dist" / "diagnostics.jsonl"
