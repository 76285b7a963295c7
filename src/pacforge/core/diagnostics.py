"""Diagnostics envelope + JSONL sink.

Every build publishes two envelopes on the event bus:
`operation.start` and `operation.end`. When `diagnostics.enabled` resolves
true, the sink appends each envelope as one JSON line to
`diagnostics.path` (default: `<output.dir>/diagnostics.jsonl`).
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pacforge.core.config import ConfigResolver
from pacforge.core.errors import ConfigError
from pacforge.core.events import get_event_bus
from pacforge.core.logging import get_logger

_logger = get_logger(__name__)


def build_envelope(
    *,
    event: str,
    component: str,
    operation: str,
    data: dict[str, Any],
) -> dict[str, Any]:
    """Build the canonical diagnostics envelope.

    Schema:
        {
          "event": "<string>",
          "component": "<string>",
          "operation": "<string>",
          "timestamp": "<iso8601 utc>",
          "data": { ... }
        }
    """
    ts = datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    return {
        "event": event,
        "component": component,
        "operation": operation,
        "timestamp": ts,
        "data": data,
    }


def is_diagnostics_enabled(resolver: ConfigResolver) -> bool:
    try:
        return resolver.get_bool("diagnostics.enabled", False)
    except ConfigError:
        _logger.warning("Invalid diagnostics.enabled value; treating as disabled.")
        return False


def diagnostics_path(resolver: ConfigResolver) -> Path:
    configured = resolver.get("diagnostics.path")
    if configured:
        return resolver.base_dir / str(configured)
    out_dir = resolver.get("output.dir", ".")
    return resolver.base_dir / str(out_dir) / "diagnostics.jsonl"


def install_jsonl_sink(*, resolver: ConfigResolver) -> Any:
    """Subscribe a JSONL writer to all events; returns the subscriber.

    When diagnostics are disabled nothing is subscribed and None is returned.
    """
    if not is_diagnostics_enabled(resolver):
        return None

    out_path = diagnostics_path(resolver)

    def _on_any_event(event: str, data: dict[str, Any]) -> None:
        payload = data if "event" in data else build_envelope(
            event=event, component="unknown", operation="unknown", data=data
        )
        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            line = json.dumps(payload, ensure_ascii=True, separators=(",", ":"), sort_keys=True)
            with out_path.open("a", encoding="utf-8") as f:
                f.write(line)
                f.write("\n")
        except OSError as e:
            _logger.warning(f"Diagnostics sink write failed: {type(e).__name__}: {e}")

    get_event_bus().subscribe_all(_on_any_event)
    return _on_any_event
