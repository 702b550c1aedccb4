from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TextIO

logger = logging.getLogger(__name__)

TELEMETRY_CATEGORIES = {"stock_override", "sale_submission", "closure", "approval"}
_FORBIDDEN_CONTEXT_KEYS = {
    "password",
    "credential",
    "token",
    "access_token",
    "authorization",
    "customer_nit",
    "tax_id",
    "email",
    "phone",
}


@dataclass(frozen=True)
class TelemetryEvent:
    category: str
    name: str
    actor_id: str | None
    timestamp_utc: str
    request_id: str | None = None
    success: bool | None = None
    error_code: str | None = None
    context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        return {key: value for key, value in payload.items() if value is not None}


def _validate_context(context: dict[str, Any] | None) -> None:
    if not context:
        return
    illegal = sorted(key for key in context if key.lower() in _FORBIDDEN_CONTEXT_KEYS)
    if illegal:
        raise ValueError(f"Sensitive keys are forbidden in telemetry context: {illegal}")


def build_event(
    *,
    category: str,
    name: str,
    actor_id: str | None = None,
    request_id: str | None = None,
    success: bool | None = None,
    error_code: str | None = None,
    context: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> TelemetryEvent:
    if category not in TELEMETRY_CATEGORIES:
        raise ValueError(f"Unsupported telemetry category: {category}")
    _validate_context(context)
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    return TelemetryEvent(
        category=category,
        name=name,
        actor_id=actor_id,
        timestamp_utc=stamp,
        request_id=request_id,
        success=success,
        error_code=error_code,
        context=context,
    )


class TelemetryLogger:
    """Append-only JSON-lines audit sink for override, sale and closure events."""

    def __init__(
        self,
        *,
        app_name: str = "retail_pos",
        enabled: bool | None = None,
        log_file: str | Path | None = None,
        stdout_sink: bool = False,
        stdout_stream: TextIO | None = None,
    ) -> None:
        self.app_name = app_name
        self.enabled = enabled if enabled is not None else _env_telemetry_enabled()
        self.log_file = Path(log_file) if log_file else Path("artifacts") / "telemetry" / f"{app_name}.jsonl"
        self.stdout_sink = stdout_sink
        self.stdout_stream = stdout_stream

    def emit(self, event: TelemetryEvent) -> bool:
        if not self.enabled:
            return False

        payload = event.to_dict()
        payload["app_name"] = self.app_name
        line = json.dumps(payload, sort_keys=True, default=str)

        try:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            with self.log_file.open("a", encoding="utf-8") as fp:
                fp.write(f"{line}\n")

            if self.stdout_sink:
                stream = self.stdout_stream or sys.stdout
                stream.write(f"{line}\n")
                stream.flush()
        except OSError as exc:
            # Audit writes never fail the action being recorded.
            logger.warning(
                "telemetry_write_failed",
                extra={"log_file": str(self.log_file), "event_name": event.name, "error": type(exc).__name__},
            )
            return False

        return True

    def record(self, category: str, name: str, **fields: Any) -> bool:
        return self.emit(build_event(category=category, name=name, **fields))


def _env_telemetry_enabled() -> bool:
    value = os.getenv("RETAIL_POS_TELEMETRY_ENABLED", "0").strip().lower()
    return value in {"1", "true", "yes", "on"}


NULL_TELEMETRY = TelemetryLogger(enabled=False)
