from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import logging
import os
import sys

import structlog

_IDENTIFIER_KEYS = ("service", "agent_id", "room_id", "message_id")


def add_agent_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Copy bound service, agent, room and message identifiers onto the event"""

    bound = structlog.contextvars.get_contextvars()
    for key in _IDENTIFIER_KEYS:
        if key in bound:
            event_dict.setdefault(key, bound[key])
    return event_dict


def bind_agent_context(agent_id: str, room_id: Optional[str] = None, message_id: Optional[str] = None) -> None:
    """Bind identifiers for the current task; add_agent_context picks them up"""

    values = {"agent_id": agent_id, "room_id": room_id, "message_id": message_id}
    structlog.contextvars.bind_contextvars(**{k: v for k, v in values.items() if v})


def _renderer(log_format: str):
    if log_format == "console":
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    service_name: str = "eliza-runtime"
) -> None:
    """Route structlog through stdlib logging with agent-aware processors.

    ``log_format`` is ``json`` for machine-readable lines or ``console`` for
    coloured development output.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    processors: List[Any] = [
        structlog.stdlib.filter_by_level,
        add_agent_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _renderer(log_format),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(
        service=service_name,
        environment=os.getenv("ENVIRONMENT", "development"),
    )


class RuntimeLogger:
    """Named events for action, evaluator and state-composition outcomes"""

    def __init__(self, name: str):
        self.logger = structlog.get_logger(name)

    def _emit(self, event: str, **fields: Any) -> None:
        self.logger.info(event, **{k: v for k, v in fields.items() if v is not None})

    def log_action_execution(
        self,
        action_name: str,
        agent_id: str,
        room_id: str,
        duration_ms: Optional[float] = None,
        success: bool = True,
        error: Optional[str] = None
    ):
        self._emit(
            "action_execution",
            action_name=action_name,
            agent_id=agent_id,
            room_id=room_id,
            duration_ms=round(duration_ms, 2) if duration_ms is not None else None,
            success=success,
            error=error,
        )

    def log_evaluator_run(
        self,
        evaluator_name: str,
        agent_id: str,
        room_id: str,
        success: bool = True,
        error: Optional[str] = None
    ):
        self._emit(
            "evaluator_run",
            evaluator_name=evaluator_name,
            agent_id=agent_id,
            room_id=room_id,
            success=success,
            error=error,
        )

    def log_state_composed(
        self,
        agent_id: str,
        room_id: str,
        duration_ms: float,
        state_summary: Optional[Dict[str, Any]] = None
    ):
        """One event per composed State, with item counts per section under ``state_summary``"""
        self._emit(
            "state_composed",
            agent_id=agent_id,
            room_id=room_id,
            duration_ms=round(duration_ms, 2),
            state_summary=state_summary or {},
        )


runtime_logger = RuntimeLogger("eliza.runtime")


@dataclass
class _Latency:
    count: int = 0
    total: float = 0.0
    minimum: float = float("inf")
    maximum: float = 0.0

    def add(self, duration_ms: float) -> None:
        self.count += 1
        self.total += duration_ms
        self.minimum = min(self.minimum, duration_ms)
        self.maximum = max(self.maximum, duration_ms)

    def summary(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "avg": self.total / self.count if self.count else 0,
            "min": self.minimum if self.count else 0,
            "max": self.maximum,
        }


class MetricsCollector:
    """Per-runtime latencies and counters, each also emitted as a debug event"""

    def __init__(self):
        self.latencies: Dict[str, _Latency] = {}
        self.counters: Dict[str, int] = {}

    def record_latency(self, operation: str, duration_ms: float, tags: Optional[Dict[str, str]] = None):
        self.latencies.setdefault(operation, _Latency()).add(duration_ms)
        runtime_logger.logger.debug(
            "metric",
            metric_type="latency",
            operation=operation,
            duration_ms=duration_ms,
            tags=tags or {}
        )

    def increment_counter(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None):
        self.counters[name] = self.counters.get(name, 0) + value
        runtime_logger.logger.debug(
            "metric",
            metric_type="counter",
            name=name,
            value=value,
            tags=tags or {}
        )

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Latency stats under ``latency.<operation>`` plus raw counters"""

        summary: Dict[str, Any] = {
            f"latency.{operation}": stats.summary() for operation, stats in self.latencies.items()
        }
        summary.update(self.counters)
        return summary
