"""
AI Monitor - structured query logging and in-memory metrics.

One call per lifecycle event does both:
- writes a structured JSON log line under the "air.ai" logger
- updates aggregated counters (guarded by a lock, queries may overlap)

Usage:
    from air.ai.monitoring import ai_monitor

    ai_monitor.track_request(request_id="abc123", prompt="what is 2+2", mode="auto")
    ai_monitor.track_response(
        request_id="abc123",
        source="cloud",
        model="OpenAI-gpt-4o-mini",
        content="4",
        tokens=12,
        latency_ms=830.5,
    )
    stats = ai_monitor.get_stats()
"""

import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# LOGGING SETUP
# ---------------------------------------------------------------------------
logger = logging.getLogger("air.ai")

LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """
    Attach a single stderr handler to the "air" logger tree.

    Args:
        verbose: DEBUG level
        quiet: WARNING level (default for the interactive CLI)
    """
    root = logging.getLogger("air")
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    root.setLevel(level)

    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        root.addHandler(handler)
    for handler in root.handlers:
        handler.setLevel(level)


# ---------------------------------------------------------------------------
# METRICS DATA CLASSES
# ---------------------------------------------------------------------------
@dataclass
class QueryRecord:
    """Metrics for a single orchestrated query."""
    request_id: str
    source: str
    model: str
    tokens: int
    latency_ms: float
    success: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class AggregatedMetrics:
    total_queries: int = 0
    successful_queries: int = 0
    failed_queries: int = 0
    fallback_responses: int = 0
    tool_responses: int = 0
    total_tokens: int = 0
    total_latency_ms: float = 0.0
    queries_by_source: Dict[str, int] = field(default_factory=dict)
    queries_by_model: Dict[str, int] = field(default_factory=dict)

    @property
    def avg_latency_ms(self) -> float:
        answered = self.successful_queries + self.fallback_responses
        if answered == 0:
            return 0.0
        return self.total_latency_ms / answered

    @property
    def success_rate(self) -> float:
        if self.total_queries == 0:
            return 0.0
        return (self.successful_queries / self.total_queries) * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_queries": self.total_queries,
            "successful_queries": self.successful_queries,
            "failed_queries": self.failed_queries,
            "fallback_responses": self.fallback_responses,
            "tool_responses": self.tool_responses,
            "success_rate": f"{self.success_rate:.1f}%",
            "total_tokens": self.total_tokens,
            "avg_latency_ms": round(self.avg_latency_ms, 2),
            "queries_by_source": dict(self.queries_by_source),
            "queries_by_model": dict(self.queries_by_model),
        }


# ---------------------------------------------------------------------------
# MONITOR
# ---------------------------------------------------------------------------
class AIMonitor:
    """Logging + metrics for orchestrated queries."""

    def __init__(self, max_history: int = 1000):
        self._logger = logger
        self._history: List[QueryRecord] = []
        self._max_history = max_history
        self._lock = Lock()
        self._aggregated = AggregatedMetrics()

    def track_request(
        self,
        request_id: str,
        prompt: str,
        mode: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Track the start of a query."""
        log_data = {
            "event": "query_request",
            "request_id": request_id,
            "mode": mode,
            "prompt_length": len(prompt),
            "prompt_preview": prompt[:100] + "..." if len(prompt) > 100 else prompt,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if metadata:
            log_data["metadata"] = metadata

        with self._lock:
            self._aggregated.total_queries += 1

        self._logger.info(f"Query Request: {json.dumps(log_data)}")

    def track_response(
        self,
        request_id: str,
        source: str,
        model: str,
        content: str,
        tokens: int,
        latency_ms: float,
    ) -> None:
        """
        Track the terminal response of a query.

        Args:
            source: "local", "cloud", "tool" or "fallback"
        """
        is_fallback = source == "fallback"
        record = QueryRecord(
            request_id=request_id,
            source=source,
            model=model,
            tokens=tokens,
            latency_ms=latency_ms,
            success=not is_fallback,
        )

        with self._lock:
            self._history.append(record)
            if len(self._history) > self._max_history:
                self._history = self._history[-self._max_history:]

            agg = self._aggregated
            if is_fallback:
                agg.fallback_responses += 1
            else:
                agg.successful_queries += 1
            if source == "tool":
                agg.tool_responses += 1
            agg.total_tokens += tokens
            agg.total_latency_ms += latency_ms
            agg.queries_by_source[source] = agg.queries_by_source.get(source, 0) + 1
            agg.queries_by_model[model] = agg.queries_by_model.get(model, 0) + 1

        log_data = {
            "event": "query_response",
            "request_id": request_id,
            "source": source,
            "model": model,
            "tokens": tokens,
            "latency_ms": round(latency_ms, 2),
            "response_length": len(content) if content else 0,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        level = logging.WARNING if is_fallback else logging.INFO
        self._logger.log(level, f"Query Response: {json.dumps(log_data)}")

    def track_error(
        self,
        request_id: str,
        error: str,
        stage: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Track a query that ended in an error (strict modes only)."""
        log_data = {
            "event": "query_error",
            "request_id": request_id,
            "error": error,
            "stage": stage,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if metadata:
            log_data["metadata"] = metadata

        with self._lock:
            self._aggregated.failed_queries += 1

        self._logger.error(f"Query Error: {json.dumps(log_data)}")

    def track_event(self, request_id: str, event_type: str, data: Optional[Dict[str, Any]] = None) -> None:
        """Track a routing step (tool detected, local timeout, second opinion, ...)."""
        log_data = {
            "event": event_type,
            "request_id": request_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if data:
            log_data.update(data)
        self._logger.debug(f"Event: {json.dumps(log_data, default=str)}")

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return self._aggregated.to_dict()

    def get_recent(self, limit: int = 10) -> List[Dict[str, Any]]:
        with self._lock:
            records = self._history[-limit:]
        return [
            {
                "request_id": r.request_id,
                "source": r.source,
                "model": r.model,
                "tokens": r.tokens,
                "latency_ms": round(r.latency_ms, 2),
                "success": r.success,
                "timestamp": r.timestamp.isoformat(),
            }
            for r in records
        ]

    def reset(self) -> None:
        with self._lock:
            self._history.clear()
            self._aggregated = AggregatedMetrics()


# ---------------------------------------------------------------------------
# SINGLETON
# ---------------------------------------------------------------------------
ai_monitor = AIMonitor()
