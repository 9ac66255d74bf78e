#!/usr/bin/env python3
"""
Per-turn timing metrics for the RAG webhook.

Provides lightweight timing instrumentation with structured JSON logging.
Each handled turn emits a single "turn_complete" event.
"""
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class Timer:
    """
    Context manager for timing operations with high-resolution timing.

    Usage:
        with Timer() as t:
            # do work
            pass
        elapsed_ms = t.elapsed_ms
    """

    def __init__(self):
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.elapsed_ms: float = 0.0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.perf_counter()
        if self.start_time is not None:
            self.elapsed_ms += (self.end_time - self.start_time) * 1000.0
        return False  # Don't suppress exceptions


class TurnMetrics:
    """
    Aggregates metrics for one conversation turn.

    Tracks timing for the external calls made while answering a turn and
    emits a single JSON log event when complete.

    Usage:
        metrics = TurnMetrics(conversation_id="user-42")

        with metrics.timer("total"):
            with metrics.timer("retrieval"):
                # search the corpus
                pass
            metrics.add_counter("passages", 3)

        metrics.emit(log)
    """

    def __init__(self, conversation_id: str, **kwargs):
        """
        Initialize turn-level metrics collector.

        Args:
            conversation_id: Normalized conversation identifier
            **kwargs: Additional fields to include in the metrics event
        """
        self.conversation_id = conversation_id
        self.extra_fields = kwargs
        self.timers: Dict[str, Timer] = {}
        self.metrics: Dict[str, Any] = {}

    def timer(self, name: str) -> Timer:
        """
        Return the named timer; re-entering the same name accumulates time.

        Args:
            name: Timer name (will be used as metric key with _time_ms suffix)
        """
        if name not in self.timers:
            self.timers[name] = Timer()
        return self.timers[name]

    def add_counter(self, name: str, value: int):
        """Add a counter metric (e.g., passages, history_pairs)."""
        self.metrics[name] = value

    def add_field(self, name: str, value: Any):
        """Add an arbitrary field to the metrics."""
        self.metrics[name] = value

    def _finalize_metrics(self):
        """Convert timer objects to millisecond values."""
        final_metrics = dict(self.metrics)

        for name, timer in self.timers.items():
            final_metrics[f"{name}_time_ms"] = round(timer.elapsed_ms, 3)

        return final_metrics

    def to_event(self) -> Dict[str, Any]:
        event = {
            "event": "turn_complete",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "conversation_id": self.conversation_id,
            "metrics": self._finalize_metrics(),
        }
        event.update(self.extra_fields)
        return event

    def emit(self, logger: logging.Logger):
        """
        Emit structured JSON log event.

        Args:
            logger: Logger instance to emit the event through
        """
        from rag_webhook.config import settings

        if not settings.METRICS_ENABLED:
            return

        try:
            event = self.to_event()

            if settings.METRICS_LOG_TO_STDOUT:
                logger.info(f"METRICS: {json.dumps(event)}")

            if settings.METRICS_LOG_FILE:
                try:
                    with open(settings.METRICS_LOG_FILE, "a") as f:
                        f.write(json.dumps(event) + "\n")
                except OSError as e:
                    logger.debug(f"Failed to write metrics to file: {e}")

        except (TypeError, ValueError) as e:
            # Never let metrics collection break a reply
            logger.debug(f"Failed to emit metrics: {e}")
