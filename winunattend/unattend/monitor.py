# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winunattend/unattend/monitor.py
"""
Timing and memory measurements for build steps.
Callers start and stop each measurement themselves; nothing is intercepted.

Memory figures come from tracemalloc. If tracing is off when a measurement
starts, the monitor turns it on and turns it off again once no measurement
is open; tracing started by someone else is left running.
"""

from __future__ import annotations

import json
import logging
import time
import tracemalloc
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.utils import U

HISTORY_LIMIT = 100


@dataclass
class StepMetrics:
    """Metrics for a single measured operation."""
    operation: str
    start: float
    end: float = 0.0
    duration_ms: float = 0.0
    memory_before: int = 0
    memory_after: int = 0
    memory_peak: int = 0
    success: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def memory_delta(self) -> int:
        return self.memory_after - self.memory_before


class Measurement:
    def __init__(self, monitor: "BuildMonitor", metric: StepMetrics):
        self._monitor = monitor
        self.metric = metric
        self._open = True

    def _close(self, success: bool) -> StepMetrics:
        if self._open:
            self._open = False
            m = self.metric
            m.end = time.perf_counter()
            m.duration_ms = (m.end - m.start) * 1000.0
            m.memory_after, peak = tracemalloc.get_traced_memory()
            m.memory_peak = max(m.memory_before, peak)
            m.success = success
            self._monitor._record(m)
        return self.metric

    def stop(self) -> StepMetrics:
        return self._close(True)

    def fail(self) -> StepMetrics:
        return self._close(False)


class BuildMonitor:
    """
    Collects per-step metrics for one process.

    Construct once at the entry point and pass it to the builder.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.metrics: List[StepMetrics] = []
        self._open = 0
        self._owns_tracing = False

    def start(self, operation: str, **metadata: Any) -> Measurement:
        if not tracemalloc.is_tracing():
            tracemalloc.start()
            self._owns_tracing = True
        # memory_peak covers this step only.
        tracemalloc.reset_peak()
        self._open += 1
        before, _peak = tracemalloc.get_traced_memory()
        metric = StepMetrics(
            operation=operation,
            start=time.perf_counter(),
            memory_before=before,
            metadata=dict(metadata),
        )
        return Measurement(self, metric)

    def _record(self, m: StepMetrics) -> None:
        self.metrics.append(m)
        self._open = max(0, self._open - 1)
        if self._open == 0 and self._owns_tracing:
            tracemalloc.stop()
            self._owns_tracing = False
        self.logger.debug(
            "📊 Operation: %s | Duration: %.2fms | Memory: %.2fMB | Success: %s",
            m.operation,
            m.duration_ms,
            m.memory_delta / 1024 / 1024,
            m.success,
        )

    def get_summary(self) -> Dict[str, Any]:
        total = sum(m.duration_ms for m in self.metrics)
        count = len(self.metrics)
        ok = sum(1 for m in self.metrics if m.success)
        return {
            "name": f"Benchmark-{datetime.now().isoformat()}",
            "total_duration_ms": round(total, 3),
            "average_duration_ms": round(total / count, 3) if count else 0.0,
            "success_rate_percent": round(ok / count * 100, 1) if count else 0.0,
            "metrics": [dict(asdict(m), memory_delta=m.memory_delta) for m in self.metrics],
        }

    def save_history(self, history_file: Path, summary: Optional[Dict[str, Any]] = None) -> None:
        """Append a summary to the JSON history, keeping the newest HISTORY_LIMIT entries."""
        history: List[Dict[str, Any]] = []
        try:
            if history_file.exists():
                loaded = json.loads(history_file.read_text(encoding="utf-8"))
                if isinstance(loaded, list):
                    history = loaded
        except (OSError, ValueError) as e:
            self.logger.warning(f"Discarding unreadable benchmark history {history_file}: {e}")

        history.append(summary if summary is not None else self.get_summary())
        history = history[-HISTORY_LIMIT:]

        try:
            U.ensure_dir(history_file.parent)
            temp_file = history_file.with_suffix(".tmp")
            temp_file.write_text(json.dumps(history, indent=2), encoding="utf-8")
            temp_file.replace(history_file)
            self.logger.info(f"📊 Benchmark results saved: {history_file}")
        except OSError as e:
            self.logger.error(f"Failed to save benchmark results: {e}")

    def generate_report(self) -> str:
        s = self.get_summary()
        lines = [
            "",
            "=== Performance Report ===",
            f"Suite: {s['name']}",
            f"Total Operations: {len(self.metrics)}",
            f"Total Duration: {s['total_duration_ms']:.2f}ms",
            f"Average Duration: {s['average_duration_ms']:.2f}ms",
            f"Success Rate: {s['success_rate_percent']:.1f}%",
            "",
        ]

        slowest = sorted(self.metrics, key=lambda m: m.duration_ms, reverse=True)[:5]
        if slowest:
            lines.append("Slowest Operations:")
            lines.extend(f"  {i}. {m.operation}: {m.duration_ms:.2f}ms" for i, m in enumerate(slowest, 1))
            lines.append("")

        if self.metrics:
            hungry = max(self.metrics, key=lambda m: m.memory_delta)
            lines.append(f"Highest Memory Usage: {hungry.operation} ({hungry.memory_delta / 1024 / 1024:.2f}MB)")

        lines.append("========================")
        return "\n".join(lines) + "\n"
