"""In-process metrics exported in Prometheus text format at GET /metrics."""

from __future__ import annotations

import re
import threading
from typing import Dict, Iterable, List, Optional, Tuple


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\"", "\\\"")


class _Metric:
    kind = "untyped"

    def __init__(self, name: str, label_names: Optional[Iterable[str]] = None):
        self.name = name
        self.label_names = list(label_names or [])
        self._values: Dict[Tuple[str, ...], float] = {}
        self._lock = threading.Lock()

    def _key(self, labels: Optional[Dict[str, str]]) -> Tuple[str, ...]:
        labels = labels or {}
        return tuple(str(labels.get(name, "")) for name in self.label_names)

    def _add(self, labels: Optional[Dict[str, str]], amount: float) -> None:
        key = self._key(labels)
        with self._lock:
            self._values[key] = self._values.get(key, 0.0) + float(amount)

    def value(self, labels: Optional[Dict[str, str]] = None) -> float:
        with self._lock:
            return self._values.get(self._key(labels), 0.0)

    def export(self) -> List[str]:
        lines = [f"# TYPE {self.name} {self.kind}"]
        with self._lock:
            for key, value in self._values.items():
                label_part = ""
                if self.label_names:
                    pairs = ",".join(f'{n}="{_escape(v)}"' for n, v in zip(self.label_names, key))
                    label_part = "{" + pairs + "}"
                lines.append(f"{self.name}{label_part} {value}")
        return lines

    def reset(self) -> None:
        with self._lock:
            self._values.clear()


class Counter(_Metric):
    kind = "counter"

    def inc(self, labels: Optional[Dict[str, str]] = None, amount: float = 1.0):
        if amount < 0:
            raise ValueError("Counters can only increase")
        self._add(labels, amount)


class Gauge(_Metric):
    kind = "gauge"

    def set(self, value: float, labels: Optional[Dict[str, str]] = None):
        with self._lock:
            self._values[self._key(labels)] = float(value)

    def inc(self, labels: Optional[Dict[str, str]] = None, amount: float = 1.0):
        self._add(labels, amount)

    def dec(self, labels: Optional[Dict[str, str]] = None, amount: float = 1.0):
        self._add(labels, -amount)


class MetricsRegistry:
    def __init__(self):
        self._metrics: Dict[str, _Metric] = {}
        self._lock = threading.Lock()

    def _get_or_register(self, cls, name: str, label_names: Optional[Iterable[str]]):
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = cls(name, label_names)
                self._metrics[name] = metric
            elif not isinstance(metric, cls):
                raise ValueError(f"Metric {name} already registered as {metric.kind}")
            return metric

    def counter(self, name: str, label_names: Optional[Iterable[str]] = None) -> Counter:
        return self._get_or_register(Counter, name, label_names)

    def gauge(self, name: str, label_names: Optional[Iterable[str]] = None) -> Gauge:
        return self._get_or_register(Gauge, name, label_names)

    def export_prometheus(self) -> str:
        lines: List[str] = []
        for metric in list(self._metrics.values()):
            lines.extend(metric.export())
        return "\n".join(lines) + "\n"

    def reset(self):
        for metric in list(self._metrics.values()):
            metric.reset()


METRICS = MetricsRegistry()

http_requests_total = METRICS.counter("http_requests_total", ["method", "path", "status"])

assignments_created_total = METRICS.counter("assignments_created_total")
assignment_races_total = METRICS.counter("assignment_races_total")
transitions_total = METRICS.counter("transitions_total", ["kind"])

ws_connections_total = METRICS.counter("ws_connections_total")
ws_messages_sent_total = METRICS.counter("ws_messages_sent_total", ["event_type"])
ws_active_connections = METRICS.gauge("ws_active_connections")


_ID_SEGMENT_RE = re.compile(r"^[0-9a-fA-F-]{8,}$")
_DATE_SEGMENT_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def normalize_path(path: str) -> str:
    """Collapse ids and dates in the path so label cardinality stays bounded."""
    parts = []
    for segment in path.split("/"):
        if not segment:
            continue
        if _DATE_SEGMENT_RE.match(segment):
            parts.append(":date")
        elif segment.isdigit() or _ID_SEGMENT_RE.match(segment):
            parts.append(":id")
        else:
            parts.append(segment)
    return "/" + "/".join(parts)
