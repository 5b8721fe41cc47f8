"""A small in-process gauge registry with Prometheus text exposition."""

import math
import re
import threading
from dataclasses import dataclass, field

_METRIC_NAME = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*\Z")
_LABEL_NAME = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*\Z")


class DuplicateMetricError(ValueError):
    """Raised when a metric name is registered twice."""


@dataclass
class Sample:
    labels: dict
    value: float


@dataclass
class MetricFamily:
    name: str
    help: str
    type: str = "gauge"
    samples: list = field(default_factory=list)


def _check_metric_name(name):
    if not _METRIC_NAME.match(name):
        raise ValueError(f"invalid metric name: {name!r}")


class _Child:
    def __init__(self):
        self._value = 0.0
        self._lock = threading.Lock()

    def set(self, value):
        with self._lock:
            self._value = float(value)

    @property
    def value(self):
        with self._lock:
            return self._value


class Gauge:
    """A single unlabelled gauge."""

    def __init__(self, name, help_text):
        _check_metric_name(name)
        self.name = name
        self.help = help_text
        self._child = _Child()

    def set(self, value):
        self._child.set(value)

    @property
    def value(self):
        return self._child.value

    def collect(self):
        return MetricFamily(self.name, self.help, samples=[Sample({}, self.value)])


class GaugeVec:
    """A family of gauges told apart by label values."""

    def __init__(self, name, help_text, label_names):
        _check_metric_name(name)
        names = tuple(label_names)
        for label in names:
            if not _LABEL_NAME.match(label) or label.startswith("__"):
                raise ValueError(f"invalid label name: {label!r}")
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate label names in {names!r}")
        self.name = name
        self.help = help_text
        self.label_names = names
        self._children = {}
        self._lock = threading.Lock()

    def labels(self, *args):
        """Return the gauge for the given label values, creating it if needed."""
        if len(args) != len(self.label_names):
            raise ValueError(
                f"{self.name}: expected {len(self.label_names)} label values, got {len(args)}"
            )
        values = tuple(str(arg) for arg in args)
        with self._lock:
            child = self._children.get(values)
            if child is None:
                child = self._children[values] = _Child()
            return child

    def with_labels(self, labels):
        """Return the gauge for a label-name to value mapping."""
        if set(labels) != set(self.label_names):
            raise ValueError(
                f"{self.name}: labels {sorted(labels)} do not match {list(self.label_names)}"
            )
        return self.labels(*(labels[name] for name in self.label_names))

    def reset(self):
        """Drop every labelled gauge."""
        with self._lock:
            self._children.clear()

    def collect(self):
        with self._lock:
            items = sorted(self._children.items())
        samples = [Sample(dict(zip(self.label_names, values)), child.value)
                   for values, child in items]
        return MetricFamily(self.name, self.help, samples=samples)


def _format_value(value):
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def _escape_label(value):
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _escape_help(text):
    return text.replace("\\", "\\\\").replace("\n", "\\n")


class Registry:
    """Collects registered gauges by name."""

    def __init__(self):
        self._collectors = {}
        self._lock = threading.Lock()

    def register(self, collector):
        with self._lock:
            if collector.name in self._collectors:
                raise DuplicateMetricError(f"metric already registered: {collector.name}")
            self._collectors[collector.name] = collector

    def gather(self):
        """Return the non-empty metric families, sorted by name."""
        with self._lock:
            collectors = list(self._collectors.values())
        families = (collector.collect() for collector in collectors)
        return sorted((f for f in families if f.samples), key=lambda f: f.name)

    def render(self):
        """Render all metrics in the Prometheus text exposition format."""
        lines = []
        for family in self.gather():
            lines.append(f"# HELP {family.name} {_escape_help(family.help)}")
            lines.append(f"# TYPE {family.name} {family.type}")
            for sample in family.samples:
                if sample.labels:
                    rendered = ",".join(
                        f'{key}="{_escape_label(value)}"'
                        for key, value in sample.labels.items()
                    )
                    lines.append(f"{family.name}{{{rendered}}} {_format_value(sample.value)}")
                else:
                    lines.append(f"{family.name} {_format_value(sample.value)}")
        return "\n".join(lines) + "\n" if lines else ""