"""
Prometheus text format parser for the subset this exporter emits
(untyped and gauge samples with labels). No external deps.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional


@dataclass
class MetricSample:
    name: str
    labels: Dict[str, str]
    value: float


@dataclass
class MetricFamily:
    name: str
    metric_type: str  # "gauge", "counter", "untyped", ...
    help_text: str
    samples: List[MetricSample] = field(default_factory=list)


# Matches key="value" pairs inside braces, values may contain escaped quotes
_LABEL_RE = re.compile(r'(\w+)="((?:[^"\\]|\\.)*)"')

_UNESCAPES = {"\\\\": "\\", '\\"': '"', "\\n": "\n"}
_ESCAPE_RE = re.compile(r'\\[\\"n]')


def _unescape(value: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _UNESCAPES[m.group(0)], value)


def parse_labels(label_str: str) -> Dict[str, str]:
    if not label_str:
        return {}
    return {key: _unescape(value) for key, value in _LABEL_RE.findall(label_str)}


def _split_sample(line: str):
    """Split `name{labels} value [ts]` into (name, label_str, value_str)."""
    brace_start = line.find("{")
    if brace_start == -1:
        parts = line.split()
        if len(parts) < 2:
            return None
        return parts[0], "", parts[1]

    brace_end = line.rfind("}")
    if brace_end < brace_start:
        return None
    rest = line[brace_end + 1:].split()
    if not rest:
        return None
    return line[:brace_start], line[brace_start + 1:brace_end], rest[0]


def parse_prometheus_text(text: str) -> Dict[str, MetricFamily]:
    """Returns a dict keyed by sample name."""
    families: Dict[str, MetricFamily] = {}
    current_type: Dict[str, str] = {}
    current_help: Dict[str, str] = {}

    for line in text.strip().split("\n"):
        line = line.strip()

        if not line:
            continue

        if line.startswith("# HELP "):
            parts = line[7:].split(" ", 1)
            if len(parts) == 2:
                current_help[parts[0]] = parts[1]
            continue

        if line.startswith("# TYPE "):
            parts = line[7:].split(" ", 1)
            if len(parts) == 2:
                current_type[parts[0]] = parts[1]
            continue

        if line.startswith("#"):
            continue

        split = _split_sample(line)
        if split is None:
            continue
        name, label_str, value_str = split

        try:
            value = float(value_str)
        except ValueError:
            continue

        if name not in families:
            families[name] = MetricFamily(
                name=name,
                metric_type=current_type.get(name, "untyped"),
                help_text=current_help.get(name, ""),
            )

        families[name].samples.append(
            MetricSample(name=name, labels=parse_labels(label_str), value=value)
        )

    return families


def iter_samples(families: Dict[str, MetricFamily], name: str) -> Iterator[MetricSample]:
    family = families.get(name)
    if family:
        yield from family.samples


def get_gauge(
    families: Dict[str, MetricFamily],
    name: str,
    labels: Optional[Dict[str, str]] = None,
) -> Optional[float]:
    """First sample of `name` whose labels include all of `labels`."""
    wanted = labels or {}
    for sample in iter_samples(families, name):
        if all(sample.labels.get(k) == v for k, v in wanted.items()):
            return sample.value
    return None
