"""
Base collector interface.

A collector is anything that can produce a MetricSnapshot. This keeps the
dashboard decoupled from where the data comes from: the local wg tool,
or another exporter scraped over HTTP.
"""

from abc import ABC, abstractmethod

from wg_exporter.metrics import MetricSnapshot


class MetricsCollector(ABC):
    """Interface for all snapshot sources."""

    @abstractmethod
    def collect(self) -> MetricSnapshot:
        """Fetch one snapshot of current state."""
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this source."""
        ...

    def close(self):
        pass
