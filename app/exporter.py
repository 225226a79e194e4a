"""Prometheus exposition of the reading store."""

from __future__ import annotations

from typing import Dict, Iterator, Optional, Tuple

from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from datastore.reading_store import ReadingStore
from models.records import ReadingName

# reading -> (metric name, help text, label name for the discriminator)
METRICS: Dict[ReadingName, Tuple[str, str, Optional[str]]] = {
    ReadingName.energy_consumed: ("power_consumed", "The total power consumed in kWh", "tariff"),
    ReadingName.energy_delivered: ("power_delivered", "The total power delivered in kWh", "tariff"),
    ReadingName.active_tariff: ("current_tariff", "The power tariff currently in effect", None),
    ReadingName.instantaneous_import: (
        "current_import",
        "The power currently being imported in kW",
        None,
    ),
    ReadingName.instantaneous_export: (
        "current_export",
        "The power currently being exported in kW",
        None,
    ),
    ReadingName.gas_consumed: ("gas_consumed", "The total gas consumed in m3", None),
}


class ReadingStoreCollector(Collector):
    """Builds metric families from a single store snapshot per scrape."""

    def __init__(self, store: ReadingStore, prefix: str = "p1") -> None:
        self.store = store
        self.prefix = prefix

    def _name(self, metric: str) -> str:
        return f"{self.prefix}_{metric}" if self.prefix else metric

    def collect(self) -> Iterator[Metric]:
        snapshot = self.store.snapshot()
        for reading, (metric, documentation, label) in METRICS.items():
            family = GaugeMetricFamily(
                self._name(metric), documentation, labels=[label] if label else None
            )
            for key, value in sorted(snapshot.items(), key=lambda item: str(item[0])):
                if key.name is not reading:
                    continue
                family.add_metric([key.discriminator or ""] if label else [], value)
            if family.samples:
                yield family

        yield CounterMetricFamily(
            self._name("telegrams_processed"),
            "The number of telegrams successfully processed",
            value=self.store.telegrams_processed,
        )


def build_registry(store: ReadingStore, prefix: str = "p1") -> CollectorRegistry:
    registry = CollectorRegistry()
    registry.register(ReadingStoreCollector(store, prefix=prefix))
    return registry


def render_metrics(store: ReadingStore, prefix: str = "p1") -> bytes:
    return generate_latest(build_registry(store, prefix=prefix))
