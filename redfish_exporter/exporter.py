# -----------------------------------------------------------------------------
# Copyright (c) 2025 Redfish Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Per-target scrape orchestration.

RedfishCollector is a prometheus_client custom collector: registering it in
a fresh CollectorRegistry and calling ``generate_latest`` performs one
complete scrape of one BMC.
"""

import logging
import queue
import time
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Type

from prometheus_client import Counter
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric

from .collectors import SUBSYSTEM_COLLECTORS, SubsystemCollector, TaskGroup
from .config import FileConfig, HostCredentials
from .connection import RedfishError, RedfishSession, connect
from .descriptors import COUNTER, GAUGE, DescriptorRegistry, MetricDescriptor
from .metrics_config import COLLECTOR_DURATION_KEY, SCRAPE_DURATION_KEY, UP_KEY
from .parsers import MetricSample

LOG = logging.getLogger(__name__)

# Process-wide, served on /metrics from the default registry
SCRAPES_TOTAL = Counter('redfish_exporter_scrapes_total', 'Total number of Redfish target scrapes')
SCRAPE_FAILURES_TOTAL = Counter('redfish_exporter_scrape_failures_total',
                                'Total number of Redfish target scrapes that could not connect')

Connector = Callable[..., RedfishSession]

FAMILY_TYPES = {
    GAUGE: GaugeMetricFamily,
    COUNTER: CounterMetricFamily,
}


def metric_family(descriptor: MetricDescriptor) -> Metric:
    """Empty metric family of the type the descriptor declares."""
    return FAMILY_TYPES[descriptor.kind](descriptor.name, descriptor.help, labels=descriptor.label_names)


class ScrapeState(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CONNECT_FAILED = "connect_failed"
    COLLECTING = "collecting"
    DISCONNECTING = "disconnecting"
    DONE = "done"


class RedfishCollector:
    """
    One scrape of one Redfish target.

    Connects, runs every subsystem collector concurrently against the live
    session, always logs out, then turns the collected samples into metric
    families. A failed connection yields only ``redfish_up 0`` and the
    scrape duration.
    """

    def __init__(self, host: str, credentials: HostCredentials, registry: DescriptorRegistry,
                 config: Optional[FileConfig] = None, connector: Connector = connect,
                 collectors: Sequence[Type[SubsystemCollector]] = SUBSYSTEM_COLLECTORS):
        self.host = host
        self.credentials = credentials
        self.registry = registry
        self.config = config if config is not None else FileConfig()
        self.connector = connector
        self.collector_classes = tuple(collectors)
        self.state = ScrapeState.IDLE

    def describe(self) -> List[Metric]:
        return [metric_family(d) for d in self.registry.descriptors()]

    def collect(self) -> Iterable[Metric]:
        start = time.time()
        stream: "queue.Queue[MetricSample]" = queue.Queue()
        up = self.registry.lookup(UP_KEY)
        SCRAPES_TOTAL.inc()

        self.state = ScrapeState.CONNECTING
        LOG.info(f"Scraping target {self.host}")
        try:
            session = self.connector(
                self.host,
                self.credentials.username,
                self.credentials.password,
                timeout=self.config.timeout,
                tls_validation=self.config.tls_validation,
                tls_ca=self.config.tls_ca,
                max_log_entries=self.config.max_log_entries,
                max_connections=self.config.max_connections,
            )
        except RedfishError as e:
            self.state = ScrapeState.CONNECT_FAILED
            SCRAPE_FAILURES_TOTAL.inc()
            LOG.error(f"Error connecting to {self.host}: {e}")
            stream.put(MetricSample(up, 0.0, (self.host,)))
        else:
            self.state = ScrapeState.CONNECTED
            try:
                self.state = ScrapeState.COLLECTING
                self._collect_subsystems(session, stream)
            finally:
                self.state = ScrapeState.DISCONNECTING
                session.logout()
            stream.put(MetricSample(up, 1.0, (self.host,)))

        elapsed = time.time() - start
        stream.put(MetricSample(self.registry.lookup(SCRAPE_DURATION_KEY), elapsed, ()))
        self.state = ScrapeState.DONE
        LOG.info(f"Scrape of {self.host} finished in {elapsed:.2f}s")
        return self._families(stream)

    def _collect_subsystems(self, session: RedfishSession, stream: "queue.Queue[MetricSample]") -> None:
        collectors = [cls(session, self.registry, self.host, self.config.threads)
                      for cls in self.collector_classes]
        with TaskGroup(f"scrape {self.host}", max(len(collectors), 1)) as group:
            for collector in collectors:
                group.spawn(collector.subsystem, self._timed_collect, collector, stream)

    def _timed_collect(self, collector: SubsystemCollector, stream: "queue.Queue[MetricSample]") -> None:
        start = time.time()
        try:
            collector.collect(stream)
        finally:
            duration = self.registry.lookup(COLLECTOR_DURATION_KEY)
            stream.put(MetricSample(duration, time.time() - start, (collector.subsystem,)))

    def _families(self, stream: "queue.Queue[MetricSample]") -> List[Metric]:
        families: Dict[str, Metric] = {}
        seen = set()
        while True:
            try:
                sample = stream.get_nowait()
            except queue.Empty:
                break
            descriptor = sample.descriptor
            identity = (descriptor.key, sample.labels)
            if identity in seen:
                LOG.warning(f"Duplicate sample for {descriptor.name} {sample.labels} from {self.host}, dropped")
                continue
            seen.add(identity)
            family = families.get(descriptor.key)
            if family is None:
                family = metric_family(descriptor)
                families[descriptor.key] = family
            family.add_metric(sample.labels, sample.value)
        return list(families.values())
