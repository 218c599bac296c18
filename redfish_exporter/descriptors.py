# -----------------------------------------------------------------------------
# Copyright (c) 2025 Redfish Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Metric descriptor registry.

A descriptor is the (name, help, label names) triple of one metric. The
registry is filled once at process start from the resource tables in
``metrics_config`` and frozen before any scrape runs, after which it is only
read. Collectors receive it as an argument.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

LOG = logging.getLogger(__name__)

NAMESPACE = "redfish"

GAUGE = "gauge"
COUNTER = "counter"
METRIC_KINDS = (GAUGE, COUNTER)


def build_fq_name(namespace: str, subsystem: str, name: str) -> str:
    """Join the non-empty parts with underscores, as Prometheus client libraries do."""
    return "_".join(part for part in (namespace, subsystem, name) if part)


def metric_key(subsystem: str, field: str) -> str:
    return f"{subsystem}_{field}" if subsystem else field


@dataclass(frozen=True)
class MetricDescriptor:
    key: str
    name: str
    help: str
    label_names: Tuple[str, ...]
    subsystem: str
    kind: str = GAUGE


class DescriptorRegistry:
    """Map of metric key (``<subsystem>_<field>``) to its descriptor."""

    def __init__(self, namespace: str = NAMESPACE):
        self.namespace = namespace
        self._descriptors: Dict[str, MetricDescriptor] = {}
        self._frozen = False

    def register(self, subsystem: str, field: str, help: str,
                 label_names: Iterable[str], kind: str = GAUGE) -> str:
        """
        Add a descriptor and return its key.

        Raises:
            RuntimeError: the registry has been frozen
            ValueError: the key is already registered or kind is unknown
        """
        key = metric_key(subsystem, field)
        if self._frozen:
            raise RuntimeError(f"Descriptor registry is frozen, cannot register {key}")
        if key in self._descriptors:
            raise ValueError(f"Metric {key} registered twice")
        if kind not in METRIC_KINDS:
            raise ValueError(f"Metric {key} has unknown kind '{kind}'")
        name = build_fq_name(self.namespace, subsystem, field)
        self._descriptors[key] = MetricDescriptor(
            key=key,
            name=name,
            help=help,
            label_names=tuple(label_names),
            subsystem=subsystem,
            kind=kind,
        )
        return key

    def lookup(self, key: str) -> MetricDescriptor:
        return self._descriptors[key]

    def __contains__(self, key: str) -> bool:
        return key in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def descriptors(self, subsystem: Optional[str] = None) -> List[MetricDescriptor]:
        """All descriptors, or only those owned by ``subsystem``."""
        if subsystem is None:
            return list(self._descriptors.values())
        return [d for d in self._descriptors.values() if d.subsystem == subsystem]

    def freeze(self) -> "DescriptorRegistry":
        self._frozen = True
        LOG.debug(f"Descriptor registry frozen with {len(self._descriptors)} metrics")
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen
