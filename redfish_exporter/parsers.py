# -----------------------------------------------------------------------------
# Copyright (c) 2025 Redfish Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Resource parsers: turn one Redfish document into metric samples.

Parsing never fetches. It receives the resource document, the identity
chain of its ancestors and a ResourceSpec, and writes samples onto the
shared output stream.
"""

import logging
import queue
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .descriptors import DescriptorRegistry, MetricDescriptor
from .metrics_config import FieldSpec, ResourceSpec, extract
from .normalize import bool_to_float, normalize

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricSample:
    descriptor: MetricDescriptor
    value: float
    labels: Tuple[str, ...]


def label_value(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, bool):
        return "true" if raw else "false"
    return str(raw)


def resource_labels(spec: ResourceSpec, parent: Tuple[str, ...], resource: Dict[str, Any]) -> Tuple[str, ...]:
    """
    Build the label values for one resource.

    Args:
        spec: Resource table entry
        parent: Identity chain, host first followed by ancestor ids
        resource: Redfish document

    Returns:
        tuple: (host, resource kind, *ancestor ids, *own label values)
    """
    own = tuple(label_value(extract(resource, label.source)) for label in spec.labels)
    return (parent[0], spec.resource) + tuple(parent[1:]) + own


def resource_id(spec: ResourceSpec, resource: Dict[str, Any]) -> str:
    return label_value(extract(resource, spec.id_source))


def field_value(field_spec: FieldSpec, resource: Dict[str, Any]) -> Optional[float]:
    """Numeric value of a field, or None when nothing should be emitted."""
    raw = extract(resource, field_spec.source)
    if field_spec.kind is not None:
        code, ok = normalize(field_spec.kind, raw)
        return code if ok else None
    if field_spec.boolean:
        return bool_to_float(raw) if isinstance(raw, bool) else None
    # bool is an int subclass; a true/false in a numeric slot is not a reading
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    return float(raw)


def parse_resource(stream: "queue.Queue[MetricSample]", registry: DescriptorRegistry,
                   spec: ResourceSpec, parent: Tuple[str, ...], resource: Dict[str, Any]) -> int:
    """
    Emit every metric ``spec`` defines for ``resource``.

    Numeric readings are emitted whenever the document carries a number,
    zero included. Absent or null readings are skipped. Categorical fields
    are emitted only when the value is in the code table.

    Returns:
        int: number of samples written to ``stream``
    """
    labels = resource_labels(spec, parent, resource)
    emitted = 0
    for field_spec in spec.fields:
        value = field_value(field_spec, resource)
        if value is None:
            continue
        stream.put(MetricSample(registry.lookup(spec.key(field_spec)), value, labels))
        emitted += 1
    LOG.debug(f"[{spec.subsystem.upper()}] {spec.resource} {labels[2:]}: {emitted} samples")
    return emitted
