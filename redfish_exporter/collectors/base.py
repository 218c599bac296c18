# -----------------------------------------------------------------------------
# Copyright (c) 2025 Redfish Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Generic Redfish inventory walker.

A subsystem collector is a root ResourceSpec plus a tree of Collection
entries. The walker fetches each collection, fans out one unit of work per
member, parses the member and recurses into nested collections. A failed
fetch drops only the collection that failed.
"""

import concurrent.futures
import logging
import queue
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..connection import RedfishError, RedfishSession
from ..descriptors import DescriptorRegistry, MetricDescriptor
from ..metrics_config import COLLECTOR_SCRAPE_STATUS_KEY, ResourceSpec
from ..parsers import MetricSample, parse_resource, resource_id

LOG = logging.getLogger(__name__)

DEFAULT_THREADS = 8

Fetch = Callable[[RedfishSession, Dict[str, Any]], List[Dict[str, Any]]]


class TaskGroup:
    """
    Launch-and-join wrapper around a ThreadPoolExecutor.

    Every ``spawn`` is tracked by its future, so ``join`` waits for exactly
    the work that was submitted. An exception in one task is logged with the
    task's label and does not affect its siblings.
    """

    def __init__(self, name: str, max_workers: int = DEFAULT_THREADS):
        self.name = name
        self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=max_workers)
        self._futures: Dict[concurrent.futures.Future, str] = {}

    def spawn(self, label: str, fn: Callable[..., Any], *args: Any) -> concurrent.futures.Future:
        future = self._executor.submit(fn, *args)
        self._futures[future] = label
        return future

    @property
    def spawned(self) -> int:
        return len(self._futures)

    def join(self) -> int:
        """Wait for every spawned task and return how many completed."""
        completed = 0
        for future in concurrent.futures.as_completed(self._futures):
            completed += 1
            error = future.exception()
            if error is not None:
                LOG.error(f"[{self.name}] {self._futures[future]} failed: {error!r}")
        self._executor.shutdown(wait=True)
        return completed

    def __enter__(self) -> "TaskGroup":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        self.join()
        return False


@dataclass(frozen=True)
class Collection:
    """
    A sub-resource collection reachable from a parent document.

    ``spec`` is None for container documents (Thermal, Power) that only
    hold further collections and produce no metrics of their own.
    """
    name: str
    fetch: Fetch
    spec: Optional[ResourceSpec] = None
    children: Tuple["Collection", ...] = ()


def accessor(method: str) -> Fetch:
    """Fetch through a typed RedfishSession accessor returning a member list."""
    def fetch(session: RedfishSession, parent: Dict[str, Any]) -> List[Dict[str, Any]]:
        return getattr(session, method)(parent)
    return fetch


def document(method: str) -> Fetch:
    """Fetch a single linked document; an unlinked document yields nothing."""
    def fetch(session: RedfishSession, parent: Dict[str, Any]) -> List[Dict[str, Any]]:
        doc = getattr(session, method)(parent)
        return [doc] if doc else []
    return fetch


def inline(key: str) -> Fetch:
    """Members embedded as an array in the parent document."""
    def fetch(session: RedfishSession, parent: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [m for m in parent.get(key) or [] if isinstance(m, dict)]
    return fetch


class SubsystemCollector:
    """
    Collector for one top-level Redfish resource type.

    Subclasses set ``subsystem``, ``root_spec`` and ``collections`` and
    implement ``list_resources``.
    """

    subsystem: str = ""
    root_spec: ResourceSpec
    collections: Tuple[Collection, ...] = ()

    def __init__(self, session: RedfishSession, registry: DescriptorRegistry, host: str,
                 threads: int = DEFAULT_THREADS):
        self.session = session
        self.registry = registry
        self.host = host
        self.threads = threads
        self.tag = f"[{self.subsystem.upper()}]"

    def list_resources(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def describe(self) -> List[MetricDescriptor]:
        return self.registry.descriptors(self.subsystem)

    def collect(self, stream: "queue.Queue[MetricSample]") -> bool:
        """
        Walk every resource of this subsystem and write samples to ``stream``.

        Returns:
            bool: False when the top-level list could not be fetched
        """
        try:
            resources = self.list_resources()
        except RedfishError as e:
            LOG.error(f"{self.tag} {self.host}: listing {self.subsystem} resources failed: {e}")
            return False

        LOG.debug(f"{self.tag} {self.host}: {len(resources)} {self.subsystem} resources")
        with TaskGroup(f"{self.subsystem} {self.host}", self.threads) as group:
            for resource in resources:
                group.spawn(f"{self.subsystem} {resource.get('Id')}", self._walk,
                            stream, self.root_spec, (self.host,), resource, self.collections)

        status = self.registry.lookup(COLLECTOR_SCRAPE_STATUS_KEY)
        stream.put(MetricSample(status, 1.0, (self.subsystem,)))
        return True

    def _walk(self, stream: "queue.Queue[MetricSample]", spec: Optional[ResourceSpec],
              parent: Tuple[str, ...], doc: Dict[str, Any], collections: Tuple[Collection, ...]) -> None:
        if spec is not None:
            parse_resource(stream, self.registry, spec, parent, doc)
            parent = parent + (resource_id(spec, doc),)
        if not collections:
            return
        with TaskGroup(f"{self.subsystem} {'/'.join(parent[1:])}", self.threads) as group:
            for collection in collections:
                group.spawn(collection.name, self._collect_collection, stream, collection, parent, doc)

    def _collect_collection(self, stream: "queue.Queue[MetricSample]", collection: Collection,
                            parent: Tuple[str, ...], doc: Dict[str, Any]) -> None:
        try:
            members = collection.fetch(self.session, doc)
        except RedfishError as e:
            LOG.warning(f"{self.tag} {self.host}: fetching {collection.name} for "
                        f"{'/'.join(parent[1:])} failed: {e}")
            return
        if not members:
            return
        with TaskGroup(f"{collection.name} {'/'.join(parent[1:])}", self.threads) as group:
            for member in members:
                group.spawn(f"{collection.name} {member.get('Id', member.get('MemberId'))}", self._walk,
                            stream, collection.spec, parent, member, collection.children)
