"""Tests for the per-target scrape orchestration."""
from __future__ import annotations

import queue
from unittest.mock import Mock, patch

import pytest
from conftest import FakeSession

from prometheus_client import REGISTRY, CollectorRegistry, generate_latest
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily

from redfish_exporter.collectors import ChassisCollector
from redfish_exporter.config import FileConfig, HostCredentials
from redfish_exporter.connection import RedfishConnectionError
from redfish_exporter.descriptors import DescriptorRegistry
from redfish_exporter.exporter import RedfishCollector, ScrapeState
from redfish_exporter.parsers import MetricSample


@pytest.fixture
def credentials():
    return HostCredentials(username="root", password="calvin")


def families_by_name(families):
    return {f.name: f for f in families}


def refuse(*args, **kwargs):
    raise RedfishConnectionError("connection refused")


class TestConnectFailure:
    """A target that cannot be reached."""

    def test_only_up_and_duration(self, registry, credentials):
        """Failed connect yields up=0 plus the scrape duration and nothing else."""
        collector = RedfishCollector("bmc1", credentials, registry, connector=refuse)
        families = families_by_name(collector.collect())
        assert set(families) == {"redfish_up", "redfish_exporter_scrape_duration_seconds"}
        up = families["redfish_up"].samples
        assert len(up) == 1
        assert up[0].value == 0.0
        assert up[0].labels == {"host": "bmc1"}
        assert collector.state is ScrapeState.DONE

    def test_failure_counter(self, registry, credentials):
        """Connect failures are counted on the process registry."""
        before = REGISTRY.get_sample_value("redfish_exporter_scrape_failures_total") or 0.0
        list(RedfishCollector("bmc1", credentials, registry, connector=refuse).collect())
        after = REGISTRY.get_sample_value("redfish_exporter_scrape_failures_total")
        assert after == before + 1


class TestSuccessfulScrape:
    """A reachable target."""

    def test_up_and_subsystems(self, registry, credentials, documents):
        """up=1, per-subsystem durations and scrape status for all subsystems."""
        session = FakeSession(documents)
        connector = Mock(return_value=session)
        collector = RedfishCollector("bmc1", credentials, registry, connector=connector)
        families = families_by_name(collector.collect())

        assert families["redfish_up"].samples[0].value == 1.0
        durations = families["redfish_exporter_collector_duration_seconds"].samples
        assert {s.labels["collector"] for s in durations} == {"chassis", "system", "manager"}
        status = families["redfish_collector_scrape_status"].samples
        assert {s.labels["collector"]: s.value for s in status} == {"chassis": 1.0, "system": 1.0, "manager": 1.0}
        assert "redfish_chassis_fan_rpm" in families
        assert "redfish_system_log_entry_severity_state" in families
        assert session.logged_out
        assert collector.state is ScrapeState.DONE

    def test_connector_arguments(self, registry, credentials, documents):
        """Scrape options from the config reach the connector."""
        connector = Mock(return_value=FakeSession(documents))
        config = FileConfig(timeout=5, tls_validation="strict", tls_ca="/etc/ca.pem", max_log_entries=10,
                            max_connections=4)
        list(RedfishCollector("bmc1", credentials, registry, config=config, connector=connector).collect())
        connector.assert_called_once_with(
            "bmc1", "root", "calvin",
            timeout=5.0, tls_validation="strict", tls_ca="/etc/ca.pem", max_log_entries=10,
            max_connections=4,
        )

    def test_subsystem_failure_is_not_fatal(self, registry, credentials, documents):
        """A subsystem whose list fails is absent but the scrape is up."""
        session = FakeSession(documents, failing=["/redfish/v1/Managers"])
        collector = RedfishCollector("bmc1", credentials, registry, connector=Mock(return_value=session))
        families = families_by_name(collector.collect())
        assert families["redfish_up"].samples[0].value == 1.0
        assert not any(name.startswith("redfish_manager_") for name in families)
        status = {s.labels["collector"] for s in families["redfish_collector_scrape_status"].samples}
        assert status == {"chassis", "system"}
        durations = {s.labels["collector"] for s in families["redfish_exporter_collector_duration_seconds"].samples}
        assert durations == {"chassis", "system", "manager"}

    def test_logout_after_collection_error(self, registry, credentials, documents):
        """The session is released even when collection blows up."""
        session = FakeSession(documents)
        collector = RedfishCollector("bmc1", credentials, registry, connector=Mock(return_value=session))
        with patch.object(RedfishCollector, "_collect_subsystems", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                collector.collect()
        assert session.logged_out
        assert collector.state is ScrapeState.DISCONNECTING

    def test_crashing_collector_is_contained(self, registry, credentials, documents):
        """An unexpected exception inside one subsystem does not stop the others."""

        class BrokenCollector(ChassisCollector):
            subsystem = "broken"

            def collect(self, stream):
                raise KeyError("Members")

        session = FakeSession(documents)
        collector = RedfishCollector("bmc1", credentials, registry, connector=Mock(return_value=session),
                                     collectors=(BrokenCollector, ChassisCollector))
        families = families_by_name(collector.collect())
        assert families["redfish_up"].samples[0].value == 1.0
        assert "redfish_chassis_state" in families
        assert session.logged_out

    def test_exposition(self, registry, credentials, documents):
        """A per-request registry renders the scrape in text format."""
        scrape_registry = CollectorRegistry()
        scrape_registry.register(RedfishCollector(
            "bmc1", credentials, registry, connector=Mock(return_value=FakeSession(documents))))
        output = generate_latest(scrape_registry).decode()
        assert 'redfish_up{host="bmc1"} 1.0' in output
        assert ('redfish_chassis_fan_rpm{chassis_id="1",fan_member_id="0",fan_name="Fan1",'
                'host="bmc1",resource="fan"} 4200.0') in output
        assert "# HELP redfish_chassis_fan_health chassis fan health,1(OK),2(Warning),3(Critical)" in output


class TestMetricKinds:
    """Family types follow the descriptor kind."""

    def test_counter_descriptor_builds_counter_family(self, credentials):
        registry = DescriptorRegistry()
        key = registry.register("system", "resets_total", "system resets", ("host",), kind="counter")
        registry.register("system", "state", "system state", ("host",))
        registry.freeze()
        stream = queue.Queue()
        stream.put(MetricSample(registry.lookup(key), 3.0, ("bmc1",)))
        stream.put(MetricSample(registry.lookup("system_state"), 1.0, ("bmc1",)))

        collector = RedfishCollector("bmc1", credentials, registry, connector=Mock())
        families = {f.name: f for f in collector._families(stream)}
        assert isinstance(families["redfish_system_resets"], CounterMetricFamily)
        assert families["redfish_system_resets"].samples[0].value == 3.0
        assert isinstance(families["redfish_system_state"], GaugeMetricFamily)

    def test_describe_uses_kind(self, credentials):
        registry = DescriptorRegistry()
        registry.register("system", "resets_total", "system resets", ("host",), kind="counter")
        families = RedfishCollector("bmc1", credentials, registry.freeze(), connector=Mock()).describe()
        assert [f.type for f in families] == ["counter"]


class TestDescribe:
    """Describe phase."""

    def test_describe_has_no_samples(self, registry, credentials):
        """describe advertises every descriptor without connecting."""
        connector = Mock()
        collector = RedfishCollector("bmc1", credentials, registry, connector=connector)
        families = collector.describe()
        assert len(families) == len(registry)
        assert all(not f.samples for f in families)
        connector.assert_not_called()
