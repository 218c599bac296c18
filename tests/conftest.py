"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import copy
import queue

import pytest

from redfish_exporter.connection import RedfishRequestError, RedfishSession
from redfish_exporter.metrics_config import build_descriptor_registry


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "concurrency: test exercises the threaded fan-out"
    )


class FakeSession(RedfishSession):
    """RedfishSession serving canned documents keyed by path."""

    def __init__(self, documents, failing=(), host="bmc.example.com"):
        super().__init__(host)
        self.documents = documents
        self.failing = set(failing)
        self.requested = []
        self.logged_out = False

    def get(self, path):
        self.requested.append(path)
        if path in self.failing:
            raise RedfishRequestError(path, 500, "Internal Server Error")
        if path not in self.documents:
            raise RedfishRequestError(path, 404, "Not Found")
        return copy.deepcopy(self.documents[path])

    def logout(self):
        self.logged_out = True


def link(path):
    return {"@odata.id": path}


def collection(*paths):
    return {"Members": [link(p) for p in paths], "Members@odata.count": len(paths)}


def status(state="Enabled", health="OK"):
    return {"State": state, "Health": health}


def inventory():
    """A small two-chassis, one-system, one-manager Redfish tree."""
    return {
        "/redfish/v1/Chassis": collection("/redfish/v1/Chassis/1", "/redfish/v1/Chassis/2"),
        "/redfish/v1/Chassis/1": {
            "Id": "1",
            "Name": "Computer System Chassis",
            "Status": status(),
            "PhysicalSecurity": {"IntrusionSensor": "Normal", "IntrusionSensorReArm": "Manual"},
            "Thermal": link("/redfish/v1/Chassis/1/Thermal"),
            "Power": link("/redfish/v1/Chassis/1/Power"),
            "NetworkAdapters": link("/redfish/v1/Chassis/1/NetworkAdapters"),
        },
        "/redfish/v1/Chassis/1/Thermal": {
            "Temperatures": [
                {"MemberId": "0", "Name": "CPU1 Temp", "ReadingCelsius": 41, "Status": status()},
                {"MemberId": "1", "Name": "Inlet Temp", "ReadingCelsius": 22, "Status": status()},
            ],
            "Fans": [
                {"MemberId": "0", "Name": "Fan1", "ReadingRPM": 4200, "Status": status("Enabled", "Warning")},
            ],
        },
        "/redfish/v1/Chassis/1/Power": {
            "Voltages": [
                {"MemberId": "0", "Name": "VRM1", "ReadingVolts": 12.1, "Status": status()},
            ],
            "PowerSupplies": [
                {"MemberId": "0", "Name": "PSU1", "LastPowerOutputWatts": 180, "PowerCapacityWatts": 750,
                 "Status": status()},
            ],
            "PowerControl": [
                {"MemberId": "0", "Name": "System Power Control", "PowerConsumedWatts": 224,
                 "PowerCapacityWatts": 1500, "PowerMetrics": {"AverageConsumedWatts": 210}},
            ],
        },
        "/redfish/v1/Chassis/1/NetworkAdapters": collection("/redfish/v1/Chassis/1/NetworkAdapters/NIC.1"),
        "/redfish/v1/Chassis/1/NetworkAdapters/NIC.1": {
            "Id": "NIC.1",
            "Name": "Broadcom Adapter",
            "Status": status(),
            "NetworkPorts": link("/redfish/v1/Chassis/1/NetworkAdapters/NIC.1/NetworkPorts"),
        },
        "/redfish/v1/Chassis/1/NetworkAdapters/NIC.1/NetworkPorts": collection(
            "/redfish/v1/Chassis/1/NetworkAdapters/NIC.1/NetworkPorts/1",
        ),
        "/redfish/v1/Chassis/1/NetworkAdapters/NIC.1/NetworkPorts/1": {
            "Id": "1",
            "Name": "Port 1",
            "LinkStatus": "Up",
            "CurrentLinkSpeedMbps": 10000,
            "Status": status(),
        },
        "/redfish/v1/Chassis/2": {
            "Id": "2",
            "Name": "Storage Enclosure",
            "Status": status("Enabled", "Critical"),
            "Thermal": link("/redfish/v1/Chassis/2/Thermal"),
            "Power": link("/redfish/v1/Chassis/2/Power"),
        },
        "/redfish/v1/Chassis/2/Thermal": {
            "Temperatures": [
                {"MemberId": "0", "Name": "Enclosure Temp", "ReadingCelsius": 30, "Status": status()},
            ],
            "Fans": [],
        },
        "/redfish/v1/Chassis/2/Power": {
            "PowerSupplies": [
                {"MemberId": "0", "Name": "PSU A", "LastPowerOutputWatts": 90, "PowerCapacityWatts": 460,
                 "Status": status()},
            ],
        },
        "/redfish/v1/Systems": collection("/redfish/v1/Systems/1"),
        "/redfish/v1/Systems/1": {
            "Id": "1",
            "Name": "System",
            "HostName": "node01",
            "PowerState": "On",
            "Status": status(),
            "MemorySummary": {"TotalSystemMemoryGiB": 256, "Status": status()},
            "ProcessorSummary": {"Count": 2, "Status": status()},
            "Memory": link("/redfish/v1/Systems/1/Memory"),
            "Processors": link("/redfish/v1/Systems/1/Processors"),
            "Storage": link("/redfish/v1/Systems/1/Storage"),
            "PCIeDevices": [link("/redfish/v1/Systems/1/PCIeDevices/3")],
            "EthernetInterfaces": link("/redfish/v1/Systems/1/EthernetInterfaces"),
            "LogServices": link("/redfish/v1/Systems/1/LogServices"),
        },
        "/redfish/v1/Systems/1/Memory": collection("/redfish/v1/Systems/1/Memory/DIMM1"),
        "/redfish/v1/Systems/1/Memory/DIMM1": {
            "Id": "DIMM1", "Name": "DIMM A1", "CapacityMiB": 32768, "Status": status(),
        },
        "/redfish/v1/Systems/1/Processors": collection("/redfish/v1/Systems/1/Processors/CPU1"),
        "/redfish/v1/Systems/1/Processors/CPU1": {
            "Id": "CPU1", "Name": "CPU 1", "TotalCores": 16, "TotalThreads": 32, "Status": status(),
        },
        "/redfish/v1/Systems/1/Storage": collection("/redfish/v1/Systems/1/Storage/RAID.1"),
        "/redfish/v1/Systems/1/Storage/RAID.1": {
            "Id": "RAID.1",
            "Name": "RAID Controller",
            "Status": status(),
            "Drives": [link("/redfish/v1/Systems/1/Storage/RAID.1/Drives/Disk.0")],
            "Volumes": link("/redfish/v1/Systems/1/Storage/RAID.1/Volumes"),
        },
        "/redfish/v1/Systems/1/Storage/RAID.1/Drives/Disk.0": {
            "Id": "Disk.0", "Name": "Physical Disk 0", "CapacityBytes": 960197124096, "Status": status(),
        },
        "/redfish/v1/Systems/1/Storage/RAID.1/Volumes": collection("/redfish/v1/Systems/1/Storage/RAID.1/Volumes/0"),
        "/redfish/v1/Systems/1/Storage/RAID.1/Volumes/0": {
            "Id": "0", "Name": "Virtual Disk 0", "CapacityBytes": 959119884288, "Status": status(),
        },
        "/redfish/v1/Systems/1/PCIeDevices/3": {
            "Id": "3",
            "Name": "GPU",
            "Status": status(),
            "Links": {"PCIeFunctions": [link("/redfish/v1/Systems/1/PCIeDevices/3/PCIeFunctions/0")]},
        },
        "/redfish/v1/Systems/1/PCIeDevices/3/PCIeFunctions/0": {
            "Id": "0", "Name": "GPU Function 0", "Status": status(),
        },
        "/redfish/v1/Systems/1/EthernetInterfaces": collection("/redfish/v1/Systems/1/EthernetInterfaces/NIC.1"),
        "/redfish/v1/Systems/1/EthernetInterfaces/NIC.1": {
            "Id": "NIC.1",
            "Name": "Embedded NIC 1",
            "SpeedMbps": 1000,
            "LinkStatus": "LinkUp",
            "InterfaceEnabled": True,
            "Status": status(),
        },
        "/redfish/v1/Systems/1/LogServices": collection("/redfish/v1/Systems/1/LogServices/SEL"),
        "/redfish/v1/Systems/1/LogServices/SEL": {
            "Id": "SEL",
            "Name": "System Event Log",
            "ServiceEnabled": True,
            "OverWritePolicy": "WrapsWhenFull",
            "Status": status(),
            "Entries": link("/redfish/v1/Systems/1/LogServices/SEL/Entries"),
        },
        "/redfish/v1/Systems/1/LogServices/SEL/Entries": {
            "Members": [
                {"@odata.id": "/redfish/v1/Systems/1/LogServices/SEL/Entries/1", "Id": "1", "Name": "Log Entry 1",
                 "EntryType": "SEL", "Severity": "Critical", "MessageId": "PSU0001", "SensorNumber": 12,
                 "SensorType": "Power Supply / Converter"},
            ],
        },
        "/redfish/v1/Managers": collection("/redfish/v1/Managers/BMC"),
        "/redfish/v1/Managers/BMC": {
            "Id": "BMC",
            "Name": "Manager",
            "Model": "iDRAC 9",
            "ManagerType": "BMC",
            "PowerState": "On",
            "Status": status(),
            "EthernetInterfaces": link("/redfish/v1/Managers/BMC/EthernetInterfaces"),
        },
        "/redfish/v1/Managers/BMC/EthernetInterfaces": collection("/redfish/v1/Managers/BMC/EthernetInterfaces/1"),
        "/redfish/v1/Managers/BMC/EthernetInterfaces/1": {
            "Id": "1", "Name": "Manager NIC", "SpeedMbps": 100, "LinkStatus": "LinkUp",
            "InterfaceEnabled": True, "Status": status(),
        },
    }


def drain(stream):
    """Pull every sample currently on the stream."""
    samples = []
    while True:
        try:
            samples.append(stream.get_nowait())
        except queue.Empty:
            return samples


def by_name(samples, name):
    return [s for s in samples if s.descriptor.name == name]


@pytest.fixture(scope="session")
def registry():
    """The frozen descriptor registry, built once like the exporter does."""
    return build_descriptor_registry()


@pytest.fixture
def documents():
    return inventory()


@pytest.fixture
def stream():
    return queue.Queue()
