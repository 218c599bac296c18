"""
Collectors package for the Redfish exporter.

Available collectors:
- base.py: TaskGroup, Collection tables and the SubsystemCollector walker
- chassis_collector.py: Chassis, thermal, power and network adapter metrics
- system_collector.py: Computer system, memory, processor, storage, PCIe, interface and log metrics
- manager_collector.py: Manager, ethernet interface and log metrics
"""

from .base import Collection, SubsystemCollector, TaskGroup
from .chassis_collector import ChassisCollector
from .manager_collector import ManagerCollector
from .system_collector import SystemCollector

SUBSYSTEM_COLLECTORS = (ChassisCollector, SystemCollector, ManagerCollector)

__all__ = [
    "Collection",
    "SubsystemCollector",
    "TaskGroup",
    "ChassisCollector",
    "SystemCollector",
    "ManagerCollector",
    "SUBSYSTEM_COLLECTORS",
]
