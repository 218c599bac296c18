# -----------------------------------------------------------------------------
# Copyright (c) 2025 Redfish Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

from ..metrics_config import (
    SUBSYSTEM_SYSTEM,
    SYSTEM,
    SYSTEM_ETHERNET_INTERFACE,
    SYSTEM_LOG_ENTRY,
    SYSTEM_LOG_SERVICE,
    SYSTEM_MEMORY,
    SYSTEM_NETWORK_INTERFACE,
    SYSTEM_PCIE_DEVICE,
    SYSTEM_PCIE_FUNCTION,
    SYSTEM_PROCESSOR,
    SYSTEM_STORAGE,
    SYSTEM_STORAGE_DRIVE,
    SYSTEM_STORAGE_VOLUME,
)
from .base import Collection, SubsystemCollector, accessor


class SystemCollector(SubsystemCollector):
    """Computer systems and the components they own."""

    subsystem = SUBSYSTEM_SYSTEM
    root_spec = SYSTEM
    collections = (
        Collection("memory", accessor("memory"), SYSTEM_MEMORY),
        Collection("processors", accessor("processors"), SYSTEM_PROCESSOR),
        Collection("storage", accessor("storage"), SYSTEM_STORAGE, children=(
            Collection("volumes", accessor("volumes"), SYSTEM_STORAGE_VOLUME),
            Collection("drives", accessor("drives"), SYSTEM_STORAGE_DRIVE),
        )),
        Collection("pcie devices", accessor("pcie_devices"), SYSTEM_PCIE_DEVICE, children=(
            Collection("pcie functions", accessor("pcie_functions"), SYSTEM_PCIE_FUNCTION),
        )),
        Collection("network interfaces", accessor("network_interfaces"), SYSTEM_NETWORK_INTERFACE),
        Collection("ethernet interfaces", accessor("ethernet_interfaces"), SYSTEM_ETHERNET_INTERFACE),
        Collection("log services", accessor("log_services"), SYSTEM_LOG_SERVICE, children=(
            Collection("log entries", accessor("log_entries"), SYSTEM_LOG_ENTRY),
        )),
    )

    def list_resources(self):
        return self.session.list_systems()
