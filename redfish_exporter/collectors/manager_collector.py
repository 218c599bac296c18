# -----------------------------------------------------------------------------
# Copyright (c) 2025 Redfish Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

from ..metrics_config import (
    MANAGER,
    MANAGER_ETHERNET_INTERFACE,
    MANAGER_LOG_ENTRY,
    MANAGER_LOG_SERVICE,
    SUBSYSTEM_MANAGER,
)
from .base import Collection, SubsystemCollector, accessor


class ManagerCollector(SubsystemCollector):
    subsystem = SUBSYSTEM_MANAGER
    root_spec = MANAGER
    collections = (
        Collection("ethernet interfaces", accessor("ethernet_interfaces"), MANAGER_ETHERNET_INTERFACE),
        Collection("log services", accessor("log_services"), MANAGER_LOG_SERVICE, children=(
            Collection("log entries", accessor("log_entries"), MANAGER_LOG_ENTRY),
        )),
    )

    def list_resources(self):
        return self.session.list_managers()
