# -----------------------------------------------------------------------------
# Copyright (c) 2025 Redfish Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

from ..metrics_config import (
    CHASSIS,
    CHASSIS_FAN,
    CHASSIS_NETWORK_ADAPTER,
    CHASSIS_NETWORK_PORT,
    CHASSIS_POWER_CONTROL,
    CHASSIS_POWER_SUPPLY,
    CHASSIS_POWER_VOLTAGE,
    CHASSIS_TEMPERATURE,
    SUBSYSTEM_CHASSIS,
)
from .base import Collection, SubsystemCollector, accessor, document, inline


class ChassisCollector(SubsystemCollector):
    """Chassis enclosure health, thermal, power and network adapters."""

    subsystem = SUBSYSTEM_CHASSIS
    root_spec = CHASSIS
    collections = (
        Collection("thermal", document("thermal"), children=(
            Collection("temperatures", inline("Temperatures"), CHASSIS_TEMPERATURE),
            Collection("fans", inline("Fans"), CHASSIS_FAN),
        )),
        Collection("power", document("power"), children=(
            Collection("voltages", inline("Voltages"), CHASSIS_POWER_VOLTAGE),
            Collection("power supplies", inline("PowerSupplies"), CHASSIS_POWER_SUPPLY),
            Collection("power control", inline("PowerControl"), CHASSIS_POWER_CONTROL),
        )),
        Collection("network adapters", accessor("network_adapters"), CHASSIS_NETWORK_ADAPTER, children=(
            Collection("network ports", accessor("network_ports"), CHASSIS_NETWORK_PORT),
        )),
    )

    def list_resources(self):
        return self.session.list_chassis()
