# -----------------------------------------------------------------------------
# Copyright (c) 2025 Redfish Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Metrics configuration for the Redfish exporter.

Declares, per Redfish resource type, which fields become metrics and which
values label them. The parsers and the descriptor registry are both driven
by these tables, so the label names a descriptor advertises and the label
values a parser emits always come from the same ResourceSpec.

Every resource metric is labeled ``(host, resource, *parent ids, *own labels)``.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

from .descriptors import DescriptorRegistry, NAMESPACE
from .normalize import FieldKind, HELP_TEXT

Extractor = Union[Tuple[str, ...], Callable[[Dict[str, Any]], Any]]

SUBSYSTEM_CHASSIS = "chassis"
SUBSYSTEM_SYSTEM = "system"
SUBSYSTEM_MANAGER = "manager"
SUBSYSTEMS = (SUBSYSTEM_CHASSIS, SUBSYSTEM_SYSTEM, SUBSYSTEM_MANAGER)

# Exporter-level metrics, outside any subsystem
UP_KEY = "up"
COLLECTOR_SCRAPE_STATUS_KEY = "collector_scrape_status"
COLLECTOR_DURATION_KEY = "exporter_collector_duration_seconds"
SCRAPE_DURATION_KEY = "exporter_scrape_duration_seconds"


def dig(resource: Dict[str, Any], path: Sequence[str]) -> Any:
    """Follow ``path`` through nested dicts, returning None when any step is missing."""
    value: Any = resource
    for step in path:
        if not isinstance(value, dict):
            return None
        value = value.get(step)
    return value


def first_of(*keys: str) -> Callable[[Dict[str, Any]], Any]:
    """Extractor returning the first key present, for schema revisions that renamed a property."""
    def extract(resource: Dict[str, Any]) -> Any:
        for key in keys:
            value = resource.get(key)
            if value is not None:
                return value
        return None
    return extract


def extract(resource: Dict[str, Any], extractor: Extractor) -> Any:
    if callable(extractor):
        return extractor(resource)
    return dig(resource, extractor)


@dataclass(frozen=True)
class LabelSpec:
    name: str
    source: Extractor


@dataclass(frozen=True)
class FieldSpec:
    """
    One metric produced from one resource.

    ``kind`` selects a code table for categorical fields. ``boolean`` marks
    fields reported as JSON booleans. Anything else is treated as a numeric
    reading.
    """
    name: str
    source: Extractor
    help: str
    kind: Optional[FieldKind] = None
    boolean: bool = False

    @property
    def full_help(self) -> str:
        if self.kind is None:
            return self.help
        return f"{self.help},{HELP_TEXT[self.kind]}"


@dataclass(frozen=True)
class ResourceSpec:
    resource: str
    subsystem: str
    parent_labels: Tuple[str, ...]
    labels: Tuple[LabelSpec, ...]
    fields: Tuple[FieldSpec, ...]
    id_source: Extractor = ("Id",)

    @property
    def label_names(self) -> Tuple[str, ...]:
        return ("host", "resource") + self.parent_labels + tuple(label.name for label in self.labels)

    def key(self, field_spec: FieldSpec) -> str:
        return f"{self.subsystem}_{field_spec.name}"


def _status_fields(prefix: str, what: str) -> Tuple[FieldSpec, ...]:
    name = f"{prefix}_" if prefix else ""
    return (
        FieldSpec(f"{name}state", ("Status", "State"), f"{what} state", FieldKind.STATE),
        FieldSpec(f"{name}health", ("Status", "Health"), f"{what} health", FieldKind.HEALTH),
    )


def _member_labels(prefix: str) -> Tuple[LabelSpec, ...]:
    """Name/id labels for entries of Thermal and Power arrays, which use MemberId."""
    return (
        LabelSpec(f"{prefix}_name", first_of("Name", "FanName")),
        LabelSpec(f"{prefix}_member_id", first_of("MemberId", "Id")),
    )


def _resource_labels(prefix: str) -> Tuple[LabelSpec, ...]:
    return (
        LabelSpec(f"{prefix}_name", ("Name",)),
        LabelSpec(f"{prefix}_id", ("Id",)),
    )


def _fan_rpm(fan: Dict[str, Any]) -> Any:
    if fan.get("ReadingRPM") is not None:
        return fan["ReadingRPM"]
    if fan.get("ReadingUnits") == "Percent":
        return None
    return fan.get("Reading")


def _fan_percentage(fan: Dict[str, Any]) -> Any:
    if fan.get("ReadingUnits") == "Percent":
        return fan.get("Reading")
    return None


# Chassis subsystem

CHASSIS = ResourceSpec(
    resource="chassis",
    subsystem=SUBSYSTEM_CHASSIS,
    parent_labels=(),
    labels=(
        LabelSpec("chassis_id", ("Id",)),
        LabelSpec("name", ("Name",)),
    ),
    fields=_status_fields("", "chassis") + (
        FieldSpec("physical_security_sensor_state", ("PhysicalSecurity", "IntrusionSensor"),
                  "chassis physical security intrusion sensor", FieldKind.INTRUSION_SENSOR),
        FieldSpec("physical_security_sensor_rearm_method", ("PhysicalSecurity", "IntrusionSensorReArm"),
                  "chassis physical security intrusion sensor rearm method", FieldKind.INTRUSION_REARM),
    ),
)

CHASSIS_TEMPERATURE = ResourceSpec(
    resource="temperature",
    subsystem=SUBSYSTEM_CHASSIS,
    parent_labels=("chassis_id",),
    labels=_member_labels("temperature_sensor"),
    fields=_status_fields("temperature_sensor", "chassis temperature sensor") + (
        FieldSpec("temperature_celsius", ("ReadingCelsius",), "chassis temperature in celsius"),
    ),
    id_source=first_of("MemberId", "Id"),
)

CHASSIS_FAN = ResourceSpec(
    resource="fan",
    subsystem=SUBSYSTEM_CHASSIS,
    parent_labels=("chassis_id",),
    labels=_member_labels("fan"),
    fields=_status_fields("fan", "chassis fan") + (
        FieldSpec("fan_rpm", _fan_rpm, "chassis fan speed in rpm"),
        FieldSpec("fan_rpm_percentage", _fan_percentage, "chassis fan speed in percent of maximum"),
    ),
    id_source=first_of("MemberId", "Id"),
)

CHASSIS_POWER_VOLTAGE = ResourceSpec(
    resource="power_voltage",
    subsystem=SUBSYSTEM_CHASSIS,
    parent_labels=("chassis_id",),
    labels=_member_labels("power_voltage"),
    fields=_status_fields("power_voltage", "chassis power voltage") + (
        FieldSpec("power_voltage_volts", ("ReadingVolts",), "chassis power voltage reading in volts"),
    ),
    id_source=first_of("MemberId", "Id"),
)

CHASSIS_POWER_SUPPLY = ResourceSpec(
    resource="power_supply",
    subsystem=SUBSYSTEM_CHASSIS,
    parent_labels=("chassis_id",),
    labels=_member_labels("power_supply"),
    fields=_status_fields("power_powersupply", "chassis power supply") + (
        FieldSpec("power_powersupply_last_power_output_watts", ("LastPowerOutputWatts",),
                  "chassis power supply last power output in watts"),
        FieldSpec("power_powersupply_power_capacity_watts", ("PowerCapacityWatts",),
                  "chassis power supply capacity in watts"),
        FieldSpec("power_powersupply_power_input_watts", ("PowerInputWatts",),
                  "chassis power supply input power in watts"),
    ),
    id_source=first_of("MemberId", "Id"),
)

CHASSIS_POWER_CONTROL = ResourceSpec(
    resource="power_control",
    subsystem=SUBSYSTEM_CHASSIS,
    parent_labels=("chassis_id",),
    labels=_member_labels("power_control"),
    fields=(
        FieldSpec("power_control_consumed_watts", ("PowerConsumedWatts",),
                  "chassis power control consumed power in watts"),
        FieldSpec("power_control_capacity_watts", ("PowerCapacityWatts",),
                  "chassis power control capacity in watts"),
        FieldSpec("power_control_average_consumed_watts", ("PowerMetrics", "AverageConsumedWatts"),
                  "chassis power control average consumed power in watts over the metrics interval"),
    ),
    id_source=first_of("MemberId", "Id"),
)

CHASSIS_NETWORK_ADAPTER = ResourceSpec(
    resource="network_adapter",
    subsystem=SUBSYSTEM_CHASSIS,
    parent_labels=("chassis_id",),
    labels=_resource_labels("network_adapter"),
    fields=_status_fields("network_adapter", "chassis network adapter"),
)

CHASSIS_NETWORK_PORT = ResourceSpec(
    resource="network_port",
    subsystem=SUBSYSTEM_CHASSIS,
    parent_labels=("chassis_id", "network_adapter_id"),
    labels=_resource_labels("network_port"),
    fields=_status_fields("network_port", "chassis network port") + (
        FieldSpec("network_port_link_state", ("LinkStatus",), "chassis network port link state",
                  FieldKind.PORT_LINK_STATE),
        FieldSpec("network_port_current_speed_mbps", ("CurrentLinkSpeedMbps",),
                  "chassis network port current link speed in Mbps"),
    ),
)


# Computer system subsystem

SYSTEM = ResourceSpec(
    resource="system",
    subsystem=SUBSYSTEM_SYSTEM,
    parent_labels=(),
    labels=(
        LabelSpec("system_id", ("Id",)),
        LabelSpec("name", ("Name",)),
        LabelSpec("hostname", ("HostName",)),
    ),
    fields=_status_fields("", "system") + (
        FieldSpec("power_state", ("PowerState",), "system power state", FieldKind.POWER_STATE),
        FieldSpec("total_memory_state", ("MemorySummary", "Status", "State"),
                  "system overall memory state", FieldKind.STATE),
        FieldSpec("total_memory_health", ("MemorySummary", "Status", "Health"),
                  "system overall memory health", FieldKind.HEALTH),
        FieldSpec("total_memory_size", ("MemorySummary", "TotalSystemMemoryGiB"),
                  "system total memory size in GiB"),
        FieldSpec("total_processor_state", ("ProcessorSummary", "Status", "State"),
                  "system overall processor state", FieldKind.STATE),
        FieldSpec("total_processor_health", ("ProcessorSummary", "Status", "Health"),
                  "system overall processor health", FieldKind.HEALTH),
        FieldSpec("total_processor_count", ("ProcessorSummary", "Count"),
                  "system total processor count"),
    ),
)

SYSTEM_MEMORY = ResourceSpec(
    resource="memory",
    subsystem=SUBSYSTEM_SYSTEM,
    parent_labels=("system_id",),
    labels=_resource_labels("memory"),
    fields=_status_fields("memory", "system memory") + (
        FieldSpec("memory_capacity_mib", ("CapacityMiB",), "system memory capacity in MiB"),
    ),
)

SYSTEM_PROCESSOR = ResourceSpec(
    resource="processor",
    subsystem=SUBSYSTEM_SYSTEM,
    parent_labels=("system_id",),
    labels=_resource_labels("processor"),
    fields=_status_fields("processor", "system processor") + (
        FieldSpec("processor_total_threads", ("TotalThreads",), "system processor total threads"),
        FieldSpec("processor_total_cores", ("TotalCores",), "system processor total cores"),
    ),
)

SYSTEM_STORAGE = ResourceSpec(
    resource="storage",
    subsystem=SUBSYSTEM_SYSTEM,
    parent_labels=("system_id",),
    labels=_resource_labels("storage"),
    fields=_status_fields("storage", "system storage"),
)

SYSTEM_STORAGE_VOLUME = ResourceSpec(
    resource="storage_volume",
    subsystem=SUBSYSTEM_SYSTEM,
    parent_labels=("system_id", "storage_id"),
    labels=_resource_labels("volume"),
    fields=_status_fields("storage_volume", "system storage volume") + (
        FieldSpec("storage_volume_capacity_bytes", ("CapacityBytes",), "system storage volume capacity in bytes"),
    ),
)

SYSTEM_STORAGE_DRIVE = ResourceSpec(
    resource="storage_drive",
    subsystem=SUBSYSTEM_SYSTEM,
    parent_labels=("system_id", "storage_id"),
    labels=_resource_labels("drive"),
    fields=_status_fields("storage_drive", "system storage drive") + (
        FieldSpec("storage_drive_capacity_bytes", ("CapacityBytes",), "system storage drive capacity in bytes"),
    ),
)

SYSTEM_PCIE_DEVICE = ResourceSpec(
    resource="pcie_device",
    subsystem=SUBSYSTEM_SYSTEM,
    parent_labels=("system_id",),
    labels=_resource_labels("pcie_device"),
    fields=_status_fields("pcie_device", "system pcie device"),
)

SYSTEM_PCIE_FUNCTION = ResourceSpec(
    resource="pcie_function",
    subsystem=SUBSYSTEM_SYSTEM,
    parent_labels=("system_id", "pcie_device_id"),
    labels=_resource_labels("pcie_function"),
    fields=_status_fields("pcie_function", "system pcie function"),
)

SYSTEM_NETWORK_INTERFACE = ResourceSpec(
    resource="network_interface",
    subsystem=SUBSYSTEM_SYSTEM,
    parent_labels=("system_id",),
    labels=_resource_labels("network_interface"),
    fields=_status_fields("network_interface", "system network interface"),
)


def ethernet_interface_spec(subsystem: str, parent_label: str) -> ResourceSpec:
    return ResourceSpec(
        resource="ethernet_interface",
        subsystem=subsystem,
        parent_labels=(parent_label,),
        labels=_resource_labels("ethernet_interface") + (
            LabelSpec("ethernet_interface_speed", ("SpeedMbps",)),
        ),
        fields=_status_fields("ethernet_interface", f"{subsystem} ethernet interface") + (
            FieldSpec("ethernet_interface_link_status", ("LinkStatus",),
                      f"{subsystem} ethernet interface link status", FieldKind.LINK_STATUS),
            FieldSpec("ethernet_interface_link_enabled", ("InterfaceEnabled",),
                      f"{subsystem} ethernet interface if the link is enabled", boolean=True),
        ),
    )


def log_service_spec(subsystem: str, parent_label: str) -> ResourceSpec:
    return ResourceSpec(
        resource="log_service",
        subsystem=subsystem,
        parent_labels=(parent_label,),
        labels=_resource_labels("log_service") + (
            LabelSpec("log_service_enabled", ("ServiceEnabled",)),
            LabelSpec("log_service_overwrite_policy", ("OverWritePolicy",)),
        ),
        fields=_status_fields("log_service", f"{subsystem} log service"),
    )


def log_entry_spec(subsystem: str, parent_label: str) -> ResourceSpec:
    return ResourceSpec(
        resource="log_entry",
        subsystem=subsystem,
        parent_labels=(parent_label, "log_service_id"),
        labels=_resource_labels("log_entry") + (
            LabelSpec("log_entry_code", ("EntryCode",)),
            LabelSpec("log_entry_type", ("EntryType",)),
            LabelSpec("log_entry_message_id", ("MessageId",)),
            LabelSpec("log_entry_sensor_number", ("SensorNumber",)),
            LabelSpec("log_entry_sensor_type", ("SensorType",)),
        ),
        fields=(
            FieldSpec("log_entry_severity_state", ("Severity",), f"{subsystem} log entry severity",
                      FieldKind.SEVERITY),
        ),
    )


SYSTEM_ETHERNET_INTERFACE = ethernet_interface_spec(SUBSYSTEM_SYSTEM, "system_id")
SYSTEM_LOG_SERVICE = log_service_spec(SUBSYSTEM_SYSTEM, "system_id")
SYSTEM_LOG_ENTRY = log_entry_spec(SUBSYSTEM_SYSTEM, "system_id")


# Manager subsystem

MANAGER = ResourceSpec(
    resource="manager",
    subsystem=SUBSYSTEM_MANAGER,
    parent_labels=(),
    labels=(
        LabelSpec("manager_id", ("Id",)),
        LabelSpec("name", ("Name",)),
        LabelSpec("model", ("Model",)),
        LabelSpec("type", ("ManagerType",)),
    ),
    fields=_status_fields("", "manager") + (
        FieldSpec("power_state", ("PowerState",), "manager power state", FieldKind.POWER_STATE),
    ),
)

MANAGER_ETHERNET_INTERFACE = ethernet_interface_spec(SUBSYSTEM_MANAGER, "manager_id")
MANAGER_LOG_SERVICE = log_service_spec(SUBSYSTEM_MANAGER, "manager_id")
MANAGER_LOG_ENTRY = log_entry_spec(SUBSYSTEM_MANAGER, "manager_id")


RESOURCE_SPECS: Tuple[ResourceSpec, ...] = (
    CHASSIS,
    CHASSIS_TEMPERATURE,
    CHASSIS_FAN,
    CHASSIS_POWER_VOLTAGE,
    CHASSIS_POWER_SUPPLY,
    CHASSIS_POWER_CONTROL,
    CHASSIS_NETWORK_ADAPTER,
    CHASSIS_NETWORK_PORT,
    SYSTEM,
    SYSTEM_MEMORY,
    SYSTEM_PROCESSOR,
    SYSTEM_STORAGE,
    SYSTEM_STORAGE_VOLUME,
    SYSTEM_STORAGE_DRIVE,
    SYSTEM_PCIE_DEVICE,
    SYSTEM_PCIE_FUNCTION,
    SYSTEM_NETWORK_INTERFACE,
    SYSTEM_ETHERNET_INTERFACE,
    SYSTEM_LOG_SERVICE,
    SYSTEM_LOG_ENTRY,
    MANAGER,
    MANAGER_ETHERNET_INTERFACE,
    MANAGER_LOG_SERVICE,
    MANAGER_LOG_ENTRY,
)


def build_descriptor_registry(namespace: str = NAMESPACE) -> DescriptorRegistry:
    """
    Build the frozen descriptor registry for every metric the exporter can emit.

    Called once at startup; the result is shared read-only by all scrapes.
    """
    registry = DescriptorRegistry(namespace)
    registry.register("", UP_KEY, "redfish up", ("host",))
    registry.register("", COLLECTOR_SCRAPE_STATUS_KEY, "collector_scrape_status", ("collector",))
    registry.register("exporter", "collector_duration_seconds", "Collector time duration.", ("collector",))
    registry.register("exporter", "scrape_duration_seconds", "Total scrape time duration.", ())
    for spec in RESOURCE_SPECS:
        for field_spec in spec.fields:
            registry.register(spec.subsystem, field_spec.name, field_spec.full_help, spec.label_names)
    return registry.freeze()
