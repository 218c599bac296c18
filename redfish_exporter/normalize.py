# -----------------------------------------------------------------------------
# Copyright (c) 2025 Redfish Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Categorical field normalization for Redfish resources.

Redfish reports status as strings (``Status.State``, ``Status.Health``,
``PowerState``, ``LinkStatus``, ...). Prometheus wants numbers, so each
category gets a fixed code table. The tables are part of the exporter's
public contract: operators build alerts on these numbers, and every help
string quotes the table verbatim.
"""

from enum import Enum
from typing import Any, Dict, Tuple


class FieldKind(Enum):
    """Categorical Redfish field families with a fixed numeric encoding"""
    STATE = "state"
    HEALTH = "health"
    POWER_STATE = "power_state"
    LINK_STATUS = "link_status"
    PORT_LINK_STATE = "port_link_state"
    INTRUSION_SENSOR = "intrusion_sensor"
    INTRUSION_REARM = "intrusion_rearm"
    SEVERITY = "severity"


STATE_CODES = {
    "Enabled": 1,
    "Disabled": 2,
    "StandbyOffline": 3,
    "StandbySpare": 4,
    "InTest": 5,
    "Starting": 6,
    "Absent": 7,
    "UnavailableOffline": 8,
    "Deferring": 9,
    "Quiesced": 10,
    "Updating": 11,
}

HEALTH_CODES = {
    "OK": 1,
    "Warning": 2,
    "Critical": 3,
}

POWER_STATE_CODES = {
    "On": 1,
    "Off": 2,
    "PoweringOn": 3,
    "PoweringOff": 4,
}

LINK_STATUS_CODES = {
    "LinkUp": 1,
    "NoLink": 2,
    "LinkDown": 3,
}

PORT_LINK_STATE_CODES = {
    "Up": 1,
    "Down": 0,
}

INTRUSION_SENSOR_CODES = {
    "Normal": 1,
    "TamperingDetected": 2,
    "HardwareIntrusion": 3,
}

INTRUSION_REARM_CODES = {
    "Manual": 1,
    "Automatic": 2,
}

CODE_TABLES: Dict[FieldKind, Dict[str, int]] = {
    FieldKind.STATE: STATE_CODES,
    FieldKind.HEALTH: HEALTH_CODES,
    FieldKind.POWER_STATE: POWER_STATE_CODES,
    FieldKind.LINK_STATUS: LINK_STATUS_CODES,
    FieldKind.PORT_LINK_STATE: PORT_LINK_STATE_CODES,
    FieldKind.INTRUSION_SENSOR: INTRUSION_SENSOR_CODES,
    FieldKind.INTRUSION_REARM: INTRUSION_REARM_CODES,
    FieldKind.SEVERITY: HEALTH_CODES,
}


def _help_for(table: Dict[str, int]) -> str:
    return ",".join(f"{code}({name})" for name, code in table.items())


STATE_HELP = _help_for(STATE_CODES)
HEALTH_HELP = _help_for(HEALTH_CODES)
POWER_STATE_HELP = _help_for(POWER_STATE_CODES)
LINK_STATUS_HELP = _help_for(LINK_STATUS_CODES)
PORT_LINK_STATE_HELP = _help_for(PORT_LINK_STATE_CODES)
INTRUSION_SENSOR_HELP = _help_for(INTRUSION_SENSOR_CODES)
INTRUSION_REARM_HELP = _help_for(INTRUSION_REARM_CODES)
SEVERITY_HELP = HEALTH_HELP

HELP_TEXT: Dict[FieldKind, str] = {
    FieldKind.STATE: STATE_HELP,
    FieldKind.HEALTH: HEALTH_HELP,
    FieldKind.POWER_STATE: POWER_STATE_HELP,
    FieldKind.LINK_STATUS: LINK_STATUS_HELP,
    FieldKind.PORT_LINK_STATE: PORT_LINK_STATE_HELP,
    FieldKind.INTRUSION_SENSOR: INTRUSION_SENSOR_HELP,
    FieldKind.INTRUSION_REARM: INTRUSION_REARM_HELP,
    FieldKind.SEVERITY: SEVERITY_HELP,
}


def normalize(kind: FieldKind, raw: Any) -> Tuple[float, bool]:
    """
    Map a categorical Redfish value to its numeric code.

    Matching is exact and case-sensitive. Values outside the table (vendor
    extensions, newer schema revisions, empty strings, ``None``) are not
    errors: they return ``(0.0, False)`` and the caller emits nothing.

    Args:
        kind: Which code table to use
        raw: Value taken from the Redfish payload

    Returns:
        tuple: (code, ok)
    """
    if not isinstance(raw, str):
        return 0.0, False
    code = CODE_TABLES[kind].get(raw)
    if code is None:
        return 0.0, False
    return float(code), True


def bool_to_float(value: bool) -> float:
    return 1.0 if value else 0.0
