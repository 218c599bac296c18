"""
Redfish exporter.

Walks the Redfish inventory of a BMC on every scrape and republishes
chassis, system and manager state as Prometheus metrics.
"""

__version__ = "1.0.0"
