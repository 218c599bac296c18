# -----------------------------------------------------------------------------
# Copyright (c) 2025 Redfish Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

import logging
import ssl
from typing import Any, Dict, List, Optional

import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3 import PoolManager
from urllib3.util.ssl_ import create_urllib3_context

LOG = logging.getLogger(__name__)

SERVICE_ROOT = "/redfish/v1"
SESSIONS_PATH = "/redfish/v1/SessionService/Sessions"
CHASSIS_PATH = "/redfish/v1/Chassis"
SYSTEMS_PATH = "/redfish/v1/Systems"
MANAGERS_PATH = "/redfish/v1/Managers"

DEFAULT_TIMEOUT = 30
DEFAULT_MAX_LOG_ENTRIES = 100
DEFAULT_MAX_CONNECTIONS = 16


class RedfishError(Exception):
    """Base class for Redfish client errors."""


class RedfishConnectionError(RedfishError):
    """Session could not be established with the BMC."""


class RedfishRequestError(RedfishError):
    """A GET against the BMC failed or returned an unusable document."""

    def __init__(self, path: str, status_code: Optional[int] = None, message: str = ""):
        self.path = path
        self.status_code = status_code
        detail = f"HTTP {status_code}" if status_code is not None else "request failed"
        if message:
            detail = f"{detail}: {message}"
        super().__init__(f"GET {path}: {detail}")


class SSLAdapter(HTTPAdapter):
    """An HTTPS Transport Adapter that uses an explicit SSL context."""
    def __init__(self, verify_flags=ssl.VERIFY_X509_STRICT, **kwargs):
        self.verify_flags = verify_flags
        super().__init__(**kwargs)

    def init_poolmanager(self, connections, maxsize, block=False, **pool_kwargs):
        context = create_urllib3_context(verify_flags=self.verify_flags)
        self.poolmanager = PoolManager(num_pools=connections, maxsize=maxsize,
                                       block=block, ssl_context=context, **pool_kwargs)


def build_http_session(tls_validation: str = 'none', tls_ca: Optional[str] = None,
                       max_connections: int = DEFAULT_MAX_CONNECTIONS) -> requests.Session:
    """
    Return a requests.Session configured for the requested TLS validation mode.

    The connection pool holds ``max_connections`` connections and blocks
    when all are in use, which bounds concurrent requests against one BMC
    however wide the collector fan-out gets.

    Args:
        tls_validation: 'strict', 'normal', or 'none'
        tls_ca: Optional CA bundle used to verify the BMC certificate
        max_connections: Size of the per-BMC connection pool
    """
    pool = {"pool_maxsize": max_connections, "pool_block": True}
    http = requests.Session()
    http.mount("http://", HTTPAdapter(**pool))
    if tls_validation == 'none':
        http.verify = False
        http.mount("https://", HTTPAdapter(**pool))
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
    else:
        verify_flags = ssl.VERIFY_X509_STRICT if tls_validation == 'strict' else ssl.VERIFY_DEFAULT
        http.mount("https://", SSLAdapter(verify_flags=verify_flags, **pool))
        http.verify = tls_ca if tls_ca else True
    http.headers.update({
        "Accept": "application/json",
        "Content-Type": "application/json",
        "OData-Version": "4.0",
    })
    return http


def _link(resource: Dict[str, Any], *path: str) -> Optional[str]:
    value: Any = resource
    for step in path:
        if not isinstance(value, dict):
            return None
        value = value.get(step)
    if isinstance(value, dict):
        return value.get("@odata.id")
    return None


class RedfishSession:
    """
    One authenticated conversation with one BMC.

    Creating the object does no I/O; ``login`` establishes the session and
    ``logout`` tears it down. All reads go through ``get``, which raises
    RedfishRequestError on any failure.
    """

    def __init__(self, host: str, http: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT, max_log_entries: int = DEFAULT_MAX_LOG_ENTRIES):
        self.host = host
        self.base_url = host.rstrip('/') if host.startswith('http') else f"https://{host.rstrip('/')}"
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout
        self.max_log_entries = max_log_entries
        self.session_uri: Optional[str] = None
        self.auth_mode: Optional[str] = None

    def _url(self, path: str) -> str:
        if path.startswith('http'):
            return path
        return f"{self.base_url}{path}"

    def login(self, username: str, password: str) -> None:
        """
        Create a Redfish session, falling back to HTTP basic auth.

        Raises:
            RedfishConnectionError: neither method authenticated
        """
        try:
            resp = self.http.post(
                self._url(SESSIONS_PATH),
                json={"UserName": username, "Password": password},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise RedfishConnectionError(f"{self.host}: {e}") from e

        if resp.status_code in (200, 201) and resp.headers.get("X-Auth-Token"):
            self.http.headers.update({"X-Auth-Token": resp.headers["X-Auth-Token"]})
            self.session_uri = resp.headers.get("Location")
            self.auth_mode = "session"
            LOG.info(f"[{self.host}] Redfish session created")
            return
        if resp.status_code in (401, 403):
            # A second attempt with basic auth would only count against the BMC lockout policy
            raise RedfishConnectionError(f"{self.host}: session login rejected with HTTP {resp.status_code}")

        LOG.info(f"[{self.host}] Session service returned HTTP {resp.status_code}, trying basic auth")
        self.http.auth = (username, password)
        try:
            self.get(SYSTEMS_PATH)
        except RedfishRequestError as e:
            raise RedfishConnectionError(f"{self.host}: basic auth failed: {e}") from e
        self.auth_mode = "basic"
        LOG.info(f"[{self.host}] Using basic auth")

    def logout(self) -> None:
        """Delete the Redfish session. Failures are logged, never raised."""
        try:
            if self.session_uri:
                resp = self.http.delete(self._url(self.session_uri), timeout=self.timeout)
                if resp.status_code >= 400:
                    LOG.warning(f"[{self.host}] Session logout returned HTTP {resp.status_code}")
                else:
                    LOG.debug(f"[{self.host}] Session {self.session_uri} deleted")
        except requests.exceptions.RequestException as e:
            LOG.warning(f"[{self.host}] Session logout failed: {e}")
        finally:
            self.session_uri = None
            self.http.close()

    def get(self, path: str) -> Dict[str, Any]:
        try:
            resp = self.http.get(self._url(path), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise RedfishRequestError(path, message=str(e)) from e
        if resp.status_code >= 400:
            raise RedfishRequestError(path, resp.status_code, resp.reason or "")
        try:
            return resp.json()
        except ValueError as e:
            raise RedfishRequestError(path, resp.status_code, "response is not JSON") from e

    def _resolve(self, link: Dict[str, Any]) -> Dict[str, Any]:
        # Expanded members already carry the resource body
        if "Id" in link or "MemberId" in link:
            return link
        return self.get(link["@odata.id"])

    def members(self, path: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Fetch a resource collection and each of its members."""
        collection = self.get(path)
        links = [m for m in collection.get("Members", []) if isinstance(m, dict) and "@odata.id" in m]
        if limit is not None:
            links = links[:limit]
        return [self._resolve(link) for link in links]

    def follow(self, resource: Dict[str, Any], *path: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Resolve a navigation property into member documents.

        Handles both a link to a resource collection and an inline array of
        links (``Drives``, ``Links.PCIeFunctions``). A missing property means
        the BMC does not implement it and yields an empty list.
        """
        value: Any = resource
        for step in path:
            if not isinstance(value, dict):
                return []
            value = value.get(step)
        if isinstance(value, list):
            links = [v for v in value if isinstance(v, dict) and "@odata.id" in v]
            if limit is not None:
                links = links[:limit]
            return [self._resolve(link) for link in links]
        if isinstance(value, dict) and "@odata.id" in value:
            return self.members(value["@odata.id"], limit=limit)
        return []

    def _single(self, resource: Dict[str, Any], key: str) -> Dict[str, Any]:
        path = _link(resource, key)
        if path is None:
            return {}
        return self.get(path)

    # Top-level lists

    def list_chassis(self) -> List[Dict[str, Any]]:
        return self.members(CHASSIS_PATH)

    def list_systems(self) -> List[Dict[str, Any]]:
        return self.members(SYSTEMS_PATH)

    def list_managers(self) -> List[Dict[str, Any]]:
        return self.members(MANAGERS_PATH)

    # Chassis

    def thermal(self, chassis: Dict[str, Any]) -> Dict[str, Any]:
        return self._single(chassis, "Thermal")

    def power(self, chassis: Dict[str, Any]) -> Dict[str, Any]:
        return self._single(chassis, "Power")

    def network_adapters(self, chassis: Dict[str, Any]) -> List[Dict[str, Any]]:
        return self.follow(chassis, "NetworkAdapters")

    def network_ports(self, adapter: Dict[str, Any]) -> List[Dict[str, Any]]:
        if "NetworkPorts" in adapter:
            return self.follow(adapter, "NetworkPorts")
        return self.follow(adapter, "Ports")

    # Computer systems

    def memory(self, system: Dict[str, Any]) -> List[Dict[str, Any]]:
        return self.follow(system, "Memory")

    def processors(self, system: Dict[str, Any]) -> List[Dict[str, Any]]:
        return self.follow(system, "Processors")

    def storage(self, system: Dict[str, Any]) -> List[Dict[str, Any]]:
        return self.follow(system, "Storage")

    def volumes(self, storage: Dict[str, Any]) -> List[Dict[str, Any]]:
        return self.follow(storage, "Volumes")

    def drives(self, storage: Dict[str, Any]) -> List[Dict[str, Any]]:
        return self.follow(storage, "Drives")

    def pcie_devices(self, system: Dict[str, Any]) -> List[Dict[str, Any]]:
        return self.follow(system, "PCIeDevices")

    def pcie_functions(self, device: Dict[str, Any]) -> List[Dict[str, Any]]:
        if "PCIeFunctions" in device:
            return self.follow(device, "PCIeFunctions")
        return self.follow(device, "Links", "PCIeFunctions")

    def network_interfaces(self, system: Dict[str, Any]) -> List[Dict[str, Any]]:
        return self.follow(system, "NetworkInterfaces")

    # Shared by systems and managers

    def ethernet_interfaces(self, resource: Dict[str, Any]) -> List[Dict[str, Any]]:
        return self.follow(resource, "EthernetInterfaces")

    def log_services(self, resource: Dict[str, Any]) -> List[Dict[str, Any]]:
        return self.follow(resource, "LogServices")

    def log_entries(self, log_service: Dict[str, Any]) -> List[Dict[str, Any]]:
        return self.follow(log_service, "Entries", limit=self.max_log_entries)


def connect(host: str, username: str, password: str, timeout: float = DEFAULT_TIMEOUT,
            tls_validation: str = 'none', tls_ca: Optional[str] = None,
            max_log_entries: int = DEFAULT_MAX_LOG_ENTRIES,
            max_connections: int = DEFAULT_MAX_CONNECTIONS) -> RedfishSession:
    """
    Return a logged-in RedfishSession for ``host``.

    Raises:
        RedfishConnectionError: the BMC is unreachable or rejected the credentials
    """
    if tls_validation == 'none':
        LOG.debug(f"[{host}] TLS validation is disabled")
    http = build_http_session(tls_validation, tls_ca, max_connections)
    session = RedfishSession(host, http, timeout=timeout, max_log_entries=max_log_entries)
    try:
        session.login(username, password)
    except RedfishConnectionError:
        http.close()
        raise
    return session
