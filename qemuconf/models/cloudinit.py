from dataclasses import dataclass
from typing import Dict
from typing import List
from typing import Optional

from qemuconf.models.slots import NetworkId


@dataclass(frozen=True)
class CloudInitSnippet:
    storage: str = ""
    path: str = ""


@dataclass(frozen=True)
class CloudInitCustom:
    meta: Optional[CloudInitSnippet] = None
    network: Optional[CloudInitSnippet] = None
    user: Optional[CloudInitSnippet] = None
    vendor: Optional[CloudInitSnippet] = None


@dataclass(frozen=True)
class GuestDns:
    search_domain: Optional[str] = None
    name_servers: Optional[List[str]] = None


@dataclass(frozen=True)
class CloudInitIPv4:
    """``address`` and ``gateway`` set to "" remove that part on update."""

    address: Optional[str] = None
    dhcp: bool = False
    gateway: Optional[str] = None


@dataclass(frozen=True)
class CloudInitIPv6:
    address: Optional[str] = None
    dhcp: bool = False
    gateway: Optional[str] = None
    slaac: bool = False


@dataclass(frozen=True)
class CloudInitNetworkConfig:
    ipv4: Optional[CloudInitIPv4] = None
    ipv6: Optional[CloudInitIPv6] = None


@dataclass(frozen=True)
class CloudInit:
    custom: Optional[CloudInitCustom] = None
    dns: Optional[GuestDns] = None
    network_interfaces: Optional[Dict[NetworkId, CloudInitNetworkConfig]] = None
    ssh_keys: Optional[List[str]] = None
    upgrade_packages: Optional[bool] = None
    password: Optional[str] = None
    username: Optional[str] = None
