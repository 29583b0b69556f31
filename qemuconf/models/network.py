from dataclasses import dataclass
from typing import List
from typing import Optional

NETWORK_MODELS = (
    "e1000",
    "e1000-82540em",
    "e1000-82544gc",
    "e1000-82545em",
    "e1000e",
    "i82551",
    "i82557b",
    "i82559er",
    "ne2k_isa",
    "ne2k_pci",
    "pcnet",
    "rtl8139",
    "virtio",
    "vmxnet3",
)
MTU_MINIMUM = 576
MTU_MAXIMUM = 65520
QUEUES_MAXIMUM = 64
RATE_MAXIMUM = 10240000
VLAN_MAXIMUM = 4095


@dataclass(frozen=True)
class QemuMtu:
    """``inherit`` takes the MTU of the bridge, otherwise ``value`` is used."""

    inherit: bool = False
    value: int = 0


@dataclass(frozen=True)
class NetworkInterface:
    """
    A virtual NIC. Fields left at None keep the current value on update.

    ``rate_limit_kbps`` is an integer amount of KB/s, the API expects MB/s.
    """

    bridge: Optional[str] = None
    connected: Optional[bool] = None
    delete: bool = False
    firewall: Optional[bool] = None
    mac: Optional[str] = None
    model: Optional[str] = None
    mtu: Optional[QemuMtu] = None
    multi_queue: Optional[int] = None
    rate_limit_kbps: Optional[int] = None
    native_vlan: Optional[int] = None
    tagged_vlans: Optional[List[int]] = None
