from dataclasses import dataclass
from typing import Optional
from typing import Union


@dataclass(frozen=True)
class PciMapping:
    """A PCI device passed through by cluster resource mapping id."""

    id: Optional[str] = None
    pcie: Optional[bool] = None
    primary_gpu: Optional[bool] = None
    rom_bar: Optional[bool] = None
    vendor_id: Optional[str] = None
    device_id: Optional[str] = None
    sub_vendor_id: Optional[str] = None
    sub_device_id: Optional[str] = None
    delete: bool = False


@dataclass(frozen=True)
class PciRaw:
    """A PCI device passed through by host address, e.g. ``0000:03:00.1``."""

    id: Optional[str] = None
    pcie: Optional[bool] = None
    primary_gpu: Optional[bool] = None
    rom_bar: Optional[bool] = None
    vendor_id: Optional[str] = None
    device_id: Optional[str] = None
    sub_vendor_id: Optional[str] = None
    sub_device_id: Optional[str] = None
    delete: bool = False


PciDevice = Union[PciMapping, PciRaw]
