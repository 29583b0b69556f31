from dataclasses import dataclass
from typing import Optional
from typing import Union


@dataclass(frozen=True)
class UsbDevice:
    """Host device by ``vendor:product``, e.g. ``046d:c52b``."""

    id: Optional[str] = None
    usb3: Optional[bool] = None
    delete: bool = False


@dataclass(frozen=True)
class UsbMapping:
    id: Optional[str] = None
    usb3: Optional[bool] = None
    delete: bool = False


@dataclass(frozen=True)
class UsbPort:
    """Host port by ``bus-port``, e.g. ``1-4``."""

    id: Optional[str] = None
    usb3: Optional[bool] = None
    delete: bool = False


@dataclass(frozen=True)
class UsbSpice:
    usb3: Optional[bool] = None
    delete: bool = False


UsbEntry = Union[UsbDevice, UsbMapping, UsbPort, UsbSpice]
