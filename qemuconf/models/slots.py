"""
Bounded slot identifiers.

Devices are attached to numbered slots (``net0``, ``hostpci3``, ``scsi12``).
Each slot kind is an ``int`` subclass that checks its range when constructed,
so a dict keyed by slot ids can never hold an out-of-range slot.
"""

from typing import Type

from qemuconf.errors import DiskSlotError
from qemuconf.errors import NetworkIdError
from qemuconf.errors import PciIdError
from qemuconf.errors import SerialIdError
from qemuconf.errors import SlotIdError
from qemuconf.errors import UsbIdError


class SlotId(int):
    prefix = ""
    maximum = 0
    error: Type[SlotIdError] = SlotIdError

    def __new__(cls, value: int) -> "SlotId":
        if isinstance(value, bool):
            raise cls.error()
        number = int(value)
        if number < 0 or number > cls.maximum:
            raise cls.error()
        return super().__new__(cls, number)

    @property
    def key(self) -> str:
        """Wire key of the slot, e.g. ``net0``."""
        return f"{self.prefix}{int(self)}"

    @classmethod
    def from_key(cls, key: str) -> "SlotId":
        """
        :param key: Wire key such as "net3"
        :return: Slot id parsed from the numeric suffix
        """
        if not key.startswith(cls.prefix) or not key[len(cls.prefix):].isdigit():
            raise cls.error()
        return cls(int(key[len(cls.prefix):]))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self)})"


class NetworkId(SlotId):
    prefix = "net"
    maximum = 31
    error = NetworkIdError


class PciId(SlotId):
    prefix = "hostpci"
    maximum = 15
    error = PciIdError


class UsbId(SlotId):
    prefix = "usb"
    maximum = 4
    error = UsbIdError


class SerialId(SlotId):
    prefix = "serial"
    maximum = 3
    error = SerialIdError


class IdeSlot(SlotId):
    prefix = "ide"
    maximum = 3
    error = DiskSlotError


class SataSlot(SlotId):
    prefix = "sata"
    maximum = 5
    error = DiskSlotError


class ScsiSlot(SlotId):
    prefix = "scsi"
    maximum = 30
    error = DiskSlotError


class VirtioSlot(SlotId):
    prefix = "virtio"
    maximum = 15
    error = DiskSlotError


DISK_SLOT_TYPES = (IdeSlot, SataSlot, ScsiSlot, VirtioSlot)
