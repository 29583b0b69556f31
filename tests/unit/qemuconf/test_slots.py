import pytest

from qemuconf.errors import DiskSlotError
from qemuconf.errors import NetworkIdError
from qemuconf.errors import PciIdError
from qemuconf.errors import SerialIdError
from qemuconf.errors import UsbIdError
from qemuconf.models.slots import IdeSlot
from qemuconf.models.slots import NetworkId
from qemuconf.models.slots import PciId
from qemuconf.models.slots import ScsiSlot
from qemuconf.models.slots import SerialId
from qemuconf.models.slots import UsbId
from qemuconf.models.slots import VirtioSlot


@pytest.mark.parametrize(
    "slot_type, maximum, error",
    [
        (NetworkId, 31, NetworkIdError),
        (PciId, 15, PciIdError),
        (UsbId, 4, UsbIdError),
        (SerialId, 3, SerialIdError),
        (IdeSlot, 3, DiskSlotError),
        (ScsiSlot, 30, DiskSlotError),
        (VirtioSlot, 15, DiskSlotError),
    ],
)
def test_slot_bounds(slot_type, maximum, error):
    assert slot_type(0) == 0
    assert slot_type(maximum) == maximum
    with pytest.raises(error):
        slot_type(maximum + 1)
    with pytest.raises(error):
        slot_type(-1)


def test_slot_keys():
    assert NetworkId(3).key == "net3"
    assert PciId(15).key == "hostpci15"
    assert ScsiSlot(12).key == "scsi12"
    assert repr(UsbId(2)) == "UsbId(2)"


def test_from_key():
    assert UsbId.from_key("usb3") == UsbId(3)
    with pytest.raises(UsbIdError):
        UsbId.from_key("net3")
    with pytest.raises(SerialIdError):
        SerialId.from_key("serialx")


def test_boolean_is_not_a_slot():
    with pytest.raises(NetworkIdError):
        NetworkId(True)


def test_slots_are_usable_as_dict_keys():
    slots = {NetworkId(1): "a"}
    assert slots[1] == "a"
    assert NetworkId(1) in slots
