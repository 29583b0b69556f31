import pytest

from qemuconf.codecs import usb
from qemuconf.errors import MappingIdCharacterError
from qemuconf.errors import UsbDeviceIdError
from qemuconf.errors import UsbDeviceIdRequiredError
from qemuconf.errors import UsbIdError
from qemuconf.errors import UsbKindError
from qemuconf.errors import UsbMappedIdRequiredError
from qemuconf.errors import UsbPortIdError
from qemuconf.errors import UsbPortIdRequiredError
from qemuconf.errors import UsbProductIdError
from qemuconf.errors import UsbVendorIdError
from qemuconf.models.slots import UsbId
from qemuconf.models.usb import UsbDevice
from qemuconf.models.usb import UsbMapping
from qemuconf.models.usb import UsbPort
from qemuconf.models.usb import UsbSpice


def test_render():
    assert usb.render(UsbSpice()) == "spice"
    assert usb.render(UsbSpice(usb3=True)) == "spice,usb3=1"
    assert usb.render(UsbDevice(id="046d:c52b", usb3=True)) == "host=046d:c52b,usb3=1"
    assert usb.render(UsbPort(id="1-4")) == "host=1-4"
    assert usb.render(UsbMapping(id="keyboard")) == "mapping=keyboard"


class TestParse:
    def test_kinds(self):
        assert usb.parse_entry("spice,usb3=1") == UsbSpice(usb3=True)
        assert usb.parse_entry("host=046d:c52b") == UsbDevice(id="046d:c52b", usb3=False)
        assert usb.parse_entry("host=1-4,usb3=1") == UsbPort(id="1-4", usb3=True)
        assert usb.parse_entry("mapping=keyboard") == UsbMapping(id="keyboard", usb3=False)

    def test_unknown_kind_is_skipped(self, caplog):
        usbs = usb.parse({"usb0": "spice", "usb1": "usb3=1"})
        assert list(usbs) == [UsbId(0)]
        assert "unknown kind" in caplog.text


class TestValidate:
    def test_valid(self):
        usb.validate(
            {
                0: UsbDevice(id="046d:c52b"),
                1: UsbPort(id="1-4"),
                2: UsbMapping(id="keyboard"),
                3: UsbSpice(),
            },
            None,
        )

    @pytest.mark.parametrize(
        "entry, error",
        [
            ("spice", UsbKindError),
            (UsbDevice(), UsbDeviceIdRequiredError),
            (UsbMapping(), UsbMappedIdRequiredError),
            (UsbPort(), UsbPortIdRequiredError),
            (UsbDevice(id="046dc52b"), UsbDeviceIdError),
            (UsbDevice(id="046dx:c52b"), UsbVendorIdError),
            (UsbDevice(id="046d:c52bb"), UsbProductIdError),
            (UsbPort(id="1:4"), UsbPortIdError),
            (UsbMapping(id="key.board"), MappingIdCharacterError),
        ],
    )
    def test_invalid(self, entry, error):
        with pytest.raises(error):
            usb.validate({0: entry}, None)

    def test_id_kept_from_current_of_same_kind(self):
        usb.validate({0: UsbDevice(usb3=True)}, {UsbId(0): UsbDevice(id="046d:c52b")})
        with pytest.raises(UsbDeviceIdRequiredError):
            usb.validate({0: UsbDevice(usb3=True)}, {UsbId(0): UsbPort(id="1-4")})

    def test_slot_range(self):
        with pytest.raises(UsbIdError):
            usb.validate({5: UsbSpice()}, None)


class TestDiff:
    current = {UsbId(0): UsbDevice(id="046d:c52b", usb3=False), UsbId(1): UsbSpice(usb3=False)}

    def test_update_never_needs_reboot(self):
        change = usb.diff({0: UsbDevice(usb3=True), 1: UsbSpice()}, self.current)
        assert change.set == {"usb0": "host=046d:c52b,usb3=1"}
        assert change.reboot is False

    def test_removed_slot(self):
        change = usb.diff({1: UsbSpice()}, self.current)
        assert change.delete == ["usb0"]
        assert change.reboot is False

    def test_self_diff_is_empty(self):
        assert usb.diff(self.current, self.current).is_empty()
