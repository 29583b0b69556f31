"""
PCI passthrough codec.

One ``hostpci<N>`` key per device. The value starts with either a cluster
resource mapping (``mapping=gpu0``) or a host address (``0000:03:00.1``),
followed by the options, e.g. ``0000:03:00,pcie=1,x-vga=1,rombar=0``.
"""

import logging
import re
from typing import Any
from typing import Dict
from typing import Optional
from typing import Type

from qemuconf.codecs.common import diff_slots
from qemuconf.codecs.common import slots_in
from qemuconf.codecs.common import validate_mapping_id
from qemuconf.errors import PciAddressBusError
from qemuconf.errors import PciAddressBusLengthError
from qemuconf.errors import PciAddressDeviceError
from qemuconf.errors import PciAddressDeviceLengthError
from qemuconf.errors import PciAddressDomainError
from qemuconf.errors import PciAddressDomainLengthError
from qemuconf.errors import PciAddressFunctionError
from qemuconf.errors import PciAddressFunctionRangeError
from qemuconf.errors import PciAddressMissingBusError
from qemuconf.errors import PciAddressMissingDeviceError
from qemuconf.errors import PciDeviceIdError
from qemuconf.errors import PciKindError
from qemuconf.errors import PciMappedIdRequiredError
from qemuconf.errors import PciRawIdRequiredError
from qemuconf.errors import PciSubDeviceIdError
from qemuconf.errors import PciSubVendorIdError
from qemuconf.errors import PciValidationError
from qemuconf.errors import PciVendorIdError
from qemuconf.models.changes import EntityChange
from qemuconf.models.pci import PciDevice
from qemuconf.models.pci import PciMapping
from qemuconf.models.pci import PciRaw
from qemuconf.models.slots import PciId
from qemuconf.product import ProductVersion
from qemuconf.segments import build_segments
from qemuconf.segments import check_unknown_options
from qemuconf.segments import parse_bool
from qemuconf.segments import parse_segments

logger = logging.getLogger(__name__)

_HEX_REGEX = re.compile(r"^[0-9A-Fa-f]+$")
_KNOWN_OPTIONS = (
    "device-id",
    "host",
    "mapping",
    "pcie",
    "rombar",
    "sub-device-id",
    "sub-vendor-id",
    "vendor-id",
    "x-vga",
)

# (field, wire key, error) for the hexadecimal ids, in wire order.
_HEX_IDS = (
    ("vendor_id", "vendor-id", PciVendorIdError),
    ("device_id", "device-id", PciDeviceIdError),
    ("sub_vendor_id", "sub-vendor-id", PciSubVendorIdError),
    ("sub_device_id", "sub-device-id", PciSubDeviceIdError),
)
_FIELDS = ("id", "pcie", "primary_gpu", "rom_bar") + tuple(field for field, _, _ in _HEX_IDS)


def format_hex_id(value: str) -> str:
    """``10DE`` and ``0x10de`` both render as ``0x10de``."""
    value = value.lower()
    if value.startswith("0x"):
        return value
    return "0x" + value


def validate_hex_id(value: str, error: Type[PciValidationError]) -> None:
    if value == "":
        return
    digits = value[2:] if value.startswith("0x") else value
    if not _is_hex(digits) or int(digits, 16) > 0xFFFF:
        raise error()


def _is_hex(value: str) -> bool:
    return _HEX_REGEX.match(value) is not None


def validate_pci_address(address: str) -> None:
    """
    Check a host address of the form ``dddd:bb:dd[.f]``.

    :param address: e.g. "0000:03:00.1"
    """
    parts = address.split(":")
    if len(parts) < 2:
        raise PciAddressMissingBusError()
    if len(parts) < 3:
        raise PciAddressMissingDeviceError()
    if len(parts[0]) != 4:
        raise PciAddressDomainLengthError()
    if not _is_hex(parts[0]):
        raise PciAddressDomainError()
    if len(parts[1]) != 2:
        raise PciAddressBusLengthError()
    if not _is_hex(parts[1]):
        raise PciAddressBusError()
    device_and_function = parts[2].split(".")
    if len(device_and_function[0]) != 2:
        raise PciAddressDeviceLengthError()
    if not _is_hex(device_and_function[0]):
        raise PciAddressDeviceError()
    if len(device_and_function) == 2:
        if not device_and_function[1].isdigit():
            raise PciAddressFunctionError()
        if int(device_and_function[1]) > 7:
            raise PciAddressFunctionRangeError()


def merge(desired: PciDevice, current: Optional[PciDevice]) -> PciDevice:
    """Fill unset fields from ``current`` when both are of the same kind."""
    if current is None or type(current) is not type(desired):
        return desired
    values = {}
    for field in _FIELDS:
        value = getattr(desired, field)
        values[field] = value if value is not None else getattr(current, field)
    return type(desired)(**values)


def render(device: PciDevice) -> str:
    if isinstance(device, PciMapping):
        leading = None
        pairs = [("mapping", device.id or "")]
    else:
        leading = device.id or ""
        pairs = []
    pairs += [
        ("pcie", 1 if device.pcie else None),
        ("x-vga", 1 if device.primary_gpu else None),
        ("rombar", 0 if device.rom_bar is False else None),
    ]
    for field, key, _ in _HEX_IDS:
        value = getattr(device, field)
        pairs.append((key, format_hex_id(value) if value else None))
    return build_segments(leading, pairs)


def parse_device(raw: str, strict: bool = False) -> PciDevice:
    leading, options = parse_segments(raw)
    check_unknown_options("pci device", options, _KNOWN_OPTIONS, strict)
    values: Dict[str, Any] = {
        "pcie": parse_bool(options.get("pcie", "0")),
        "primary_gpu": parse_bool(options.get("x-vga", "0")),
        "rom_bar": parse_bool(options.get("rombar", "1")),
    }
    for field, key, _ in _HEX_IDS:
        values[field] = options.get(key)
    if leading is None and "mapping" in options:
        return PciMapping(id=options["mapping"], **values)
    return PciRaw(id=leading if leading is not None else options.get("host"), **values)


# ============================================================================
# Codec
# ============================================================================


def validate_device(desired: PciDevice, current: Optional[PciDevice]) -> None:
    if not isinstance(desired, (PciMapping, PciRaw)):
        raise PciKindError()
    if desired.delete:
        return
    same_kind = current is not None and type(current) is type(desired)
    if isinstance(desired, PciMapping):
        if desired.id is not None:
            validate_mapping_id("pcie", desired.id)
        elif not same_kind or current.id is None:
            raise PciMappedIdRequiredError()
    else:
        if desired.id is not None:
            validate_pci_address(desired.id)
        elif not same_kind or current.id is None:
            raise PciRawIdRequiredError()
    for field, _, error in _HEX_IDS:
        value = getattr(desired, field)
        if value is not None:
            validate_hex_id(value, error)


def validate(
    desired: Optional[Dict[PciId, PciDevice]],
    current: Optional[Dict[PciId, PciDevice]],
    version: Optional[ProductVersion] = None,
) -> None:
    if desired is None:
        return
    current = current or {}
    for slot, device in desired.items():
        PciId(slot)
        validate_device(device, current.get(slot))


def encode(devices: Dict[PciId, PciDevice]) -> Dict[str, str]:
    return {
        PciId(slot).key: render(device)
        for slot, device in sorted(devices.items())
        if not device.delete
    }


def parse(params: Dict[str, Any], strict: bool = False) -> Optional[Dict[PciId, PciDevice]]:
    devices = {slot: parse_device(raw, strict) for slot, raw in slots_in(params, PciId)}
    return devices or None


def _diff_device(slot: PciId, desired: PciDevice, current: Optional[PciDevice]) -> EntityChange:
    change = EntityChange()
    rendered = render(merge(desired, current))
    if current is None or rendered != render(current):
        change.set[slot.key] = rendered
    return change


def diff(
    desired: Optional[Dict[PciId, PciDevice]],
    current: Optional[Dict[PciId, PciDevice]],
    version: Optional[ProductVersion] = None,
) -> EntityChange:
    """Passthrough devices are only attached at boot, any change needs a restart."""
    change = diff_slots(PciId, desired, current, _diff_device, lambda device: device.delete)
    change.reboot = not change.is_empty()
    return change
