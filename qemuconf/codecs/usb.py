"""
USB passthrough codec.

``usb<N>`` holds one of ``host=046d:c52b`` (device), ``host=1-4`` (port),
``mapping=<id>`` or ``spice``, optionally followed by ``usb3=1``. USB is
hotplugged, no change here needs a restart.
"""

import logging
import re
from typing import Any
from typing import Dict
from typing import Optional

from qemuconf.codecs.common import diff_slots
from qemuconf.codecs.common import slots_in
from qemuconf.codecs.common import validate_mapping_id
from qemuconf.errors import UsbDeviceIdError
from qemuconf.errors import UsbDeviceIdRequiredError
from qemuconf.errors import UsbKindError
from qemuconf.errors import UsbMappedIdRequiredError
from qemuconf.errors import UsbPortIdError
from qemuconf.errors import UsbPortIdRequiredError
from qemuconf.errors import UsbProductIdError
from qemuconf.errors import UsbVendorIdError
from qemuconf.models.changes import EntityChange
from qemuconf.models.slots import UsbId
from qemuconf.models.usb import UsbDevice
from qemuconf.models.usb import UsbEntry
from qemuconf.models.usb import UsbMapping
from qemuconf.models.usb import UsbPort
from qemuconf.models.usb import UsbSpice
from qemuconf.product import ProductVersion
from qemuconf.segments import build_segments
from qemuconf.segments import check_unknown_options
from qemuconf.segments import parse_bool
from qemuconf.segments import parse_segments

logger = logging.getLogger(__name__)

_HEX_REGEX = re.compile(r"^[0-9A-Fa-f]{1,4}$")
_KNOWN_OPTIONS = ("host", "mapping", "usb3")

USB_KINDS = (UsbDevice, UsbMapping, UsbPort, UsbSpice)


def validate_device_id(device_id: str) -> None:
    """:param device_id: ``vendor:product`` in hexadecimal, e.g. "046d:c52b" """
    parts = device_id.split(":")
    if len(parts) != 2:
        raise UsbDeviceIdError()
    if not _HEX_REGEX.match(parts[0]):
        raise UsbVendorIdError()
    if not _HEX_REGEX.match(parts[1]):
        raise UsbProductIdError()


def validate_port_id(port_id: str) -> None:
    """:param port_id: ``bus-port``, e.g. "1-4" """
    parts = port_id.split("-")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        raise UsbPortIdError()


def merge(desired: UsbEntry, current: Optional[UsbEntry]) -> UsbEntry:
    if current is None or type(current) is not type(desired):
        return desired
    usb3 = desired.usb3 if desired.usb3 is not None else current.usb3
    if isinstance(desired, UsbSpice):
        return UsbSpice(usb3=usb3)
    return type(desired)(id=desired.id if desired.id is not None else current.id, usb3=usb3)


def render(usb: UsbEntry) -> str:
    usb3 = 1 if usb.usb3 else None
    if isinstance(usb, UsbSpice):
        return build_segments("spice", [("usb3", usb3)])
    if isinstance(usb, UsbMapping):
        return build_segments(None, [("mapping", usb.id or ""), ("usb3", usb3)])
    return build_segments(None, [("host", usb.id or ""), ("usb3", usb3)])


def parse_entry(raw: str, strict: bool = False) -> Optional[UsbEntry]:
    leading, options = parse_segments(raw)
    check_unknown_options("usb", options, _KNOWN_OPTIONS, strict)
    usb3 = parse_bool(options.get("usb3", "0"))
    if leading == "spice":
        return UsbSpice(usb3=usb3)
    if "mapping" in options:
        return UsbMapping(id=options["mapping"], usb3=usb3)
    if "host" in options:
        host = options["host"]
        if ":" in host:
            return UsbDevice(id=host, usb3=usb3)
        return UsbPort(id=host, usb3=usb3)
    logger.warning("Ignoring usb value of unknown kind: %s", raw)
    return None


# ============================================================================
# Codec
# ============================================================================


def validate_entry(desired: UsbEntry, current: Optional[UsbEntry]) -> None:
    if not isinstance(desired, USB_KINDS):
        raise UsbKindError()
    if desired.delete or isinstance(desired, UsbSpice):
        return
    same_kind = current is not None and type(current) is type(desired)
    if desired.id is None:
        if same_kind and current.id is not None:
            return
        if isinstance(desired, UsbDevice):
            raise UsbDeviceIdRequiredError()
        if isinstance(desired, UsbMapping):
            raise UsbMappedIdRequiredError()
        raise UsbPortIdRequiredError()
    if isinstance(desired, UsbDevice):
        validate_device_id(desired.id)
    elif isinstance(desired, UsbMapping):
        validate_mapping_id("usb", desired.id)
    else:
        validate_port_id(desired.id)


def validate(
    desired: Optional[Dict[UsbId, UsbEntry]],
    current: Optional[Dict[UsbId, UsbEntry]],
    version: Optional[ProductVersion] = None,
) -> None:
    if desired is None:
        return
    current = current or {}
    for slot, usb in desired.items():
        UsbId(slot)
        validate_entry(usb, current.get(slot))


def encode(usbs: Dict[UsbId, UsbEntry]) -> Dict[str, str]:
    return {UsbId(slot).key: render(usb) for slot, usb in sorted(usbs.items()) if not usb.delete}


def parse(params: Dict[str, Any], strict: bool = False) -> Optional[Dict[UsbId, UsbEntry]]:
    usbs = {}
    for slot, raw in slots_in(params, UsbId):
        usb = parse_entry(raw, strict)
        if usb is not None:
            usbs[slot] = usb
    return usbs or None


def _diff_entry(slot: UsbId, desired: UsbEntry, current: Optional[UsbEntry]) -> EntityChange:
    change = EntityChange()
    rendered = render(merge(desired, current))
    if current is None or rendered != render(current):
        change.set[slot.key] = rendered
    return change


def diff(
    desired: Optional[Dict[UsbId, UsbEntry]],
    current: Optional[Dict[UsbId, UsbEntry]],
    version: Optional[ProductVersion] = None,
) -> EntityChange:
    return diff_slots(UsbId, desired, current, _diff_entry, lambda usb: usb.delete)
