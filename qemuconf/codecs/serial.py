import logging
import re
from typing import Any
from typing import Dict
from typing import Optional

from qemuconf.codecs.common import diff_slots
from qemuconf.codecs.common import slots_in
from qemuconf.errors import SerialEmptyError
from qemuconf.errors import SerialExclusiveError
from qemuconf.errors import SerialPathError
from qemuconf.models.changes import EntityChange
from qemuconf.models.serial import SerialInterface
from qemuconf.models.slots import SerialId
from qemuconf.product import ProductVersion

logger = logging.getLogger(__name__)

_PATH_REGEX = re.compile(r"^/dev/.+$")


def render(port: SerialInterface) -> str:
    return "socket" if port.socket else port.path


def parse_port(raw: str) -> SerialInterface:
    if raw == "socket":
        return SerialInterface(socket=True)
    return SerialInterface(path=raw)


def validate_port(port: SerialInterface) -> None:
    if port.delete:
        return
    if port.path != "" and port.socket:
        raise SerialExclusiveError()
    if not port.socket:
        if port.path == "":
            raise SerialEmptyError()
        if not _PATH_REGEX.match(port.path):
            raise SerialPathError()


def validate(
    desired: Optional[Dict[SerialId, SerialInterface]],
    current: Optional[Dict[SerialId, SerialInterface]] = None,
    version: Optional[ProductVersion] = None,
) -> None:
    for slot, port in (desired or {}).items():
        SerialId(slot)
        validate_port(port)


def encode(ports: Dict[SerialId, SerialInterface]) -> Dict[str, str]:
    return {SerialId(slot).key: render(port) for slot, port in sorted(ports.items()) if not port.delete}


def parse(params: Dict[str, Any]) -> Optional[Dict[SerialId, SerialInterface]]:
    ports = {slot: parse_port(raw) for slot, raw in slots_in(params, SerialId)}
    return ports or None


def _diff_port(slot: SerialId, desired: SerialInterface, current: Optional[SerialInterface]) -> EntityChange:
    change = EntityChange()
    rendered = render(desired)
    if current is None or rendered != render(current):
        change.set[slot.key] = rendered
    return change


def diff(
    desired: Optional[Dict[SerialId, SerialInterface]],
    current: Optional[Dict[SerialId, SerialInterface]],
    version: Optional[ProductVersion] = None,
) -> EntityChange:
    """Serial ports cannot be hotplugged, any change needs a restart."""
    change = diff_slots(SerialId, desired, current, _diff_port, lambda port: port.delete)
    change.reboot = not change.is_empty()
    return change
