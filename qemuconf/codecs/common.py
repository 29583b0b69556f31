"""
Helpers shared by the entity codecs: reading scalars out of the wire mapping,
walking slotted collections and the resource mapping id grammar used by PCI
and USB devices.
"""

import logging
import re
from typing import Any
from typing import Callable
from typing import Dict
from typing import Iterator
from typing import Optional
from typing import Tuple
from typing import Type
from typing import TypeVar

from qemuconf.errors import MappingIdCharacterError
from qemuconf.errors import MappingIdStartError
from qemuconf.errors import MappingIdTooLongError
from qemuconf.errors import MappingIdTooShortError
from qemuconf.errors import ParseError
from qemuconf.errors import WireTypeError
from qemuconf.models.changes import EntityChange
from qemuconf.models.slots import SlotId

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=SlotId)
T = TypeVar("T")

_MAPPING_ID_REGEX = re.compile(r"^(\w|\d|_|-)+$", re.ASCII)


# ============================================================================
# Wire scalars
# ============================================================================


def wire_int(params: Dict[str, Any], key: str) -> Optional[int]:
    """
    Read an integer that the API may send as int, float or numeric string.

    :return: The value, or None when the key is absent
    """
    if key not in params:
        return None
    value = params[key]
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            try:
                return int(float(text))
            except ValueError:
                raise WireTypeError(f"{key} is not a number: {value!r}")
    raise WireTypeError(f"{key} has an unexpected type: {type(value).__name__}")


def wire_str(params: Dict[str, Any], key: str) -> Optional[str]:
    if key not in params:
        return None
    value = params[key]
    if isinstance(value, (dict, list)):
        raise WireTypeError(f"{key} has an unexpected type: {type(value).__name__}")
    return str(value)


def option_int(options: Dict[str, str], key: str, field: str) -> Optional[int]:
    """Read an integer option out of a parsed segment string."""
    if key not in options:
        return None
    try:
        return int(options[key])
    except ValueError:
        raise ParseError(f"{field} option {key} is not an integer: {options[key]!r}")


def slots_in(params: Dict[str, Any], slot_type: Type[S]) -> Iterator[Tuple[S, str]]:
    """Yield ``(slot, raw value)`` for every key of ``slot_type`` present in ``params``."""
    for slot_number in range(slot_type.maximum + 1):
        key = f"{slot_type.prefix}{slot_number}"
        if key in params:
            yield slot_type(slot_number), str(params[key])


# ============================================================================
# Slotted collections
# ============================================================================


def diff_slots(
    slot_type: Type[S],
    desired: Optional[Dict[S, T]],
    current: Optional[Dict[S, T]],
    diff_slot: Callable[[S, T, Optional[T]], EntityChange],
    is_deleted: Callable[[T], bool] = lambda entity: False,
    key: Callable[[S], str] = lambda slot: slot.key,
) -> EntityChange:
    """
    Diff a slotted collection slot by slot.

    A desired collection of None leaves every slot untouched. Otherwise a slot
    in ``current`` that is missing from ``desired``, or marked deleted, is
    removed. ``diff_slot`` receives the current entity of the same slot, or
    None when the slot is new.
    """
    change = EntityChange()
    if desired is None:
        return change
    wanted = {slot_type(slot): entity for slot, entity in desired.items()}
    existing = {slot_type(slot): entity for slot, entity in (current or {}).items()}
    for slot in sorted(wanted):
        entity = wanted[slot]
        if is_deleted(entity):
            if slot in existing:
                change.delete.append(key(slot))
            else:
                logger.debug("Slot %s is marked deleted but does not exist", key(slot))
            continue
        change.merge(diff_slot(slot, entity, existing.get(slot)))
    for slot in sorted(existing):
        if slot not in wanted:
            change.delete.append(key(slot))
    return change


# ============================================================================
# Resource mapping ids
# ============================================================================


def validate_mapping_id(kind: str, mapping_id: str) -> None:
    """
    :param kind: "pcie" or "usb", used in the error message
    :param mapping_id: Cluster resource mapping name
    """
    if len(mapping_id) < 2:
        raise MappingIdTooShortError(kind)
    if len(mapping_id) > 128:
        raise MappingIdTooLongError(kind)
    if not mapping_id[0].isascii() or not mapping_id[0].isalpha():
        raise MappingIdStartError(kind)
    if not _MAPPING_ID_REGEX.match(mapping_id):
        raise MappingIdCharacterError(kind)
