"""
Checks a desired configuration before anything is diffed.

Every category present in the desired configuration is validated against the
matching category of the current configuration, in a fixed order. The first
broken rule raises its own ``ValidationError`` subclass.
"""

import logging
from typing import Any
from typing import Optional

from qemuconf.codecs import agent
from qemuconf.codecs import cloudinit
from qemuconf.codecs import cpu
from qemuconf.codecs import disk
from qemuconf.codecs import general
from qemuconf.codecs import memory
from qemuconf.codecs import network
from qemuconf.codecs import pci
from qemuconf.codecs import rng
from qemuconf.codecs import serial
from qemuconf.codecs import tags
from qemuconf.codecs import tpm
from qemuconf.codecs import usb
from qemuconf.models.config import QemuConfig
from qemuconf.product import ProductVersion

logger = logging.getLogger(__name__)

# Categories checked only when the desired config carries them.
_OPTIONAL_CATEGORIES = (
    ("tags", tags.validate),
    ("agent", agent.validate),
    ("cpu", cpu.validate),
    ("memory", memory.validate),
    ("cloudinit", cloudinit.validate),
)

# Slotted collections, their validators skip a None desired value.
_SLOTTED_CATEGORIES = (
    ("networks", network.validate),
    ("pci_devices", pci.validate),
    ("usbs", usb.validate),
    ("serials", serial.validate),
)


def _category(config: Optional[QemuConfig], field: str) -> Any:
    if config is None:
        return None
    return getattr(config, field)


def validate_config(
    desired: QemuConfig,
    current: Optional[QemuConfig],
    version: ProductVersion,
) -> None:
    """
    :param desired: Configuration to apply
    :param current: Configuration of the existing guest, None when it is created
    :param version: Product version of the target node
    """
    general.validate(desired, current, version)
    for field, validate in _OPTIONAL_CATEGORIES:
        value = getattr(desired, field)
        if value is not None:
            validate(value, _category(current, field), version)

    current_disks = _category(current, "disks")
    disks = general.apply_iso(desired, current_disks)
    if disks is not None:
        disk.validate(disks, current_disks, version)

    for field, validate in _SLOTTED_CATEGORIES:
        validate(getattr(desired, field), _category(current, field), version)

    if desired.tpm is not None:
        tpm.validate(desired.tpm, _category(current, "tpm"), version)
    if desired.rng is not None:
        rng.validate(desired.rng, _category(current, "rng"), version)
    logger.debug("Configuration of guest %s is valid", desired.vmid or "(new)")
