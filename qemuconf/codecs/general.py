"""
Top level fields: ``name``, ``description``, ``pool`` and the ``iso`` shortcut.

Pool membership is not part of the config endpoint once the guest exists, so
on update a pool change is reported on its own instead of in the payload.
"""

import dataclasses
import logging
import re
from typing import Any
from typing import Dict
from typing import Optional

from qemuconf.codecs.common import wire_str
from qemuconf.errors import PoolNameCharacterError
from qemuconf.errors import PoolNameEmptyError
from qemuconf.errors import PoolNameLengthError
from qemuconf.models.changes import EntityChange
from qemuconf.models.config import QemuConfig
from qemuconf.models.disk import QemuStorages
from qemuconf.models.slots import IdeSlot
from qemuconf.product import ProductVersion

logger = logging.getLogger(__name__)

POOL_NAME_MAXIMUM = 1024
ISO_SLOT = IdeSlot(2)

_POOL_REGEX = re.compile(r"^[a-zA-Z0-9_-]+$")


def validate_pool_name(pool: str) -> None:
    if pool == "":
        raise PoolNameEmptyError()
    if len(pool) > POOL_NAME_MAXIMUM:
        raise PoolNameLengthError()
    if not _POOL_REGEX.match(pool):
        raise PoolNameCharacterError()


def validate(
    desired: QemuConfig,
    current: Optional[QemuConfig],
    version: Optional[ProductVersion] = None,
) -> None:
    """An empty pool is only allowed on update, where it takes the guest out of its pool."""
    if desired.pool is None:
        return
    if desired.pool == "" and current is not None:
        return
    validate_pool_name(desired.pool)


def apply_iso(config: QemuConfig, current_disks: Optional[QemuStorages] = None) -> Optional[QemuStorages]:
    """
    :return: The disks of ``config`` with ``iso`` placed on ide2, unless ide2
        is already set explicitly. When ``config`` leaves the ide bus unset the
        other current ide slots are kept as they are.
    """
    if config.iso is None:
        return config.disks
    disks = config.disks or QemuStorages()
    if disks.ide is not None and ISO_SLOT in disks.ide:
        logger.debug("ide2 is set explicitly, ignoring the iso shortcut")
        return disks
    if disks.ide is not None:
        ide = dict(disks.ide)
    elif current_disks is not None:
        ide = dict(current_disks.ide or {})
    else:
        ide = {}
    ide[ISO_SLOT] = config.iso
    return dataclasses.replace(disks, ide=ide)


def parse(params: Dict[str, Any]) -> Dict[str, Optional[str]]:
    description = wire_str(params, "description")
    if description is not None:
        description = description.strip()
    return {
        "name": wire_str(params, "name"),
        "description": description,
        "pool": wire_str(params, "pool"),
    }


def diff(
    desired: QemuConfig,
    current: Optional[QemuConfig],
    version: Optional[ProductVersion] = None,
) -> EntityChange:
    change = EntityChange()
    if current is None:
        for key in ("name", "description", "pool"):
            value = getattr(desired, key)
            if value:
                change.set[key] = value
        return change

    if desired.name and desired.name != current.name:
        change.set["name"] = desired.name
    if desired.description is not None:
        if desired.description == "":
            if current.description is not None:
                change.delete.append("description")
        elif desired.description != current.description:
            change.set["description"] = desired.description
    return change


def pool_change(desired: QemuConfig, current: Optional[QemuConfig]) -> Optional[str]:
    """
    :return: The pool the existing guest has to move to, "" to leave its pool,
        or None when nothing changes. Always None on create.
    """
    if current is None or desired.pool is None:
        return None
    if desired.pool == (current.pool or ""):
        return None
    return desired.pool
