import logging
from typing import Any
from typing import Dict
from typing import Optional

from qemuconf.codecs.common import wire_int
from qemuconf.errors import MemoryBalloonMaximumError
from qemuconf.errors import MemoryCapacityMaximumError
from qemuconf.errors import MemoryCapacityMinimumError
from qemuconf.errors import MemoryMinimumGreaterThanCapacityError
from qemuconf.errors import MemoryNoCapacityError
from qemuconf.errors import MemorySharesMaximumError
from qemuconf.errors import MemorySharesWithoutBallooningError
from qemuconf.models.changes import EntityChange
from qemuconf.models.memory import Memory
from qemuconf.product import ProductVersion

logger = logging.getLogger(__name__)

CAPACITY_MAXIMUM = 4178944
SHARES_MAXIMUM = 50000


def validate(
    desired: Memory,
    current: Optional[Memory],
    version: Optional[ProductVersion] = None,
) -> None:
    """
    Check ``desired`` against the capacity and balloon the guest ends up with
    once the values missing from ``desired`` are taken from ``current``.
    """
    eventual_capacity = 0
    eventual_minimum = 0
    if desired.minimum_capacity_mib is not None:
        if desired.minimum_capacity_mib > CAPACITY_MAXIMUM:
            raise MemoryBalloonMaximumError()
        if (
            desired.capacity_mib is not None
            and desired.minimum_capacity_mib > desired.capacity_mib
        ):
            raise MemoryMinimumGreaterThanCapacityError()
        eventual_minimum = desired.minimum_capacity_mib
        eventual_capacity = eventual_minimum
    elif current is not None and current.minimum_capacity_mib is not None:
        eventual_minimum = current.minimum_capacity_mib

    if desired.capacity_mib is not None:
        if desired.capacity_mib < 1:
            raise MemoryCapacityMinimumError()
        if desired.capacity_mib > CAPACITY_MAXIMUM:
            raise MemoryCapacityMaximumError()
        eventual_capacity = desired.capacity_mib
    elif current is not None and current.capacity_mib is not None:
        eventual_capacity = current.capacity_mib

    if eventual_capacity == 0:
        raise MemoryNoCapacityError()

    if desired.shares is not None:
        if desired.shares > SHARES_MAXIMUM:
            raise MemorySharesMaximumError()
        if desired.shares > 0 and eventual_capacity == eventual_minimum:
            raise MemorySharesWithoutBallooningError()


def encode(memory: Memory) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    if memory.capacity_mib is not None:
        params["memory"] = memory.capacity_mib
    if memory.minimum_capacity_mib is not None:
        params["balloon"] = memory.minimum_capacity_mib
        if memory.capacity_mib is None:
            params["memory"] = memory.minimum_capacity_mib
    if memory.shares is not None and memory.shares > 0:
        params["shares"] = memory.shares
    return params


def parse(params: Dict[str, Any]) -> Optional[Memory]:
    if not any(key in params for key in ("memory", "balloon", "shares")):
        return None
    return Memory(
        capacity_mib=wire_int(params, "memory"),
        minimum_capacity_mib=wire_int(params, "balloon"),
        shares=wire_int(params, "shares"),
    )


def _delete_shares(change: EntityChange, current: Memory) -> None:
    if current.shares is not None:
        change.delete.append("shares")


def diff(
    desired: Memory,
    current: Optional[Memory],
    version: Optional[ProductVersion] = None,
) -> EntityChange:
    """
    Only shrinking the capacity needs a restart, growing it is hotplugged.

    A current balloon above a lowered capacity is clamped to the capacity,
    shares are dropped with it since ballooning is then off.
    """
    if current is None:
        return EntityChange(set=encode(desired))

    change = EntityChange()
    if desired.capacity_mib is not None:
        if desired.capacity_mib != current.capacity_mib:
            change.set["memory"] = desired.capacity_mib
            if current.capacity_mib is not None and desired.capacity_mib < current.capacity_mib:
                change.reboot = True
        if (
            desired.minimum_capacity_mib is None
            and current.minimum_capacity_mib is not None
            and current.minimum_capacity_mib > desired.capacity_mib
        ):
            change.set["balloon"] = desired.capacity_mib
            _delete_shares(change, current)
            return change

    if desired.minimum_capacity_mib is not None:
        if desired.minimum_capacity_mib != current.minimum_capacity_mib:
            change.set["balloon"] = desired.minimum_capacity_mib
        if desired.minimum_capacity_mib == 0:
            _delete_shares(change, current)
            return change

    if desired.shares is not None:
        if desired.shares == 0:
            _delete_shares(change, current)
        elif desired.shares != current.shares:
            change.set["shares"] = desired.shares
    return change
