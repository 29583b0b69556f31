from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Memory:
    """
    Memory sizes are in MiB.

    ``minimum_capacity_mib`` is the balloon target. ``shares`` only matters
    while the balloon can shrink the guest, i.e. minimum differs from capacity.
    """

    capacity_mib: Optional[int] = None
    minimum_capacity_mib: Optional[int] = None
    shares: Optional[int] = None
