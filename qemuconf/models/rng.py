from dataclasses import dataclass
from typing import Optional

ENTROPY_SOURCES = ("/dev/random", "/dev/urandom", "/dev/hwrng")


@dataclass(frozen=True)
class VirtioRng:
    """
    ``limit`` is the amount of bytes the guest may read per ``period_ms``.
    """

    source: Optional[str] = None
    limit: Optional[int] = None
    period_ms: Optional[int] = None
    delete: bool = False
