from dataclasses import dataclass
from typing import Optional

AGENT_TYPES = ("isa", "virtio", "")


@dataclass(frozen=True)
class GuestAgent:
    enable: Optional[bool] = None
    type: Optional[str] = None
    freeze: Optional[bool] = None
    fs_trim: Optional[bool] = None
