from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Dict
from typing import List
from typing import Optional


@dataclass
class EntityChange:
    """
    Wire changes produced by diffing one category.

    :param set: wire keys to send with their new value
    :param delete: wire keys to remove
    :param reboot: the change only takes effect after the guest restarts
    """

    set: Dict[str, Any] = field(default_factory=dict)
    delete: List[str] = field(default_factory=list)
    reboot: bool = False

    def merge(self, other: "EntityChange") -> "EntityChange":
        self.set.update(other.set)
        for key in other.delete:
            if key not in self.delete:
                self.delete.append(key)
        self.reboot = self.reboot or other.reboot
        return self

    def is_empty(self) -> bool:
        return not self.set and not self.delete


@dataclass(frozen=True)
class DiskResize:
    """Grow ``disk`` to ``size_kib`` with the resize call."""

    disk: str
    size_kib: int


@dataclass(frozen=True)
class DiskMove:
    """Move ``disk`` to ``storage``, converting it when ``format`` is set."""

    disk: str
    storage: str
    format: Optional[str] = None
