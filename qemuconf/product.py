from dataclasses import dataclass
from typing import Any
from typing import Dict
from typing import Union

from qemuconf.errors import ProductVersionError


@dataclass(frozen=True, order=True)
class ProductVersion:
    """
    Proxmox VE version, e.g. 8.1.4.

    Codecs receive it as an explicit argument to gate fields that only exist
    on newer releases.
    """

    major: int = 0
    minor: int = 0
    patch: int = 0

    @classmethod
    def parse(cls, raw: Union[str, "ProductVersion"]) -> "ProductVersion":
        """
        :param raw: "major[.minor[.patch]]", extra qualifiers after a dash are ignored
        :return: ProductVersion
        """
        if isinstance(raw, ProductVersion):
            return raw
        text = str(raw).strip().split("-", 1)[0]
        parts = text.split(".")
        if text == "" or len(parts) > 3 or not all(part.isdigit() for part in parts):
            raise ProductVersionError(f"invalid product version: {raw!r}")
        numbers = [int(part) for part in parts] + [0] * (3 - len(parts))
        return cls(*numbers)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ProductVersion":
        """Build from the body of GET /version, which carries a "version" key."""
        return cls.parse(data.get("version", ""))

    def at_least(self, other: "ProductVersion") -> bool:
        return self >= other

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


VERSION_8 = ProductVersion(8, 0, 0)
