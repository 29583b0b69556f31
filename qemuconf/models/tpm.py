from dataclasses import dataclass
from typing import Optional

TPM_VERSIONS = ("v1.2", "v2.0")


@dataclass(frozen=True)
class TpmState:
    storage: str = ""
    version: Optional[str] = None
    delete: bool = False
