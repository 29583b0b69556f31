"""
TPM state codec.

``tpmstate0`` is a small volume created as ``<storage>:1,version=v2.0``. The
volume can not be converted, so a version change deletes it and the next
plan creates it again. A storage change is carried out as a disk move.
"""

import logging
from typing import Any
from typing import Dict
from typing import Optional

from qemuconf.codecs.common import wire_str
from qemuconf.errors import TpmStorageError
from qemuconf.errors import TpmVersionError
from qemuconf.errors import TpmVersionRequiredError
from qemuconf.models.changes import DiskMove
from qemuconf.models.changes import EntityChange
from qemuconf.models.tpm import TPM_VERSIONS
from qemuconf.models.tpm import TpmState
from qemuconf.product import ProductVersion
from qemuconf.segments import parse_segments

logger = logging.getLogger(__name__)

TPM_KEY = "tpmstate0"

_VERSION_ALIASES = {
    "v1.2": "v1.2",
    "1.2": "v1.2",
    "v2.0": "v2.0",
    "2.0": "v2.0",
    "v2": "v2.0",
    "2": "v2.0",
}


def canonical_version(version: Optional[str]) -> str:
    """:return: "v1.2", "v2.0" or "" for anything else"""
    if version is None:
        return ""
    return _VERSION_ALIASES.get(version, "")


def validate(
    desired: TpmState,
    current: Optional[TpmState],
    version: Optional[ProductVersion] = None,
) -> None:
    if desired.delete:
        return
    if desired.storage == "":
        raise TpmStorageError()
    if desired.version is None:
        if current is None:
            raise TpmVersionRequiredError()
    elif canonical_version(desired.version) not in TPM_VERSIONS:
        raise TpmVersionError()


def encode(tpm: TpmState) -> Dict[str, str]:
    if tpm.delete:
        return {}
    return {TPM_KEY: f"{tpm.storage}:1,version={canonical_version(tpm.version)}"}


def parse(params: Dict[str, Any]) -> Optional[TpmState]:
    raw = wire_str(params, TPM_KEY)
    if raw is None:
        return None
    leading, options = parse_segments(raw)
    storage = ""
    if leading is not None and ":" in leading:
        storage = leading.split(":", 1)[0]
    return TpmState(storage=storage, version=options.get("version"))


def diff(
    desired: Optional[TpmState],
    current: Optional[TpmState],
    version: Optional[ProductVersion] = None,
) -> EntityChange:
    change = EntityChange()
    if desired is None:
        return change
    if current is None:
        change.set.update(encode(desired))
    elif desired.delete:
        change.delete.append(TPM_KEY)
    elif (
        desired.version is not None
        and canonical_version(desired.version) != canonical_version(current.version)
    ):
        logger.info("TPM version changes from %s to %s, the TPM state is removed", current.version, desired.version)
        change.delete.append(TPM_KEY)
    change.reboot = not change.is_empty()
    return change


def move(desired: Optional[TpmState], current: Optional[TpmState]) -> Optional[DiskMove]:
    """:return: The move of the TPM volume to a new storage, if one is needed"""
    if desired is None or current is None or desired.delete:
        return None
    if desired.version is not None and canonical_version(desired.version) != canonical_version(current.version):
        return None
    if desired.storage != current.storage:
        return DiskMove(disk=TPM_KEY, storage=desired.storage)
    return None
