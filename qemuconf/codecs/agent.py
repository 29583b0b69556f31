"""
QEMU guest agent codec: ``agent=1,freeze-fs-on-backup=0,type=virtio``.
"""

import logging
from typing import Any
from typing import Dict
from typing import Optional

from qemuconf.codecs.common import wire_str
from qemuconf.errors import AgentTypeError
from qemuconf.models.agent import AGENT_TYPES
from qemuconf.models.agent import GuestAgent
from qemuconf.models.changes import EntityChange
from qemuconf.product import ProductVersion
from qemuconf.segments import bool_to_int
from qemuconf.segments import parse_bool
from qemuconf.segments import parse_segments

logger = logging.getLogger(__name__)


def _pick(desired: Any, current: Optional[GuestAgent], field: str) -> Any:
    if desired is not None or current is None:
        return desired
    return getattr(current, field)


def render(agent: GuestAgent, current: Optional[GuestAgent] = None) -> str:
    """
    Render the ``agent`` value, options unset in ``agent`` are taken from
    ``current``. A type of "" leaves the choice to the API.
    """
    enable = _pick(agent.enable, current, "enable")
    freeze = _pick(agent.freeze, current, "freeze")
    fs_trim = _pick(agent.fs_trim, current, "fs_trim")
    agent_type = _pick(agent.type, current, "type")

    parts = [str(bool_to_int(bool(enable)))]
    if freeze is not None:
        parts.append(f"freeze-fs-on-backup={bool_to_int(freeze)}")
    if fs_trim is not None:
        parts.append(f"fstrim_cloned_disks={bool_to_int(fs_trim)}")
    if agent_type:
        parts.append(f"type={agent_type.lower()}")
    return ",".join(parts)


def validate(
    desired: GuestAgent,
    current: Optional[GuestAgent] = None,
    version: Optional[ProductVersion] = None,
) -> None:
    if desired.type is not None and desired.type.lower() not in AGENT_TYPES:
        raise AgentTypeError()


def encode(agent: GuestAgent) -> Dict[str, str]:
    return {"agent": render(agent)}


def parse(params: Dict[str, Any]) -> Optional[GuestAgent]:
    raw = wire_str(params, "agent")
    if raw is None:
        return None
    leading, options = parse_segments(raw)
    enable = options.get("enabled", leading if leading is not None else "0")
    freeze = options.get("freeze-fs-on-backup")
    fs_trim = options.get("fstrim_cloned_disks")
    return GuestAgent(
        enable=parse_bool(enable),
        type=options.get("type"),
        freeze=parse_bool(freeze) if freeze is not None else None,
        fs_trim=parse_bool(fs_trim) if fs_trim is not None else None,
    )


def diff(
    desired: Optional[GuestAgent],
    current: Optional[GuestAgent],
    version: Optional[ProductVersion] = None,
) -> EntityChange:
    change = EntityChange()
    if desired is None:
        return change
    rendered = render(desired, current)
    if current is None or rendered != render(current):
        change.set["agent"] = rendered
    return change
