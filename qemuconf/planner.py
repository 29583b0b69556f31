"""
Whole-configuration entry points.

``plan`` validates a desired configuration against the current one and turns
the per-category diffs into the payload of a single create or update call,
plus the follow-up disk operations the config endpoint cannot perform.
``parse_config`` decodes the body returned by the config endpoint.
"""

import logging
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import Union

from qemuconf.codecs import agent
from qemuconf.codecs import cloudinit
from qemuconf.codecs import cpu
from qemuconf.codecs import disk
from qemuconf.codecs import general
from qemuconf.codecs import memory
from qemuconf.codecs import network
from qemuconf.codecs import pci
from qemuconf.codecs import rng
from qemuconf.codecs import serial
from qemuconf.codecs import tags
from qemuconf.codecs import tpm
from qemuconf.codecs import usb
from qemuconf.codecs.common import wire_int
from qemuconf.models.changes import DiskMove
from qemuconf.models.changes import DiskResize
from qemuconf.models.changes import EntityChange
from qemuconf.models.config import QemuConfig
from qemuconf.models.disk import CdRomIso
from qemuconf.product import ProductVersion
from qemuconf.settings import check_settings
from qemuconf.settings import default_product_version
from qemuconf.settings import strict_parsing
from qemuconf.validator import validate_config

logger = logging.getLogger(__name__)


@dataclass
class ChangePlan:
    """
    Everything needed to move a guest to its desired configuration.

    :param payload: Body of the create or update call. On update it carries
        a comma-separated "delete" key when wire keys have to be removed.
    :param delete: Wire keys removed by the update
    :param reboot_required: The update only fully applies after a restart
    :param resize: Existing disks to grow with the resize call
    :param initial_resize: Disks allocated at the minimum size that have to be
        resized to their real size right after the call
    :param move: Disks and TPM state to migrate to another storage
    :param pool: Pool the existing guest moves to, "" to leave its pool
    """

    payload: Dict[str, Any] = field(default_factory=dict)
    delete: List[str] = field(default_factory=list)
    reboot_required: bool = False
    resize: List[DiskResize] = field(default_factory=list)
    initial_resize: List[DiskResize] = field(default_factory=list)
    move: List[DiskMove] = field(default_factory=list)
    pool: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.payload or self.resize or self.initial_resize or self.move or self.pool is not None)


@dataclass(frozen=True)
class ParsedConfig:
    """
    A decoded guest configuration with the ids needed to rebuild volume names.

    :param linked_vmid: Template the guest was linked-cloned from, 0 when none
    """

    config: QemuConfig
    vmid: int = 0
    linked_vmid: int = 0


def _category(config: Optional[QemuConfig], name: str) -> Any:
    if config is None:
        return None
    return getattr(config, name)


def _diff_categories(
    desired: QemuConfig,
    current: Optional[QemuConfig],
    version: ProductVersion,
) -> EntityChange:
    change = EntityChange()
    change.merge(general.diff(desired, current, version))
    change.merge(tags.diff(desired.tags, _category(current, "tags"), version))
    change.merge(agent.diff(desired.agent, _category(current, "agent"), version))
    if desired.cpu is not None:
        change.merge(cpu.diff(desired.cpu, _category(current, "cpu"), version))
    if desired.memory is not None:
        change.merge(memory.diff(desired.memory, _category(current, "memory"), version))
    if desired.cloudinit is not None:
        change.merge(cloudinit.diff(desired.cloudinit, _category(current, "cloudinit"), version))

    vmid = desired.vmid or _category(current, "vmid") or 0
    linked_vmid = desired.linked_vmid or _category(current, "linked_vmid") or 0
    current_disks = _category(current, "disks")
    change.merge(
        disk.diff(
            general.apply_iso(desired, current_disks),
            current_disks,
            version,
            vmid=vmid,
            linked_vmid=linked_vmid,
        ),
    )

    change.merge(network.diff(desired.networks, _category(current, "networks"), version))
    change.merge(pci.diff(desired.pci_devices, _category(current, "pci_devices"), version))
    change.merge(usb.diff(desired.usbs, _category(current, "usbs"), version))
    change.merge(serial.diff(desired.serials, _category(current, "serials"), version))
    change.merge(tpm.diff(desired.tpm, _category(current, "tpm"), version))
    change.merge(rng.diff(desired.rng, _category(current, "rng"), version))
    return change


def plan(
    desired: QemuConfig,
    current: Optional[QemuConfig] = None,
    version: Union[str, ProductVersion, None] = None,
) -> ChangePlan:
    """
    Validate ``desired`` and compute the changes that move ``current`` to it.

    :param desired: Configuration to apply
    :param current: Configuration of the existing guest, None to create one
    :param version: Product version of the target node, defaults to the
        configured default version
    :return: ChangePlan
    """
    if version is None:
        check_settings()
        version = default_product_version()
    version = ProductVersion.parse(version)
    validate_config(desired, current, version)

    change = _diff_categories(desired, current, version)
    current_disks = _category(current, "disks")
    desired_disks = general.apply_iso(desired, current_disks)

    result = ChangePlan(
        payload=dict(change.set),
        initial_resize=disk.select_initial_resize(desired_disks, current_disks),
    )
    if current is None:
        # A guest that does not exist yet has nothing to restart.
        logger.info(
            "Planned creation of guest %s with %d keys",
            desired.vmid or "(new)",
            len(result.payload),
        )
        return result

    result.delete = list(change.delete)
    if result.delete:
        result.payload["delete"] = ",".join(result.delete)
    result.reboot_required = change.reboot
    result.resize, result.move = disk.mark_changes(desired_disks, current_disks)
    tpm_move = tpm.move(desired.tpm, current.tpm)
    if tpm_move is not None:
        result.move.append(tpm_move)
    result.pool = general.pool_change(desired, current)
    logger.info(
        "Planned update of guest %s: %d keys set, %d deleted, reboot required: %s",
        desired.vmid or current.vmid or "(unknown)",
        len(change.set),
        len(result.delete),
        result.reboot_required,
    )
    return result


def parse_config(wire: Dict[str, Any], vmid: int = 0) -> ParsedConfig:
    """
    Decode the body of GET /nodes/{node}/qemu/{vmid}/config.

    :param wire: Config keys as returned by the API
    :param vmid: Id of the guest, also read from a "vmid" key when present
    :return: ParsedConfig
    """
    check_settings()
    strict = strict_parsing()
    vmid = vmid or wire_int(wire, "vmid") or 0
    disks, linked_vmid = disk.parse(wire, strict)
    iso = None
    if disks is not None and disks.ide is not None:
        ide2 = disks.ide.get(general.ISO_SLOT)
        if isinstance(ide2, CdRomIso):
            iso = ide2
    top_level = general.parse(wire)
    config = QemuConfig(
        vmid=vmid,
        linked_vmid=linked_vmid,
        name=top_level["name"],
        description=top_level["description"],
        pool=top_level["pool"],
        tags=tags.parse(wire),
        iso=iso,
        agent=agent.parse(wire),
        cpu=cpu.parse(wire, strict),
        memory=memory.parse(wire),
        cloudinit=cloudinit.parse(wire),
        disks=disks,
        networks=network.parse(wire, strict),
        pci_devices=pci.parse(wire, strict),
        usbs=usb.parse(wire, strict),
        serials=serial.parse(wire),
        tpm=tpm.parse(wire),
        rng=rng.parse(wire, strict),
    )
    logger.debug("Parsed configuration of guest %s", vmid)
    return ParsedConfig(config=config, vmid=vmid, linked_vmid=linked_vmid)
