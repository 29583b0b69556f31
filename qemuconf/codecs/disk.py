"""
Disk codec for the ide, sata, scsi and virtio buses.

Every slot key (``ide2``, ``scsi0``) holds one variant:

* CD-ROM: ``none,media=cdrom``, ``cdrom,media=cdrom`` or
  ``local:iso/debian.iso,media=cdrom``
* cloud-init drive: ``local-lvm:cloudinit,format=raw``
* disk: ``local-lvm:32,backup=0`` on create, ``local-lvm:vm-100-disk-0,...``
  once it exists
* passthrough: ``/dev/disk/by-id/ata-...,backup=0``

A disk can not grow through the config endpoint. Growth and storage moves are
listed separately so the caller can issue the resize and move calls.
"""

import dataclasses
import logging
import re
from typing import Any
from typing import Callable
from typing import Dict
from typing import Iterator
from typing import List
from typing import Optional
from typing import Tuple
from typing import Union

from qemuconf.codecs.common import diff_slots
from qemuconf.codecs.common import option_int
from qemuconf.codecs.common import slots_in
from qemuconf.errors import CloudInitDiskDuplicateError
from qemuconf.errors import CloudInitDiskStorageError
from qemuconf.errors import DiskAsyncIOError
from qemuconf.errors import DiskBusOptionError
from qemuconf.errors import DiskCacheError
from qemuconf.errors import DiskFileError
from qemuconf.errors import DiskFormatError
from qemuconf.errors import DiskIopsBurstError
from qemuconf.errors import DiskIopsConcurrentError
from qemuconf.errors import DiskMbpsBurstError
from qemuconf.errors import DiskMbpsConcurrentError
from qemuconf.errors import DiskSerialCharacterError
from qemuconf.errors import DiskSerialLengthError
from qemuconf.errors import DiskSizeError
from qemuconf.errors import DiskStorageError
from qemuconf.errors import DiskVariantError
from qemuconf.errors import DiskWwnError
from qemuconf.errors import IsoFileError
from qemuconf.errors import IsoStorageError
from qemuconf.errors import ParseError
from qemuconf.models.changes import DiskMove
from qemuconf.models.changes import DiskResize
from qemuconf.models.changes import EntityChange
from qemuconf.models.disk import ASYNC_IO_MODES
from qemuconf.models.disk import CACHE_MODES
from qemuconf.models.disk import CDROM_TYPES
from qemuconf.models.disk import CdRomEmpty
from qemuconf.models.disk import CdRomIso
from qemuconf.models.disk import CdRomPassthrough
from qemuconf.models.disk import CloudInitDisk
from qemuconf.models.disk import Disk
from qemuconf.models.disk import DISK_FORMATS
from qemuconf.models.disk import DISK_SIZE_MINIMUM
from qemuconf.models.disk import DISK_VARIANT_TYPES
from qemuconf.models.disk import DiskBandwidth
from qemuconf.models.disk import DiskSyntax
from qemuconf.models.disk import DiskVariant
from qemuconf.models.disk import IopsBandwidth
from qemuconf.models.disk import IopsLimit
from qemuconf.models.disk import MbpsBandwidth
from qemuconf.models.disk import MbpsLimit
from qemuconf.models.disk import Passthrough
from qemuconf.models.disk import QemuStorages
from qemuconf.models.slots import SlotId
from qemuconf.product import ProductVersion
from qemuconf.segments import build_segments
from qemuconf.segments import check_unknown_options
from qemuconf.segments import parse_bool
from qemuconf.segments import parse_segments
from qemuconf.units import float_to_trimmed
from qemuconf.units import GIBIBYTE
from qemuconf.units import parse_size
from qemuconf.units import round_mbps

logger = logging.getLogger(__name__)

SERIAL_MAXIMUM = 60

_SERIAL_REGEX = re.compile(r"^[a-zA-Z0-9_-]*$")
_WWN_REGEX = re.compile(r"^0x[0-9A-Fa-f]{16}$")
_KNOWN_OPTIONS = (
    "aio",
    "backup",
    "cache",
    "discard",
    "format",
    "iops_rd",
    "iops_rd_max",
    "iops_rd_max_length",
    "iops_wr",
    "iops_wr_max",
    "iops_wr_max_length",
    "iothread",
    "mbps_rd",
    "mbps_rd_max",
    "mbps_wr",
    "mbps_wr_max",
    "media",
    "replicate",
    "ro",
    "serial",
    "size",
    "ssd",
    "wwn",
)

# Buses that support an option. Options missing here apply to every bus.
_BUS_OPTIONS = {
    "emulate_ssd": ("ide", "sata", "scsi"),
    "iothread": ("scsi", "virtio"),
    "readonly": ("scsi", "virtio"),
}

BlockDevice = Union[Disk, Passthrough]


def bus_of(slot: SlotId) -> str:
    return slot.prefix


# ============================================================================
# Rendering
# ============================================================================


def render_cdrom(cdrom: DiskVariant) -> str:
    if isinstance(cdrom, CdRomPassthrough):
        return "cdrom,media=cdrom"
    if isinstance(cdrom, CdRomIso):
        return f"{cdrom.storage}:iso/{cdrom.file},media=cdrom"
    return "none,media=cdrom"


def render_cloudinit(disk: CloudInitDisk) -> str:
    return f"{disk.storage}:cloudinit,format={disk.format}"


def volume_name(
    disk: Disk,
    vmid: int,
    linked_vmid: int,
    current_storage: str,
    current_format: str,
    syntax: DiskSyntax,
) -> str:
    """
    Rebuild the name of an existing volume.

    ``storage:100/vm-100-disk-0.raw`` and ``storage:vm-100-disk-0``, or for a
    linked clone that stays on its storage
    ``storage:110/base-110-disk-1.raw/100/vm-100-disk-0.raw`` and
    ``storage:base-110-disk-1/vm-100-disk-0``.
    """
    disk_id = disk.disk_id if disk.disk_id is not None else 0
    name = f"vm-{vmid}-disk-{disk_id}"
    if syntax is DiskSyntax.FILE:
        name = f"{vmid}/{name}.{disk.format}"
        if (
            disk.linked_disk_id is not None
            and disk.storage == current_storage
            and disk.format == current_format
        ):
            name = f"{linked_vmid}/base-{linked_vmid}-disk-{disk.linked_disk_id}.{disk.format}/{name}"
    elif disk.linked_disk_id is not None and disk.storage == current_storage:
        name = f"base-{linked_vmid}-disk-{disk.linked_disk_id}/{name}"
    return f"{disk.storage}:{name}"


def create_token(disk: Disk) -> str:
    """
    Whole GiB sizes are allocated directly, any other size is allocated as the
    smallest possible volume and resized afterwards.
    """
    if disk.size_kib % GIBIBYTE == 0:
        return f"{disk.storage}:{disk.size_kib // GIBIBYTE}"
    return f"{disk.storage}:0.001"


def _mbps(value: float) -> Optional[str]:
    return float_to_trimmed(value, 2) if value else None


def _options(device: BlockDevice, bus: str, create: bool) -> List[Tuple[str, Any]]:
    iops = device.bandwidth.iops
    mbps = device.bandwidth.mbps
    disk_format = None
    if create and isinstance(device, Disk) and device.format and device.format != "raw":
        disk_format = device.format
    return [
        ("aio", device.asyncio or None),
        ("backup", None if device.backup else 0),
        ("cache", device.cache or None),
        ("discard", "on" if device.discard else None),
        ("format", disk_format),
        ("iops_rd", iops.read.concurrent or None),
        ("iops_rd_max", iops.read.burst or None),
        ("iops_rd_max_length", iops.read.burst_duration or None),
        ("iops_wr", iops.write.concurrent or None),
        ("iops_wr_max", iops.write.burst or None),
        ("iops_wr_max_length", iops.write.burst_duration or None),
        ("iothread", 1 if device.iothread and bus in _BUS_OPTIONS["iothread"] else None),
        ("mbps_rd", _mbps(mbps.read.concurrent)),
        ("mbps_rd_max", _mbps(mbps.read.burst)),
        ("mbps_wr", _mbps(mbps.write.concurrent)),
        ("mbps_wr_max", _mbps(mbps.write.burst)),
        ("replicate", None if device.replicate else 0),
        ("ro", 1 if device.readonly and bus in _BUS_OPTIONS["readonly"] else None),
        ("serial", device.serial or None),
        ("ssd", 1 if device.emulate_ssd and bus in _BUS_OPTIONS["emulate_ssd"] else None),
        ("wwn", device.wwn or None),
    ]


def render_disk(
    disk: Disk,
    bus: str,
    create: bool = True,
    vmid: int = 0,
    linked_vmid: int = 0,
    current_storage: str = "",
    current_format: str = "",
    syntax: DiskSyntax = DiskSyntax.FILE,
) -> str:
    if create:
        leading = create_token(disk)
    else:
        leading = volume_name(disk, vmid, linked_vmid, current_storage, current_format, syntax)
    return build_segments(leading, _options(disk, bus, create))


def render_passthrough(passthrough: Passthrough, bus: str) -> str:
    return build_segments(passthrough.file, _options(passthrough, bus, False))


def render(variant: DiskVariant, bus: str) -> str:
    """Render ``variant`` as it is sent when its slot is created."""
    if isinstance(variant, CDROM_TYPES):
        return render_cdrom(variant)
    if isinstance(variant, CloudInitDisk):
        return render_cloudinit(variant)
    if isinstance(variant, Disk):
        return render_disk(variant, bus)
    return render_passthrough(variant, bus)


# ============================================================================
# Parsing
# ============================================================================


def _split_id(name: str) -> Optional[int]:
    """The number after the last dash of ``vm-100-disk-3``."""
    parts = name.split("-")
    if len(parts) > 1 and parts[-1].isdigit():
        return int(parts[-1])
    return None


def parse_volume(volume: str) -> Tuple[Optional[int], str, str, Optional[int], DiskSyntax, Optional[int]]:
    """
    Decompose a volume reference.

    :param volume: e.g. "local:110/base-110-disk-1.qcow2/100/vm-100-disk-0.qcow2"
    :return: (disk id, storage, format, linked disk id, syntax, linked vmid)
    """
    parts = volume.split(":")
    storage = parts[0]
    disk_id = None
    linked_disk_id = None
    linked_vmid = None
    syntax = DiskSyntax.FILE
    if len(parts) != 2:
        return disk_id, storage, "raw", linked_disk_id, syntax, linked_vmid

    path_parts = parts[1].split("/")
    if len(path_parts) == 1:
        syntax = DiskSyntax.VOLUME
    elif len(path_parts) == 2 and not path_parts[0].isdigit():
        # base-110-disk-1/vm-100-disk-0
        base = path_parts[0].split(".")[0].split("-")
        if len(base) > 1:
            if base[1].isdigit():
                linked_vmid = int(base[1])
            linked_disk_id = _split_id(path_parts[0].split(".")[0])
            syntax = DiskSyntax.VOLUME
    elif len(path_parts) == 4:
        # 110/base-110-disk-1.raw/100/vm-100-disk-0.raw
        if path_parts[0].isdigit():
            linked_vmid = int(path_parts[0])
        linked_disk_id = _split_id(path_parts[1].split(".")[0])

    name_and_format = path_parts[-1].split(".")
    disk_id = _split_id(name_and_format[0])
    disk_format = name_and_format[1] if len(name_and_format) == 2 else "raw"
    return disk_id, storage, disk_format, linked_disk_id, syntax, linked_vmid


def _parse_cdrom(leading: str, options: Dict[str, str]) -> Optional[DiskVariant]:
    if leading == "none":
        return CdRomEmpty()
    if leading == "cdrom":
        return CdRomPassthrough()
    if ":" not in leading:
        return None
    storage, _, path = leading.partition(":")
    path_parts = path.split("/")
    if len(path_parts) == 1:
        return CloudInitDisk(storage=storage, format="raw")
    if len(path_parts) != 2:
        return None
    file_name = path_parts[1]
    extension = file_name.split(".")[-1] if "." in file_name else ""
    if extension == "iso":
        size = parse_size(options["size"]) if "size" in options else None
        return CdRomIso(storage=storage, file=file_name, size_kib=size)
    if extension:
        return CloudInitDisk(storage=storage, format=extension)
    return None


def _parse_bandwidth(options: Dict[str, str]) -> DiskBandwidth:
    def iops(direction: str) -> IopsLimit:
        return IopsLimit(
            burst=option_int(options, f"iops_{direction}_max", "disk") or 0,
            burst_duration=option_int(options, f"iops_{direction}_max_length", "disk") or 0,
            concurrent=option_int(options, f"iops_{direction}", "disk") or 0,
        )

    def mbps(direction: str) -> MbpsLimit:
        burst = options.get(f"mbps_{direction}_max")
        concurrent = options.get(f"mbps_{direction}")
        return MbpsLimit(
            burst=round_mbps(burst) if burst is not None else 0.0,
            concurrent=round_mbps(concurrent) if concurrent is not None else 0.0,
        )

    return DiskBandwidth(
        iops=IopsBandwidth(read=iops("rd"), write=iops("wr")),
        mbps=MbpsBandwidth(read=mbps("rd"), write=mbps("wr")),
    )


def _block_options(options: Dict[str, str]) -> Dict[str, Any]:
    return {
        "asyncio": options.get("aio", ""),
        "backup": parse_bool(options.get("backup", "1")),
        "bandwidth": _parse_bandwidth(options),
        "cache": options.get("cache", ""),
        "discard": options.get("discard") == "on",
        "emulate_ssd": parse_bool(options.get("ssd", "0")),
        "iothread": parse_bool(options.get("iothread", "0")),
        "readonly": parse_bool(options.get("ro", "0")),
        "replicate": parse_bool(options.get("replicate", "1")),
        "serial": options.get("serial", ""),
        "wwn": options.get("wwn", ""),
    }


def parse_variant(raw: str, strict: bool = False) -> Tuple[Optional[DiskVariant], Optional[int]]:
    """
    Decode one slot value.

    :return: (variant or None when the value is not understood, linked vmid
        when the disk is a linked clone)
    """
    leading, options = parse_segments(raw)
    check_unknown_options("disk", options, _KNOWN_OPTIONS, strict)
    if leading is None:
        return None, None
    if "media" in options:
        if options["media"] != "cdrom":
            return None, None
        return _parse_cdrom(leading, options), None

    size = parse_size(options["size"]) if "size" in options else 0
    if leading.startswith("/"):
        return Passthrough(file=leading, size_kib=size, **_block_options(options)), None
    disk_id, storage, disk_format, linked_disk_id, syntax, linked_vmid = parse_volume(leading)
    disk = Disk(
        storage=storage,
        size_kib=size,
        format=disk_format,
        disk_id=disk_id,
        linked_disk_id=linked_disk_id,
        syntax=syntax,
        **_block_options(options),
    )
    return disk, linked_vmid


def parse(params: Dict[str, Any], strict: bool = False) -> Tuple[Optional[QemuStorages], int]:
    """
    :return: (disks or None when the guest has none, vmid of the template the
        guest is a linked clone of or 0)
    """
    linked_vmid = 0
    buses: Dict[str, Dict[SlotId, DiskVariant]] = {}
    for bus, slot_type, _ in QemuStorages().buses():
        slots = {}
        for slot, raw in slots_in(params, slot_type):
            try:
                variant, linked = parse_variant(raw, strict)
            except ParseError:
                if strict:
                    raise
                logger.warning("Ignoring %s, its value could not be parsed: %s", slot.key, raw)
                continue
            if variant is None:
                logger.debug("Ignoring %s, its value is not a known disk variant: %s", slot.key, raw)
                continue
            if linked:
                linked_vmid = linked
            slots[slot] = variant
        if slots:
            buses[bus] = slots
    if not buses:
        return None, linked_vmid
    return QemuStorages(**buses), linked_vmid


# ============================================================================
# Validation
# ============================================================================


def _validate_bandwidth(bandwidth: DiskBandwidth) -> None:
    for limit in (bandwidth.mbps.read, bandwidth.mbps.write):
        if limit.burst != 0 and limit.burst < 1:
            raise DiskMbpsBurstError()
        if limit.concurrent != 0 and limit.concurrent < 1:
            raise DiskMbpsConcurrentError()
    for limit in (bandwidth.iops.read, bandwidth.iops.write):
        if limit.burst != 0 and limit.burst < 10:
            raise DiskIopsBurstError()
        if limit.concurrent != 0 and limit.concurrent < 10:
            raise DiskIopsConcurrentError()


def _validate_block_device(device: BlockDevice, bus: str) -> None:
    if device.asyncio not in ("",) + ASYNC_IO_MODES:
        raise DiskAsyncIOError()
    _validate_bandwidth(device.bandwidth)
    if device.cache not in ("",) + CACHE_MODES:
        raise DiskCacheError()
    if not _SERIAL_REGEX.match(device.serial):
        raise DiskSerialCharacterError()
    if len(device.serial) > SERIAL_MAXIMUM:
        raise DiskSerialLengthError()
    if device.wwn != "" and not _WWN_REGEX.match(device.wwn):
        raise DiskWwnError()
    for option, buses in _BUS_OPTIONS.items():
        if getattr(device, option) and bus not in buses:
            raise DiskBusOptionError(option, bus)


def validate_variant(variant: DiskVariant, bus: str) -> None:
    if not isinstance(variant, DISK_VARIANT_TYPES):
        raise DiskVariantError()
    if isinstance(variant, CdRomIso):
        if variant.file == "":
            raise IsoFileError()
        if variant.storage == "":
            raise IsoStorageError()
    elif isinstance(variant, CloudInitDisk):
        if variant.format not in DISK_FORMATS:
            raise DiskFormatError()
        if variant.storage == "":
            raise CloudInitDiskStorageError()
    elif isinstance(variant, Disk):
        _validate_block_device(variant, bus)
        if variant.format not in DISK_FORMATS:
            raise DiskFormatError()
        if variant.size_kib < DISK_SIZE_MINIMUM:
            raise DiskSizeError()
        if variant.storage == "":
            raise DiskStorageError()
    elif isinstance(variant, Passthrough):
        _validate_block_device(variant, bus)
        if variant.file == "":
            raise DiskFileError()


def _slots(disks: Optional[QemuStorages]) -> Iterator[Tuple[str, SlotId, DiskVariant]]:
    if disks is None:
        return
    for bus, slot_type, slots in disks.buses():
        for slot, variant in sorted((slots or {}).items()):
            yield bus, slot_type(slot), variant


def validate(
    desired: Optional[QemuStorages],
    current: Optional[QemuStorages] = None,
    version: Optional[ProductVersion] = None,
) -> None:
    cloudinit_drives = 0
    for bus, _, variant in _slots(desired):
        validate_variant(variant, bus)
        if isinstance(variant, CloudInitDisk):
            cloudinit_drives += 1
            if cloudinit_drives > 1:
                raise CloudInitDiskDuplicateError()


# ============================================================================
# Diff
# ============================================================================


def encode(disks: QemuStorages) -> Dict[str, str]:
    return {slot.key: render(variant, bus) for bus, slot, variant in _slots(disks)}


def cloudinit_slot(disks: Optional[QemuStorages]) -> Optional[str]:
    """:return: Key of the first cloud-init drive, in bus order"""
    for _, slot, variant in _slots(disks):
        if isinstance(variant, CloudInitDisk):
            return slot.key
    return None


def _same_kind(desired: DiskVariant, current: Optional[DiskVariant]) -> bool:
    if current is None:
        return False
    if isinstance(desired, CDROM_TYPES):
        return isinstance(current, CDROM_TYPES)
    return type(desired) is type(current)


def _render_update(
    desired: DiskVariant,
    current: DiskVariant,
    bus: str,
    vmid: int,
    linked_vmid: int,
) -> Tuple[str, str]:
    """:return: (desired, current) rendered for an update of the same kind"""
    if isinstance(desired, Disk):
        if desired.size_kib < current.size_kib:
            # Shrinking detaches the current volume and allocates a new one.
            return render_disk(desired, bus), ""
        # A new storage or format rewrites the volume token, mark_changes lists the move.
        desired = dataclasses.replace(
            desired,
            disk_id=current.disk_id,
            linked_disk_id=current.linked_disk_id,
        )
        context = (vmid, linked_vmid, current.storage, current.format, current.syntax)
        return (
            render_disk(desired, bus, False, *context),
            render_disk(current, bus, False, *context),
        )
    return render(desired, bus), render(current, bus)


def _slot_differ(vmid: int, linked_vmid: int) -> Callable[[SlotId, DiskVariant, Optional[DiskVariant]], EntityChange]:
    def diff_slot(slot: SlotId, desired: DiskVariant, current: Optional[DiskVariant]) -> EntityChange:
        change = EntityChange()
        bus = bus_of(slot)
        if not _same_kind(desired, current):
            change.set[slot.key] = render(desired, bus)
        else:
            rendered, rendered_current = _render_update(desired, current, bus, vmid, linked_vmid)
            if rendered != rendered_current:
                change.set[slot.key] = rendered
        if change.set and bus == "ide":
            cdrom_swap = isinstance(desired, CDROM_TYPES) and isinstance(current, CDROM_TYPES)
            change.reboot = not cdrom_swap
        return change

    return diff_slot


def diff(
    desired: Optional[QemuStorages],
    current: Optional[QemuStorages],
    version: Optional[ProductVersion] = None,
    vmid: int = 0,
    linked_vmid: int = 0,
) -> EntityChange:
    """
    Diff every bus ``desired`` sets, a bus left None is not touched.

    ``vmid`` and ``linked_vmid`` are needed to rebuild the volume names of
    existing disks.
    """
    change = EntityChange()
    if desired is None:
        return change
    if current is None:
        change.set.update(encode(desired))
        return change

    current_buses = {bus: slots for bus, _, slots in current.buses()}
    diff_slot = _slot_differ(vmid, linked_vmid)
    for bus, slot_type, slots in desired.buses():
        change.merge(diff_slots(slot_type, slots, current_buses[bus], diff_slot))

    wanted_cloudinit = cloudinit_slot(desired)
    current_cloudinit = cloudinit_slot(current)
    if (
        wanted_cloudinit is not None
        and current_cloudinit is not None
        and wanted_cloudinit != current_cloudinit
        and current_cloudinit not in change.set
        and current_cloudinit not in change.delete
    ):
        logger.debug("Cloud-init drive moves from %s to %s", current_cloudinit, wanted_cloudinit)
        change.delete.append(current_cloudinit)
    if change.delete:
        change.reboot = True
    return change


def _disk_pairs(
    desired: Optional[QemuStorages],
    current: Optional[QemuStorages],
) -> Iterator[Tuple[SlotId, Disk, Optional[DiskVariant]]]:
    """Yield every desired disk with the current variant of its slot."""
    current_buses = {bus: slots or {} for bus, _, slots in (current or QemuStorages()).buses()}
    for bus, slot, variant in _slots(desired):
        if isinstance(variant, Disk):
            existing = {slot.__class__(key): value for key, value in current_buses[bus].items()}
            yield slot, variant, existing.get(slot)


def mark_changes(
    desired: Optional[QemuStorages],
    current: Optional[QemuStorages],
) -> Tuple[List[DiskResize], List[DiskMove]]:
    """
    List the existing disks that have to grow or move.

    :return: (resizes, moves)
    """
    resizes: List[DiskResize] = []
    moves: List[DiskMove] = []
    for slot, disk, existing in _disk_pairs(desired, current):
        if not isinstance(existing, Disk) or disk.size_kib < existing.size_kib:
            continue
        if disk.size_kib > existing.size_kib:
            resizes.append(DiskResize(disk=slot.key, size_kib=disk.size_kib))
        if disk.storage != existing.storage or disk.format != existing.format:
            moves.append(
                DiskMove(
                    disk=slot.key,
                    storage=disk.storage,
                    format=disk.format if disk.format != existing.format else None,
                ),
            )
    return resizes, moves


def select_initial_resize(
    desired: Optional[QemuStorages],
    current: Optional[QemuStorages],
) -> List[DiskResize]:
    """
    List the disks allocated by this change whose size is not a whole number
    of GiB. They are created at the minimum size and have to be resized.
    """
    resizes = []
    for slot, disk, existing in _disk_pairs(desired, current):
        if disk.size_kib % GIBIBYTE == 0:
            continue
        if not isinstance(existing, Disk) or disk.size_kib < existing.size_kib:
            resizes.append(DiskResize(disk=slot.key, size_kib=disk.size_kib))
    return resizes
