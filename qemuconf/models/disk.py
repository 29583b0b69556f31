"""
Disk slot variants.

A slot on any bus holds exactly one of the classes below. CD-ROMs have three
shapes of their own, so ``CdRom`` is a union too.
"""

from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Any
from typing import Dict
from typing import Iterator
from typing import Optional
from typing import Tuple
from typing import Type
from typing import Union

from qemuconf.models.slots import IdeSlot
from qemuconf.models.slots import SataSlot
from qemuconf.models.slots import ScsiSlot
from qemuconf.models.slots import SlotId
from qemuconf.models.slots import VirtioSlot

ASYNC_IO_MODES = ("native", "threads", "io_uring")
CACHE_MODES = ("none", "writethrough", "writeback", "unsafe", "directsync")
DISK_FORMATS = ("cow", "cloop", "qcow", "qcow2", "qed", "vmdk", "raw")
DISK_SIZE_MINIMUM = 4097


class DiskSyntax(Enum):
    """How the storage backend names volumes: ``100/vm-100-disk-0.raw`` or ``vm-100-disk-0``."""

    FILE = "file"
    VOLUME = "volume"


@dataclass(frozen=True)
class IopsLimit:
    burst: int = 0
    burst_duration: int = 0
    concurrent: int = 0


@dataclass(frozen=True)
class MbpsLimit:
    burst: float = 0.0
    concurrent: float = 0.0


@dataclass(frozen=True)
class IopsBandwidth:
    read: IopsLimit = field(default_factory=IopsLimit)
    write: IopsLimit = field(default_factory=IopsLimit)


@dataclass(frozen=True)
class MbpsBandwidth:
    read: MbpsLimit = field(default_factory=MbpsLimit)
    write: MbpsLimit = field(default_factory=MbpsLimit)


@dataclass(frozen=True)
class DiskBandwidth:
    iops: IopsBandwidth = field(default_factory=IopsBandwidth)
    mbps: MbpsBandwidth = field(default_factory=MbpsBandwidth)


@dataclass(frozen=True)
class CdRomEmpty:
    pass


@dataclass(frozen=True)
class CdRomIso:
    storage: str = ""
    file: str = ""
    # Reported by the API, setting it has no effect.
    size_kib: Optional[int] = None


@dataclass(frozen=True)
class CdRomPassthrough:
    pass


CdRom = Union[CdRomEmpty, CdRomIso, CdRomPassthrough]


@dataclass(frozen=True)
class CloudInitDisk:
    storage: str = ""
    format: str = "raw"


@dataclass(frozen=True)
class Disk:
    """
    A volume allocated on a storage.

    ``disk_id`` and ``linked_disk_id`` are read back from the API and only used
    to rebuild the volume name on update. ``emulate_ssd`` does not apply to the
    virtio bus, ``iothread`` and ``readonly`` only apply to scsi and virtio.
    """

    storage: str = ""
    size_kib: int = 0
    format: str = "raw"
    asyncio: str = ""
    backup: bool = False
    bandwidth: DiskBandwidth = field(default_factory=DiskBandwidth)
    cache: str = ""
    discard: bool = False
    emulate_ssd: bool = False
    iothread: bool = False
    readonly: bool = False
    replicate: bool = False
    serial: str = ""
    wwn: str = ""
    disk_id: Optional[int] = None
    linked_disk_id: Optional[int] = None
    syntax: DiskSyntax = DiskSyntax.FILE


@dataclass(frozen=True)
class Passthrough:
    """A host block device handed to the guest, e.g. ``/dev/disk/by-id/ata-...``."""

    file: str = ""
    asyncio: str = ""
    backup: bool = False
    bandwidth: DiskBandwidth = field(default_factory=DiskBandwidth)
    cache: str = ""
    discard: bool = False
    emulate_ssd: bool = False
    iothread: bool = False
    readonly: bool = False
    replicate: bool = False
    serial: str = ""
    wwn: str = ""
    # Reported by the API, setting it has no effect.
    size_kib: int = 0


DiskVariant = Union[CdRomEmpty, CdRomIso, CdRomPassthrough, CloudInitDisk, Disk, Passthrough]
CDROM_TYPES = (CdRomEmpty, CdRomIso, CdRomPassthrough)
DISK_VARIANT_TYPES = CDROM_TYPES + (CloudInitDisk, Disk, Passthrough)


@dataclass(frozen=True)
class QemuStorages:
    ide: Optional[Dict[IdeSlot, DiskVariant]] = None
    sata: Optional[Dict[SataSlot, DiskVariant]] = None
    scsi: Optional[Dict[ScsiSlot, DiskVariant]] = None
    virtio: Optional[Dict[VirtioSlot, DiskVariant]] = None

    def buses(self) -> Iterator[Tuple[str, Type[SlotId], Optional[Dict[Any, DiskVariant]]]]:
        """Yield ``(bus name, slot type, slots or None)`` in wire order."""
        yield "ide", IdeSlot, self.ide
        yield "sata", SataSlot, self.sata
        yield "scsi", ScsiSlot, self.scsi
        yield "virtio", VirtioSlot, self.virtio
