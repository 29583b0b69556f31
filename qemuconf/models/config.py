from dataclasses import dataclass
from typing import Dict
from typing import List
from typing import Optional

from qemuconf.models.agent import GuestAgent
from qemuconf.models.cloudinit import CloudInit
from qemuconf.models.cpu import Cpu
from qemuconf.models.disk import CdRomIso
from qemuconf.models.disk import QemuStorages
from qemuconf.models.memory import Memory
from qemuconf.models.network import NetworkInterface
from qemuconf.models.pci import PciDevice
from qemuconf.models.rng import VirtioRng
from qemuconf.models.serial import SerialInterface
from qemuconf.models.slots import NetworkId
from qemuconf.models.slots import PciId
from qemuconf.models.slots import SerialId
from qemuconf.models.slots import UsbId
from qemuconf.models.tpm import TpmState
from qemuconf.models.usb import UsbEntry


@dataclass(frozen=True)
class QemuConfig:
    """
    Configuration of one QEMU guest.

    Every category is None when unspecified. A present value, even an empty
    one, is the desired state for that category.

    ``vmid`` and ``linked_vmid`` are only needed for updates of existing disks,
    where the volume names embed them. ``iso`` is a shortcut for a CD-ROM on
    ``ide2``.
    """

    vmid: int = 0
    linked_vmid: int = 0
    name: Optional[str] = None
    description: Optional[str] = None
    pool: Optional[str] = None
    tags: Optional[List[str]] = None
    iso: Optional[CdRomIso] = None
    agent: Optional[GuestAgent] = None
    cpu: Optional[Cpu] = None
    memory: Optional[Memory] = None
    cloudinit: Optional[CloudInit] = None
    disks: Optional[QemuStorages] = None
    networks: Optional[Dict[NetworkId, NetworkInterface]] = None
    pci_devices: Optional[Dict[PciId, PciDevice]] = None
    usbs: Optional[Dict[UsbId, UsbEntry]] = None
    serials: Optional[Dict[SerialId, SerialInterface]] = None
    tpm: Optional[TpmState] = None
    rng: Optional[VirtioRng] = None
