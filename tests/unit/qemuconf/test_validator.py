"""
Tests for validate_config.
"""
import pytest

from qemuconf.errors import CloudInitUpgradePackagesError
from qemuconf.errors import CpuCoresRequiredError
from qemuconf.errors import DiskSizeError
from qemuconf.errors import IsoFileError
from qemuconf.errors import NetworkBridgeRequiredError
from qemuconf.errors import PoolNameEmptyError
from qemuconf.errors import SerialEmptyError
from qemuconf.errors import TagEmptyError
from qemuconf.errors import TpmVersionRequiredError
from qemuconf.models.cloudinit import CloudInit
from qemuconf.models.config import QemuConfig
from qemuconf.models.cpu import Cpu
from qemuconf.models.disk import CdRomIso
from qemuconf.models.disk import Disk
from qemuconf.models.disk import QemuStorages
from qemuconf.models.memory import Memory
from qemuconf.models.network import NetworkInterface
from qemuconf.models.serial import SerialInterface
from qemuconf.models.tpm import TpmState
from qemuconf.product import ProductVersion
from qemuconf.validator import validate_config

V7 = ProductVersion.parse("7.4.0")
V8 = ProductVersion.parse("8.0.0")


def test_valid_create():
    desired = QemuConfig(
        name="web01",
        cpu=Cpu(cores=2),
        memory=Memory(capacity_mib=2048),
        iso=CdRomIso(storage="local", file="debian.iso"),
        networks={0: NetworkInterface(model="virtio", bridge="vmbr0")},
    )
    validate_config(desired, None, V8)


def test_empty_config_is_valid():
    validate_config(QemuConfig(), None, V8)
    validate_config(QemuConfig(), QemuConfig(name="web01"), V8)


@pytest.mark.parametrize(
    "desired, error",
    [
        (QemuConfig(pool=""), PoolNameEmptyError),
        (QemuConfig(tags=["prod", ""]), TagEmptyError),
        (QemuConfig(cpu=Cpu(sockets=1)), CpuCoresRequiredError),
        (QemuConfig(iso=CdRomIso(storage="local")), IsoFileError),
        (QemuConfig(disks=QemuStorages(scsi={0: Disk(storage="local", size_kib=1)})), DiskSizeError),
        (QemuConfig(networks={0: NetworkInterface(model="virtio")}), NetworkBridgeRequiredError),
        (QemuConfig(serials={0: SerialInterface()}), SerialEmptyError),
        (QemuConfig(tpm=TpmState(storage="local-lvm")), TpmVersionRequiredError),
    ],
)
def test_invalid_create(desired, error):
    with pytest.raises(error):
        validate_config(desired, None, V8)


def test_current_fills_required_fields():
    current = QemuConfig(
        cpu=Cpu(cores=2),
        networks={0: NetworkInterface(model="virtio", bridge="vmbr0")},
        tpm=TpmState(storage="local-lvm", version="v2.0"),
    )
    desired = QemuConfig(
        pool="",
        cpu=Cpu(sockets=2),
        networks={0: NetworkInterface(firewall=True)},
        tpm=TpmState(storage="local-lvm"),
    )
    validate_config(desired, current, V8)


def test_first_broken_rule_wins():
    with pytest.raises(PoolNameEmptyError):
        validate_config(QemuConfig(pool="", tags=[""]), None, V8)


def test_product_version_is_passed_down():
    desired = QemuConfig(cloudinit=CloudInit(upgrade_packages=True))
    validate_config(desired, None, V8)
    with pytest.raises(CloudInitUpgradePackagesError):
        validate_config(desired, None, V7)
