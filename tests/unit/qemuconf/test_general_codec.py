import pytest

from qemuconf.codecs import general
from qemuconf.errors import PoolNameCharacterError
from qemuconf.errors import PoolNameEmptyError
from qemuconf.errors import PoolNameLengthError
from qemuconf.models.config import QemuConfig
from qemuconf.models.disk import CdRomEmpty
from qemuconf.models.disk import CdRomIso
from qemuconf.models.disk import CloudInitDisk
from qemuconf.models.disk import Disk
from qemuconf.models.disk import QemuStorages
from qemuconf.models.slots import IdeSlot
from qemuconf.models.slots import ScsiSlot

ISO = CdRomIso(storage="local", file="debian.iso")


class TestPool:
    @pytest.mark.parametrize(
        "pool, error",
        [
            ("", PoolNameEmptyError),
            ("a" * 1025, PoolNameLengthError),
            ("my pool", PoolNameCharacterError),
        ],
    )
    def test_invalid(self, pool, error):
        with pytest.raises(error):
            general.validate_pool_name(pool)

    def test_empty_pool_only_on_update(self):
        with pytest.raises(PoolNameEmptyError):
            general.validate(QemuConfig(pool=""), None)
        general.validate(QemuConfig(pool=""), QemuConfig(pool="prod"))
        general.validate(QemuConfig(pool="prod-1_a"), None)

    def test_pool_change(self):
        current = QemuConfig(pool="prod")
        assert general.pool_change(QemuConfig(pool="dev"), current) == "dev"
        assert general.pool_change(QemuConfig(pool=""), current) == ""
        assert general.pool_change(QemuConfig(pool="prod"), current) is None
        assert general.pool_change(QemuConfig(), current) is None
        assert general.pool_change(QemuConfig(pool=""), QemuConfig()) is None
        assert general.pool_change(QemuConfig(pool="dev"), None) is None


class TestApplyIso:
    def test_without_iso(self):
        disks = QemuStorages(scsi={ScsiSlot(0): Disk(storage="local", size_kib=8192)})
        assert general.apply_iso(QemuConfig(disks=disks)) is disks

    def test_iso_on_ide2(self):
        assert general.apply_iso(QemuConfig(iso=ISO)) == QemuStorages(ide={IdeSlot(2): ISO})

    def test_explicit_ide2_wins(self):
        disks = QemuStorages(ide={IdeSlot(2): CdRomEmpty()})
        assert general.apply_iso(QemuConfig(iso=ISO, disks=disks)) == disks

    def test_keeps_current_ide_slots(self):
        current = QemuStorages(ide={IdeSlot(2): CdRomEmpty(), IdeSlot(3): CloudInitDisk(storage="local")})
        disks = general.apply_iso(QemuConfig(iso=ISO), current)
        assert disks.ide == {IdeSlot(2): ISO, IdeSlot(3): CloudInitDisk(storage="local")}
        assert disks.scsi is None


def test_parse():
    params = {"name": "web01", "description": "  front end\n", "pool": "prod"}
    assert general.parse(params) == {"name": "web01", "description": "front end", "pool": "prod"}
    assert general.parse({}) == {"name": None, "description": None, "pool": None}


class TestDiff:
    def test_create(self):
        change = general.diff(QemuConfig(name="web01", description="", pool="prod"), None)
        assert change.set == {"name": "web01", "pool": "prod"}

    def test_update(self):
        current = QemuConfig(name="web01", description="old", pool="prod")
        change = general.diff(QemuConfig(name="web02", description="new", pool="dev"), current)
        # The pool is reported through pool_change.
        assert change.set == {"name": "web02", "description": "new"}

    def test_clear_description(self):
        assert general.diff(QemuConfig(description=""), QemuConfig(description="old")).delete == ["description"]
        assert general.diff(QemuConfig(description=""), QemuConfig()).is_empty()
