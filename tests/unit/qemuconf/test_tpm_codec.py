"""
Tests for the TPM state codec.
"""
import pytest

from qemuconf.codecs import tpm
from qemuconf.errors import TpmStorageError
from qemuconf.errors import TpmVersionError
from qemuconf.errors import TpmVersionRequiredError
from qemuconf.models.changes import DiskMove
from qemuconf.models.tpm import TpmState

CURRENT = TpmState(storage="local-lvm", version="v2.0")


class TestValidate:
    def test_storage_required(self):
        with pytest.raises(TpmStorageError):
            tpm.validate(TpmState(version="v2.0"), None)
        with pytest.raises(TpmStorageError):
            tpm.validate(TpmState(), CURRENT)

    def test_version_required_on_create(self):
        with pytest.raises(TpmVersionRequiredError):
            tpm.validate(TpmState(storage="local-lvm"), None)
        tpm.validate(TpmState(storage="local-lvm"), CURRENT)

    def test_version_aliases(self):
        for version in ("v1.2", "1.2", "v2.0", "2.0", "v2", "2"):
            tpm.validate(TpmState(storage="local-lvm", version=version), None)
        with pytest.raises(TpmVersionError):
            tpm.validate(TpmState(storage="local-lvm", version="3"), None)

    def test_delete_needs_nothing(self):
        tpm.validate(TpmState(delete=True), CURRENT)


def test_encode():
    assert tpm.encode(TpmState(storage="local-lvm", version="2")) == {"tpmstate0": "local-lvm:1,version=v2.0"}


def test_parse():
    params = {"tpmstate0": "local-lvm:vm-100-disk-1,size=4M,version=v2.0"}
    assert tpm.parse(params) == CURRENT
    assert tpm.parse({}) is None


class TestDiff:
    def test_create(self):
        change = tpm.diff(TpmState(storage="local-lvm", version="v1.2"), None)
        assert change.set == {"tpmstate0": "local-lvm:1,version=v1.2"}
        assert change.reboot is True

    def test_same_version_by_alias(self):
        change = tpm.diff(TpmState(storage="local-lvm", version="2.0"), CURRENT)
        assert change.is_empty()
        assert change.reboot is False

    def test_version_change_removes_state(self):
        change = tpm.diff(TpmState(storage="local-lvm", version="v1.2"), CURRENT)
        assert change.set == {}
        assert change.delete == ["tpmstate0"]
        assert change.reboot is True

    def test_delete(self):
        assert tpm.diff(TpmState(delete=True), CURRENT).delete == ["tpmstate0"]

    def test_storage_change_is_a_move(self):
        desired = TpmState(storage="ceph", version="v2.0")
        assert tpm.diff(desired, CURRENT).is_empty()
        assert tpm.move(desired, CURRENT) == DiskMove(disk="tpmstate0", storage="ceph")

    def test_no_move_when_recreated(self):
        assert tpm.move(TpmState(storage="ceph", version="v1.2"), CURRENT) is None
        assert tpm.move(TpmState(storage="ceph", version="v2.0"), None) is None
