import pytest

from qemuconf.codecs import cpu
from qemuconf.errors import CpuAffinityError
from qemuconf.errors import CpuCoresLowerBoundError
from qemuconf.errors import CpuCoresRequiredError
from qemuconf.errors import CpuCoresUpperBoundError
from qemuconf.errors import CpuLimitError
from qemuconf.errors import CpuSocketsUpperBoundError
from qemuconf.errors import CpuTypeError
from qemuconf.errors import CpuUnitsError
from qemuconf.errors import CpuVirtualCoresError
from qemuconf.errors import ParseError
from qemuconf.errors import TriBoolError
from qemuconf.errors import UnknownOptionError
from qemuconf.models.cpu import Cpu
from qemuconf.models.cpu import CpuFlags
from qemuconf.models.cpu import TriBool
from qemuconf.product import ProductVersion

V8 = ProductVersion(8, 0, 0)
V7 = ProductVersion(7, 4, 3)


class TestAffinity:
    def test_compress(self):
        assert cpu.compress_affinity([5, 0, 1, 2, 2, 3]) == "0-3,5"
        assert cpu.compress_affinity([7]) == "7"
        assert cpu.compress_affinity([]) == ""

    def test_expand(self):
        assert cpu.expand_affinity("0-3,5") == [0, 1, 2, 3, 5]
        assert cpu.expand_affinity("") == []
        with pytest.raises(ParseError):
            cpu.expand_affinity("0-1-2")


class TestCpuTypes:
    def test_loose_spelling(self):
        assert cpu.canonical_cpu_type("skylake_server", V8) == "Skylake-Server"
        assert cpu.canonical_cpu_type("HOST", V8) == "host"

    def test_version_gated(self):
        assert cpu.canonical_cpu_type("x86-64-v2-AES", V8) == "x86-64-v2-AES"
        assert cpu.canonical_cpu_type("x86-64-v2-AES", V7) == ""
        with pytest.raises(CpuTypeError, match="cpuType can only be one of"):
            cpu.validate(Cpu(cores=1, type="x86-64-v2-AES"), None, V7)


class TestValidate:
    def test_cores_required_on_create(self):
        with pytest.raises(CpuCoresRequiredError):
            cpu.validate(Cpu(sockets=1), None, V8)
        # On update the current cores are kept.
        cpu.validate(Cpu(sockets=2), Cpu(cores=2), V8)

    @pytest.mark.parametrize(
        "desired, error",
        [
            (Cpu(cores=0), CpuCoresLowerBoundError),
            (Cpu(cores=129), CpuCoresUpperBoundError),
            (Cpu(cores=1, sockets=5), CpuSocketsUpperBoundError),
            (Cpu(cores=1, limit=129), CpuLimitError),
            (Cpu(cores=1, units=262145), CpuUnitsError),
            (Cpu(cores=1, affinity=[0, -1]), CpuAffinityError),
            (Cpu(cores=1, flags=CpuFlags(aes=5)), TriBoolError),
        ],
    )
    def test_bounds(self, desired, error):
        with pytest.raises(error):
            cpu.validate(desired, None, V8)

    def test_virtual_cores_bounded_by_topology(self):
        with pytest.raises(CpuVirtualCoresError, match="maximum of 4"):
            cpu.validate(Cpu(cores=2, sockets=2, virtual_cores=5), None, V8)
        cpu.validate(Cpu(virtual_cores=4), Cpu(cores=2, sockets=2), V8)


class TestDiff:
    def test_affinity_on_create(self):
        change = cpu.diff(Cpu(affinity=[0, 1, 2, 2, 3], cores=1), None, V8)
        assert change.set == {"affinity": "0-3", "cores": 1}
        assert change.reboot is True

    def test_type_and_flags_on_create(self):
        desired = Cpu(cores=2, type="host", flags=CpuFlags(aes=TriBool.TRUE, pcid=TriBool.FALSE))
        assert cpu.encode(desired, V8) == {"cores": 2, "cpu": "host,flags=+aes;-pcid"}

    def test_live_changes_need_no_reboot(self):
        current = Cpu(cores=2, limit=50, units=100)
        change = cpu.diff(Cpu(limit=60, units=0, virtual_cores=2), current, V8)
        assert change.set == {"cpulimit": 60, "vcpus": 2}
        assert change.delete == ["cpuunits"]
        assert change.reboot is False

    def test_zero_limit_deletes(self):
        change = cpu.diff(Cpu(limit=0), Cpu(cores=2, limit=50), V8)
        assert change.delete == ["cpulimit"]

    def test_topology_change_needs_reboot(self):
        change = cpu.diff(Cpu(cores=4), Cpu(cores=2, sockets=1), V8)
        assert change.set == {"cores": 4}
        assert change.reboot is True

    def test_flags_merge_with_current(self):
        current = Cpu(cores=1, type="host", flags=CpuFlags(aes=TriBool.TRUE))
        change = cpu.diff(Cpu(flags=CpuFlags(pcid=TriBool.TRUE)), current, V8)
        assert change.set == {"cpu": "host,flags=+aes;+pcid"}
        assert change.reboot is True

    def test_removing_affinity(self):
        change = cpu.diff(Cpu(affinity=[]), Cpu(cores=1, affinity=[0, 1]), V8)
        assert change.set == {"affinity": ""}

    def test_clearing_an_empty_affinity(self):
        # An affinity that exists but pins nothing is still cleared.
        change = cpu.diff(Cpu(affinity=[]), Cpu(cores=1, affinity=[]), V8)
        assert change.set == {"affinity": ""}
        assert cpu.diff(Cpu(affinity=[]), Cpu(cores=1), V8).is_empty()
        assert cpu.parse({"affinity": "", "cores": 1}).affinity is None


class TestParse:
    params = {
        "affinity": "0-1",
        "cores": 2,
        "cpu": "host,flags=+aes;-pcid",
        "numa": 0,
        "sockets": 1,
        "vcpus": "2",
    }

    def test_parse(self):
        assert cpu.parse(self.params) == Cpu(
            affinity=[0, 1],
            cores=2,
            flags=CpuFlags(aes=TriBool.TRUE, pcid=TriBool.FALSE),
            numa=False,
            sockets=1,
            type="host",
            virtual_cores=2,
        )

    def test_absent(self):
        assert cpu.parse({"memory": 2048}) is None

    def test_strict_rejects_unknown_options(self):
        assert cpu.parse({"cpu": "host,hidden=1"}).type == "host"
        with pytest.raises(UnknownOptionError):
            cpu.parse({"cpu": "host,hidden=1"}, strict=True)

    def test_self_diff_is_empty(self):
        parsed = cpu.parse(self.params)
        assert cpu.diff(parsed, parsed, V8).is_empty()
