import pytest

from qemuconf.codecs import agent
from qemuconf.errors import AgentTypeError
from qemuconf.models.agent import GuestAgent


def test_render():
    desired = GuestAgent(enable=True, type="VirtIO", freeze=False)
    assert agent.render(desired) == "1,freeze-fs-on-backup=0,type=virtio"
    assert agent.render(GuestAgent()) == "0"


def test_render_takes_unset_options_from_current():
    current = GuestAgent(enable=True, type="isa")
    assert agent.render(GuestAgent(fs_trim=True), current) == "1,fstrim_cloned_disks=1,type=isa"


def test_validate_type():
    agent.validate(GuestAgent(type="VIRTIO"))
    agent.validate(GuestAgent(type=""))
    with pytest.raises(AgentTypeError):
        agent.validate(GuestAgent(type="serial"))


def test_parse():
    assert agent.parse({"agent": "1,type=virtio"}) == GuestAgent(enable=True, type="virtio")
    assert agent.parse({"agent": "enabled=0,fstrim_cloned_disks=1"}) == GuestAgent(enable=False, fs_trim=True)
    assert agent.parse({"agent": "0"}) == GuestAgent(enable=False)
    assert agent.parse({}) is None


class TestDiff:
    def test_create(self):
        assert agent.diff(GuestAgent(enable=True), None).set == {"agent": "1"}

    def test_change_is_live(self):
        change = agent.diff(GuestAgent(enable=False), GuestAgent(enable=True, type="virtio"))
        assert change.set == {"agent": "0,type=virtio"}
        assert change.reboot is False

    def test_unchanged(self):
        assert agent.diff(GuestAgent(type="virtio"), GuestAgent(enable=True, type="virtio")).is_empty()
        assert agent.diff(None, GuestAgent(enable=True)).is_empty()
