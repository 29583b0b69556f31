import pytest

from qemuconf.codecs import cloudinit
from qemuconf.errors import CloudInitUpgradePackagesError
from qemuconf.errors import IPv4AddressError
from qemuconf.errors import IPv4CidrError
from qemuconf.errors import IPv4DhcpAddressError
from qemuconf.errors import IPv6CidrError
from qemuconf.errors import IPv6DhcpSlaacError
from qemuconf.errors import IPv6SlaacGatewayError
from qemuconf.errors import NameServerError
from qemuconf.errors import SnippetPathCharacterError
from qemuconf.errors import SnippetPathEmptyError
from qemuconf.errors import SnippetPathInvalidError
from qemuconf.errors import SnippetPathLengthError
from qemuconf.errors import SnippetPathRelativeError
from qemuconf.models.cloudinit import CloudInit
from qemuconf.models.cloudinit import CloudInitCustom
from qemuconf.models.cloudinit import CloudInitIPv4
from qemuconf.models.cloudinit import CloudInitIPv6
from qemuconf.models.cloudinit import CloudInitNetworkConfig
from qemuconf.models.cloudinit import CloudInitSnippet
from qemuconf.models.cloudinit import GuestDns
from qemuconf.models.slots import NetworkId
from qemuconf.product import ProductVersion
from tests.data.qemuconf.cloudinit import CLOUDINIT_WIRE
from tests.data.qemuconf.cloudinit import SSH_KEY
from tests.data.qemuconf.cloudinit import SSH_KEY_WIRE

V8 = ProductVersion(8, 0, 0)
V7 = ProductVersion(7, 4, 3)

STATIC_V4 = CloudInitNetworkConfig(ipv4=CloudInitIPv4(address="10.0.0.2/24", gateway="10.0.0.1"))


def test_ssh_keys_are_url_encoded():
    assert cloudinit.encode_ssh_keys(["ssh-ed25519   AAAAC3 user@host"]) == SSH_KEY_WIRE
    assert cloudinit.decode_ssh_keys(SSH_KEY_WIRE) == [SSH_KEY]


class TestSnippetPath:
    def test_valid(self):
        cloudinit.validate_snippet_path("snippets/user.yml")

    @pytest.mark.parametrize(
        "path, error",
        [
            ("", SnippetPathEmptyError),
            ("/snippets/user.yml", SnippetPathRelativeError),
            ("a" * 257, SnippetPathLengthError),
            ("user,data.yml", SnippetPathCharacterError),
            ("snippets//user.yml", SnippetPathInvalidError),
        ],
    )
    def test_invalid(self, path, error):
        with pytest.raises(error):
            cloudinit.validate_snippet_path(path)


def test_render_custom():
    custom = CloudInitCustom(
        user=CloudInitSnippet(storage="local", path="snippets/user.yml"),
        meta=CloudInitSnippet(storage="local", path="snippets/meta.yml"),
    )
    assert cloudinit.render_custom(custom) == "meta=local:snippets/meta.yml,user=local:snippets/user.yml"
    assert cloudinit.parse_custom("user=local:snippets/user.yml").user == CloudInitSnippet("local", "snippets/user.yml")


class TestNetworkConfig:
    def test_render(self):
        config = CloudInitNetworkConfig(
            ipv4=CloudInitIPv4(address="10.0.0.2/24", gateway="10.0.0.1"),
            ipv6=CloudInitIPv6(slaac=True),
        )
        assert cloudinit.render_network(config) == "ip=10.0.0.2/24,gw=10.0.0.1,ip6=auto"

    def test_dhcp(self):
        config = CloudInitNetworkConfig(ipv4=CloudInitIPv4(dhcp=True), ipv6=CloudInitIPv6(dhcp=True))
        assert cloudinit.render_network(config) == "ip=dhcp,ip6=dhcp"
        assert cloudinit.parse_network("ip=dhcp,ip6=dhcp") == config

    def test_update_removes_empty_gateway(self):
        desired = CloudInitNetworkConfig(ipv4=CloudInitIPv4(gateway=""))
        assert cloudinit.render_network(desired, STATIC_V4) == "ip=10.0.0.2/24"


class TestValidate:
    @pytest.mark.parametrize(
        "desired, error",
        [
            (CloudInitNetworkConfig(ipv4=CloudInitIPv4(dhcp=True, address="10.0.0.2/24")), IPv4DhcpAddressError),
            (CloudInitNetworkConfig(ipv4=CloudInitIPv4(address="10.0.0.2")), IPv4CidrError),
            (CloudInitNetworkConfig(ipv4=CloudInitIPv4(gateway="10.0.0.300")), IPv4AddressError),
            (CloudInitNetworkConfig(ipv4=CloudInitIPv4(address="fd00::2/64")), IPv4CidrError),
            (CloudInitNetworkConfig(ipv6=CloudInitIPv6(dhcp=True, slaac=True)), IPv6DhcpSlaacError),
            (CloudInitNetworkConfig(ipv6=CloudInitIPv6(address="10.0.0.2/24")), IPv6CidrError),
            (CloudInitNetworkConfig(ipv6=CloudInitIPv6(slaac=True, gateway="fd00::1")), IPv6SlaacGatewayError),
        ],
    )
    def test_interfaces(self, desired, error):
        with pytest.raises(error):
            cloudinit.validate(CloudInit(network_interfaces={0: desired}), None, V8)

    def test_name_servers(self):
        cloudinit.validate(CloudInit(dns=GuestDns(name_servers=["1.1.1.1", "2606:4700::1111"])), None, V8)
        with pytest.raises(NameServerError):
            cloudinit.validate(CloudInit(dns=GuestDns(name_servers=["dns.example.com"])), None, V8)

    def test_upgrade_packages_needs_version_8(self):
        cloudinit.validate(CloudInit(upgrade_packages=True), None, V8)
        cloudinit.validate(CloudInit(upgrade_packages=False), None, V7)
        with pytest.raises(CloudInitUpgradePackagesError):
            cloudinit.validate(CloudInit(upgrade_packages=True), None, V7)

    def test_snippets(self):
        custom = CloudInitCustom(user=CloudInitSnippet(storage="local", path="/etc/user.yml"))
        with pytest.raises(SnippetPathRelativeError):
            cloudinit.validate(CloudInit(custom=custom), None, V8)


class TestDiff:
    def test_create(self):
        desired = CloudInit(
            username="admin",
            dns=GuestDns(search_domain="example.com", name_servers=["1.1.1.1", "8.8.8.8"]),
            network_interfaces={NetworkId(0): STATIC_V4},
            ssh_keys=[SSH_KEY],
            upgrade_packages=False,
        )
        change = cloudinit.diff(desired, None, V8)
        assert change.set == {
            "ciuser": "admin",
            "searchdomain": "example.com",
            "nameserver": "1.1.1.1 8.8.8.8",
            "ipconfig0": "ip=10.0.0.2/24,gw=10.0.0.1",
            "sshkeys": SSH_KEY_WIRE,
            "ciupgrade": 0,
        }
        assert change.reboot is True

    def test_upgrade_packages_not_sent_before_version_8(self):
        assert cloudinit.encode(CloudInit(upgrade_packages=True), V7) == {}

    def test_update(self):
        current = cloudinit.parse(CLOUDINIT_WIRE)
        cleared = CloudInitNetworkConfig(ipv4=CloudInitIPv4(address="", gateway=""))
        desired = CloudInit(username="root", password="", network_interfaces={NetworkId(0): cleared})
        change = cloudinit.diff(desired, current, V8)
        assert change.set == {"ciuser": "root"}
        assert change.delete == ["cipassword", "ipconfig0"]
        assert change.reboot is True

    def test_unlisted_ipconfig_slots_are_kept(self):
        static_v6 = CloudInitNetworkConfig(ipv6=CloudInitIPv6(address="fd00::2/64"))
        current = CloudInit(network_interfaces={NetworkId(0): STATIC_V4, NetworkId(1): static_v6})
        desired = CloudInit(network_interfaces={NetworkId(1): CloudInitNetworkConfig(ipv6=CloudInitIPv6(slaac=True))})
        change = cloudinit.diff(desired, current, V8)
        assert change.set == {"ipconfig1": "ip6=auto"}
        assert change.delete == []
        assert cloudinit.diff(CloudInit(network_interfaces={}), current, V8).is_empty()

    def test_self_diff_is_empty(self):
        current = cloudinit.parse(CLOUDINIT_WIRE)
        assert cloudinit.diff(current, current, V8).is_empty()


def test_parse():
    parsed = cloudinit.parse(CLOUDINIT_WIRE)
    assert parsed.username == "admin"
    assert parsed.password == "**********"
    assert parsed.ssh_keys == [SSH_KEY]
    assert parsed.dns == GuestDns(search_domain="example.com", name_servers=["1.1.1.1", "8.8.8.8"])
    # ipconfig1 is reported as " " once cleared.
    assert parsed.network_interfaces == {NetworkId(0): STATIC_V4}
    assert parsed.upgrade_packages is False
    assert parsed.custom.user == CloudInitSnippet(storage="local", path="snippets/user.yml")
    assert cloudinit.parse({"name": "vm"}) is None
