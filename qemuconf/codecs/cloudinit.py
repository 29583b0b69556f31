"""
Cloud-init codec.

Wire keys: ``cicustom``, ``ciuser``, ``cipassword``, ``ciupgrade``,
``searchdomain``, ``nameserver``, ``sshkeys`` and ``ipconfig<N>``. Cloud-init
only runs at boot, so every change here asks for a restart.
"""

import ipaddress
import logging
import re
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from urllib.parse import quote
from urllib.parse import unquote

from qemuconf.codecs.common import wire_int
from qemuconf.codecs.common import wire_str
from qemuconf.errors import CloudInitUpgradePackagesError
from qemuconf.errors import IPv4AddressError
from qemuconf.errors import IPv4CidrError
from qemuconf.errors import IPv4DhcpAddressError
from qemuconf.errors import IPv4DhcpGatewayError
from qemuconf.errors import IPv6AddressError
from qemuconf.errors import IPv6CidrError
from qemuconf.errors import IPv6DhcpAddressError
from qemuconf.errors import IPv6DhcpGatewayError
from qemuconf.errors import IPv6DhcpSlaacError
from qemuconf.errors import IPv6SlaacAddressError
from qemuconf.errors import IPv6SlaacGatewayError
from qemuconf.errors import NameServerError
from qemuconf.errors import SnippetPathCharacterError
from qemuconf.errors import SnippetPathEmptyError
from qemuconf.errors import SnippetPathInvalidError
from qemuconf.errors import SnippetPathLengthError
from qemuconf.errors import SnippetPathRelativeError
from qemuconf.models.changes import EntityChange
from qemuconf.models.cloudinit import CloudInit
from qemuconf.models.cloudinit import CloudInitCustom
from qemuconf.models.cloudinit import CloudInitIPv4
from qemuconf.models.cloudinit import CloudInitIPv6
from qemuconf.models.cloudinit import CloudInitNetworkConfig
from qemuconf.models.cloudinit import CloudInitSnippet
from qemuconf.models.cloudinit import GuestDns
from qemuconf.models.slots import NetworkId
from qemuconf.product import ProductVersion
from qemuconf.product import VERSION_8
from qemuconf.segments import parse_segments

logger = logging.getLogger(__name__)

SNIPPET_KINDS = ("meta", "network", "user", "vendor")
SNIPPET_PATH_MAXIMUM = 256

_SNIPPET_CHARACTERS = re.compile(r"^[a-zA-Z0-9 _/.-]+$")
_SNIPPET_PATH = re.compile(r"^[^,=/]+(/[^,=/]+)*$")
_WHITESPACE = re.compile(r"\s+")


def ipconfig_key(slot: NetworkId) -> str:
    return f"ipconfig{int(slot)}"


# ============================================================================
# SSH keys
# ============================================================================


def encode_ssh_keys(keys: List[str]) -> str:
    """
    URL-encode public keys the way the API stores them: every key with runs
    of whitespace collapsed, followed by an encoded newline.
    """
    return "".join(quote(_WHITESPACE.sub(" ", key) + "\n", safe="$&") for key in keys)


def decode_ssh_keys(raw: str) -> List[str]:
    return [line for line in unquote(raw).split("\n") if line.strip() != ""]


# ============================================================================
# Snippets
# ============================================================================


def validate_snippet_path(path: str) -> None:
    if path == "":
        raise SnippetPathEmptyError()
    if path.startswith("/"):
        raise SnippetPathRelativeError()
    if len(path) > SNIPPET_PATH_MAXIMUM:
        raise SnippetPathLengthError()
    if not _SNIPPET_CHARACTERS.match(path):
        raise SnippetPathCharacterError()
    if not _SNIPPET_PATH.match(path):
        raise SnippetPathInvalidError()


def render_custom(custom: Optional[CloudInitCustom], current: Optional[CloudInitCustom] = None) -> str:
    """
    Render ``cicustom``. With ``current`` the snippets left unset fall back to
    the current ones. Snippets without storage and path are dropped.
    """
    parts = []
    for kind in SNIPPET_KINDS:
        snippet = getattr(custom, kind) if custom is not None else None
        if snippet is None and current is not None:
            snippet = getattr(current, kind)
        if snippet is None or (snippet.storage == "" and snippet.path == ""):
            continue
        parts.append(f"{kind}={snippet.storage}:{snippet.path}")
    return ",".join(parts)


def parse_custom(raw: str) -> Optional[CloudInitCustom]:
    _, options = parse_segments(raw)
    snippets = {}
    for kind in SNIPPET_KINDS:
        if kind in options and ":" in options[kind]:
            storage, _, path = options[kind].partition(":")
            snippets[kind] = CloudInitSnippet(storage=storage, path=path)
    if not snippets:
        return None
    return CloudInitCustom(**snippets)


# ============================================================================
# ipconfig
# ============================================================================


def _render_address(
    key: str,
    value: Optional[str],
    current_value: Optional[str],
    update: bool,
) -> List[str]:
    if update and value is None:
        value = current_value
    if value:
        return [f"{key}={value}"]
    return []


def render_ipv4(config: CloudInitIPv4, current: Optional[CloudInitIPv4] = None) -> List[str]:
    if config.dhcp:
        return ["ip=dhcp"]
    update = current is not None
    existing = current or CloudInitIPv4()
    return _render_address("ip", config.address, existing.address, update) + _render_address(
        "gw", config.gateway, existing.gateway, update,
    )


def render_ipv6(config: CloudInitIPv6, current: Optional[CloudInitIPv6] = None) -> List[str]:
    if config.dhcp:
        return ["ip6=dhcp"]
    if config.slaac:
        return ["ip6=auto"]
    update = current is not None
    existing = current or CloudInitIPv6()
    return _render_address("ip6", config.address, existing.address, update) + _render_address(
        "gw6", config.gateway, existing.gateway, update,
    )


def render_network(
    config: CloudInitNetworkConfig,
    current: Optional[CloudInitNetworkConfig] = None,
) -> str:
    """
    Render one ``ipconfig<N>`` value. On update an address or gateway set to
    "" is removed, unset ones are kept from ``current``.
    """
    parts: List[str] = []
    if current is None:
        if config.ipv4 is not None:
            parts += render_ipv4(config.ipv4)
        if config.ipv6 is not None:
            parts += render_ipv6(config.ipv6)
        return ",".join(parts)
    if config.ipv4 is not None:
        parts += render_ipv4(config.ipv4, current.ipv4)
    elif current.ipv4 is not None:
        parts += render_ipv4(current.ipv4)
    if config.ipv6 is not None:
        parts += render_ipv6(config.ipv6, current.ipv6)
    elif current.ipv6 is not None:
        parts += render_ipv6(current.ipv6)
    return ",".join(parts)


def parse_network(raw: str) -> CloudInitNetworkConfig:
    _, options = parse_segments(raw)
    ipv4 = None
    ipv6 = None
    if "ip" in options or "gw" in options:
        address = options.get("ip")
        ipv4 = CloudInitIPv4(
            address=None if address == "dhcp" else address,
            dhcp=address == "dhcp",
            gateway=options.get("gw"),
        )
    if "ip6" in options or "gw6" in options:
        address = options.get("ip6")
        ipv6 = CloudInitIPv6(
            address=None if address in ("dhcp", "auto") else address,
            dhcp=address == "dhcp",
            gateway=options.get("gw6"),
            slaac=address == "auto",
        )
    return CloudInitNetworkConfig(ipv4=ipv4, ipv6=ipv6)


def _is_cidr(value: str, version: int) -> bool:
    if "/" not in value:
        return False
    try:
        return ipaddress.ip_interface(value).version == version
    except ValueError:
        return False


def _is_address(value: str, version: int) -> bool:
    try:
        return ipaddress.ip_address(value).version == version
    except ValueError:
        return False


def validate_ipv4(config: CloudInitIPv4) -> None:
    if config.address:
        if config.dhcp:
            raise IPv4DhcpAddressError()
        if not _is_cidr(config.address, 4):
            raise IPv4CidrError()
    if config.gateway:
        if config.dhcp:
            raise IPv4DhcpGatewayError()
        if not _is_address(config.gateway, 4):
            raise IPv4AddressError()


def validate_ipv6(config: CloudInitIPv6) -> None:
    if config.dhcp and config.slaac:
        raise IPv6DhcpSlaacError()
    if config.address:
        if config.dhcp:
            raise IPv6DhcpAddressError()
        if config.slaac:
            raise IPv6SlaacAddressError()
        if not _is_cidr(config.address, 6):
            raise IPv6CidrError()
    if config.gateway:
        if config.dhcp:
            raise IPv6DhcpGatewayError()
        if config.slaac:
            raise IPv6SlaacGatewayError()
        if not _is_address(config.gateway, 6):
            raise IPv6AddressError()


# ============================================================================
# Codec
# ============================================================================


def validate(desired: CloudInit, current: Optional[CloudInit], version: ProductVersion) -> None:
    if desired.custom is not None:
        for kind in SNIPPET_KINDS:
            snippet = getattr(desired.custom, kind)
            if snippet is not None and (snippet.storage != "" or snippet.path != ""):
                validate_snippet_path(snippet.path)
    if desired.upgrade_packages and not version.at_least(VERSION_8):
        raise CloudInitUpgradePackagesError()
    if desired.dns is not None:
        for server in desired.dns.name_servers or []:
            try:
                ipaddress.ip_address(server)
            except ValueError:
                raise NameServerError()
    for slot, config in (desired.network_interfaces or {}).items():
        NetworkId(slot)
        if config.ipv4 is not None:
            validate_ipv4(config.ipv4)
        if config.ipv6 is not None:
            validate_ipv6(config.ipv6)


def encode(cloudinit: CloudInit, version: ProductVersion) -> Dict[str, Any]:
    return diff(cloudinit, None, version).set


def parse(params: Dict[str, Any]) -> Optional[CloudInit]:
    custom = None
    raw_custom = wire_str(params, "cicustom")
    if raw_custom is not None:
        custom = parse_custom(raw_custom)

    username = wire_str(params, "ciuser")
    if username is not None and username.strip() == "":
        username = None

    ssh_keys = None
    raw_keys = wire_str(params, "sshkeys")
    if raw_keys is not None:
        ssh_keys = decode_ssh_keys(raw_keys)

    dns = None
    raw_servers = wire_str(params, "nameserver")
    search_domain = wire_str(params, "searchdomain")
    if search_domain is not None and len(search_domain) <= 1:
        search_domain = None
    if raw_servers is not None or search_domain is not None:
        dns = GuestDns(
            search_domain=search_domain,
            name_servers=raw_servers.split() if raw_servers is not None else None,
        )

    interfaces = {}
    for slot_number in range(NetworkId.maximum + 1):
        raw = wire_str(params, f"ipconfig{slot_number}")
        # The API reports cleared configs as "" or " ".
        if raw is not None and len(raw) > 1:
            interfaces[NetworkId(slot_number)] = parse_network(raw)

    upgrade = wire_int(params, "ciupgrade")
    cloudinit = CloudInit(
        custom=custom,
        dns=dns,
        network_interfaces=interfaces or None,
        ssh_keys=ssh_keys,
        upgrade_packages=None if upgrade is None else upgrade == 1,
        password=wire_str(params, "cipassword"),
        username=username,
    )
    if cloudinit == CloudInit():
        return None
    return cloudinit


def _diff_text(change: EntityChange, key: str, value: Optional[str], current_value: Optional[str]) -> None:
    if value is None:
        return
    if value == "":
        if current_value is not None:
            change.delete.append(key)
    elif value != current_value:
        change.set[key] = value


def _diff_interface(
    slot: NetworkId,
    desired: CloudInitNetworkConfig,
    current: Optional[CloudInitNetworkConfig],
) -> EntityChange:
    change = EntityChange()
    rendered = render_network(desired, current)
    if rendered == "":
        if current is not None:
            change.delete.append(ipconfig_key(slot))
    elif current is None or rendered != render_network(current):
        change.set[ipconfig_key(slot)] = rendered
    return change


def _create(desired: CloudInit, version: ProductVersion) -> EntityChange:
    change = EntityChange()
    if desired.custom is not None:
        custom = render_custom(desired.custom)
        if custom:
            change.set["cicustom"] = custom
    if desired.username:
        change.set["ciuser"] = desired.username
    if desired.password:
        change.set["cipassword"] = desired.password
    if desired.dns is not None:
        if desired.dns.search_domain:
            change.set["searchdomain"] = desired.dns.search_domain
        if desired.dns.name_servers:
            change.set["nameserver"] = " ".join(desired.dns.name_servers)
    for slot, config in sorted((desired.network_interfaces or {}).items()):
        rendered = render_network(config)
        if rendered:
            change.set[ipconfig_key(NetworkId(slot))] = rendered
    if desired.ssh_keys:
        change.set["sshkeys"] = encode_ssh_keys(desired.ssh_keys)
    if desired.upgrade_packages is not None and version.at_least(VERSION_8):
        change.set["ciupgrade"] = 1 if desired.upgrade_packages else 0
    return change


def diff(desired: CloudInit, current: Optional[CloudInit], version: ProductVersion) -> EntityChange:
    if current is None:
        change = _create(desired, version)
        change.reboot = not change.is_empty()
        return change

    change = EntityChange()
    if desired.custom is not None:
        custom = render_custom(desired.custom, current.custom)
        current_custom = render_custom(current.custom)
        if custom == "":
            if current.custom is not None:
                change.delete.append("cicustom")
        elif custom != current_custom:
            change.set["cicustom"] = custom

    _diff_text(change, "ciuser", desired.username, current.username)
    _diff_text(change, "cipassword", desired.password, current.password)

    if desired.dns is not None:
        current_dns = current.dns or GuestDns()
        _diff_text(change, "searchdomain", desired.dns.search_domain, current_dns.search_domain)
        if desired.dns.name_servers is not None:
            current_servers = None
            if current_dns.name_servers is not None:
                current_servers = " ".join(current_dns.name_servers)
            _diff_text(change, "nameserver", " ".join(desired.dns.name_servers), current_servers)

    # Only the listed ipconfig slots are touched, an empty value removes one.
    current_interfaces = {NetworkId(slot): config for slot, config in (current.network_interfaces or {}).items()}
    for slot, config in sorted((desired.network_interfaces or {}).items()):
        slot = NetworkId(slot)
        change.merge(_diff_interface(slot, config, current_interfaces.get(slot)))

    if desired.ssh_keys is not None:
        current_keys = None
        if current.ssh_keys is not None:
            current_keys = encode_ssh_keys(current.ssh_keys)
        _diff_text(change, "sshkeys", encode_ssh_keys(desired.ssh_keys), current_keys)

    if desired.upgrade_packages is not None and version.at_least(VERSION_8):
        if desired.upgrade_packages != current.upgrade_packages:
            change.set["ciupgrade"] = 1 if desired.upgrade_packages else 0

    change.reboot = not change.is_empty()
    return change
