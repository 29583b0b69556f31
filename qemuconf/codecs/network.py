"""
Network interface codec.

One ``net<N>`` key per interface, e.g.
``virtio=BC:24:11:2E:C5:7A,bridge=vmbr0,firewall=1,queues=4,tag=10``.
Interfaces are hotplugged, so no change here needs a restart.
"""

import logging
import re
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from qemuconf.codecs.common import diff_slots
from qemuconf.codecs.common import option_int
from qemuconf.codecs.common import slots_in
from qemuconf.errors import MtuError
from qemuconf.errors import MtuModelError
from qemuconf.errors import NetworkBridgeRequiredError
from qemuconf.errors import NetworkMacError
from qemuconf.errors import NetworkModelError
from qemuconf.errors import NetworkModelRequiredError
from qemuconf.errors import NetworkQueuesError
from qemuconf.errors import NetworkRateError
from qemuconf.errors import ParseError
from qemuconf.errors import QemuMtuExclusiveError
from qemuconf.errors import VlanError
from qemuconf.models.changes import EntityChange
from qemuconf.models.network import MTU_MAXIMUM
from qemuconf.models.network import MTU_MINIMUM
from qemuconf.models.network import NETWORK_MODELS
from qemuconf.models.network import NetworkInterface
from qemuconf.models.network import QemuMtu
from qemuconf.models.network import QUEUES_MAXIMUM
from qemuconf.models.network import RATE_MAXIMUM
from qemuconf.models.network import VLAN_MAXIMUM
from qemuconf.models.slots import NetworkId
from qemuconf.product import ProductVersion
from qemuconf.segments import build_segments
from qemuconf.segments import check_unknown_options
from qemuconf.segments import parse_bool
from qemuconf.segments import parse_segments
from qemuconf.units import format_rate
from qemuconf.units import parse_rate

logger = logging.getLogger(__name__)

_MAC_REGEX = re.compile(r"^([0-9A-Fa-f]{2}:){5}[0-9A-Fa-f]{2}$")
_KNOWN_OPTIONS = (
    "bridge",
    "firewall",
    "link_down",
    "macaddr",
    "model",
    "mtu",
    "queues",
    "rate",
    "tag",
    "trunks",
) + NETWORK_MODELS


def _pick(desired: Any, current: Any) -> Any:
    return desired if desired is not None else current


def merge(desired: NetworkInterface, current: Optional[NetworkInterface]) -> NetworkInterface:
    """
    Fill the fields ``desired`` leaves unset from ``current``.

    A MAC that equals the current one ignoring case keeps the current spelling
    so the API does not see a change.
    """
    if current is None:
        return desired
    mac = desired.mac
    if mac is not None and current.mac is not None and mac.lower() == current.mac.lower():
        mac = current.mac
    return NetworkInterface(
        bridge=_pick(desired.bridge, current.bridge),
        connected=_pick(desired.connected, current.connected),
        firewall=_pick(desired.firewall, current.firewall),
        mac=_pick(mac, current.mac),
        model=_pick(desired.model, current.model),
        mtu=_pick(desired.mtu, current.mtu),
        multi_queue=_pick(desired.multi_queue, current.multi_queue),
        rate_limit_kbps=_pick(desired.rate_limit_kbps, current.rate_limit_kbps),
        native_vlan=_pick(desired.native_vlan, current.native_vlan),
        tagged_vlans=_pick(desired.tagged_vlans, current.tagged_vlans),
    )


def _render_mtu(iface: NetworkInterface) -> Optional[int]:
    if iface.mtu is None or iface.model != "virtio":
        return None
    if iface.mtu.inherit:
        return 1
    if iface.mtu.value > 0:
        return iface.mtu.value
    return None


def _render_trunks(vlans: Optional[List[int]]) -> Optional[str]:
    if not vlans:
        return None
    return ";".join(str(vlan) for vlan in sorted(set(vlans)))


def render(iface: NetworkInterface) -> str:
    """Render one interface, fields are expected to be merged already."""
    model = iface.model or ""
    pairs = [
        ("bridge", iface.bridge or None),
        ("firewall", 1 if iface.firewall else None),
        ("link_down", 1 if iface.connected is False else None),
        ("mtu", _render_mtu(iface)),
        ("queues", iface.multi_queue if iface.multi_queue else None),
        ("rate", format_rate(iface.rate_limit_kbps) if iface.rate_limit_kbps else None),
        ("tag", iface.native_vlan if iface.native_vlan else None),
        ("trunks", _render_trunks(iface.tagged_vlans)),
    ]
    if iface.mac:
        # The MAC is written as the value of the model key.
        if model == "":
            raise NetworkModelRequiredError()
        return build_segments(None, [(model, iface.mac)] + pairs)
    return build_segments(model, pairs)


def parse_interface(raw: str, strict: bool = False) -> NetworkInterface:
    leading, options = parse_segments(raw)
    check_unknown_options("network interface", options, _KNOWN_OPTIONS, strict)
    model = options.get("model")
    mac = options.get("macaddr")
    if leading is not None:
        model = leading
    for candidate in NETWORK_MODELS:
        if candidate in options:
            model = candidate
            mac = options[candidate] or None
            break

    mtu = None
    if "mtu" in options:
        value = option_int(options, "mtu", "network interface")
        mtu = QemuMtu(inherit=True) if value == 1 else QemuMtu(value=value)
    tagged_vlans = None
    if options.get("trunks"):
        try:
            tagged_vlans = [int(vlan) for vlan in options["trunks"].split(";") if vlan != ""]
        except ValueError:
            raise ParseError(f"invalid trunks: {options['trunks']!r}")
    return NetworkInterface(
        bridge=options.get("bridge"),
        connected=not parse_bool(options.get("link_down", "0")),
        firewall=parse_bool(options.get("firewall", "0")),
        mac=mac,
        model=model,
        mtu=mtu,
        multi_queue=option_int(options, "queues", "network interface"),
        rate_limit_kbps=parse_rate(options["rate"]) if "rate" in options else None,
        native_vlan=option_int(options, "tag", "network interface"),
        tagged_vlans=tagged_vlans,
    )


# ============================================================================
# Codec
# ============================================================================


def validate_interface(
    desired: NetworkInterface,
    current: Optional[NetworkInterface],
) -> None:
    if desired.delete:
        return
    if current is None:
        if not desired.bridge:
            raise NetworkBridgeRequiredError()
        if not desired.model:
            raise NetworkModelRequiredError()
    if desired.model is not None and desired.model not in NETWORK_MODELS:
        raise NetworkModelError(NETWORK_MODELS)
    if desired.mac is not None and desired.mac != "" and not _MAC_REGEX.match(desired.mac):
        raise NetworkMacError()
    if desired.mtu is not None:
        if desired.mtu.inherit and desired.mtu.value != 0:
            raise QemuMtuExclusiveError()
        if desired.mtu.value != 0 and not MTU_MINIMUM <= desired.mtu.value <= MTU_MAXIMUM:
            raise MtuError()
        model = desired.model if desired.model is not None else (current.model if current else None)
        if model != "virtio":
            raise MtuModelError()
    if desired.multi_queue is not None and not 0 <= desired.multi_queue <= QUEUES_MAXIMUM:
        raise NetworkQueuesError()
    if desired.rate_limit_kbps is not None and not 0 <= desired.rate_limit_kbps <= RATE_MAXIMUM:
        raise NetworkRateError()
    if desired.native_vlan is not None and not 0 <= desired.native_vlan <= VLAN_MAXIMUM:
        raise VlanError()
    for vlan in desired.tagged_vlans or []:
        if not 0 <= vlan <= VLAN_MAXIMUM:
            raise VlanError()


def validate(
    desired: Optional[Dict[NetworkId, NetworkInterface]],
    current: Optional[Dict[NetworkId, NetworkInterface]],
    version: Optional[ProductVersion] = None,
) -> None:
    if desired is None:
        return
    current = current or {}
    for slot, iface in desired.items():
        NetworkId(slot)
        validate_interface(iface, current.get(slot))


def encode(networks: Dict[NetworkId, NetworkInterface]) -> Dict[str, str]:
    return {
        NetworkId(slot).key: render(iface)
        for slot, iface in sorted(networks.items())
        if not iface.delete
    }


def parse(params: Dict[str, Any], strict: bool = False) -> Optional[Dict[NetworkId, NetworkInterface]]:
    networks = {slot: parse_interface(raw, strict) for slot, raw in slots_in(params, NetworkId)}
    return networks or None


def _diff_interface(
    slot: NetworkId,
    desired: NetworkInterface,
    current: Optional[NetworkInterface],
) -> EntityChange:
    change = EntityChange()
    rendered = render(merge(desired, current))
    if current is None or rendered != render(current):
        change.set[slot.key] = rendered
    return change


def diff(
    desired: Optional[Dict[NetworkId, NetworkInterface]],
    current: Optional[Dict[NetworkId, NetworkInterface]],
    version: Optional[ProductVersion] = None,
) -> EntityChange:
    return diff_slots(NetworkId, desired, current, _diff_interface, lambda iface: iface.delete)
