"""
CPU codec.

Wire keys: ``affinity``, ``cores``, ``cpu``, ``cpulimit``, ``cpuunits``,
``numa``, ``sockets`` and ``vcpus``. The ``cpu`` key combines the model name
with its feature flags: ``host,flags=+aes;-pcid``.
"""

import logging
from typing import Any
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional
from typing import Tuple

from qemuconf.codecs.common import wire_int
from qemuconf.codecs.common import wire_str
from qemuconf.errors import CpuAffinityError
from qemuconf.errors import CpuCoresLowerBoundError
from qemuconf.errors import CpuCoresRequiredError
from qemuconf.errors import CpuCoresUpperBoundError
from qemuconf.errors import CpuLimitError
from qemuconf.errors import CpuSocketsLowerBoundError
from qemuconf.errors import CpuSocketsUpperBoundError
from qemuconf.errors import CpuTypeError
from qemuconf.errors import CpuUnitsError
from qemuconf.errors import CpuVirtualCoresError
from qemuconf.errors import ParseError
from qemuconf.errors import TriBoolError
from qemuconf.models.changes import EntityChange
from qemuconf.models.cpu import Cpu
from qemuconf.models.cpu import CpuFlags
from qemuconf.models.cpu import TriBool
from qemuconf.product import ProductVersion
from qemuconf.product import VERSION_8
from qemuconf.segments import check_unknown_options
from qemuconf.segments import parse_segments

logger = logging.getLogger(__name__)

CORES_MAXIMUM = 128
SOCKETS_MAXIMUM = 4
LIMIT_MAXIMUM = 128
UNITS_MAXIMUM = 262144

# Wire order of the flags, paired with the CpuFlags attribute holding them.
FLAG_ORDER: Tuple[Tuple[str, str], ...] = (
    ("aes", "aes"),
    ("amd-no-ssb", "amd_no_ssb"),
    ("amd-ssbd", "amd_ssbd"),
    ("hv-evmcs", "hv_evmcs"),
    ("hv-tlbflush", "hv_tlbflush"),
    ("ibpb", "ibpb"),
    ("md-clear", "md_clear"),
    ("pcid", "pcid"),
    ("pdpe1gb", "pdpe1gb"),
    ("ssbd", "ssbd"),
    ("spec-ctrl", "spec_ctrl"),
    ("virt-ssbd", "virt_ssbd"),
)

BASE_CPU_TYPES = (
    "486",
    "athlon",
    "Broadwell",
    "Broadwell-IBRS",
    "Broadwell-noTSX",
    "Broadwell-noTSX-IBRS",
    "Cascadelake-Server",
    "Cascadelake-Server-noTSX",
    "Conroe",
    "core2duo",
    "coreduo",
    "EPYC",
    "EPYC-IBPB",
    "EPYC-Milan",
    "EPYC-Rome",
    "Haswell",
    "Haswell-IBRS",
    "Haswell-noTSX",
    "Haswell-noTSX-IBRS",
    "host",
    "Icelake-Client",
    "Icelake-Client-noTSX",
    "Icelake-Server",
    "Icelake-Server-noTSX",
    "IvyBridge",
    "IvyBridge-IBRS",
    "KnightsMill",
    "kvm32",
    "kvm64",
    "max",
    "Nehalem",
    "Nehalem-IBRS",
    "Opteron_G1",
    "Opteron_G2",
    "Opteron_G3",
    "Opteron_G4",
    "Opteron_G5",
    "Penryn",
    "pentium",
    "pentium2",
    "pentium3",
    "phenom",
    "qemu32",
    "qemu64",
    "SandyBridge",
    "SandyBridge-IBRS",
    "Skylake-Client",
    "Skylake-Client-IBRS",
    "Skylake-Client-noTSX-IBRS",
    "Skylake-Server",
    "Skylake-Server-IBRS",
    "Skylake-Server-noTSX-IBRS",
    "Westmere",
    "Westmere-IBRS",
)

V8_CPU_TYPES = (
    "Cascadelake-Server-v2",
    "Cascadelake-Server-v4",
    "Cascadelake-Server-v5",
    "Cooperlake",
    "Cooperlake-v2",
    "EPYC-Rome-v2",
    "EPYC-v3",
    "Icelake-Server-v3",
    "Icelake-Server-v4",
    "Icelake-Server-v5",
    "Icelake-Server-v6",
    "SapphireRapids",
    "Skylake-Client-v4",
    "Skylake-Server-v4",
    "Skylake-Server-v5",
    "x86-64-v2",
    "x86-64-v2-AES",
    "x86-64-v3",
    "x86-64-v4",
)


def _canonical_key(name: str) -> str:
    return name.replace("_", "").replace("-", "").lower()


def cpu_types(version: ProductVersion) -> Dict[str, str]:
    """
    :return: Lookup from the loose spelling of every supported model to its wire name
    """
    names: Iterable[str] = BASE_CPU_TYPES
    if version.at_least(VERSION_8):
        names = BASE_CPU_TYPES + V8_CPU_TYPES
    return {_canonical_key(name): name for name in names}


def canonical_cpu_type(cpu_type: str, version: ProductVersion) -> str:
    """
    Map a loosely spelled model to its wire name, e.g. ``skylake_server`` to
    ``Skylake-Server``. Returns "" for unknown models.
    """
    return cpu_types(version).get(_canonical_key(cpu_type), "")


# ============================================================================
# Affinity
# ============================================================================


def compress_affinity(affinity: Iterable[int]) -> str:
    """
    >>> compress_affinity([5, 0, 1, 2, 2, 3])
    '0-3,5'
    """
    cores = sorted(set(affinity))
    if not cores:
        return ""
    runs = []
    start = end = cores[0]
    for core in cores[1:]:
        if core == end + 1:
            end = core
            continue
        runs.append((start, end))
        start = end = core
    runs.append((start, end))
    return ",".join(str(a) if a == b else f"{a}-{b}" for a, b in runs)


def expand_affinity(raw: str) -> List[int]:
    """Inverse of compress_affinity, "" gives an empty list."""
    cores: List[int] = []
    if raw.strip() == "":
        return cores
    for part in raw.split(","):
        bounds = part.strip().split("-")
        try:
            if len(bounds) == 1:
                cores.append(int(bounds[0]))
            elif len(bounds) == 2:
                cores.extend(range(int(bounds[0]), int(bounds[1]) + 1))
            else:
                raise ValueError(part)
        except ValueError:
            raise ParseError(f"invalid cpu affinity: {raw!r}")
    return cores


# ============================================================================
# Flags
# ============================================================================


def render_flags(
    flags: Optional[CpuFlags],
    current: Optional[CpuFlags] = None,
) -> Tuple[str, bool]:
    """
    Render flags as ``+aes;-pcid`` in wire order.

    Flags left at None fall back to ``current``. The second value tells
    whether any flag was touched at all, ``TriBool.NONE`` counts as touched
    but renders nothing.
    """
    flags = flags or CpuFlags()
    parts = []
    touched = False
    for wire_name, attribute in FLAG_ORDER:
        value = getattr(flags, attribute)
        if value is None and current is not None:
            value = getattr(current, attribute)
        if value is None:
            continue
        touched = True
        if value == TriBool.TRUE:
            parts.append("+" + wire_name)
        elif value == TriBool.FALSE:
            parts.append("-" + wire_name)
    return ";".join(parts), touched


def parse_flags(raw: str) -> CpuFlags:
    values: Dict[str, TriBool] = {}
    for item in raw.split(";"):
        if len(item) < 2 or item[0] not in "+-":
            continue
        values[item[1:]] = TriBool.TRUE if item[0] == "+" else TriBool.FALSE
    return CpuFlags(
        **{
            attribute: values[wire_name]
            for wire_name, attribute in FLAG_ORDER
            if wire_name in values
        },
    )


def render_cpu(
    cpu_type: Optional[str],
    flags: Optional[CpuFlags],
    version: ProductVersion,
    current: Optional[Cpu] = None,
) -> str:
    """
    Render the ``cpu`` key. With ``current`` the type and the flags left unset
    fall back to the current ones.
    """
    if current is None:
        rendered_flags, flags_set = render_flags(flags)
        if rendered_flags == "":
            flags_set = False
        wire_type = canonical_cpu_type(cpu_type, version) if cpu_type else ""
    else:
        rendered_flags, flags_set = render_flags(flags, current.flags)
        wire_type = ""
        if cpu_type is not None:
            wire_type = canonical_cpu_type(cpu_type, version)
        elif current.type is not None:
            wire_type = canonical_cpu_type(current.type, version)
    if flags_set:
        return f"{wire_type},flags={rendered_flags}"
    return wire_type


# ============================================================================
# Codec
# ============================================================================


def validate(desired: Cpu, current: Optional[Cpu], version: ProductVersion) -> None:
    if desired.cores is not None:
        if desired.cores < 1:
            raise CpuCoresLowerBoundError()
        if desired.cores > CORES_MAXIMUM:
            raise CpuCoresUpperBoundError()
    elif current is None:
        raise CpuCoresRequiredError()
    if desired.flags is not None:
        for _, attribute in FLAG_ORDER:
            value = getattr(desired.flags, attribute)
            if value is not None and value not in TriBool.__members__.values():
                raise TriBoolError()
    if desired.limit is not None and not 0 <= desired.limit <= LIMIT_MAXIMUM:
        raise CpuLimitError()
    if desired.sockets is not None:
        if desired.sockets < 1:
            raise CpuSocketsLowerBoundError()
        if desired.sockets > SOCKETS_MAXIMUM:
            raise CpuSocketsUpperBoundError()
    if desired.type is not None and desired.type != "":
        if canonical_cpu_type(desired.type, version) == "":
            raise CpuTypeError(cpu_types(version).values())
    if desired.units is not None and not 0 <= desired.units <= UNITS_MAXIMUM:
        raise CpuUnitsError()
    if desired.virtual_cores is not None:
        cores = desired.cores
        sockets = desired.sockets
        if current is not None:
            cores = cores if cores is not None else current.cores
            sockets = sockets if sockets is not None else current.sockets
        maximum = (cores or 0) * (sockets or 0)
        if desired.virtual_cores > maximum:
            raise CpuVirtualCoresError(maximum)
    if desired.affinity is not None:
        for core in desired.affinity:
            if isinstance(core, bool) or not isinstance(core, int) or core < 0:
                raise CpuAffinityError()


def encode(cpu: Cpu, version: ProductVersion) -> Dict[str, Any]:
    """:return: Wire keys to create a guest with ``cpu``."""
    return diff(cpu, None, version).set


def parse(params: Dict[str, Any], strict: bool = False) -> Optional[Cpu]:
    """
    :param params: Guest config as returned by the API
    :return: Cpu, or None when the config carries none of the CPU keys
    """
    keys = ("affinity", "cores", "cpu", "cpulimit", "cpuunits", "numa", "sockets", "vcpus")
    if not any(key in params for key in keys):
        return None
    affinity = None
    raw_affinity = wire_str(params, "affinity")
    if raw_affinity is not None and raw_affinity.strip() != "":
        affinity = expand_affinity(raw_affinity)
    cpu_type = None
    flags = None
    raw_cpu = wire_str(params, "cpu")
    if raw_cpu is not None:
        leading, options = parse_segments(raw_cpu)
        check_unknown_options("cpu", options, ("flags", "cputype"), strict)
        cpu_type = leading if leading is not None else options.get("cputype")
        if options.get("flags"):
            flags = parse_flags(options["flags"])
    numa = wire_int(params, "numa")
    return Cpu(
        affinity=affinity,
        cores=wire_int(params, "cores"),
        flags=flags,
        limit=wire_int(params, "cpulimit"),
        numa=None if numa is None else numa == 1,
        sockets=wire_int(params, "sockets"),
        type=cpu_type,
        units=wire_int(params, "cpuunits"),
        virtual_cores=wire_int(params, "vcpus"),
    )


def diff(desired: Cpu, current: Optional[Cpu], version: ProductVersion) -> EntityChange:
    """
    Changes to the model, flags, topology, NUMA or pinning need a restart.
    Limit, units and vcpus are applied live.
    """
    change = EntityChange()
    existing = current or Cpu()
    create = current is None

    if desired.affinity is not None:
        rendered = compress_affinity(desired.affinity)
        if rendered != "":
            if create or existing.affinity is None or compress_affinity(existing.affinity) != rendered:
                change.set["affinity"] = rendered
                change.reboot = True
        elif existing.affinity is not None:
            change.set["affinity"] = ""
            change.reboot = True

    if desired.cores is not None and (create or desired.cores != existing.cores):
        change.set["cores"] = desired.cores
        change.reboot = True

    if desired.limit is not None:
        if desired.limit != 0:
            if desired.limit != existing.limit:
                change.set["cpulimit"] = desired.limit
        elif existing.limit is not None:
            change.delete.append("cpulimit")

    if desired.numa is not None and (create or desired.numa != existing.numa):
        change.set["numa"] = 1 if desired.numa else 0
        change.reboot = True

    if desired.sockets is not None and (create or desired.sockets != existing.sockets):
        change.set["sockets"] = desired.sockets
        change.reboot = True

    if desired.flags is not None or desired.type is not None:
        rendered = render_cpu(desired.type, desired.flags, version, current)
        if create:
            if rendered != "":
                change.set["cpu"] = rendered
                change.reboot = True
        elif rendered != render_cpu(existing.type, existing.flags, version, existing):
            change.set["cpu"] = rendered
            change.reboot = True

    if desired.units is not None:
        if desired.units != 0:
            if desired.units != existing.units:
                change.set["cpuunits"] = desired.units
        elif existing.units is not None:
            change.delete.append("cpuunits")

    if desired.virtual_cores is not None:
        if desired.virtual_cores != 0:
            if desired.virtual_cores != existing.virtual_cores:
                change.set["vcpus"] = desired.virtual_cores
        elif existing.virtual_cores is not None:
            change.delete.append("vcpus")

    if not change.is_empty():
        logger.debug("cpu change: set=%s delete=%s", sorted(change.set), change.delete)
    return change
