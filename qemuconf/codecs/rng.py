import logging
from typing import Any
from typing import Dict
from typing import Optional

from qemuconf.codecs.common import option_int
from qemuconf.codecs.common import wire_str
from qemuconf.errors import RngSourceError
from qemuconf.errors import RngSourceRequiredError
from qemuconf.models.changes import EntityChange
from qemuconf.models.rng import ENTROPY_SOURCES
from qemuconf.models.rng import VirtioRng
from qemuconf.product import ProductVersion
from qemuconf.segments import build_segments
from qemuconf.segments import check_unknown_options
from qemuconf.segments import parse_segments

logger = logging.getLogger(__name__)

RNG_KEY = "rng0"


def merge(desired: VirtioRng, current: VirtioRng) -> VirtioRng:
    return VirtioRng(
        source=desired.source if desired.source is not None else current.source,
        limit=desired.limit if desired.limit is not None else current.limit,
        period_ms=desired.period_ms if desired.period_ms is not None else current.period_ms,
    )


def render(rng: VirtioRng) -> str:
    return build_segments(
        None,
        [
            ("source", rng.source),
            ("max_bytes", rng.limit if rng.limit else None),
            ("period", rng.period_ms if rng.period_ms else None),
        ],
    )


def validate(
    desired: VirtioRng,
    current: Optional[VirtioRng],
    version: Optional[ProductVersion] = None,
) -> None:
    if desired.delete:
        return
    if desired.source is None:
        if current is None:
            raise RngSourceRequiredError()
        return
    if desired.source not in ENTROPY_SOURCES:
        raise RngSourceError()


def encode(rng: VirtioRng) -> Dict[str, str]:
    if rng.delete:
        return {}
    return {RNG_KEY: render(rng)}


def parse(params: Dict[str, Any], strict: bool = False) -> Optional[VirtioRng]:
    raw = wire_str(params, RNG_KEY)
    if raw is None:
        return None
    _, options = parse_segments(raw)
    check_unknown_options(RNG_KEY, options, ("max_bytes", "period", "source"), strict)
    return VirtioRng(
        source=options.get("source"),
        limit=option_int(options, "max_bytes", RNG_KEY),
        period_ms=option_int(options, "period", RNG_KEY),
    )


def diff(
    desired: Optional[VirtioRng],
    current: Optional[VirtioRng],
    version: Optional[ProductVersion] = None,
) -> EntityChange:
    """The entropy device is not hotpluggable, any change needs a restart."""
    change = EntityChange()
    if desired is None:
        return change
    if current is None:
        change.set.update(encode(desired))
    elif desired.delete:
        change.delete.append(RNG_KEY)
    else:
        rendered = render(merge(desired, current))
        if rendered != render(current):
            change.set[RNG_KEY] = rendered
    change.reboot = not change.is_empty()
    return change
