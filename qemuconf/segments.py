"""
Comma separated ``key=value`` segments used inside most wire values.

A disk is sent as ``local-lvm:32,backup=0,cache=none``: an optional keyless
leading token followed by options. These helpers build and split such strings,
the entity codecs decide what the tokens mean.
"""

import logging
from typing import Any
from typing import Dict
from typing import Iterable
from typing import Optional
from typing import Tuple

from qemuconf.errors import UnknownOptionError

logger = logging.getLogger(__name__)

Segment = Tuple[str, Optional[Any]]


def build_segments(leading: Optional[str], pairs: Iterable[Segment]) -> str:
    """
    Render a leading token and ordered ``key=value`` pairs.

    :param leading: Keyless first token, skipped when None or empty
    :param pairs: (key, value) pairs in wire order, pairs with a None value are omitted
    :return: Comma joined wire value
    """
    parts = []
    if leading:
        parts.append(leading)
    for key, value in pairs:
        if value is None:
            continue
        parts.append(f"{key}={value}")
    return ",".join(parts)


def parse_segments(raw: str) -> Tuple[Optional[str], Dict[str, str]]:
    """
    Split a wire value into its leading token and its options.

    The first piece is the leading token when it holds no ``=``. Every other
    piece is split on its first ``=``; a piece without one maps to "".

    :param raw: Wire value, e.g. "none,media=cdrom"
    :return: (leading token or None, ordered dict of options)
    """
    pieces = raw.split(",")
    leading = None
    if pieces and "=" not in pieces[0]:
        leading = pieces[0]
        pieces = pieces[1:]
    options: Dict[str, str] = {}
    for piece in pieces:
        if piece == "":
            continue
        key, _, value = piece.partition("=")
        options[key] = value
    return leading, options


def check_unknown_options(
    field: str,
    options: Dict[str, str],
    known: Iterable[str],
    strict: bool = False,
) -> None:
    """
    Report option keys a codec does not handle.

    Unknown keys are ignored so that newer API versions keep decoding; with
    ``strict`` they raise instead.
    """
    known_keys = set(known)
    unknown = [key for key in options if key not in known_keys]
    if not unknown:
        return
    if strict:
        raise UnknownOptionError(
            f"{field} has unknown option(s): {', '.join(sorted(unknown))}",
        )
    logger.debug("Ignoring unknown option(s) %s on %s", ", ".join(unknown), field)


def parse_bool(value: Any) -> bool:
    """Decode the API's boolean spellings: 1/0, on/off, true/false, yes/no."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    return str(value).strip().lower() in ("1", "on", "true", "yes")


def bool_to_int(value: bool) -> int:
    return 1 if value else 0
