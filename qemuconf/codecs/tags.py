"""
Tag codec. The API stores tags as one ``;`` separated string and does not
keep their order, so tags are compared as sorted lists.
"""

import logging
import re
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from qemuconf.codecs.common import wire_str
from qemuconf.errors import TagCharacterError
from qemuconf.errors import TagDuplicateError
from qemuconf.errors import TagEmptyError
from qemuconf.errors import TagLengthError
from qemuconf.models.changes import EntityChange
from qemuconf.product import ProductVersion

logger = logging.getLogger(__name__)

TAG_MAXIMUM = 124

_TAG_REGEX = re.compile(r"^[a-zA-Z0-9_][a-zA-Z0-9._-]*$")


def render(tags: List[str]) -> str:
    return ";".join(tags)


def validate_tag(tag: str) -> None:
    if tag == "":
        raise TagEmptyError()
    if len(tag) > TAG_MAXIMUM:
        raise TagLengthError()
    if not _TAG_REGEX.match(tag):
        raise TagCharacterError()


def validate(
    desired: Optional[List[str]],
    current: Optional[List[str]] = None,
    version: Optional[ProductVersion] = None,
) -> None:
    seen = set()
    for tag in desired or []:
        validate_tag(tag)
        if tag in seen:
            raise TagDuplicateError()
        seen.add(tag)


def encode(tags: List[str]) -> str:
    return render(tags)


def parse(params: Dict[str, Any]) -> Optional[List[str]]:
    raw = wire_str(params, "tags")
    if raw is None:
        return None
    # The API has used both ";" and " " as separator.
    return [tag for tag in re.split(r"[; ]", raw) if tag != ""]


def diff(
    desired: Optional[List[str]],
    current: Optional[List[str]],
    version: Optional[ProductVersion] = None,
) -> EntityChange:
    change = EntityChange()
    if desired is None:
        return change
    rendered = render(sorted(desired))
    if current is None:
        if rendered:
            change.set["tags"] = rendered
        return change
    if rendered == render(sorted(current)):
        return change
    if rendered == "":
        change.delete.append("tags")
    else:
        change.set["tags"] = rendered
    return change
