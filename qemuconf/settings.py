import logging
from typing import Any
from typing import List

from dynaconf import Dynaconf

logger = logging.getLogger(__name__)


settings = Dynaconf(
    includes=["settings.toml"],
    load_dotenv=True,
    merge_enabled=True,
    envvar_prefix="QEMUCONF",
)

DEFAULT_PRODUCT_VERSION = "8.0.0"
_STRICT_TRUE = ("1", "true", "yes", "on")


def _section(name: str) -> Any:
    return settings.get(name.upper(), None) or {}


def _usable_version(raw: Any) -> bool:
    parts = str(raw).split(".")
    return len(parts) <= 3 and all(part.isdigit() for part in parts)


def _usable_strict(raw: Any) -> bool:
    return isinstance(raw, (bool, int, str))


def default_product_version() -> str:
    """
    Product version used when a caller does not pass one to the planner.

    Read from ``QEMUCONF_PRODUCT__DEFAULT_VERSION`` or the ``[product]`` table
    of settings.toml. A value that is not a version falls back to the default.
    """
    configured = _section("product").get("default_version")
    if configured is None or not _usable_version(configured):
        return DEFAULT_PRODUCT_VERSION
    return str(configured)


def strict_parsing() -> bool:
    """
    Whether decoders raise on option keys they do not know about.

    Read from ``QEMUCONF_PARSE__STRICT``. Defaults to False, unknown keys are
    logged and ignored.
    """
    value = _section("parse").get("strict", False)
    if not _usable_strict(value):
        return False
    if isinstance(value, str):
        return value.strip().lower() in _STRICT_TRUE
    return bool(value)


def check_settings() -> List[str]:
    """
    Check the configured values and log the ones that are unusable. The
    accessors above return their defaults for those.

    :return: List of setting names with problems, empty when everything is fine.
    """
    problems = []
    raw_version = _section("product").get("default_version")
    if raw_version is not None and not _usable_version(raw_version):
        problems.append("product.default_version")
    strict = _section("parse").get("strict")
    if strict is not None and not _usable_strict(strict):
        problems.append("parse.strict")

    if len(problems) > 0:
        logger.warning(
            "qemuconf settings are not usable, falling back to defaults for: %s",
            ", ".join(problems),
        )
    return problems
