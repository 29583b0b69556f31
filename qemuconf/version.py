import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version

logger = logging.getLogger(__name__)


def get_version() -> str:
    """
    Get the current version of the qemuconf package.

    Returns the version string from the installed package metadata,
    or 'dev' if the package is not installed (e.g. development environments).
    """
    try:
        return version("qemuconf")
    except PackageNotFoundError:
        logger.debug("qemuconf package metadata not found, returning 'dev'.")
        return "dev"


def get_version_string() -> str:
    """
    Get a formatted version string, e.g. "qemuconf, version 0.4.0".
    """
    return f"qemuconf, version {get_version()}"
