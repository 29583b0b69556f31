from importlib.metadata import PackageNotFoundError
from unittest.mock import patch

from qemuconf.version import get_version
from qemuconf.version import get_version_string


class TestGetVersion:
    def test_get_version_returns_package_version(self):
        with patch("qemuconf.version.version", return_value="1.2.3"):
            assert get_version() == "1.2.3"

    def test_get_version_returns_dev_when_not_installed(self):
        with patch("qemuconf.version.version", side_effect=PackageNotFoundError):
            assert get_version() == "dev"


def test_version_string():
    with patch("qemuconf.version.get_version", return_value="1.2.3"):
        assert get_version_string() == "qemuconf, version 1.2.3"
