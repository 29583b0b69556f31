import pytest

from qemuconf.errors import ProductVersionError
from qemuconf.product import ProductVersion
from qemuconf.product import VERSION_8


class TestParse:
    def test_full_version(self):
        assert ProductVersion.parse("8.1.4") == ProductVersion(8, 1, 4)

    def test_missing_parts_are_zero(self):
        assert ProductVersion.parse("8") == ProductVersion(8, 0, 0)
        assert ProductVersion.parse("7.4") == ProductVersion(7, 4, 0)

    def test_qualifier_is_ignored(self):
        assert ProductVersion.parse("7.4-3") == ProductVersion(7, 4, 0)

    def test_instance_is_returned_as_is(self):
        version = ProductVersion(8, 2, 0)
        assert ProductVersion.parse(version) is version

    @pytest.mark.parametrize("raw", ["", "abc", "8.x", "1.2.3.4"])
    def test_malformed(self, raw):
        with pytest.raises(ProductVersionError):
            ProductVersion.parse(raw)


def test_from_api():
    body = {"release": "8.2", "repoid": "b2b5b5e7", "version": "8.2.2"}
    assert ProductVersion.from_api(body) == ProductVersion(8, 2, 2)


def test_ordering():
    assert ProductVersion(8, 0, 1).at_least(VERSION_8)
    assert not ProductVersion(7, 4, 3).at_least(VERSION_8)
    assert ProductVersion(7, 4, 3) < ProductVersion(7, 10, 0)
    assert str(ProductVersion(8, 1, 0)) == "8.1.0"
