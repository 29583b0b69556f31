import logging
from unittest.mock import patch

from qemuconf.settings import check_settings
from qemuconf.settings import default_product_version
from qemuconf.settings import strict_parsing


class TestDefaultProductVersion:
    def test_default(self):
        with patch("qemuconf.settings.settings", {}):
            assert default_product_version() == "8.0.0"

    def test_configured(self):
        with patch("qemuconf.settings.settings", {"PRODUCT": {"default_version": "7.4.3"}}):
            assert default_product_version() == "7.4.3"


class TestStrictParsing:
    def test_default_is_lenient(self):
        with patch("qemuconf.settings.settings", {}):
            assert strict_parsing() is False

    def test_string_from_environment(self):
        with patch("qemuconf.settings.settings", {"PARSE": {"strict": "true"}}):
            assert strict_parsing() is True
        with patch("qemuconf.settings.settings", {"PARSE": {"strict": "off"}}):
            assert strict_parsing() is False

    def test_boolean(self):
        with patch("qemuconf.settings.settings", {"PARSE": {"strict": True}}):
            assert strict_parsing() is True


def test_check_settings_reports_unusable_values(caplog):
    broken = {"PRODUCT": {"default_version": "eight"}, "PARSE": {"strict": ["yes"]}}
    with patch("qemuconf.settings.settings", broken):
        with caplog.at_level(logging.WARNING, logger="qemuconf.settings"):
            assert check_settings() == ["product.default_version", "parse.strict"]
    assert "falling back to defaults" in caplog.text


def test_check_settings_accepts_defaults():
    with patch("qemuconf.settings.settings", {}):
        assert check_settings() == []


def test_unusable_values_fall_back_to_defaults():
    broken = {"PRODUCT": {"default_version": "eight"}, "PARSE": {"strict": ["yes"]}}
    with patch("qemuconf.settings.settings", broken):
        assert default_product_version() == "8.0.0"
        assert strict_parsing() is False
