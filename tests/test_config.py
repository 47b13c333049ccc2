"""Tests for environment-sourced parser configuration."""

from dataclasses import replace

import pytest

from cvingest.config import BACKOFF_FIXED, BUILTIN_ADAPTERS, ParserConfig
from cvingest.errors import ConfigError
from cvingest.shared import MEDIA_TYPE_DOCX, MEDIA_TYPE_PDF


def _by_name(config: ParserConfig):
    return {d.name: d for d in config.adapter_descriptors()}


class TestDefaults:
    def test_default_values(self):
        config = ParserConfig.from_env({})
        assert config.max_file_size == 20 * 1024 * 1024
        assert config.min_text_length == 50
        assert config.max_retries == 3
        assert config.retry_delay_ms == 1000
        assert config.confidence_threshold == 0.1
        assert config.circuit_breaker.failure_threshold == 5
        assert config.circuit_breaker.cooldown_s == 60.0
        assert config.vendor.timeout_s == 30.0

    def test_descriptors_in_registration_order(self):
        names = [d.name for d in ParserConfig().adapter_descriptors()]
        assert names == [b.name for b in BUILTIN_ADAPTERS]

    def test_ocr_and_vendor_disabled_by_default(self):
        descriptors = _by_name(ParserConfig())
        assert descriptors["ocr"].enabled is False
        assert descriptors["vendor"].enabled is False
        assert descriptors["pdf-text"].enabled is True

    def test_media_types(self):
        descriptors = _by_name(ParserConfig())
        assert descriptors["vendor"].media_types == frozenset({MEDIA_TYPE_PDF, MEDIA_TYPE_DOCX})
        assert descriptors["docx"].supports(MEDIA_TYPE_DOCX)
        assert not descriptors["docx"].supports(MEDIA_TYPE_PDF)


class TestFromEnv:
    def test_reads_numeric_settings(self):
        config = ParserConfig.from_env({
            "MAX_FILE_SIZE": "1024",
            "MIN_TEXT_LENGTH": "20",
            "MAX_RETRIES": "2",
            "RETRY_DELAY": "250",
            "RETRY_BACKOFF": "Fixed",
            "CONFIDENCE_THRESHOLD": "0.25",
            "CIRCUIT_BREAKER_THRESHOLD": "3",
            "CIRCUIT_BREAKER_TIMEOUT": "5000",
        })
        assert config.max_file_size == 1024
        assert config.min_text_length == 20
        assert config.max_retries == 2
        assert config.retry_delay_s == 0.25
        assert config.retry_backoff == BACKOFF_FIXED
        assert config.confidence_threshold == 0.25
        assert config.circuit_breaker.failure_threshold == 3
        assert config.circuit_breaker.cooldown_s == 5.0

    def test_ocr_settings_flow_into_descriptor(self):
        config = ParserConfig.from_env({
            "ENABLE_OCR": "true",
            "OCR_LANGUAGE": "deu",
            "OCR_CHAR_WHITELIST": "abc",
            "OCR_PAGE_SEG_MODE": "6",
        })
        ocr = _by_name(config)["ocr"]
        assert ocr.enabled is True
        assert ocr.options["language"] == "deu"
        assert ocr.options["char_whitelist"] == "abc"
        assert ocr.options["page_seg_mode"] == 6

    def test_vendor_needs_url(self):
        config = ParserConfig.from_env({"ENABLE_VENDOR_PARSER": "1"})
        assert _by_name(config)["vendor"].enabled is False

    def test_vendor_enabled_with_url(self):
        config = ParserConfig.from_env({
            "ENABLE_VENDOR_PARSER": "yes",
            "VENDOR_PARSER_URL": "http://parser.local/",
            "VENDOR_PARSER_TIMEOUT": "5000",
        })
        vendor = _by_name(config)["vendor"]
        assert vendor.enabled is True
        assert vendor.options == {"url": "http://parser.local", "timeout_s": 5.0}

    def test_per_adapter_overrides(self):
        config = ParserConfig.from_env({
            "ADAPTER_PDF_TEXT_ENABLED": "false",
            "ADAPTER_PDF_LAYOUT_PRIORITY": "0",
        })
        descriptors = _by_name(config)
        assert descriptors["pdf-text"].enabled is False
        assert descriptors["pdf-layout"].priority == 0
        assert descriptors["pdf-layout"].enabled is True

    def test_blank_values_use_defaults(self):
        config = ParserConfig.from_env({"MIN_TEXT_LENGTH": "  ", "ENABLE_OCR": ""})
        assert config.min_text_length == 50
        assert config.ocr.enabled is False

    @pytest.mark.parametrize(
        "env",
        [
            {"MAX_RETRIES": "three"},
            {"CONFIDENCE_THRESHOLD": "high"},
            {"ENABLE_OCR": "maybe"},
            {"RETRY_BACKOFF": "random"},
            {"MAX_RETRIES": "0"},
            {"CONFIDENCE_THRESHOLD": "1.5"},
            {"RETRY_DELAY": "-5"},
            {"MAX_FILE_SIZE": "-1"},
            {"VENDOR_PARSER_TIMEOUT": "0"},
            {"CIRCUIT_BREAKER_THRESHOLD": "0"},
            {"CIRCUIT_BREAKER_TIMEOUT": "-1"},
        ],
    )
    def test_invalid_values_raise_config_error(self, env):
        with pytest.raises(ConfigError):
            ParserConfig.from_env(env)

    def test_negative_retry_delay_rejected_directly(self):
        """A negative delay never reaches the retry loop's sleep."""
        with pytest.raises(ConfigError, match="retry_delay_ms"):
            ParserConfig(retry_delay_ms=-5)
        with pytest.raises(ConfigError, match="retry_delay_ms"):
            replace(ParserConfig(), retry_delay_ms=-1)

    def test_config_error_names_variable(self):
        with pytest.raises(ConfigError, match="MAX_RETRIES"):
            ParserConfig.from_env({"MAX_RETRIES": "x"})

    def test_reads_os_environ_by_default(self, monkeypatch):
        monkeypatch.setenv("MIN_TEXT_LENGTH", "77")
        assert ParserConfig.from_env().min_text_length == 77


class TestWithAdapter:
    def test_with_adapter_returns_copy(self):
        base = ParserConfig()
        changed = base.with_adapter("pdf-text", enabled=False)
        assert _by_name(changed)["pdf-text"].enabled is False
        assert _by_name(base)["pdf-text"].enabled is True

    def test_override_can_force_ocr_on(self):
        config = ParserConfig().with_adapter("ocr", enabled=True, priority=9)
        ocr = _by_name(config)["ocr"]
        assert ocr.enabled is True
        assert ocr.priority == 9
