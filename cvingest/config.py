"""
Parser configuration data structures.

Plain dataclasses with defaults; ParserConfig.from_env() builds them from
environment variables. Loaded once at process start.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from .errors import ConfigError
from .models import AdapterDescriptor
from .shared import MEDIA_TYPE_DOCX, MEDIA_TYPE_PDF, MEDIA_TYPE_TEXT

DEFAULT_MAX_FILE_SIZE = 20 * 1024 * 1024  # 20 MiB

BACKOFF_EXPONENTIAL = "exponential"
BACKOFF_FIXED = "fixed"


@dataclass
class OcrSettings:
    """Tesseract settings passed through to the OCR adapter."""
    enabled: bool = False
    language: str = "eng"
    char_whitelist: str = ""
    page_seg_mode: int = 1
    zoom: float = 2.0


@dataclass
class VendorSettings:
    """Remote vendor parser endpoint."""
    enabled: bool = False
    url: str = ""
    timeout_ms: int = 30000

    def __post_init__(self) -> None:
        if self.timeout_ms <= 0:
            raise ConfigError("vendor timeout_ms must be positive")

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0


@dataclass
class CircuitBreakerSettings:
    failure_threshold: int = 5
    cooldown_ms: int = 60000

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ConfigError("failure_threshold must be at least 1")
        if self.cooldown_ms < 0:
            raise ConfigError("cooldown_ms must not be negative")

    @property
    def cooldown_s(self) -> float:
        return self.cooldown_ms / 1000.0


@dataclass
class AdapterSettings:
    """Per-adapter overrides; None keeps the built-in default."""
    enabled: Optional[bool] = None
    priority: Optional[int] = None


@dataclass(frozen=True)
class _BuiltinAdapter:
    name: str
    priority: int
    media_types: FrozenSet[str]


# Registration order doubles as the tie-breaker for equal priorities.
BUILTIN_ADAPTERS: List[_BuiltinAdapter] = [
    _BuiltinAdapter("text", 1, frozenset({MEDIA_TYPE_TEXT})),
    _BuiltinAdapter("pdf-text", 1, frozenset({MEDIA_TYPE_PDF})),
    _BuiltinAdapter("docx", 1, frozenset({MEDIA_TYPE_DOCX})),
    _BuiltinAdapter("pdf-layout", 2, frozenset({MEDIA_TYPE_PDF})),
    _BuiltinAdapter("ocr", 3, frozenset({MEDIA_TYPE_PDF})),
    _BuiltinAdapter("vendor", 5, frozenset({MEDIA_TYPE_PDF, MEDIA_TYPE_DOCX})),
]


@dataclass
class ParserConfig:
    """Everything the ingestion pipeline reads from configuration."""
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    min_text_length: int = 50
    max_retries: int = 3
    retry_delay_ms: int = 1000
    retry_backoff: str = BACKOFF_EXPONENTIAL
    confidence_threshold: float = 0.1
    ocr: OcrSettings = field(default_factory=OcrSettings)
    vendor: VendorSettings = field(default_factory=VendorSettings)
    circuit_breaker: CircuitBreakerSettings = field(default_factory=CircuitBreakerSettings)
    adapters: Dict[str, AdapterSettings] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ConfigError("max_retries must be at least 1")
        if self.retry_delay_ms < 0:
            raise ConfigError("retry_delay_ms must not be negative")
        if self.max_file_size < 0:
            raise ConfigError("max_file_size must not be negative")
        if self.min_text_length < 0:
            raise ConfigError("min_text_length must not be negative")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ConfigError("confidence_threshold must be within [0, 1]")
        if self.retry_backoff not in (BACKOFF_EXPONENTIAL, BACKOFF_FIXED):
            raise ConfigError(f"Unknown retry_backoff: {self.retry_backoff}")

    @property
    def retry_delay_s(self) -> float:
        return self.retry_delay_ms / 1000.0

    def with_adapter(self, name: str, *, enabled: Optional[bool] = None,
                     priority: Optional[int] = None) -> "ParserConfig":
        """Copy of this config with one adapter's overrides replaced."""
        adapters = dict(self.adapters)
        adapters[name] = AdapterSettings(enabled=enabled, priority=priority)
        return replace(self, adapters=adapters)

    def _default_enabled(self, name: str) -> bool:
        if name == "ocr":
            return self.ocr.enabled
        if name == "vendor":
            return self.vendor.enabled and bool(self.vendor.url)
        return True

    def _adapter_options(self, name: str) -> Dict[str, Any]:
        if name == "ocr":
            return {
                "language": self.ocr.language,
                "char_whitelist": self.ocr.char_whitelist,
                "page_seg_mode": self.ocr.page_seg_mode,
                "zoom": self.ocr.zoom,
            }
        if name == "vendor":
            return {"url": self.vendor.url, "timeout_s": self.vendor.timeout_s}
        return {}

    def adapter_descriptors(self) -> List[AdapterDescriptor]:
        """Descriptors for the built-in adapters, in registration order."""
        descriptors: List[AdapterDescriptor] = []
        for builtin in BUILTIN_ADAPTERS:
            override = self.adapters.get(builtin.name, AdapterSettings())
            enabled = self._default_enabled(builtin.name) if override.enabled is None else override.enabled
            priority = builtin.priority if override.priority is None else override.priority
            descriptors.append(
                AdapterDescriptor(
                    name=builtin.name,
                    priority=priority,
                    enabled=enabled,
                    media_types=builtin.media_types,
                    options=self._adapter_options(builtin.name),
                )
            )
        return descriptors

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ParserConfig":
        """Build configuration from environment variables (os.environ by default)."""
        env = os.environ if environ is None else environ

        adapters: Dict[str, AdapterSettings] = {}
        for builtin in BUILTIN_ADAPTERS:
            key = _adapter_env_key(builtin.name)
            settings = AdapterSettings(
                enabled=_get_bool(env, f"ADAPTER_{key}_ENABLED", None),
                priority=_get_int(env, f"ADAPTER_{key}_PRIORITY", None),
            )
            if settings.enabled is not None or settings.priority is not None:
                adapters[builtin.name] = settings

        return cls(
            max_file_size=_get_int(env, "MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE),
            min_text_length=_get_int(env, "MIN_TEXT_LENGTH", 50),
            max_retries=_get_int(env, "MAX_RETRIES", 3),
            retry_delay_ms=_get_int(env, "RETRY_DELAY", 1000),
            retry_backoff=env.get("RETRY_BACKOFF", BACKOFF_EXPONENTIAL).strip().lower(),
            confidence_threshold=_get_float(env, "CONFIDENCE_THRESHOLD", 0.1),
            ocr=OcrSettings(
                enabled=_get_bool(env, "ENABLE_OCR", False),
                language=env.get("OCR_LANGUAGE", "eng"),
                char_whitelist=env.get("OCR_CHAR_WHITELIST", ""),
                page_seg_mode=_get_int(env, "OCR_PAGE_SEG_MODE", 1),
            ),
            vendor=VendorSettings(
                enabled=_get_bool(env, "ENABLE_VENDOR_PARSER", False),
                url=env.get("VENDOR_PARSER_URL", "").rstrip("/"),
                timeout_ms=_get_int(env, "VENDOR_PARSER_TIMEOUT", 30000),
            ),
            circuit_breaker=CircuitBreakerSettings(
                failure_threshold=_get_int(env, "CIRCUIT_BREAKER_THRESHOLD", 5),
                cooldown_ms=_get_int(env, "CIRCUIT_BREAKER_TIMEOUT", 60000),
            ),
            adapters=adapters,
        )


def _adapter_env_key(name: str) -> str:
    return name.upper().replace("-", "_")


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _get_bool(env: Mapping[str, str], name: str, default: Optional[bool]) -> Optional[bool]:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _get_int(env: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e
