"""
Adapter registry.

Two layers: a global name -> class registry (so new adapters can be plugged
in without touching the orchestrator), and AdapterRegistry, which binds the
configured AdapterDescriptors to adapter instances and resolves the ordered
chain for a media type.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Type

from ..errors import NoAdapterAvailable
from ..logging_utils import LOG
from ..models import AdapterDescriptor
from ..shared import normalize_media_type
from .base import TextAdapter
from .docx_adapter import DocxTextAdapter
from .ocr_adapter import TesseractOcrAdapter
from .pdf_adapters import PyMuPdfTextAdapter, PypdfTextAdapter
from .plain_text_adapter import PlainTextAdapter
from .vendor_adapter import VendorParserAdapter

if TYPE_CHECKING:
    from ..config import ParserConfig


# Global adapter registry
_ADAPTER_REGISTRY: Dict[str, Type[TextAdapter]] = {}


def register_adapter(name: str, adapter_class: Type[TextAdapter]) -> None:
    """
    Register an adapter class in the global registry.

    Args:
        name: The name to register the adapter under (e.g., "pdf-text")
        adapter_class: The adapter class to register
    """
    _ADAPTER_REGISTRY[name] = adapter_class


def get_adapter(name: str, **kwargs) -> Optional[TextAdapter]:
    """
    Get an adapter instance by name.

    Args:
        name: The adapter name
        **kwargs: Adapter options passed to the constructor

    Returns:
        Adapter instance, or None if not found
    """
    adapter_class = _ADAPTER_REGISTRY.get(name)
    if adapter_class:
        return adapter_class(name=name, **kwargs)
    return None


def list_registered_adapters() -> List[Dict[str, str]]:
    """
    List all registered adapter classes with their descriptions.

    Returns:
        List of dicts with 'name' and 'description' keys
    """
    adapters = []
    for name, adapter_class in _ADAPTER_REGISTRY.items():
        description = adapter_class.__doc__ or "No description available"
        description = description.strip().split("\n")[0]
        adapters.append({"name": name, "description": description})
    return sorted(adapters, key=lambda x: x["name"])


def unregister_adapter(name: str) -> None:
    _ADAPTER_REGISTRY.pop(name, None)


register_adapter("text", PlainTextAdapter)
register_adapter("pdf-text", PypdfTextAdapter)
register_adapter("docx", DocxTextAdapter)
register_adapter("pdf-layout", PyMuPdfTextAdapter)
register_adapter("ocr", TesseractOcrAdapter)
register_adapter("vendor", VendorParserAdapter)


class AdapterRegistry:
    """
    Configured adapters for one process.

    Descriptors keep their registration order, which breaks priority ties.
    Instances are created on first use from the global class registry unless
    they were passed in explicitly.
    """

    def __init__(self, descriptors: Iterable[AdapterDescriptor],
                 adapters: Optional[Mapping[str, TextAdapter]] = None):
        self._descriptors: List[AdapterDescriptor] = []
        seen = set()
        for d in descriptors:
            if d.name in seen:
                raise ValueError(f"Duplicate adapter name: {d.name}")
            seen.add(d.name)
            self._descriptors.append(d)
        self._instances: Dict[str, TextAdapter] = dict(adapters or {})
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: "ParserConfig",
                    adapters: Optional[Mapping[str, TextAdapter]] = None) -> "AdapterRegistry":
        return cls(config.adapter_descriptors(), adapters)

    @property
    def descriptors(self) -> List[AdapterDescriptor]:
        return list(self._descriptors)

    def descriptor(self, name: str) -> AdapterDescriptor:
        for d in self._descriptors:
            if d.name == name:
                return d
        raise KeyError(f"Unknown adapter: {name}")

    def list_adapters(self, media_type: str) -> List[AdapterDescriptor]:
        """
        Enabled adapters supporting media_type, by ascending priority
        (stable sort, so registration order breaks ties).

        Raises:
            NoAdapterAvailable: nothing is eligible
        """
        media_type = normalize_media_type(media_type)
        eligible = [d for d in self._descriptors if d.enabled and d.supports(media_type)]
        if not eligible:
            raise NoAdapterAvailable(media_type)
        eligible.sort(key=lambda d: d.priority)
        LOG.debug("Adapter chain for %s: %s", media_type, ", ".join(d.name for d in eligible))
        return eligible

    def get(self, name: str) -> TextAdapter:
        """Adapter instance for a configured descriptor name."""
        with self._lock:
            adapter = self._instances.get(name)
            if adapter is not None:
                return adapter
            descriptor = self.descriptor(name)
            adapter = get_adapter(name, **dict(descriptor.options))
            if adapter is None:
                raise KeyError(f"No adapter class registered for: {name}")
            self._instances[name] = adapter
            return adapter


__all__ = [
    "AdapterRegistry",
    "register_adapter",
    "get_adapter",
    "list_registered_adapters",
    "unregister_adapter",
]
