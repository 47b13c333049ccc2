"""
Remote vendor parser adapter.

Posts the upload to an external document-parsing service and returns its
JSON payload for the vendor normalizer. The only network-bound step of the
pipeline, so every call carries an explicit timeout.
"""

from __future__ import annotations

from typing import Any, List, Optional

import requests

from ..errors import AdapterDeclined, VendorUnavailable
from ..logging_utils import LOG
from ..models import SOURCE_VENDOR, AdapterOutput
from ..shared import UploadedDocument
from ..vendor_normalizer import pick, vendor_raw_text
from .base import TextAdapter

PARSE_PATH = "/api/documentparser/parse"
HEALTH_PATH = "/api/documentparser/health"
FORMATS_PATH = "/api/documentparser/supported-formats"


class VendorParserAdapter(TextAdapter):
    """Sends the document to the remote vendor parsing service."""

    source_tag = SOURCE_VENDOR
    base_confidence = 0.9

    @property
    def base_url(self) -> str:
        url = (self.options.get("url") or "").rstrip("/")
        if not url:
            raise VendorUnavailable("vendor parser URL is not configured")
        return url

    @property
    def timeout_s(self) -> float:
        return float(self.options.get("timeout_s", 30.0))

    def extract(self, document: UploadedDocument) -> AdapterOutput:
        if not document.content:
            raise AdapterDeclined(self.name, "document is empty")

        url = self.base_url + PARSE_PATH
        LOG.debug("%s: POST %s (%d bytes)", self.name, url, document.byte_length)
        try:
            resp = requests.post(
                url,
                files={"file": (document.filename or "upload", document.content, document.media_type)},
                timeout=self.timeout_s,
            )
        except requests.Timeout as e:
            raise VendorUnavailable(f"timed out after {self.timeout_s:.0f}s") from e
        except requests.RequestException as e:
            raise VendorUnavailable(f"request failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise VendorUnavailable(f"HTTP {resp.status_code}", status_code=resp.status_code)

        try:
            payload = resp.json()
        except ValueError as e:
            raise VendorUnavailable(f"malformed JSON: {e}", status_code=resp.status_code) from e
        if not isinstance(payload, dict):
            raise VendorUnavailable("malformed JSON: top-level value is not an object",
                                    status_code=resp.status_code)

        success = pick(payload, "success")
        if success is False:
            message = pick(payload, "message") or "vendor reported failure"
            raise AdapterDeclined(self.name, str(message))

        output = self._output(vendor_raw_text(payload))
        output.payload = payload
        return output

    def health_check(self) -> bool:
        """True when the vendor reports itself healthy."""
        try:
            resp = requests.get(self.base_url + HEALTH_PATH, timeout=min(5.0, self.timeout_s))
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError, VendorUnavailable) as e:
            LOG.warning("%s: health check failed: %s", self.name, e)
            return False
        status = pick(data, "status") if isinstance(data, dict) else None
        return str(status).lower() == "healthy"

    def supported_formats(self) -> List[str]:
        try:
            resp = requests.get(self.base_url + FORMATS_PATH, timeout=min(5.0, self.timeout_s))
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError, VendorUnavailable) as e:
            LOG.warning("%s: failed to get supported formats: %s", self.name, e)
            return []
        formats: Optional[Any] = pick(data, "supportedFormats") if isinstance(data, dict) else data
        return [str(f) for f in formats] if isinstance(formats, list) else []
