"""
Extraction orchestrator.

Walks the adapter chain for a document's media type in priority order,
strictly one adapter at a time:

- an adapter whose circuit is open is skipped without being called
- transient failures are retried with fixed or exponential backoff, each
  failed try feeding the circuit breaker
- a declined input moves straight on to the next adapter
- text shorter than min_text_length is a weak result: kept, but the chain
  continues
- the first strong result ends the walk

If nothing strong turns up, the best weak result is returned; if no adapter
produced any text at all, ExtractionFailed is raised.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from .adapters.adapter_registry import AdapterRegistry
from .circuit_breaker import CircuitBreaker
from .config import BACKOFF_EXPONENTIAL, ParserConfig
from .errors import AdapterDeclined, AdapterUnavailable, ExtractionFailed, TransientAdapterError
from .logging_utils import LOG, fmt_attempts
from .models import (
    STATUS_DECLINED,
    STATUS_FAILED,
    STATUS_OK,
    STATUS_SKIPPED,
    STATUS_WEAK,
    AdapterDescriptor,
    ExtractionAttempt,
    ExtractionOutcome,
)
from .shared import UploadedDocument


class ExtractionOrchestrator:
    def __init__(
        self,
        registry: AdapterRegistry,
        breaker: CircuitBreaker,
        config: Optional[ParserConfig] = None,
        _sleep: Callable[[float], None] = time.sleep,
        _time: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            registry: Configured adapters
            breaker: Process-wide circuit breaker, shared between requests
            config: Retry and threshold settings (defaults if omitted)
            _sleep: Injected sleep (tests).
            _time: Injected clock (tests).
        """
        self.registry = registry
        self.breaker = breaker
        self.config = config or ParserConfig()
        self._sleep = _sleep
        self._time = _time

    def backoff_delay(self, attempt_idx: int) -> float:
        """Seconds to wait after failed try number attempt_idx (0-based)."""
        base = self.config.retry_delay_s
        if self.config.retry_backoff == BACKOFF_EXPONENTIAL:
            return base * (2 ** attempt_idx)
        return base

    def extract(self, document: UploadedDocument) -> ExtractionOutcome:
        """
        Run the adapter chain over one document.

        Raises:
            NoAdapterAvailable: no enabled adapter supports the media type
            ExtractionFailed: every adapter was skipped, failed or produced no text
        """
        chain = self.registry.list_adapters(document.media_type)
        label = document.filename or document.media_type

        attempts = []
        best_weak: Optional[ExtractionAttempt] = None
        for descriptor in chain:
            attempt = self._invoke(descriptor, document)
            attempts.append(attempt)

            if attempt.status == STATUS_OK:
                LOG.info("%s: extracted by %s (confidence %.2f) [%s]",
                         label, attempt.adapter, attempt.confidence, fmt_attempts(attempts))
                return self._outcome(attempt, attempts, weak=False)

            if attempt.status == STATUS_WEAK and attempt.text:
                if best_weak is None or attempt.confidence > best_weak.confidence:
                    best_weak = attempt

        if best_weak is not None:
            LOG.info("%s: only weak text, using %s (confidence %.2f) [%s]",
                     label, best_weak.adapter, best_weak.confidence, fmt_attempts(attempts))
            return self._outcome(best_weak, attempts, weak=True)

        LOG.warning("%s: no adapter produced text [%s]", label, fmt_attempts(attempts))
        raise ExtractionFailed(f"No adapter produced text for {label}: {fmt_attempts(attempts)}")

    def _outcome(self, attempt: ExtractionAttempt, attempts, weak: bool) -> ExtractionOutcome:
        return ExtractionOutcome(
            text=attempt.text,
            confidence=attempt.confidence,
            source_tag=attempt.source_tag,
            adapter=attempt.adapter,
            weak=weak,
            payload=attempt.payload,
            attempts=list(attempts),
        )

    def _invoke(self, descriptor: AdapterDescriptor, document: UploadedDocument) -> ExtractionAttempt:
        """Call one adapter with bounded retries. Never raises."""
        name = descriptor.name
        adapter = self.registry.get(name)
        attempt = ExtractionAttempt(adapter=name, source_tag=adapter.source_tag, status=STATUS_FAILED)
        max_tries = self.config.max_retries
        start = self._time()

        for attempt_idx in range(max_tries):
            try:
                self.breaker.before_call(name)
            except AdapterUnavailable as e:
                LOG.info("%s: skipped (%s)", name, e)
                attempt.status = STATUS_SKIPPED if attempt.tries == 0 else STATUS_FAILED
                attempt.error = attempt.error or str(e)
                break

            attempt.tries += 1
            try:
                output = adapter.extract(document)
            except AdapterDeclined as e:
                LOG.info("%s: declined: %s", name, e)
                attempt.status = STATUS_DECLINED
                attempt.error = str(e)
                break
            except TransientAdapterError as e:
                self.breaker.record_failure(name)
                attempt.error = str(e)
                LOG.warning("%s: try %d/%d failed: %s", name, attempt.tries, max_tries, e)
                if attempt_idx < max_tries - 1 and self.breaker.allows(name):
                    self._sleep(self.backoff_delay(attempt_idx))
                continue
            except Exception as e:
                # An adapter bug must not take the request down; it still counts against the adapter
                self.breaker.record_failure(name)
                LOG.error("%s: unexpected error: %s", name, e, exc_info=True)
                attempt.error = f"{type(e).__name__}: {e}"
                break

            self.breaker.record_success(name)
            text = output.text or ""
            attempt.text = text
            attempt.payload = output.payload
            if len(text) >= self.config.min_text_length:
                attempt.status = STATUS_OK
                attempt.confidence = output.confidence
            else:
                # Weak: scale confidence by how far short of the threshold the text is
                attempt.status = STATUS_WEAK
                scale = len(text) / self.config.min_text_length if self.config.min_text_length else 1.0
                attempt.confidence = output.confidence * scale
                LOG.info("%s: weak result (%d chars < %d)", name, len(text), self.config.min_text_length)
            break

        attempt.elapsed_s = self._time() - start
        LOG.debug("%s: %s after %d tr%s in %.2fs", name, attempt.status, attempt.tries,
                  "y" if attempt.tries == 1 else "ies", attempt.elapsed_s)
        return attempt
