"""
Per-adapter circuit breaker.

One CircuitBreaker is shared by every request in the process and passed to
the orchestrator explicitly. State per adapter name moves

    closed -> open       after failure_threshold consecutive failures
    open -> half-open    once cooldown_s has elapsed since the last failure
    half-open -> closed  on the next success
    half-open -> open    on the next failure

All transitions happen under one lock so concurrent requests see a
consistent count.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .errors import AdapterUnavailable
from .logging_utils import LOG

STATE_CLOSED = "closed"
STATE_OPEN = "open"
STATE_HALF_OPEN = "half-open"


@dataclass
class CircuitState:
    failures: int = 0
    status: str = STATE_CLOSED
    last_failure_at: Optional[float] = None


class CircuitBreaker:
    def __init__(
        self,
        failure_threshold: int = 5,
        cooldown_s: float = 60.0,
        _time: Callable[[], float] = time.monotonic,
    ):
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        self.failure_threshold = failure_threshold
        self.cooldown_s = cooldown_s
        self._time = _time
        self._lock = threading.Lock()
        self._states: Dict[str, CircuitState] = {}

    def _get(self, name: str) -> CircuitState:
        st = self._states.get(name)
        if st is None:
            st = self._states[name] = CircuitState()
        return st

    def _refresh(self, name: str, st: CircuitState) -> None:
        # open -> half-open is time driven, so it is applied lazily on read
        if st.status == STATE_OPEN and st.last_failure_at is not None:
            if self._time() - st.last_failure_at >= self.cooldown_s:
                st.status = STATE_HALF_OPEN
                LOG.info("Circuit %s: open -> half-open", name)

    def before_call(self, name: str) -> None:
        """
        Gate a call to adapter `name`.

        Raises:
            AdapterUnavailable: the circuit is open and still cooling down
        """
        with self._lock:
            st = self._get(name)
            self._refresh(name, st)
            if st.status == STATE_OPEN:
                elapsed = self._time() - (st.last_failure_at or 0.0)
                raise AdapterUnavailable(name, retry_in_s=max(0.0, self.cooldown_s - elapsed))

    def allows(self, name: str) -> bool:
        try:
            self.before_call(name)
        except AdapterUnavailable:
            return False
        return True

    def record_success(self, name: str) -> None:
        with self._lock:
            st = self._get(name)
            if st.status != STATE_CLOSED:
                LOG.info("Circuit %s: %s -> closed", name, st.status)
            st.failures = 0
            st.status = STATE_CLOSED

    def record_failure(self, name: str) -> None:
        with self._lock:
            st = self._get(name)
            self._refresh(name, st)
            st.failures += 1
            st.last_failure_at = self._time()
            if st.status == STATE_HALF_OPEN:
                st.status = STATE_OPEN
                LOG.warning("Circuit %s: half-open -> open (trial call failed)", name)
            elif st.status == STATE_CLOSED and st.failures >= self.failure_threshold:
                st.status = STATE_OPEN
                LOG.warning("Circuit %s: closed -> open after %d consecutive failures", name, st.failures)

    def state(self, name: str) -> CircuitState:
        """Copy of the current state for `name`."""
        with self._lock:
            st = self._get(name)
            self._refresh(name, st)
            return CircuitState(st.failures, st.status, st.last_failure_at)

    def snapshot(self) -> Dict[str, CircuitState]:
        with self._lock:
            out: Dict[str, CircuitState] = {}
            for name, st in self._states.items():
                self._refresh(name, st)
                out[name] = CircuitState(st.failures, st.status, st.last_failure_at)
            return out

    def reset(self, name: Optional[str] = None) -> None:
        with self._lock:
            if name is None:
                self._states.clear()
            else:
                self._states.pop(name, None)
