"""Run vesting calculations off the request thread."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Dict, Optional, Tuple

from btc_vesting.core.vesting import calculate
from btc_vesting.domain.errors import CalculationCancelled, CalculationTimeout
from btc_vesting.domain.scheme import MarketInput, SchemeInput
from btc_vesting.schemas.vesting import VestingCalculationResult

logger = logging.getLogger(__name__)


class VestingWorker:
    """
    Thread pool keyed by request id.

    A cancelled request either never starts (the future is cancelled) or, if a
    thread already picked it up, stops before computing via its cancel event.
    A request that is already computing runs to completion.
    """

    def __init__(self, max_workers: int = 2, timeout_seconds: float = 5.0):
        self.timeout_seconds = timeout_seconds
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="vesting")
        self._jobs: Dict[str, Tuple[Future, threading.Event]] = {}
        self._lock = threading.Lock()

    def submit(self, request_id: str, scheme: SchemeInput, market: MarketInput) -> Future:
        cancel_event = threading.Event()
        with self._lock:
            if request_id in self._jobs:
                raise ValueError(f"request {request_id!r} is already running")
            future = self._executor.submit(calculate, scheme, market, cancel_event)
            self._jobs[request_id] = (future, cancel_event)
        logger.debug("submitted vesting calculation %s", request_id)
        return future

    def cancel(self, request_id: str) -> bool:
        with self._lock:
            job = self._jobs.pop(request_id, None)
        if job is None:
            return False
        future, cancel_event = job
        cancel_event.set()
        cancelled = future.cancel()
        logger.info("cancelled vesting calculation %s (before start: %s)", request_id, cancelled)
        return True

    def result(self, request_id: str, timeout: Optional[float] = None) -> VestingCalculationResult:
        with self._lock:
            job = self._jobs.get(request_id)
        if job is None:
            raise KeyError(request_id)
        future, _ = job

        wait = self.timeout_seconds if timeout is None else timeout
        try:
            return future.result(timeout=wait)
        except FutureTimeoutError as exc:
            logger.warning("vesting calculation %s timed out after %.2fs", request_id, wait)
            raise CalculationTimeout(f"calculation {request_id!r} timed out after {wait}s") from exc
        except CancelledError as exc:
            raise CalculationCancelled(f"calculation {request_id!r} was cancelled") from exc
        finally:
            if future.done():
                with self._lock:
                    self._jobs.pop(request_id, None)

    def run(self, request_id: str, scheme: SchemeInput, market: MarketInput) -> VestingCalculationResult:
        """Submit and wait; a timed-out request is cancelled and forgotten."""
        self.submit(request_id, scheme, market)
        try:
            return self.result(request_id)
        except CalculationTimeout:
            self.cancel(request_id)
            raise

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            jobs = list(self._jobs.values())
            self._jobs.clear()
        for future, cancel_event in jobs:
            cancel_event.set()
            future.cancel()
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "VestingWorker":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
