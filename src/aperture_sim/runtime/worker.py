"""Background execution of simulation requests.

One pipeline runs at a time on a single worker thread. Submitting a new
request cancels the token of the one before it, so a superseded request
resolves to a "cancelled" failure instead of a stale image.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from obscura.core.logging import get_logger

from ..core.pipeline import (
    CancellationToken,
    SimulationPipeline,
    SimulationRequest,
    SimulationResponse,
)

logger = get_logger(__name__)


class SimulationWorker:
    """Latest-request-wins executor around a SimulationPipeline."""

    def __init__(self, pipeline: Optional[SimulationPipeline] = None):
        self.pipeline = pipeline or SimulationPipeline()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="obscura-sim")
        self._lock = threading.Lock()
        self._current: Optional[CancellationToken] = None
        self._submitted = 0

    def submit(self, request: SimulationRequest) -> Future[SimulationResponse]:
        """Queue a request, cancelling whichever request is still pending or running."""
        with self._lock:
            if self._current is not None:
                self._current.cancel()
            token = CancellationToken()
            self._current = token
            self._submitted += 1
            request_id = self._submitted
        logger.debug("Request submitted", {"request_id": request_id})
        return self._executor.submit(self.pipeline.run, request, token)

    def cancel(self) -> None:
        """Cancel the most recent request, if any."""
        with self._lock:
            if self._current is not None:
                self._current.cancel()

    def shutdown(self, wait: bool = True) -> None:
        self.cancel()
        self._executor.shutdown(wait=wait)
        self.pipeline.close()

    def __enter__(self) -> SimulationWorker:
        return self

    def __exit__(self, *exc: object) -> None:
        self.shutdown()


__all__ = ["SimulationWorker"]
