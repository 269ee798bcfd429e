"""
Dense optical flow backend readiness.

The native OpenCV backend is loaded once per process. The first caller
starts the load on a worker thread; concurrent callers wait on the same
pending future instead of starting another load.
"""

import importlib
import logging
import threading
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

INIT_TIMEOUT_SECONDS = 15.0


def load_opencv():
    """Import OpenCV and check it ships the dense flow estimator"""
    cv = importlib.import_module("cv2")
    if not hasattr(cv, "calcOpticalFlowFarneback"):
        raise ImportError("cv2 build lacks calcOpticalFlowFarneback")
    return cv


class FlowBackend:
    """Write-once readiness flag around a lazily loaded vision module"""

    def __init__(
        self,
        loader: Optional[Callable[[], Any]] = None,
        timeout: float = INIT_TIMEOUT_SECONDS
    ):
        self._loader = loader or load_opencv
        self.timeout = timeout
        self._lock = threading.Lock()
        self._pending: Optional[Future] = None
        self._ready = False
        self.cv = None

    @property
    def is_ready(self) -> bool:
        return self._ready

    def initialize(self) -> bool:
        """
        Load the backend if needed and wait for it.

        Returns:
            True once the backend is usable, False on load failure or timeout
        """
        with self._lock:
            if self._ready:
                return True
            if self._pending is None:
                self._pending = Future()
                thread = threading.Thread(
                    target=self._load, args=(self._pending,),
                    name="flow-backend-init", daemon=True
                )
                thread.start()
            pending = self._pending

        try:
            return pending.result(timeout=self.timeout)
        except FutureTimeoutError:
            logger.warning(f"Optical flow backend failed to load within {self.timeout:.0f} seconds")
            return False

    def _load(self, pending: Future) -> None:
        try:
            module = self._loader()
        except Exception as e:
            logger.error(f"Failed to load optical flow backend: {e}")
            with self._lock:
                # Allow a later caller to retry
                self._pending = None
            pending.set_result(False)
            return

        with self._lock:
            self.cv = module
            self._ready = True
        logger.info("Optical flow backend initialized")
        pending.set_result(True)


_default_backend = FlowBackend()


def get_backend() -> FlowBackend:
    """Process-wide backend shared by callers that do not inject one"""
    return _default_backend
