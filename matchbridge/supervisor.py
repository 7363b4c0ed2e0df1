import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, Tuple

logger = logging.getLogger(__name__)


class SupervisorClosed(RuntimeError):
    pass


class FlowSupervisor:
    """
    Runs orchestration flows in the background, one per key.

    Every flow receives the supervisor's shutdown event as ``cancel_event``
    so poll loops stop at their next wait once shutdown begins. Ticket-watch
    flows spend most of their life polling, so they run on their own pool
    and cannot starve match provisioning of workers.
    """

    def __init__(self, max_workers: int = 32, max_watchers: int = 32, shutdown_timeout: float = 60):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='matchbridge-flow')
        self._watch_executor = ThreadPoolExecutor(max_workers=max_watchers, thread_name_prefix='matchbridge-watch')
        self._shutdown_event = threading.Event()
        self._flows: Dict[str, Future] = {}
        # reentrant: done callbacks run inline when a flow finishes before registration
        self._lock = threading.RLock()
        self._closed = False
        self.shutdown_timeout = shutdown_timeout

    @property
    def cancel_event(self) -> threading.Event:
        return self._shutdown_event

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, key: str, fn: Callable, *args, watch: bool = False) -> Tuple[Future, bool]:
        """Start ``fn(*args, cancel_event=...)`` unless ``key`` is already running.

        ``watch`` selects the ticket-watch pool.

        Returns the flow's future and whether a new flow was started.
        """
        with self._lock:
            if self._closed:
                raise SupervisorClosed(f"Not accepting flow {key}: supervisor is shutting down")

            existing = self._flows.get(key)
            if existing is not None and not existing.done():
                logger.info(f"Flow {key} already in flight, ignoring duplicate trigger")
                return existing, False

            executor = self._watch_executor if watch else self._executor
            future = executor.submit(fn, *args, cancel_event=self._shutdown_event)
            self._flows[key] = future
            future.add_done_callback(lambda f, key=key: self._on_done(key, f))
            logger.info(f"Flow {key} started")
            return future, True

    def _on_done(self, key: str, future: Future):
        with self._lock:
            if self._flows.get(key) is future:
                del self._flows[key]
        if not future.cancelled() and future.exception() is not None:
            logger.error(f"Flow {key} ended with an error: {future.exception()!r}")

    def in_flight(self) -> int:
        with self._lock:
            return sum(1 for f in self._flows.values() if not f.done())

    def wait(self, timeout: float = None) -> bool:
        """Wait for every in-flight flow; True when all finished in time."""
        with self._lock:
            futures = list(self._flows.values())
        if not futures:
            return True
        _, not_done = wait(futures, timeout=timeout)
        return not not_done

    def shutdown(self, cancel: bool = True, timeout: float = None) -> bool:
        with self._lock:
            self._closed = True
        if cancel:
            self._shutdown_event.set()

        timeout = self.shutdown_timeout if timeout is None else timeout
        finished = self.wait(timeout)
        if not finished:
            logger.warning(f"{self.in_flight()} flows still running after {timeout}s shutdown wait")
        self._executor.shutdown(wait=False)
        self._watch_executor.shutdown(wait=False)
        return finished
