import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Optional

from shortlink.db.repository import ShortLinkRepository

logger = logging.getLogger(__name__)


class ClickRecorder:
    """Records redirect clicks off the request path.

    dispatch() hands the increment to a worker pool and returns at once.
    Failures are logged by the worker and never reach the caller. close()
    stops intake and waits for every pending increment.
    """

    def __init__(self, repository: ShortLinkRepository, max_workers: int = 4):
        self.repository = repository
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="click_worker")
        self._pending = set()
        self._lock = threading.Lock()
        self._closed = False

    def dispatch(self, short_code: str) -> Optional[Future]:
        with self._lock:
            if self._closed:
                logger.warning("Click recorder closed, dropping click for %s", short_code)
                return None
            try:
                future = self._executor.submit(self.record_click, short_code)
            except RuntimeError:
                logger.warning("Click executor unavailable, dropping click for %s", short_code)
                return None
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def record_click(self, short_code: str):
        try:
            updated = self.repository.increment_click(short_code)
            if updated:
                logger.debug("Click counter updated for %s", short_code)
            else:
                logger.warning("Click for %s matched no record", short_code)
        except Exception:
            logger.exception("Failed to record click for %s", short_code)

    def _forget(self, future: Future):
        with self._lock:
            self._pending.discard(future)

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for outstanding clicks. Returns False if some were still running at timeout."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self):
        with self._lock:
            if self._closed:
                return
            self._closed = True
        logger.info("Draining click recorder")
        self._executor.shutdown(wait=True)
