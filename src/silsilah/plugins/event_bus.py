"""Out-of-band event dispatch via pluggy + ThreadPoolExecutor.

Events are fire-and-forget: a mutation is already committed by the time
its event is dispatched, so nothing here can undo or block it.

INVARIANT: Plugin failures are warnings, never errors.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from silsilah.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

# Seconds to wait for one queued dispatch on drain/shutdown.
DRAIN_TIMEOUT = 30

# Only the most recent plugin failures are kept.
MAX_RECORDED_FAILURES = 100

# Finished futures are pruned once this many are tracked.
PRUNE_THRESHOLD = 64


class EventBus:
    """Async (or sync) hook dispatch.

    Parameters:
        plugin_manager: Loaded PluginManager for hook dispatch.
        sync: Force synchronous dispatch (useful for testing / ``--sync``).
        max_workers: ThreadPoolExecutor worker count.
    """

    def __init__(
        self,
        plugin_manager: PluginManager,
        *,
        sync: bool = False,
        max_workers: int = 2,
    ) -> None:
        self._pm = plugin_manager
        self._sync = sync
        self._executor: ThreadPoolExecutor | None = (
            None
            if sync
            else ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="silsilah-plugin")
        )
        self._futures: list[Future[bool]] = []
        self._futures_lock = threading.Lock()
        self.failures: deque[dict[str, str]] = deque(maxlen=MAX_RECORDED_FAILURES)

    @property
    def plugin_manager(self) -> PluginManager:
        return self._pm

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def dispatch(self, hook_name: str, payload: dict[str, Any]) -> bool | None:
        """Dispatch *hook_name* with *payload* as keyword arguments.

        Returns the hook outcome when dispatching synchronously (True on
        success), or None when the call was queued on the executor.
        """
        if self._sync or self._executor is None:
            return self._execute_hook(hook_name, payload)

        future = self._executor.submit(self._execute_hook, hook_name, payload)
        with self._futures_lock:
            if len(self._futures) >= PRUNE_THRESHOLD:
                self._futures = [f for f in self._futures if not f.done()]
            self._futures.append(future)
        return None

    def drain(self) -> int:
        """Wait for in-flight async dispatches. Returns how many were awaited.

        Dispatches that had already finished may have been pruned, so the
        count can be lower than the number of calls queued since the last drain.
        """
        return self._wait_futures()

    def shutdown(self) -> None:
        """Shutdown ThreadPoolExecutor, waiting for pending tasks."""
        self._wait_futures()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _execute_hook(self, hook_name: str, payload: dict[str, Any]) -> bool:
        hook_fn = getattr(self._pm.hook, hook_name, None)
        if hook_fn is None:
            return True

        try:
            hook_fn(**payload)
        except Exception as exc:
            logger.warning("Hook %s failed: %s", hook_name, exc)
            self.failures.append({"hook_name": hook_name, "error": str(exc)})
            return False
        return True

    def _wait_futures(self) -> int:
        with self._futures_lock:
            futures, self._futures = self._futures, []
        for future in futures:
            # _execute_hook already catches plugin errors; only a timeout lands here.
            try:
                future.result(timeout=DRAIN_TIMEOUT)
            except TimeoutError:
                logger.warning("Timed out waiting for plugin dispatch")
        return len(futures)
