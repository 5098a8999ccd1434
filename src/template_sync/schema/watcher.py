"""Template change watcher.

Two tasks cooperate through a single-slot queue:

- the poll task owns the timer, compares the template's modification
  marker (``st_mtime_ns``) every ``poll_interval`` seconds, and offers a
  change event when it differs from the last settled marker;
- the sync task consumes events, waits ``debounce`` seconds so a burst of
  writes collapses into one event, and runs ``SchemaSynchronizer.sync()``.

A full queue means a change is already pending, so further events are
dropped.  The marker is settled only after a successful cycle or a
template failure; other failures are retried no sooner than
``retry_interval`` seconds later.

An unexpected error in either task cancels the other and is raised from
``wait()`` or, failing that, ``stop()``.

Usage:
    watcher = TemplateWatcher(synchronizer, config.template)
    await watcher.start()
    ...
    await watcher.stop()
"""

import asyncio
import logging
import os
import time
from collections.abc import Callable

from template_sync.config.models import TemplateSettings
from template_sync.schema.models import SyncOutcome
from template_sync.schema.sync import SchemaSynchronizer

logger = logging.getLogger(__name__)


class TemplateWatcher:
    """Polls the template file and drives sync cycles on change.

    Args:
        synchronizer: Synchronizer to run on change.
        settings: Template path and timing (poll, debounce, retry).
        clock: Monotonic clock, replaceable in tests.
    """

    def __init__(
        self,
        synchronizer: SchemaSynchronizer,
        settings: TemplateSettings,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._synchronizer = synchronizer
        self._settings = settings
        self._clock = clock
        self._state = synchronizer.state
        self._queue: asyncio.Queue[int | None] = asyncio.Queue(maxsize=1)
        self._in_progress: int | None = None
        self._tasks: list[asyncio.Task] = []
        self._failure: BaseException | None = None

    @property
    def running(self) -> bool:
        """True while both the poll and sync tasks are alive."""
        return bool(self._tasks) and all(not task.done() for task in self._tasks)

    def current_marker(self) -> int | None:
        """Template modification marker, or ``None`` if the file is missing."""
        try:
            return os.stat(self._settings.path).st_mtime_ns
        except FileNotFoundError:
            return None

    async def start(self, initial_sync: bool = True) -> SyncOutcome | None:
        """Capture the template marker and launch the watcher tasks.

        Args:
            initial_sync: Run one cycle before watching.  A
                ``ProtectedColumnError`` from that cycle propagates.

        Returns:
            Outcome of the initial cycle, if one was run.
        """
        outcome = None
        if initial_sync:
            marker = self.current_marker()
            outcome = await self._synchronizer.start()
            self.record_outcome(marker, outcome)
        else:
            self._state.template_marker = self.current_marker()

        self._tasks = [
            asyncio.create_task(self._poll_loop(), name="template-poll"),
            asyncio.create_task(self._sync_loop(), name="template-sync"),
        ]
        for task in self._tasks:
            task.add_done_callback(self._on_task_done)
        logger.info(f"Watching template {self._settings.path}")
        return outcome

    async def stop(self) -> None:
        """Cancel the watcher tasks.

        An in-flight DDL statement is not rolled back.

        Raises:
            Exception: The unexpected error that stopped a watcher task,
                unless ``wait()`` already raised it.
        """
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._raise_failure()

    async def wait(self) -> None:
        """Block until the watcher stops.

        An unexpected exception in either task propagates from here so
        the process fails fast instead of running unsynchronized.
        """
        if self._tasks:
            await asyncio.wait(self._tasks)
        self._raise_failure()

    async def __aenter__(self) -> "TemplateWatcher":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    def trigger(self) -> bool:
        """Request a sync cycle regardless of the marker.

        Returns:
            False if a change was already pending (the request coalesces).
        """
        return self._offer(self.current_marker())

    def poll_once(self) -> bool:
        """Compare the marker once and offer a change event if needed.

        Returns:
            True if a new event was queued.
        """
        marker = self.current_marker()
        if marker == self._state.template_marker:
            return False
        if self._in_progress is not None and marker == self._in_progress:
            return False

        last_failure = self._state.last_failure_at
        if last_failure is not None and self._clock() - last_failure < self._settings.retry_interval:
            return False

        return self._offer(marker)

    async def handle_change(self) -> SyncOutcome:
        """Run one cycle against the current template and settle the marker."""
        marker = self.current_marker()
        self._in_progress = marker
        try:
            outcome = await self._synchronizer.sync()
        finally:
            self._in_progress = None
        self.record_outcome(marker, outcome)
        return outcome

    def record_outcome(self, marker: int | None, outcome: SyncOutcome) -> None:
        """Settle *marker* unless the cycle failed for a retryable reason."""
        if outcome.success or outcome.template_error:
            self._state.template_marker = marker
            self._state.last_failure_at = None
        else:
            self._state.last_failure_at = self._clock()
            logger.error(
                f"Sync cycle failed ({outcome.error_type}): {outcome.error}; "
                f"retrying in {self._settings.retry_interval:g}s"
            )

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is None:
            return
        self._failure = task.exception()
        logger.error(
            f"Watcher task {task.get_name()} crashed; stopping watcher",
            exc_info=self._failure,
        )
        for other in self._tasks:
            other.cancel()

    def _raise_failure(self) -> None:
        failure, self._failure = self._failure, None
        if failure is not None:
            raise failure

    def _offer(self, marker: int | None) -> bool:
        try:
            self._queue.put_nowait(marker)
        except asyncio.QueueFull:
            return False
        logger.debug(f"Template change queued (marker={marker})")
        return True

    async def _poll_loop(self) -> None:
        while True:
            self.poll_once()
            await asyncio.sleep(self._settings.poll_interval)

    async def _sync_loop(self) -> None:
        while True:
            await self._queue.get()
            if self._settings.debounce > 0:
                await asyncio.sleep(self._settings.debounce)
            # Drop events queued during the debounce window
            while not self._queue.empty():
                self._queue.get_nowait()
            await self.handle_change()
