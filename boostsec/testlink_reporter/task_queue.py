"""Ordered execution of asynchronous reporting calls."""

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

Step = Callable[[], Awaitable[object]]


class OrderedTaskQueue:
    """Run coroutine factories one at a time, in submission order.

    Steps are consumed by a single worker on an event loop owned by a
    background thread, so enqueueing never blocks the caller. Step n+1 starts
    only once step n has settled. A failing step is logged and the queue moves
    on to the next one.
    """

    def __init__(self, name: str = "testlink-reporter") -> None:
        self._loop = asyncio.new_event_loop()
        self._queue: asyncio.Queue[Step] = asyncio.Queue()
        self._ready = threading.Event()
        self._lock = threading.Lock()
        self._pending = 0
        self._closed = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()
        self._ready.wait()

    @property
    def pending(self) -> int:
        """Number of enqueued steps that have not settled yet."""
        with self._lock:
            return self._pending

    def enqueue(self, step: Step) -> None:
        """Append a step to the queue without waiting for it to run.

        Raises:
            RuntimeError: If the queue has been closed

        """
        if self._closed:
            raise RuntimeError("Cannot enqueue on a closed queue")
        with self._lock:
            self._pending += 1
        self._loop.call_soon_threadsafe(self._queue.put_nowait, step)

    def join(self, timeout: float | None = None) -> None:
        """Block until every enqueued step has settled.

        Raises:
            TimeoutError: If the queue did not drain within timeout seconds

        """
        if self._closed:
            return
        future = asyncio.run_coroutine_threadsafe(self._queue.join(), self._loop)
        try:
            future.result(timeout)
        except TimeoutError:
            future.cancel()
            raise TimeoutError(
                f"Reporting queue did not drain within {timeout} seconds"
            ) from None

    def close(self, timeout: float | None = None) -> None:
        """Drain the queue and stop its worker."""
        if self._closed:
            return
        try:
            self.join(timeout)
        finally:
            self.stop()

    def stop(self) -> None:
        """Stop the worker, cancelling the running step and dropping the rest."""
        if self._closed:
            return
        self._closed = True
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._loop.close()

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        worker = self._loop.create_task(self._work())
        self._loop.call_soon(self._ready.set)
        self._loop.run_forever()
        worker.cancel()
        self._loop.run_until_complete(asyncio.gather(worker, return_exceptions=True))

    async def _work(self) -> None:
        while True:
            step = await self._queue.get()
            try:
                await step()
            except Exception:
                logger.exception("Reporting step failed")
            with self._lock:
                self._pending -= 1
            self._queue.task_done()
