"""Bounded worker pool with caller-runs saturation and a structured join."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
from threading import BoundedSemaphore, Lock
from typing import Any, Callable, List


class WorkerPool:
    """Run submitted callables on at most ``max_workers`` threads.

    At most ``max_workers + queue_size`` tasks are in flight. Once that bound is
    reached ``submit`` runs the task on the calling thread instead, so nothing
    is dropped under pressure.
    """

    def __init__(self, max_workers: int = 8, queue_size: int = 4, thread_name_prefix: str = "adg-rules") -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if queue_size < 0:
            raise ValueError("queue_size must be >= 0")
        self.max_workers = max_workers
        self.queue_size = queue_size
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=thread_name_prefix)
        self._slots = BoundedSemaphore(max_workers + queue_size)
        self._futures: List[Future] = []
        self._lock = Lock()
        self.caller_runs = 0

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        if self._slots.acquire(blocking=False):
            try:
                future = self._executor.submit(fn, *args, **kwargs)
            except BaseException:
                self._slots.release()
                raise
            future.add_done_callback(lambda _f: self._slots.release())
        else:
            future = Future()
            with self._lock:
                self.caller_runs += 1
            try:
                future.set_result(fn(*args, **kwargs))
            except Exception as exc:  # noqa: BLE001
                future.set_exception(exc)
        with self._lock:
            self._futures.append(future)
        return future

    @property
    def pending(self) -> int:
        with self._lock:
            return sum(1 for future in self._futures if not future.done())

    def join(self) -> list[Any]:
        """Block until every submitted task finished; return results in submit order.

        A task that raised contributes its exception object instead of a result.
        """

        with self._lock:
            futures = list(self._futures)
        wait(futures)
        return [future.exception() or future.result() for future in futures]

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


__all__ = ["WorkerPool"]
