"""
=============================================================================
CACHED THREAD POOL
=============================================================================

Runs one task (in practice: one client connection) per worker thread,
reusing idle workers and letting unused ones die off.

=============================================================================
WHY A CACHED POOL?
=============================================================================

A connection occupies its worker for its whole lifetime, including every
keep-alive pause. A fixed-size pool would turn "N slow clients" into "the
server stops answering". A cached pool never makes a task wait for a
worker:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        submit(task)                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   idle worker available? ── yes ──► hand task over via the queue    │
    │          │                                                           │
    │          no                                                          │
    │          ▼                                                           │
    │   spawn a new worker with the task as its first job                 │
    │                                                                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                        worker loop                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   run task ──► become idle ──► wait idle_timeout for the next task  │
    │                                     │                                │
    │                     task ◄──────────┤                                │
    │                                     │ nothing came                   │
    │                                     ▼                                │
    │                                   exit                               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The idle count is only changed under the pool lock, and submit() reserves
an idle worker by decrementing it, so every task put on the queue has a
worker waiting for it.

=============================================================================
SHUTDOWN: POISON PILLS
=============================================================================

shutdown() puts one None ("poison pill") on the queue per worker. A worker
that takes a pill exits. Busy workers see theirs once their current task
returns, which is why the server force-closes open connections when the
grace period runs out.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional
import logging
import queue
import threading
import time


logger = logging.getLogger(__name__)


@dataclass
class Task:
    """
    A deferred function call.

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        kwargs: Keyword arguments for the function.
        submitted_at: When the task was submitted.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.monotonic)


class Worker(threading.Thread):
    """
    Worker thread: runs its first task, then serves the pool's queue until it
    idles out or takes a poison pill.
    """

    def __init__(self, pool: "ThreadPool", worker_id: int, first_task: Optional[Task] = None):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.pool = pool
        self.worker_id = worker_id
        self.first_task = first_task
        self.busy = False
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        task = self.first_task
        self.first_task = None

        while task is not None:
            self._execute_task(task)
            task = self.pool._next_task(self)

        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.busy = True
        start_time = time.monotonic()
        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
        except Exception as e:
            # A failing task must not take the worker down with it.
            elapsed = time.monotonic() - start_time
            logger.exception(f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}")
            self.tasks_failed += 1
        finally:
            self.busy = False


class ThreadPool:
    """
    Cached thread pool.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ThreadPool Usage                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   pool = ThreadPool(idle_timeout=60.0)                              │
    │   pool.start()                                                       │
    │                                                                      │
    │   pool.submit(handler.run)                                          │
    │                                                                      │
    │   pool.shutdown(wait=True, timeout=5.0)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Args:
        idle_timeout: Seconds an idle worker waits for work before exiting.
    """

    def __init__(self, idle_timeout: float = 60.0):
        self.idle_timeout = idle_timeout

        self._task_queue: queue.Queue[Optional[Task]] = queue.Queue()
        self._workers: list[Worker] = []
        self._idle = 0
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0
        self._retired_completed = 0
        self._retired_failed = 0

    def start(self):
        if self._started:
            return
        logger.info(f"Starting thread pool (idle worker timeout {self.idle_timeout}s)")
        self._started = True

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None) -> None:
        """
        Run func(*args, **kwargs) on a worker thread.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})

        with self._lock:
            if self._idle > 0:
                self._idle -= 1
                self._task_queue.put(task)
                return

            worker = Worker(self, self._next_worker_id, first_task=task)
            self._next_worker_id += 1
            self._workers.append(worker)
            logger.debug(f"Spawned worker {worker.worker_id} ({len(self._workers)} total)")
        worker.start()

    def _next_task(self, worker: Worker) -> Optional[Task]:
        """
        Block until the worker gets another task.

        Returns None when the worker should exit (idle timeout or poison pill).
        """
        with self._lock:
            if self._shutdown:
                self._retire(worker)
                return None
            self._idle += 1

        while True:
            try:
                task = self._task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                with self._lock:
                    # A task was handed over just as the wait expired.
                    if not self._task_queue.empty():
                        continue
                    self._idle -= 1
                    self._retire(worker)
                    logger.debug(f"Worker {worker.worker_id} idle for {self.idle_timeout}s, exiting")
                return None

            if task is None:
                with self._lock:
                    self._idle -= 1
                    self._retire(worker)
            return task

    def _retire(self, worker: Worker):
        # Caller holds the lock.
        if worker in self._workers:
            self._workers.remove(worker)
            self._retired_completed += worker.tasks_completed
            self._retired_failed += worker.tasks_failed

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> bool:
        """
        Stop the pool.

        Args:
            wait: Wait for running tasks to finish.
            timeout: Maximum seconds to wait in total (None: forever).

        Returns:
            True if every worker has exited.
        """
        if not self._started:
            return True

        with self._lock:
            first_call = not self._shutdown
            self._shutdown = True
            workers = list(self._workers)

        if first_call:
            logger.info("Shutting down thread pool...")
            for _ in workers:
                self._task_queue.put(None)

        if not wait:
            return not any(w.is_alive() for w in workers)

        deadline = None if timeout is None else time.monotonic() + timeout
        for worker in workers:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            worker.join(timeout=remaining)

        alive = [w for w in workers if w.is_alive()]
        if alive:
            logger.warning(f"{len(alive)} worker(s) still running after shutdown timeout")
            return False

        logger.info("Thread pool shutdown complete")
        return True

    @property
    def worker_count(self) -> int:
        with self._lock:
            return len(self._workers)

    @property
    def idle_workers(self) -> int:
        with self._lock:
            return self._idle

    @property
    def busy_workers(self) -> int:
        with self._lock:
            return sum(1 for w in self._workers if w.busy)

    @property
    def stats(self) -> dict:
        """Worker and task counts, for logging and tests."""
        with self._lock:
            return {
                "workers": {
                    "total": len(self._workers),
                    "idle": self._idle,
                    "busy": sum(1 for w in self._workers if w.busy),
                },
                "tasks": {
                    "completed": self._retired_completed
                    + sum(w.tasks_completed for w in self._workers),
                    "failed": self._retired_failed
                    + sum(w.tasks_failed for w in self._workers),
                },
            }
