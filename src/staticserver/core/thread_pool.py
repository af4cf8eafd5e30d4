"""
=============================================================================
THREAD POOL
=============================================================================

A fixed set of long-lived worker threads pulling connection tasks from a
bounded queue.

=============================================================================
ARCHITECTURE
=============================================================================

    accept loop (main thread)
          │
          │ submit()
          ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │   TASK QUEUE   queue.Queue(maxsize=queue_size)                       │
    │   [Task] [Task] [Task] ...                                           │
    │                                                                      │
    │   Full? submit() returns False and the caller answers 503.           │
    └──────────────────────┬──────────────────────────────────────────────┘
                           │ get()
                           ▼
    ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌──────────┐
    │ Worker 0 │ │ Worker 1 │ │ Worker 2 │ │ Worker 3 │    workers=4
    └──────────┘ └──────────┘ └──────────┘ └──────────┘

The pool never grows or shrinks. Under load, work waits in the queue
until the queue fills; past that, new connections are turned away
instead of piling up without limit.

=============================================================================
WORKER LIFECYCLE
=============================================================================

    def run(self):
        while not shutdown:
            task = queue.get()      blocks (polls every idle_timeout)
            if task is None:        poison pill
                break
            execute(task)           exceptions are logged, never raised
            queue.task_done()

A task that raises is logged and counted as failed. The worker keeps
going, so one bad connection can never shrink the pool.

Shutdown:

    pool.shutdown()
        └─ wait for the queue to drain (queue.join())
        └─ one None per worker
        └─ join each worker

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """
    A deferred call: func(*args, **kwargs).

    Attributes:
        func: The function to execute.
        args: Positional arguments.
        kwargs: Keyword arguments.
        submitted_at: Submission time, used to log queue wait.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)

    @property
    def waited(self) -> float:
        return time.time() - self.submitted_at


class Worker(threading.Thread):
    """Worker thread that processes tasks from the shared queue."""

    def __init__(
        self,
        task_queue: queue.Queue,
        worker_id: int,
        idle_timeout: float = 1.0
    ):
        """
        Args:
            task_queue: Queue to pull tasks from.
            worker_id: Identifier used in the thread name and log lines.
            idle_timeout: Seconds between shutdown checks while idle.
        """
        # daemon=True: a stuck task cannot keep the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            if task is None:
                self.task_queue.task_done()
                break

            try:
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()

        if task.waited > 1.0:
            logger.debug(f"Worker {self.worker_id} picked up task after {task.waited:.2f}s in queue")

        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
        except Exception as e:
            elapsed = time.time() - start_time
            logger.exception(f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}")
            self.tasks_failed += 1
        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        self._shutdown.set()


class ThreadPool:
    """
    Fixed-size thread pool with a bounded task queue.

    Usage:
        pool = ThreadPool(workers=4, queue_size=100)
        pool.start()

        if not pool.submit(handle_connection, args=(conn,)):
            ...  # queue full, reject

        pool.shutdown(wait=True)
    """

    def __init__(
        self,
        workers: int = 4,
        queue_size: int = 100,
        idle_timeout: float = 1.0
    ):
        """
        Args:
            workers: Number of worker threads. Fixed for the pool's life.
            queue_size: Maximum number of tasks waiting for a worker.
            idle_timeout: Seconds between shutdown checks for idle workers.

        Raises:
            ValueError: If workers or queue_size is less than 1.
        """
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        if queue_size < 1:
            raise ValueError(f"queue_size must be at least 1, got {queue_size}")

        self.num_workers = workers
        self.max_queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: queue.Queue[Optional[Task]] = queue.Queue(maxsize=queue_size)

        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False

        self.tasks_rejected = 0

    def start(self):
        """Create and start all worker threads."""
        with self._lock:
            if self._started:
                return

            logger.info(f"Starting thread pool with {self.num_workers} workers")

            for worker_id in range(self.num_workers):
                worker = Worker(
                    task_queue=self._task_queue,
                    worker_id=worker_id,
                    idle_timeout=self.idle_timeout,
                )
                self._workers.append(worker)
                worker.start()

            self._started = True
            self._shutdown = False

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None
    ) -> bool:
        """
        Queue a task without waiting for space.

        Args:
            func: The function to execute.
            args: Positional arguments for the function.
            kwargs: Keyword arguments for the function.

        Returns:
            True if the task was queued, False if the queue was full.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")

        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})

        try:
            self._task_queue.put_nowait(task)
        except queue.Full:
            self.tasks_rejected += 1
            return False

        return True

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued tasks finish first. If False, tasks still in
                  the queue are dropped.
            timeout: Upper bound on the drain, in seconds. None waits for
                     the queue to empty.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            if timeout is not None:
                deadline = time.time() + timeout
                while self._task_queue.unfinished_tasks:
                    if time.time() > deadline:
                        logger.warning("Shutdown timeout, forcing stop")
                        break
                    time.sleep(0.05)
            else:
                self._task_queue.join()
        else:
            self._drain_queue()

        for worker in self._workers:
            worker.shutdown()
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                pass  # Worker sees the shutdown flag on its next poll

        for worker in self._workers:
            worker.join(timeout=self.idle_timeout + 1.0)

        self._workers.clear()
        self._started = False

        logger.info("Thread pool shutdown complete")

    def _drain_queue(self):
        dropped = 0
        while True:
            try:
                self._task_queue.get_nowait()
            except queue.Empty:
                break
            self._task_queue.task_done()
            dropped += 1

        if dropped:
            logger.warning(f"Dropped {dropped} queued tasks on shutdown")

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def active_workers(self) -> int:
        return sum(1 for w in self._workers if w.state != WorkerState.STOPPED)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)

    @property
    def pending(self) -> int:
        """Tasks waiting in the queue (approximate)."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counts for logging."""
        return {
            "workers": {
                "total": len(self._workers),
                "active": self.active_workers,
                "busy": self.busy_workers,
                "idle": self.idle_workers,
            },
            "tasks": {
                "queued": self.pending,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
                "rejected": self.tasks_rejected,
            },
        }


class ConnectionCounter:
    """
    Number of connections handled successfully, shared by all workers.

    The value is only ever logged. Nothing reads it to make a decision.

    Usage:
        counter = ConnectionCounter()
        n = counter.increment()   # thread-safe, returns the new value
    """

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value
