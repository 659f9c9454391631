"""A priority task scheduler with executors and joinable task groups."""

from __future__ import annotations

import heapq
import itertools
import logging
import os
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import IntEnum
from functools import partial

log = logging.getLogger(__name__)


class Priority(IntEnum):
    """Task priority; lower values are run first."""

    CRITICAL = 0
    HIGH = 1
    DEFAULT = 2
    LOW = 3


@dataclass
class Task:
    """A unit of work: a callable taking no arguments."""

    fn: Callable[[], object]
    group_id: int = 0

    def execute(self) -> None:
        """Run the task."""
        self.fn()


def _as_task(task: Task | Callable[[], object]) -> Task:
    return task if isinstance(task, Task) else Task(task)


class Scheduler:
    """Holds IO and work queues ordered by priority, then submission order."""

    def __init__(self) -> None:
        self._io_tasks: list[tuple[int, int, Task]] = []
        self._work_tasks: list[tuple[int, int, Task]] = []
        self._task_condition = threading.Condition(threading.Lock())
        self._threads_condition = threading.Condition(threading.Lock())
        self._num_threads = 0
        self._close_on_empty = False
        self.currently_empty = False
        self._next_task_id = itertools.count()

    def _push(self, task: Task | Callable[[], object], priority: Priority, is_io: bool) -> None:
        queue = self._io_tasks if is_io else self._work_tasks
        heapq.heappush(queue, (int(priority), next(self._next_task_id), _as_task(task)))

    def schedule(
        self,
        task: Task | Callable[[], object],
        priority: Priority = Priority.DEFAULT,
        is_io: bool = False,
    ) -> None:
        """Queue a single task."""
        with self._task_condition:
            self._push(task, priority, is_io)
            self.currently_empty = False
            self._task_condition.notify()

    def schedule_many(
        self,
        tasks: Iterable[Task | Callable[[], object]],
        priority: Priority = Priority.DEFAULT,
        is_io: bool = False,
    ) -> None:
        """Queue several tasks at once."""
        with self._task_condition:
            for task in tasks:
                self._push(task, priority, is_io)
            self.currently_empty = False
            self._task_condition.notify_all()

    def get_task(self, prefer_io: bool = False) -> Task | None:
        """Take the next task, waiting if none is queued.

        Returns ``None`` once the queues are empty and the scheduler was told
        to close on empty.
        """
        with self._task_condition:
            while True:
                if self._io_tasks or self._work_tasks:
                    if (prefer_io and self._io_tasks) or not self._work_tasks:
                        _, _, task = heapq.heappop(self._io_tasks)
                    else:
                        _, _, task = heapq.heappop(self._work_tasks)
                    remaining = len(self._io_tasks) + len(self._work_tasks)
                    if remaining == 0 and not self._close_on_empty:
                        self.currently_empty = True
                    if remaining > 0:
                        self._task_condition.notify()
                    return task
                if self._close_on_empty:
                    return None
                self._task_condition.wait()

    def set_close_on_empty(self) -> None:
        """Let waiting executors stop once all queued tasks are taken."""
        with self._task_condition:
            self._close_on_empty = True
            self._task_condition.notify_all()

    def __len__(self) -> int:
        with self._task_condition:
            return len(self._io_tasks) + len(self._work_tasks)

    def register_thread(self) -> None:
        """Count an executor as active."""
        with self._threads_condition:
            self._num_threads += 1

    def unregister_thread(self) -> None:
        """Count an executor as finished."""
        with self._threads_condition:
            self._num_threads -= 1
            self._threads_condition.notify_all()

    def wait_all_finished(self) -> None:
        """Block until closing was requested and no executor is active."""
        with self._threads_condition:
            while not (self._close_on_empty and self._num_threads == 0):
                self._threads_condition.wait(timeout=0.05)


@dataclass
class Executor:
    """Runs tasks from a scheduler until it hands out no more."""

    scheduler: Scheduler
    core_id: int | None = None
    prefer_io: bool = False

    def run(self) -> None:
        """Execute tasks on the calling thread."""
        if self.core_id is not None and hasattr(os, "sched_setaffinity"):
            try:
                os.sched_setaffinity(0, {self.core_id})
            except OSError:
                log.debug("[Executor] Could not pin to core %d", self.core_id)
        self.scheduler.register_thread()
        try:
            while (task := self.scheduler.get_task(self.prefer_io)) is not None:
                task.execute()
        finally:
            self.scheduler.unregister_thread()


class _JoinCounter:
    def __init__(self, count: int) -> None:
        self._count = count
        self._lock = threading.Lock()

    def arrive(self) -> bool:
        with self._lock:
            self._count -= 1
            return self._count == 0


def _run_joined(task: Task, join_task: Task, counter: _JoinCounter) -> None:
    task.execute()
    if counter.arrive():
        join_task.execute()


class TaskGroup:
    """Collects tasks and optionally a task to run after all of them."""

    def __init__(self) -> None:
        self._tasks: list[Task] = []

    def schedule(self, task: Task | Callable[[], object]) -> None:
        """Add a task to the group."""
        self._tasks.append(_as_task(task))

    def join(self, join_task: Task | Callable[[], object]) -> None:
        """Run ``join_task`` once every task now in the group has finished."""
        join = _as_task(join_task)
        if not self._tasks:
            self.schedule(join)
            return
        counter = _JoinCounter(len(self._tasks))
        self._tasks = [
            Task(partial(_run_joined, task, join, counter), task.group_id)
            for task in self._tasks
        ]

    def close(self) -> list[Task]:
        """Hand out the group's tasks and empty the group."""
        tasks, self._tasks = self._tasks, []
        return tasks