"""
Concurrent execution of independent pipeline branches.
"""

import threading
from concurrent import futures
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .errors import TaskCancelled


@dataclass
class Task:
    """A branch scheduled on the group: ``func(*args, cancel=token, **kwargs)``."""

    name: str
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TaskOutcome:
    """Success-with-value or failure-with-reason of one branch."""

    name: str
    value: Any = None
    error: Optional[BaseException] = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


class TaskGroup:
    """Run branches on a bounded thread pool; the first failure cancels the rest.

    Every branch receives the group's cancellation token as the ``cancel``
    keyword. Once a branch fails, the token is set, branches that have not
    started are cancelled and running tool invocations terminate their process.
    ``run`` then re-raises the first failure.

    Parameters
    ----------
    max_workers : int
        Maximum number of branches running at once
    cancel : threading.Event, optional
        Token shared with other groups of the same run
    """

    def __init__(self, max_workers: int = 1, cancel: Optional[threading.Event] = None):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self.cancel = cancel if cancel is not None else threading.Event()
        self.tasks: List[Task] = []
        self.outcomes: List[TaskOutcome] = []

    def add(self, name: str, func: Callable[..., Any], *args, **kwargs) -> None:
        self.tasks.append(Task(name=name, func=func, args=args, kwargs=kwargs))

    def run(self) -> List[Any]:
        """Run all branches and return their values in the order they were added."""

        self.outcomes = [TaskOutcome(name=task.name) for task in self.tasks]
        first_error = None

        with futures.ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            submitted = {pool.submit(self._call, task): idx for idx, task in enumerate(self.tasks)}

            for future in futures.as_completed(submitted):
                outcome = self.outcomes[submitted[future]]
                if future.cancelled():
                    outcome.cancelled = True
                    continue

                error = future.exception()
                if error is None:
                    outcome.value = future.result()
                elif isinstance(error, TaskCancelled):
                    outcome.cancelled = True
                else:
                    outcome.error = error
                    if first_error is None:
                        first_error = error
                        self.cancel.set()
                        for other in submitted:
                            other.cancel()

        if first_error is not None:
            raise first_error
        if self.cancel.is_set():
            raise TaskCancelled("run cancelled by a failure in another stage")

        return [outcome.value for outcome in self.outcomes]

    def _call(self, task: Task) -> Any:
        if self.cancel.is_set():
            raise TaskCancelled(task.name)
        try:
            return task.func(*task.args, cancel=self.cancel, **task.kwargs)
        except TaskCancelled:
            raise
        except Exception:
            self.cancel.set()
            raise
