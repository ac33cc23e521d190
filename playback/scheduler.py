"""Cooperative task scheduler for the playback coordinator.

Everything time based (fades, pool return monitors, the track
completion watch) is a Task stepped once per frame by one
TaskScheduler. All shared state is mutated between steps, never during
a suspension, so no locks are needed.
"""

from typing import List

from playback.errors import Diagnostic, report


class Task:
    """A resumable unit of per-frame work.

    Phases: 'pending' (never stepped), 'running', 'finished', 'cancelled'.
    Subclasses implement step(dt) and return True once they are done.
    """

    def __init__(self, name: str):
        self.name = name
        self.phase = 'pending'
        self.elapsed = 0.0

    @property
    def done(self) -> bool:
        return self.phase in ('finished', 'cancelled')

    @property
    def cancelled(self) -> bool:
        return self.phase == 'cancelled'

    def cancel(self) -> bool:
        """Cancel the task. Returns False if it had already ended."""
        if self.done:
            return False
        self.phase = 'cancelled'
        return True

    def step(self, dt: float) -> bool:
        """Advance by dt seconds. Returns True when the task is complete."""
        raise NotImplementedError

    def __repr__(self):
        return f"<{type(self).__name__} {self.name} {self.phase} {self.elapsed:.3f}s>"


class TaskScheduler:
    """Steps every live task once per tick.

    Tasks added during a tick are first stepped on the following tick.
    A task cancelled during a tick is not stepped again, even if it was
    still waiting its turn in that tick.
    """

    def __init__(self):
        self._tasks: List[Task] = []
        self.tick_count = 0

    def add(self, task: Task) -> Task:
        """Schedule a task. Returns the task for chaining."""
        if task.done:
            return task
        self._tasks.append(task)
        return task

    def update(self, dt: float):
        """Run one tick.

        Args:
            dt: Seconds since the previous tick
        """
        self.tick_count += 1
        for task in list(self._tasks):
            if task.done:
                continue
            task.phase = 'running'
            try:
                finished = task.step(dt)
            except Exception as e:
                report(Diagnostic.TASK_FAILED, "Scheduled task failed, dropping it", {
                    'task': task.name,
                    'error': str(e)
                })
                task.cancel()
                continue
            if finished and not task.done:
                task.phase = 'finished'

        self._tasks = [t for t in self._tasks if not t.done]

    def cancel_all(self) -> int:
        """Cancel every live task. Returns how many were cancelled."""
        count = sum(1 for task in self._tasks if task.cancel())
        self._tasks.clear()
        return count

    def tasks(self) -> List[Task]:
        """Live tasks, in scheduling order."""
        return [t for t in self._tasks if not t.done]

    @property
    def pending(self) -> int:
        return len(self.tasks())
