import logging
from typing import Dict, Iterable, List, Optional, Tuple

from cpm.domain.task import Task, to_id

logger = logging.getLogger(__name__)


class TaskGraphError(Exception):
    """Exception raised for errors in the TaskGraph class."""

    pass


class MissingTaskError(TaskGraphError):
    """Raised when a referenced task id has no task in the graph."""

    def __init__(self, task_id, referenced_by=None):
        self.task_id = task_id
        self.referenced_by = referenced_by
        if referenced_by is None:
            message = f"Task {task_id!r} does not exist"
        else:
            message = (
                f"Task {referenced_by!r} references task {task_id!r}, "
                "which does not exist"
            )
        super().__init__(message)


class CyclicGraphError(TaskGraphError):
    """Raised when the task dependencies do not form a DAG."""

    def __init__(self, message, cycle=None):
        self.cycle = list(cycle) if cycle else []
        super().__init__(message)


class TaskGraph:
    """
    Owns the set of tasks of a project, keyed by id in insertion order.

    The graph is the only mutable state of a schedule run. Predecessor ids are
    not checked when a task is added, since a task may name a predecessor that
    is loaded later; they are checked when successors are resolved or a pass
    runs.
    """

    def __init__(self):
        self.tasks: Dict[str, Task] = {}
        self._successors_resolved = False

    @classmethod
    def from_records(cls, records: Iterable[dict]) -> "TaskGraph":
        """
        Build a graph from input records.

        Each record is a mapping with "id", "name", "duration" and an optional
        "predecessors" entry.
        """
        graph = cls()
        for record in records:
            graph.add_task(
                record.get("id"),
                record.get("name"),
                record.get("duration"),
                record.get("predecessors"),
            )
        return graph

    def add_task(self, id, name, duration, predecessors=None) -> Task:
        """
        Create a task from a raw record and add it to the graph.

        Raises:
            InvalidDurationError: If the duration is not a non-negative number
            TaskGraphError: If a task with the same id already exists
        """
        task = Task(id, name, duration, predecessors)
        return self.add(task)

    def add(self, task: Task) -> Task:
        """Add an existing Task object to the graph."""
        if task.id in self.tasks:
            raise TaskGraphError(f"Duplicate task id {task.id!r}")

        if self._successors_resolved:
            # A new task can add edges to already loaded tasks
            self._clear_successors()

        self.tasks[task.id] = task
        return task

    def remove(self, task_id) -> Task:
        """
        Remove a task from the graph and return it.

        Predecessor declarations naming the removed task are left untouched.

        Raises:
            MissingTaskError: If no such task exists
        """
        task = self.lookup(task_id)
        if self._successors_resolved:
            self._clear_successors()
        del self.tasks[task.id]
        return task

    def lookup(self, task_id) -> Task:
        """
        Return the task with the given id.

        Raises:
            MissingTaskError: If no such task exists
        """
        key = to_id(task_id)
        try:
            return self.tasks[key]
        except KeyError:
            raise MissingTaskError(key) from None

    def get(self, task_id, default=None) -> Optional[Task]:
        return self.tasks.get(to_id(task_id), default)

    @property
    def ids(self) -> List[str]:
        return list(self.tasks)

    @property
    def successors_resolved(self) -> bool:
        return self._successors_resolved

    def resolve_successors(self) -> "TaskGraph":
        """
        Derive every task's successor list from the predecessor declarations.

        Successor order follows the input order of the tasks. The resolution is
        done once per graph build; calling this again is a no-op.

        Raises:
            MissingTaskError: If a declared predecessor does not exist
        """
        if self._successors_resolved:
            logger.debug("Successors already resolved, skipping")
            return self

        from cpm.utils.graph import resolve_successors

        resolve_successors(self.tasks)
        self._successors_resolved = True
        return self

    def edges(self) -> List[Tuple[str, str]]:
        """Return (predecessor_id, task_id) pairs in input order."""
        return [
            (pred_id, task.id)
            for task in self.tasks.values()
            for pred_id in task.predecessor_ids
        ]

    def reset_schedule(self):
        """Zero the computed timing fields of every task."""
        for task in self.tasks.values():
            task.reset_schedule()

    def _clear_successors(self):
        for task in self.tasks.values():
            task.successor_ids = []
        self._successors_resolved = False

    def __contains__(self, task_id):
        return to_id(task_id) in self.tasks if task_id is not None else False

    def __iter__(self):
        return iter(self.tasks.values())

    def __len__(self):
        return len(self.tasks)

    def __repr__(self):
        return f"TaskGraph({len(self.tasks)} tasks)"
