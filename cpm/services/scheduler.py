import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional

from cpm.domain.task import Task, TaskError
from cpm.domain.task_graph import TaskGraph, TaskGraphError
from cpm.utils.graph import (
    TERMINAL_RULES,
    topological_order,
    forward_pass,
    backward_pass,
    find_critical_path,
)

logger = logging.getLogger(__name__)

SOURCE_ID = "%id_source%"
SINK_ID = "%id_sink%"
SENTINEL_IDS = (SOURCE_ID, SINK_ID)


def is_sentinel(task_id) -> bool:
    return task_id in SENTINEL_IDS


def add_sentinels(graph: TaskGraph) -> TaskGraph:
    """
    Anchor the graph with a zero-duration source and sink task.

    Every task without predecessors is made to depend on the source, and the
    sink depends on every task nothing else depends on. Does nothing if the
    graph is empty or already has sentinels.
    """
    if len(graph) == 0 or SOURCE_ID in graph.tasks:
        return graph

    depended_on = {pred_id for task in graph for pred_id in task.predecessor_ids}
    roots = [task for task in graph if not task.predecessor_ids]
    leaves = [task.id for task in graph if task.id not in depended_on]

    graph.add_task(SOURCE_ID, "Project start", 0)
    for task in roots:
        task.predecessor_ids = [SOURCE_ID]

    graph.add_task(SINK_ID, "Project finish", 0, leaves)
    return graph


def remove_sentinels(graph: TaskGraph) -> TaskGraph:
    """Undo add_sentinels, restoring the original predecessor declarations."""
    if SOURCE_ID in graph.tasks:
        graph.remove(SOURCE_ID)
        for task in graph:
            if SOURCE_ID in task.predecessor_ids:
                task.predecessor_ids = [
                    pred_id for pred_id in task.predecessor_ids if pred_id != SOURCE_ID
                ]
    if SINK_ID in graph.tasks:
        graph.remove(SINK_ID)
    return graph


@dataclass
class ScheduleResult:
    """Outcome of a schedule run that does not raise."""

    ok: bool
    critical_path: List[str] = field(default_factory=list)
    error_kind: Optional[str] = None
    message: str = ""


class CPMScheduler:
    """
    Computes a Critical Path Method schedule over a TaskGraph.

    The run resolves successors, orders the tasks topologically, then performs
    the forward pass, the backward pass and the critical path extraction.
    """

    def __init__(self, start_date=None, use_sentinels=True, terminal_rule="project"):
        if terminal_rule not in TERMINAL_RULES:
            raise ValueError(
                f"Unknown terminal rule {terminal_rule!r}, expected one of {TERMINAL_RULES}"
            )
        self.graph = TaskGraph()
        self.start_date = start_date or date.today()
        self.use_sentinels = use_sentinels
        self.terminal_rule = terminal_rule

        self.order = []  # Topological order of the last run
        self.critical_path = []  # Critical task ids, sentinels excluded
        self.scheduled = False

    @classmethod
    def from_records(cls, records, **kwargs) -> "CPMScheduler":
        scheduler = cls(**kwargs)
        scheduler.add_tasks(records)
        return scheduler

    def add_task(self, task: Task):
        """
        Add a task to the scheduler

        Raises:
            TaskGraphError: If the task uses a reserved sentinel id
        """
        self._invalidate()
        if is_sentinel(task.id):
            raise TaskGraphError(f"Task id {task.id!r} is reserved")
        self.graph.add(task)
        return self

    def add_tasks(self, records):
        """Add tasks from input records with id, name, duration and predecessors"""
        for record in records:
            self.add_task(
                Task(
                    record.get("id"),
                    record.get("name"),
                    record.get("duration"),
                    record.get("predecessors"),
                )
            )
        return self

    def set_start_date(self, start_date):
        """Set the project start date (default: today)"""
        self.start_date = start_date or date.today()
        self.scheduled = False
        return self

    @property
    def tasks(self) -> Dict[str, Task]:
        """The project's tasks keyed by id, sentinels excluded."""
        return {
            task_id: task
            for task_id, task in self.graph.tasks.items()
            if not is_sentinel(task_id)
        }

    def schedule(self, order=None) -> Dict:
        """
        Run the full CPM schedule.

        Args:
            order: Optional topological order of all task ids. Sentinels are
                placed first and last when enabled. Computed when omitted.

        Returns:
            dict with the scheduled "tasks" and the "critical_path"

        Raises:
            MissingTaskError: If a predecessor or successor does not exist
            CyclicGraphError: If the dependencies contain a cycle
        """
        self.scheduled = False
        self.critical_path = []

        if self.use_sentinels:
            add_sentinels(self.graph)

        if order is not None and SOURCE_ID in self.graph.tasks:
            order = [task_id for task_id in order if not is_sentinel(task_id)]
            order = [SOURCE_ID] + order + [SINK_ID]

        self.graph.reset_schedule()
        self.graph.resolve_successors()
        self.order = topological_order(self.graph.tasks, order)

        forward_pass(self.graph.tasks, self.order, self.start_date)
        backward_pass(self.graph.tasks, self.order, self.terminal_rule)
        critical = find_critical_path(self.graph.tasks, self.order)

        self.critical_path = [task_id for task_id in critical if not is_sentinel(task_id)]
        self.scheduled = True

        logger.info(
            "Scheduled %d tasks, duration %s, critical path: %s",
            len(self.tasks),
            self.project_duration,
            " -> ".join(self.critical_path),
        )
        return {"tasks": self.tasks, "critical_path": list(self.critical_path)}

    def try_schedule(self, order=None) -> ScheduleResult:
        """Run the schedule and report failures as a result instead of raising."""
        try:
            result = self.schedule(order)
        except (TaskError, TaskGraphError) as e:
            logger.error("Scheduling failed: %s", e)
            return ScheduleResult(
                ok=False, error_kind=type(e).__name__, message=str(e)
            )
        return ScheduleResult(ok=True, critical_path=result["critical_path"])

    @property
    def project_duration(self) -> float:
        """Largest early finish over all tasks (0 for an empty project)."""
        return max((task.early_finish for task in self.graph), default=0.0)

    @property
    def project_end_date(self):
        if not self.scheduled:
            return None
        return self.start_date + timedelta(days=self.project_duration)

    def report(self) -> List[dict]:
        """Return the scheduled tasks as dictionaries in schedule order."""
        rows = []
        for task_id in self.order:
            if is_sentinel(task_id):
                continue
            row = self.graph.tasks[task_id].to_dict()
            for key in ("predecessors", "successors"):
                row[key] = [other for other in row[key] if not is_sentinel(other)]
            rows.append(row)
        return rows

    def _invalidate(self):
        if self.use_sentinels:
            remove_sentinels(self.graph)
        self.scheduled = False
