"""
CPM Scheduler
=============

Critical Path Method scheduling for task dependency graphs.

Available modules:
- domain.task: Task record and duration/id parsing
- domain.task_graph: TaskGraph store and graph errors
- utils.graph: successor resolution, ordering, forward/backward passes
- services.scheduler: CPMScheduler orchestration
- services.loader: CSV / DataFrame loading
- visualization: Gantt projection and network edge list
"""

from cpm.domain.task import Task, TaskError, InvalidDurationError
from cpm.domain.task_graph import (
    TaskGraph,
    TaskGraphError,
    MissingTaskError,
    CyclicGraphError,
)
from cpm.services.scheduler import CPMScheduler, ScheduleResult

__all__ = [
    "Task",
    "TaskError",
    "InvalidDurationError",
    "TaskGraph",
    "TaskGraphError",
    "MissingTaskError",
    "CyclicGraphError",
    "CPMScheduler",
    "ScheduleResult",
]
