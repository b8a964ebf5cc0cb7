import logging
import math
from datetime import date
from typing import Dict, List, Optional, Sequence

import networkx as nx

from cpm.domain.task import Task
from cpm.domain.task_graph import CyclicGraphError, MissingTaskError

logger = logging.getLogger(__name__)

TERMINAL_RULES = ("task", "project")


def _lookup(tasks: Dict[str, Task], task_id, referenced_by=None) -> Task:
    task = tasks.get(task_id)
    if task is None:
        raise MissingTaskError(task_id, referenced_by=referenced_by)
    return task


def resolve_successors(tasks: Dict[str, Task]) -> Dict[str, Task]:
    """
    Fill in each task's successor list from the predecessor declarations.

    For every task u and every id t in u.predecessor_ids, u.id is appended to
    t.successor_ids. Tasks are visited in input order, so successor lists keep
    the order in which the dependent tasks were loaded.

    Raises:
        MissingTaskError: If a task declares a predecessor that does not exist
    """
    for task in tasks.values():
        task.successor_ids = []

    for task in tasks.values():
        for pred_id in task.predecessor_ids:
            pred_task = _lookup(tasks, pred_id, referenced_by=task.id)
            pred_task.successor_ids.append(task.id)

    return tasks


def build_dependency_graph(tasks: Dict[str, Task]) -> nx.DiGraph:
    """
    Build a directed graph representing task dependencies.

    Raises:
        MissingTaskError: If a task declares a predecessor that does not exist
        CyclicGraphError: If the dependencies contain a cycle
    """
    G = nx.DiGraph()

    # Add task nodes
    for task_id, task in tasks.items():
        G.add_node(task_id, task=task)

    # Add task dependencies (edges)
    for task_id, task in tasks.items():
        for pred_id in task.predecessor_ids:
            if pred_id not in tasks:
                raise MissingTaskError(pred_id, referenced_by=task_id)
            G.add_edge(pred_id, task_id)

    # Check for cycles
    if not nx.is_directed_acyclic_graph(G):
        cycle = [u for u, _ in nx.find_cycle(G)]
        raise CyclicGraphError(
            "Task dependencies contain a cycle: " + " -> ".join(cycle + cycle[:1]),
            cycle=cycle,
        )

    return G


def validate_order(tasks: Dict[str, Task], order: Sequence[str]) -> List[str]:
    """
    Check that a caller-supplied order is a topological order of all tasks.

    Raises:
        MissingTaskError: If the order or a predecessor names an unknown task
        CyclicGraphError: If the order is not a permutation of the task ids or
            a predecessor does not come before its successor
    """
    order = list(order)
    position = {}
    for index, task_id in enumerate(order):
        if task_id not in tasks:
            raise MissingTaskError(task_id)
        if task_id in position:
            raise CyclicGraphError(f"Task {task_id!r} appears twice in the order")
        position[task_id] = index

    if len(position) != len(tasks):
        missing = [task_id for task_id in tasks if task_id not in position]
        raise CyclicGraphError(f"Order is missing tasks: {', '.join(missing)}")

    for task_id in order:
        for pred_id in tasks[task_id].predecessor_ids:
            if pred_id not in position:
                raise MissingTaskError(pred_id, referenced_by=task_id)
            if position[pred_id] >= position[task_id]:
                raise CyclicGraphError(
                    f"Predecessor {pred_id!r} does not come before {task_id!r}",
                    cycle=[pred_id, task_id],
                )

    return order


def topological_order(
    tasks: Dict[str, Task], order: Optional[Sequence[str]] = None
) -> List[str]:
    """
    Return the ids of all tasks so that every predecessor precedes its successors.

    When an order is supplied it is validated and returned, otherwise one is
    computed from the dependency graph.
    """
    if order is not None:
        return validate_order(tasks, order)

    graph = build_dependency_graph(tasks)
    return list(nx.topological_sort(graph))


def forward_pass(
    tasks: Dict[str, Task], order: Sequence[str], start_date=None
) -> Dict[str, Task]:
    """
    Calculate early start, early finish and calendar dates.

    Tasks are visited once in topological order. A task without predecessors
    starts at offset 0 on the anchor date; otherwise it starts when its latest
    predecessor finishes.

    Args:
        tasks: Dictionary of Task objects keyed by ID
        order: Topological order of the task ids
        start_date: Project anchor date (default: today)

    Raises:
        MissingTaskError: If a task or a declared predecessor does not exist
    """
    if start_date is None:
        start_date = date.today()

    for task_id in order:
        task = _lookup(tasks, task_id)
        task.early_start = 0.0

        if not task.predecessor_ids:  # Start task
            task.start_date = start_date
        else:
            for pred_id in task.predecessor_ids:
                pred_task = _lookup(tasks, pred_id, referenced_by=task_id)
                # Non-strict so a zero-finish predecessor still sets the dates
                if task.early_start <= pred_task.early_finish:
                    task.early_start = pred_task.early_finish
                    task.start_date = pred_task.start_date + pred_task.duration_delta()

        task.early_finish = task.early_start + task.duration
        task.end_date = task.start_date + task.duration_delta()

        logger.debug(
            "Forward pass %s: ES=%s EF=%s", task_id, task.early_start, task.early_finish
        )

    return tasks


def backward_pass(
    tasks: Dict[str, Task], order: Sequence[str], terminal_rule: str = "task"
) -> Dict[str, Task]:
    """
    Calculate late start and late finish times.

    Tasks are visited in reverse topological order. A task with successors
    finishes at the earliest late start among them. A terminal task finishes at
    its own early finish under the "task" rule, or at the project finish (the
    largest early finish of all tasks) under the "project" rule.

    Raises:
        MissingTaskError: If a task or a successor does not exist
        ValueError: If the terminal rule is unknown
    """
    if terminal_rule not in TERMINAL_RULES:
        raise ValueError(
            f"Unknown terminal rule {terminal_rule!r}, expected one of {TERMINAL_RULES}"
        )

    project_finish = None
    if terminal_rule == "project":
        project_finish = max(
            (_lookup(tasks, task_id).early_finish for task_id in order), default=0.0
        )

    for task_id in reversed(list(order)):
        task = _lookup(tasks, task_id)

        if not task.successor_ids:  # End task
            if project_finish is None:
                late_finish = task.early_finish
            else:
                late_finish = project_finish
        else:
            late_finish = None
            for succ_id in task.successor_ids:
                succ_task = _lookup(tasks, succ_id, referenced_by=task_id)
                if late_finish is None or succ_task.late_start < late_finish:
                    late_finish = succ_task.late_start

        task.late_finish = late_finish
        task.late_start = late_finish - task.duration

        logger.debug(
            "Backward pass %s: LS=%s LF=%s", task_id, task.late_start, task.late_finish
        )

    return tasks


def find_critical_path(tasks: Dict[str, Task], order: Sequence[str]) -> List[str]:
    """
    Mark critical tasks, compute slack and return the critical ids in order.

    A task is critical when its early and late times coincide. The returned ids
    follow the given order; with several zero-slack chains they need not form a
    single connected path.
    """
    critical_path = []

    for task_id in order:
        task = _lookup(tasks, task_id)
        is_critical = math.isclose(
            task.early_finish, task.late_finish, abs_tol=1e-9
        ) and math.isclose(task.early_start, task.late_start, abs_tol=1e-9)

        task.is_critical = is_critical
        task.slack = 0.0 if is_critical else task.late_start - task.early_start

        if is_critical:
            critical_path.append(task_id)

    return critical_path
