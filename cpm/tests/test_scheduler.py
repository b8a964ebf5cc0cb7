import logging
import unittest
from datetime import date, timedelta

from cpm.domain.task import Task
from cpm.domain.task_graph import MissingTaskError, CyclicGraphError, TaskGraphError
from cpm.services.scheduler import (
    CPMScheduler,
    ScheduleResult,
    SOURCE_ID,
    SINK_ID,
    add_sentinels,
    remove_sentinels,
)

PARALLEL_TASKS = [
    {"id": "A", "name": "Task A", "duration": 3, "predecessors": ""},
    {"id": "B", "name": "Task B", "duration": 2, "predecessors": "A"},
    {"id": "C", "name": "Task C", "duration": 4, "predecessors": "B"},
    {"id": "D", "name": "Task D", "duration": 1, "predecessors": "A"},
]


class CPMSchedulerTestCase(unittest.TestCase):
    def setUp(self):
        self.scheduler = CPMScheduler(start_date=date(2024, 1, 1))
        self.scheduler.add_tasks(PARALLEL_TASKS)

    def test_basic_scheduling(self):
        """Test that the scheduling workflow works end-to-end"""
        result = self.scheduler.schedule()

        self.assertIn("tasks", result)
        self.assertIn("critical_path", result)
        self.assertEqual(result["critical_path"], ["A", "B", "C"])
        self.assertEqual(set(result["tasks"]), {"A", "B", "C", "D"})
        self.assertTrue(self.scheduler.scheduled)

    def test_parallel_branch_slack(self):
        self.scheduler.schedule()
        d = self.scheduler.tasks["D"]
        self.assertEqual((d.early_start, d.early_finish), (3, 4))
        self.assertEqual((d.late_start, d.late_finish), (8, 9))
        self.assertEqual(d.slack, 5)
        self.assertFalse(d.is_critical)

        for task_id in "ABC":
            self.assertTrue(self.scheduler.tasks[task_id].is_critical)

    def test_sentinels_anchor_the_graph(self):
        self.scheduler.schedule()
        source = self.scheduler.graph.lookup(SOURCE_ID)
        sink = self.scheduler.graph.lookup(SINK_ID)
        self.assertEqual(source.successor_ids, ["A"])
        self.assertEqual(sink.predecessor_ids, ["C", "D"])
        self.assertEqual(sink.early_finish, 9)
        self.assertNotIn(SOURCE_ID, self.scheduler.tasks)
        self.assertNotIn(SINK_ID, self.scheduler.critical_path)

    def test_task_rule_with_sentinels_matches_project_rule(self):
        scheduler = CPMScheduler(start_date=date(2024, 1, 1), terminal_rule="task")
        scheduler.add_tasks(PARALLEL_TASKS)
        scheduler.schedule()
        self.assertEqual(scheduler.tasks["D"].slack, 5)
        self.assertEqual(scheduler.critical_path, ["A", "B", "C"])

    def test_task_rule_without_sentinels(self):
        scheduler = CPMScheduler(
            start_date=date(2024, 1, 1), use_sentinels=False, terminal_rule="task"
        )
        scheduler.add_tasks(PARALLEL_TASKS)
        scheduler.schedule()
        self.assertEqual(scheduler.tasks["D"].slack, 0)
        self.assertNotIn(SOURCE_ID, scheduler.graph)

    def test_invalid_terminal_rule(self):
        with self.assertRaises(ValueError):
            CPMScheduler(terminal_rule="sink")

    def test_project_end_date(self):
        self.assertIsNone(self.scheduler.project_end_date)
        self.scheduler.schedule()
        self.assertEqual(self.scheduler.project_duration, 9)
        self.assertEqual(self.scheduler.project_end_date, date(2024, 1, 10))

    def test_dates(self):
        self.scheduler.schedule()
        a = self.scheduler.tasks["A"]
        self.assertEqual(a.start_date, date(2024, 1, 1))
        self.assertEqual(a.end_date, date(2024, 1, 4))
        d = self.scheduler.tasks["D"]
        self.assertEqual(d.start_date, date(2024, 1, 4))

    def test_reschedule_is_idempotent(self):
        self.scheduler.schedule()
        first = self.scheduler.report()
        self.scheduler.schedule()
        self.assertEqual(self.scheduler.report(), first)
        self.assertEqual(self.scheduler.graph.lookup("A").successor_ids.count("B"), 1)

    def test_add_task_after_schedule(self):
        self.scheduler.schedule()
        self.scheduler.add_task(Task("E", "Task E", 10, "D"))
        self.assertFalse(self.scheduler.scheduled)
        self.assertEqual(self.scheduler.tasks["A"].predecessor_ids, [])

        self.scheduler.schedule()
        self.assertEqual(self.scheduler.critical_path, ["A", "D", "E"])
        self.assertEqual(self.scheduler.project_duration, 14)
        self.assertEqual(
            self.scheduler.graph.lookup(SINK_ID).predecessor_ids, ["C", "E"]
        )

    def test_set_start_date(self):
        self.scheduler.set_start_date(date(2025, 6, 1)).schedule()
        self.assertEqual(self.scheduler.tasks["C"].end_date, date(2025, 6, 10))

    def test_caller_order(self):
        self.scheduler.schedule(order=["A", "D", "B", "C"])
        self.assertEqual(self.scheduler.order[0], SOURCE_ID)
        self.assertEqual(self.scheduler.order[-1], SINK_ID)
        self.assertEqual(self.scheduler.tasks["D"].slack, 5)

    def test_report(self):
        self.scheduler.schedule()
        report = self.scheduler.report()
        self.assertEqual(len(report), 4)
        self.assertEqual(report[0]["id"], "A")
        self.assertTrue(all(row["id"] not in (SOURCE_ID, SINK_ID) for row in report))

    def test_report_hides_sentinel_links(self):
        self.scheduler.schedule()
        rows = {row["id"]: row for row in self.scheduler.report()}
        self.assertEqual(rows["A"]["predecessors"], [])
        self.assertEqual(rows["A"]["successors"], ["B", "D"])
        self.assertEqual(rows["C"]["successors"], [])
        for row in rows.values():
            self.assertNotIn(SOURCE_ID, row["predecessors"])
            self.assertNotIn(SINK_ID, row["successors"])

    def test_set_start_date_none_uses_today(self):
        self.scheduler.set_start_date(None).schedule()
        self.assertEqual(self.scheduler.start_date, date.today())
        self.assertEqual(
            self.scheduler.project_end_date, date.today() + timedelta(days=9)
        )

    def test_reserved_ids_rejected(self):
        for task_id in (SOURCE_ID, SINK_ID):
            with self.subTest(task_id=task_id):
                with self.assertRaises(TaskGraphError):
                    self.scheduler.add_task(Task(task_id, "Reserved", 1))
                with self.assertRaises(TaskGraphError):
                    self.scheduler.add_tasks(
                        [{"id": f" {task_id} ", "name": "Reserved", "duration": 1}]
                    )
        self.assertEqual(len(self.scheduler.graph), 4)

    def test_missing_predecessor(self):
        self.scheduler.add_tasks([{"id": "E", "name": "E", "duration": 1, "predecessors": "Z"}])
        with self.assertRaises(MissingTaskError):
            self.scheduler.schedule()
        self.assertFalse(self.scheduler.scheduled)
        self.assertEqual(self.scheduler.critical_path, [])

    def test_cycle(self):
        self.scheduler.graph.lookup("A").predecessor_ids = ["C"]
        with self.assertRaises(CyclicGraphError):
            self.scheduler.schedule()

    def test_empty_project(self):
        scheduler = CPMScheduler(start_date=date(2024, 1, 1))
        result = scheduler.schedule()
        self.assertEqual(result["critical_path"], [])
        self.assertEqual(scheduler.project_duration, 0)


class TryScheduleTestCase(unittest.TestCase):
    def test_success(self):
        scheduler = CPMScheduler.from_records(PARALLEL_TASKS, start_date=date(2024, 1, 1))
        result = scheduler.try_schedule()
        self.assertIsInstance(result, ScheduleResult)
        self.assertTrue(result.ok)
        self.assertEqual(result.critical_path, ["A", "B", "C"])
        self.assertIsNone(result.error_kind)

    def test_missing_task_result(self):
        scheduler = CPMScheduler.from_records(
            [{"id": "B", "name": "B", "duration": 2, "predecessors": "Z"}]
        )
        with self.assertLogs("cpm.services.scheduler", level=logging.ERROR):
            result = scheduler.try_schedule()
        self.assertFalse(result.ok)
        self.assertEqual(result.error_kind, "MissingTaskError")
        self.assertIn("Z", result.message)
        self.assertEqual(result.critical_path, [])

    def test_cycle_result(self):
        scheduler = CPMScheduler.from_records(
            [
                {"id": "A", "name": "A", "duration": 1, "predecessors": "B"},
                {"id": "B", "name": "B", "duration": 1, "predecessors": "A"},
                {"id": "C", "name": "C", "duration": 1, "predecessors": ""},
            ],
            use_sentinels=False,
        )
        with self.assertLogs("cpm.services.scheduler", level=logging.ERROR):
            result = scheduler.try_schedule()
        self.assertFalse(result.ok)
        self.assertEqual(result.error_kind, "CyclicGraphError")


class SentinelTestCase(unittest.TestCase):
    def test_add_and_remove(self):
        scheduler = CPMScheduler(use_sentinels=False)
        scheduler.add_tasks(PARALLEL_TASKS)
        graph = scheduler.graph

        add_sentinels(graph)
        self.assertEqual(graph.lookup("A").predecessor_ids, [SOURCE_ID])
        self.assertEqual(graph.lookup(SINK_ID).predecessor_ids, ["C", "D"])

        # A second call changes nothing
        add_sentinels(graph)
        self.assertEqual(len(graph), 6)

        remove_sentinels(graph)
        self.assertEqual(len(graph), 4)
        self.assertEqual(graph.lookup("A").predecessor_ids, [])


if __name__ == "__main__":
    unittest.main()
