"""
CPM Project Scheduling
======================

Command line entry point for the Critical Path Method scheduler.
"""

import argparse
import logging
import sys
from datetime import datetime

from cpm.domain.task import TaskError
from cpm.domain.task_graph import TaskGraphError
from cpm.examples.simple_project import create_sample_project, print_report
from cpm.services.loader import load_tasks_csv
from cpm.services.scheduler import CPMScheduler
from cpm.utils.graph import TERMINAL_RULES


def parse_date(value):
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}, expected YYYY-MM-DD")


def build_parser():
    parser = argparse.ArgumentParser(description="Critical Path Method scheduler")
    parser.add_argument(
        "--example", action="store_true", help="Run the example project"
    )
    parser.add_argument(
        "--input",
        type=str,
        help="CSV file with id, name, duration and predecessors columns",
    )
    parser.add_argument(
        "--start-date",
        type=parse_date,
        default=None,
        help="Project start date as YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--terminal-rule",
        choices=TERMINAL_RULES,
        default="project",
        help="Late finish of tasks without successors",
    )
    parser.add_argument(
        "--no-sentinels",
        action="store_true",
        help="Do not add the synthetic project start and finish tasks",
    )
    parser.add_argument("--gantt", type=str, help="Output filename for the Gantt chart")
    parser.add_argument(
        "--network", type=str, help="Output filename for the network diagram"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable info logging")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.example:
        print("Running example project...")
        create_sample_project(args.start_date, args.gantt, args.network)
        return 0

    if not args.input:
        parser.print_help()
        return 1

    scheduler = CPMScheduler(
        start_date=args.start_date,
        use_sentinels=not args.no_sentinels,
        terminal_rule=args.terminal_rule,
    )
    try:
        scheduler.add_tasks(load_tasks_csv(args.input))
        scheduler.schedule()
    except (OSError, TaskError, TaskGraphError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print_report(scheduler)

    if args.gantt:
        from cpm.visualization.gantt import create_gantt_chart

        create_gantt_chart(scheduler, args.gantt, show=False)
        print(f"Gantt chart saved to {args.gantt}")
    if args.network:
        from cpm.visualization.network import create_network_diagram

        create_network_diagram(scheduler, args.network, show=False)
        print(f"Network diagram saved to {args.network}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
