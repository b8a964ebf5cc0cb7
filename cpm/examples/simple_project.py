from datetime import date

from cpm.services.scheduler import CPMScheduler

SAMPLE_TASKS = [
    {"id": "A", "name": "Requirements", "duration": 3, "predecessors": ""},
    {"id": "B", "name": "Design", "duration": 2, "predecessors": "A"},
    {"id": "C", "name": "Build", "duration": 4, "predecessors": "B"},
    {"id": "D", "name": "Documentation", "duration": 1, "predecessors": "A"},
    {"id": "E", "name": "Release", "duration": 1, "predecessors": "C, D"},
]


def print_report(scheduler):
    """Print a plain-text schedule report."""
    print("CPM Project Schedule Report")
    print("===========================")
    print(f"Project Start Date: {scheduler.start_date.strftime('%Y-%m-%d')}")
    if scheduler.project_end_date:
        print(f"Project End Date: {scheduler.project_end_date.strftime('%Y-%m-%d')}")
    print(f"Project Duration: {scheduler.project_duration:g} days")

    print("\nTasks:")
    print(f"  {'ID':<8}{'Name':<20}{'Dur':>6}{'ES':>6}{'EF':>6}{'LS':>6}{'LF':>6}{'Slack':>7}")
    for row in scheduler.report():
        flag = " *" if row["is_critical"] else ""
        print(
            f"  {row['id']:<8}{row['name'][:19]:<20}{row['duration']:>6g}"
            f"{row['early_start']:>6g}{row['early_finish']:>6g}"
            f"{row['late_start']:>6g}{row['late_finish']:>6g}{row['slack']:>7g}{flag}"
        )

    print("\nCritical Path:")
    print("  " + " -> ".join(scheduler.critical_path))


def create_sample_project(start_date=None, gantt_file=None, network_file=None):
    scheduler = CPMScheduler(start_date=start_date or date(2025, 4, 1))
    scheduler.add_tasks(SAMPLE_TASKS)

    # Run the scheduling algorithm
    scheduler.schedule()

    print_report(scheduler)

    # Create visualization
    if gantt_file:
        from cpm.visualization.gantt import create_gantt_chart

        create_gantt_chart(scheduler, gantt_file, show=False)
    if network_file:
        from cpm.visualization.network import create_network_diagram

        create_network_diagram(scheduler, network_file, show=False)

    return scheduler


if __name__ == "__main__":
    create_sample_project()
