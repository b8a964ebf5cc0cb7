import matplotlib.pyplot as plt
import matplotlib.dates as mdates
from matplotlib.patches import Patch
import pandas as pd

from cpm.services.scheduler import SOURCE_ID, is_sentinel

GANTT_COLUMNS = [
    "id",
    "name",
    "start_date",
    "end_date",
    "duration",
    "is_critical",
    "pred_id",
]


def to_gantt_frame(graph):
    """
    Project a scheduled TaskGraph onto one row per real task.

    Sentinel tasks are left out, and the sentinel source is dropped from the
    predecessor display, so a task depending only on it shows an empty string.

    Args:
        graph: A scheduled TaskGraph

    Returns:
        pandas.DataFrame with the GANTT_COLUMNS columns, in input order
    """
    rows = []
    for task in graph:
        if is_sentinel(task.id):
            continue

        pred_ids = [pred_id for pred_id in task.predecessor_ids if pred_id != SOURCE_ID]
        rows.append(
            {
                "id": task.id,
                "name": task.name,
                "start_date": task.start_date,
                "end_date": task.end_date,
                "duration": task.duration,
                "is_critical": task.is_critical,
                "pred_id": ", ".join(pred_ids),
            }
        )

    return pd.DataFrame(rows, columns=GANTT_COLUMNS)


def create_gantt_chart(scheduler, filename=None, show=True):
    """
    Create a Gantt chart visualization of the CPM schedule.

    Args:
        scheduler: A CPMScheduler that has been scheduled
        filename: Optional filename to save the chart
        show: Whether to display the chart (default: True)

    Returns:
        The matplotlib figure
    """
    df = to_gantt_frame(scheduler.graph)
    df = df.sort_values(["start_date", "id"], kind="stable").reset_index(drop=True)

    fig, ax = plt.subplots(figsize=(14, max(4, 0.5 * len(df) + 2)))

    for i, row in df.iterrows():
        color = "red" if row["is_critical"] else "skyblue"
        start = mdates.date2num(pd.Timestamp(row["start_date"]))
        ax.barh(
            i,
            row["duration"],
            left=start,
            color=color,
            edgecolor="black",
            alpha=0.8,
        )
        ax.text(
            start + row["duration"] / 2,
            i,
            row["id"],
            ha="center",
            va="center",
            fontsize=8,
        )

    # Y-axis labels
    ax.set_yticks(range(len(df)))
    ax.set_yticklabels([f"{row['id']}: {row['name']}" for _, row in df.iterrows()])
    ax.invert_yaxis()  # First task at the top

    # Date axis
    ax.xaxis_date()
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%Y-%m-%d"))
    fig.autofmt_xdate()
    ax.grid(axis="x", linestyle="--", alpha=0.5)

    legend_elements = [
        Patch(facecolor="red", edgecolor="black", label="Critical Task"),
        Patch(facecolor="skyblue", edgecolor="black", label="Task with Slack"),
    ]
    ax.legend(handles=legend_elements, loc="upper right")

    ax.set_title("Project Schedule (Critical Path Method)", fontsize=14)
    ax.set_xlabel("Date")

    plt.tight_layout()

    if filename:
        plt.savefig(filename, dpi=300, bbox_inches="tight")

    if show:
        plt.show()

    return fig
