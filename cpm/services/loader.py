import logging
from typing import List

import pandas as pd

from cpm.domain.task import TaskError
from cpm.domain.task_graph import TaskGraph

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("id", "name", "duration")
OPTIONAL_COLUMNS = ("predecessors",)


def frame_to_records(df: pd.DataFrame) -> List[dict]:
    """
    Convert a task table to input records.

    The table needs "id", "name" and "duration" columns; "predecessors" is
    optional and holds comma-separated predecessor ids.

    Raises:
        TaskError: If a required column is missing
    """
    columns = {str(col).strip().lower(): col for col in df.columns}
    missing = [col for col in REQUIRED_COLUMNS if col not in columns]
    if missing:
        raise TaskError(f"Task table is missing required columns: {', '.join(missing)}")

    records = []
    for _, row in df.iterrows():
        record = {key: row[columns[key]] for key in REQUIRED_COLUMNS}
        if "predecessors" in columns:
            value = row[columns["predecessors"]]
            record["predecessors"] = "" if pd.isna(value) else value
        else:
            record["predecessors"] = ""
        records.append(record)

    return records


def graph_from_frame(df: pd.DataFrame) -> TaskGraph:
    """Build a TaskGraph from a task table."""
    return TaskGraph.from_records(frame_to_records(df))


def load_tasks_csv(path) -> List[dict]:
    """
    Read task records from a CSV file.

    All cells are read as strings so ids like "007" keep their form; the
    duration is validated when the task is created.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False, skipinitialspace=True)
    logger.info("Loaded %d task rows from %s", len(df), path)
    return frame_to_records(df)
