# utils.py - Task list persistence and result export
import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from pulsesim.analysis import ResultAnalyzer
from pulsesim.distributions import DistributionType
from pulsesim.errors import InvalidGraphError
from pulsesim.model import Task, TaskGraph, TaskId
from pulsesim.simulation import SimulationResult

logger = logging.getLogger(__name__)

TASK_LIST_PATH = "task_list.json"

# Display columns used for tabular import/export
COLUMNS = ["ID", "Task", "Dependencies (IDs)", "Optimistic (O)", "Most Likely (M)",
           "Pessimistic (P)", "Distribution Type"]


def _plain_id(value) -> TaskId:
    """Unwrap numpy scalars so ids compare equal to plain ints"""
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _restore_ids(texts: List[str]) -> List[TaskId]:
    """Ids read back as text become ints only if every one is written as a plain integer"""
    if all(text.lstrip("-").isdigit() and str(int(text)) == text for text in texts):
        return [int(text) for text in texts]
    return texts


def graph_to_records(graph: TaskGraph) -> List[Dict[str, Any]]:
    return [
        {
            "id": task.id,
            "name": task.name,
            "dependencies": list(task.dependencies),
            "optimistic": task.optimistic,
            "most_likely": task.most_likely,
            "pessimistic": task.pessimistic,
            "distribution": task.distribution.value,
        }
        for task in graph
    ]


def graph_from_records(records: List[Dict[str, Any]]) -> TaskGraph:
    """Build a TaskGraph from dicts. Accepts snake_case and camelCase keys."""
    tasks = []
    for i, record in enumerate(records):
        dependencies = record.get("dependencies", record.get("dependencyIds")) or ()
        try:
            tasks.append(Task(
                id=_plain_id(record["id"]),
                name=str(record.get("name", "")),
                dependencies=dependencies if isinstance(dependencies, str)
                else tuple(_plain_id(d) for d in dependencies),
                optimistic=record["optimistic"],
                most_likely=record["most_likely"] if "most_likely" in record else record["mostLikely"],
                pessimistic=record["pessimistic"],
                distribution=record.get("distribution", DistributionType.TRIANGULAR.value),
            ))
        except KeyError as e:
            raise InvalidGraphError(f"Task record {i}: missing field {e.args[0]!r}")
    return TaskGraph(tasks)


def save_task_list(graph: TaskGraph, save_path: str = TASK_LIST_PATH):
    """Save tasks to JSON file"""
    with open(save_path, "w") as f:
        json.dump(graph_to_records(graph), f, indent=2)
    logger.debug("Saved %d tasks to %s", len(graph), save_path)


def load_task_list(save_path: str = TASK_LIST_PATH) -> Optional[TaskGraph]:
    """Load tasks from JSON file, None if the file does not exist"""
    if not os.path.exists(save_path):
        return None
    with open(save_path, "r") as f:
        records = json.load(f)
    if isinstance(records, dict):
        records = records.get("tasks", [])
    return graph_from_records(records)


def graph_to_dataframe(graph: TaskGraph) -> pd.DataFrame:
    data = []
    for task in graph:
        data.append({
            "ID": task.id,
            "Task": task.name,
            "Dependencies (IDs)": ",".join(map(str, task.dependencies)),
            "Optimistic (O)": task.optimistic,
            "Most Likely (M)": task.most_likely,
            "Pessimistic (P)": task.pessimistic,
            "Distribution Type": task.distribution.value,
        })
    return pd.DataFrame(data, columns=COLUMNS)


def graph_from_dataframe(task_df: pd.DataFrame) -> TaskGraph:
    missing_columns = [col for col in COLUMNS[:-1] if col not in task_df.columns]
    if missing_columns:
        raise InvalidGraphError(f"Missing required columns: {missing_columns}")

    ids = [_plain_id(value) for value in task_df["ID"]]
    # Dependency tokens are text; map them back onto the id column's type
    by_text = {str(task_id): task_id for task_id in ids}

    tasks = []
    for task_id, (_, row) in zip(ids, task_df.iterrows()):
        deps = row["Dependencies (IDs)"]
        dep_ids = []
        if isinstance(deps, str) and deps.strip():
            for token in deps.split(","):
                token = token.strip()
                if token:
                    dep_ids.append(by_text.get(token, token))

        distribution = DistributionType.TRIANGULAR.value
        if "Distribution Type" in task_df.columns and isinstance(row["Distribution Type"], str):
            distribution = row["Distribution Type"].strip().lower()

        tasks.append(Task(
            id=task_id,
            name=str(row["Task"]),
            dependencies=tuple(dep_ids),
            optimistic=row["Optimistic (O)"],
            most_likely=row["Most Likely (M)"],
            pessimistic=row["Pessimistic (P)"],
            distribution=distribution,
        ))
    return TaskGraph(tasks)


def export_to_csv(graph: TaskGraph, filename: str = "project_tasks.csv") -> Tuple[bool, str]:
    """Export tasks to CSV"""
    try:
        graph_to_dataframe(graph).to_csv(filename, index=False)
        return True, f"Successfully exported to {filename}"
    except OSError as e:
        logger.error("CSV export to %s failed: %s", filename, e)
        return False, f"Error exporting to CSV: {str(e)}"


def import_from_csv(filename: str) -> Tuple[Optional[TaskGraph], Optional[str]]:
    """Import tasks from CSV"""
    if not os.path.exists(filename):
        return None, f"File {filename} not found"

    try:
        df = pd.read_csv(filename, dtype={"ID": str, "Dependencies (IDs)": str}, keep_default_na=False)
        if "ID" in df.columns:
            df["ID"] = _restore_ids(df["ID"].tolist())
        return graph_from_dataframe(df), None
    except InvalidGraphError as e:
        logger.warning("Rejected %s: %s", filename, e)
        return None, f"Invalid project structure: {str(e)}"
    except (OSError, ValueError) as e:
        logger.error("Could not read %s: %s", filename, e)
        return None, f"Error importing from CSV: {str(e)}"


def result_to_dict(result: SimulationResult, bucket_count: Optional[int] = None) -> Dict[str, Any]:
    """JSON-ready view of a run: sorted times, summary and histogram"""
    analyzer = ResultAnalyzer(result)
    histogram = analyzer.histogram() if bucket_count is None else analyzer.histogram(bucket_count)
    return {
        "num_simulations": result.num_simulations,
        "seed": result.seed,
        "tasks": graph_to_records(result.graph),
        "completion_times": result.completion_times.tolist(),
        "summary": analyzer.summary(),
        "histogram": [
            {
                "range": bucket.label,
                "range_start": bucket.range_start,
                "range_end": bucket.range_end,
                "count": bucket.count,
                "probability": bucket.probability_percent,
                "midpoint": bucket.midpoint,
            }
            for bucket in histogram
        ],
    }
