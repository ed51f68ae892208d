"""
File-based batch assignment around the SDK.

Every row is assigned on its own: a failing row is logged and skipped and
never aborts the rest of the file.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pandas as pd

from abbucket.models.assignment import OUTPUT_COLUMNS, Assignment
from abbucket.sdk import ABTestSDK

logger = logging.getLogger(__name__)

EXPERIMENT_COLUMN = "experiment_id"
GROUP_COLUMN = "experiment_group_id"


def read_user_ids(path, column: Optional[str] = None) -> List[str]:
    """
    Read user ids from a text file (one per line) or a CSV file.

    For CSV input the named column is used, or the first column when none is given.
    """
    path = Path(path)
    if path.suffix.lower() == ".csv":
        df = pd.read_csv(path, dtype=str, encoding="utf-8-sig", keep_default_na=False)
        series = df[column] if column else df.iloc[:, 0]
    else:
        lines = path.read_text(encoding="utf-8-sig").splitlines()
        series = pd.Series(lines, dtype=str)
    ids = series.astype(str).str.strip()
    return ids[ids != ""].tolist()


def write_assignments(path, assignments: Iterable[Assignment]) -> int:
    rows = [a.to_row() for a in assignments]
    for row in rows:
        if row["param"] is not None and not isinstance(row["param"], str):
            row["param"] = json.dumps(row["param"], ensure_ascii=False)
    df = pd.DataFrame(rows, columns=OUTPUT_COLUMNS)
    df.to_csv(path, index=False)
    return len(df)


def summarize(assignments: Iterable[Assignment]) -> Dict[str, Dict[str, int]]:
    """Users per experiment and group, sentinels included."""
    counts: Dict[str, Dict[str, int]] = {}
    for assignment in assignments:
        groups = counts.setdefault(assignment.selected_experiment, {})
        key = str(assignment.selected_group)
        groups[key] = groups.get(key, 0) + 1
    return counts


def log_summary(total: int, counts: Dict[str, Dict[str, int]]) -> None:
    logger.info("%d users processed", total)
    for experiment, groups in counts.items():
        logger.info("Experiment %s:", experiment)
        for group, count in groups.items():
            logger.info("  group %s: %d users", group, count)


def assign_file(sdk: ABTestSDK, layer_id: str, input_path, output_path, column: Optional[str] = None) -> Dict:
    user_ids = read_user_ids(input_path, column)
    assignments, failures = sdk.assign_bulk(layer_id, user_ids)
    write_assignments(output_path, assignments)
    counts = summarize(assignments)
    log_summary(len(user_ids), counts)
    logger.info("Assignments written to %s", output_path)
    return {"total_users": len(user_ids), "failed": len(failures), "counts": counts}


def annotate_csv(sdk: ABTestSDK, layer_id: str, input_path, output_path, id_column: Optional[str] = None) -> Dict:
    """Copy a CSV, appending the experiment and group of each row's user."""
    df = pd.read_csv(input_path, dtype=str, encoding="utf-8-sig", keep_default_na=False)
    id_column = id_column or df.columns[0]
    if id_column not in df.columns:
        raise KeyError(f"column '{id_column}' not found in {input_path}")

    experiments, groups, keep = [], [], []
    for index, row in df.iterrows():
        try:
            user_id = row[id_column].strip()
            if not user_id:
                raise ValueError("empty user id")
            assignment = sdk.assign(layer_id, user_id)
        except Exception as exc:
            logger.warning("Error processing row %s: %s", index, exc)
            keep.append(False)
            continue
        keep.append(True)
        experiments.append(assignment.selected_experiment)
        groups.append(assignment.selected_group)

    result = df.loc[keep].copy()
    result[EXPERIMENT_COLUMN] = experiments
    result[GROUP_COLUMN] = groups
    result.to_csv(output_path, index=False)
    logger.info("Annotated %d of %d rows into %s", len(result), len(df), output_path)
    return {"total_rows": len(df), "written": len(result), "skipped": len(df) - len(result)}
