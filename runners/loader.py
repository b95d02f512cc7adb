"""
Purpose: Load runner fixtures from CSV files.
What it does:
Reads the runner roster and the completed-task history used by simulations
and local demos into domain objects.

Expected columns
----------------
runners CSV:  runner_id, lat, lon, is_online, location_updated_at
history CSV:  runner_id, categories   (one row per completed task,
              categories comma separated as the apps store them)

Empty lat/lon or timestamp cells load as a runner without a location.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, FrozenSet, List

import pandas as pd

from errands.models import parse_categories

from .models import Runner

_TRUE_STRINGS = {"true", "1", "yes", "y", "online", "available"}


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    if pd.isna(value):
        return False
    return bool(value)


def load_runners(file_path) -> List[Runner]:
    """
    Loads runners from a CSV file and returns a list of Runner objects.
    Timestamps are parsed as UTC.
    """
    df = pd.read_csv(file_path, dtype={"runner_id": str})
    if "location_updated_at" in df.columns:
        df["location_updated_at"] = pd.to_datetime(df["location_updated_at"], utc=True, errors="coerce")

    runners = []
    for row in df.itertuples(index=False):
        lat = getattr(row, "lat", None)
        lon = getattr(row, "lon", None)
        has_location = lat is not None and lon is not None and not pd.isna(lat) and not pd.isna(lon)

        updated_at = getattr(row, "location_updated_at", None)
        updated_at = None if updated_at is None or pd.isna(updated_at) else updated_at.to_pydatetime()

        runners.append(
            Runner(
                id=str(row.runner_id),
                is_online=_as_bool(getattr(row, "is_online", False)),
                location=(float(lat), float(lon)) if has_location else None,
                location_updated_at=updated_at if has_location else None,
            )
        )
    return runners


def load_completed_history(file_path) -> Dict[str, List[FrozenSet[str]]]:
    """
    Loads completed-task history: runner_id -> [category set per completed task].
    """
    df = pd.read_csv(file_path, dtype={"runner_id": str, "categories": str}, keep_default_na=False)

    history: Dict[str, List[FrozenSet[str]]] = defaultdict(list)
    for row in df.itertuples(index=False):
        history[row.runner_id].append(parse_categories(row.categories))
    return dict(history)
