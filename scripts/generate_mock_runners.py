import pandas as pd
import numpy as np
from datetime import datetime, timezone, timedelta

CATEGORIES = ["print", "food", "groceries", "laundry", "documents", "pharmacy", "delivery"]


def generate_mock_runners(num_runners=60, output_file="mock_runners.csv", history_file="mock_runner_history.csv", seed=None):
    """
    Generates a runner roster scattered around the campus plus a completed-task
    history, in the CSV layout runners.loader expects.

    Most runners sit within ~1km of the campus center, so a task posted near
    the center typically has a handful of runners inside the 500 m radius.
    A slice of runners is offline or has a stale location to exercise the
    eligibility gates.
    """
    rng = np.random.default_rng(seed)

    # Campus center
    CENTER_LAT = 7.1107
    CENTER_LON = 125.6135

    now = datetime.now(timezone.utc)
    runners = []
    history = []

    for runner_index in range(num_runners):
        runner_id = f"r_{str(runner_index + 1).zfill(3)}"

        # ~0.009 degrees is roughly 1km at this latitude
        lat = CENTER_LAT + rng.uniform(-0.009, 0.009)
        lon = CENTER_LON + rng.uniform(-0.009, 0.009)

        # 80% online; 15% of locations are older than the 75s freshness gate
        is_online = bool(rng.random() < 0.8)
        age_seconds = int(rng.integers(120, 900)) if rng.random() < 0.15 else int(rng.integers(0, 60))

        runners.append({
            "runner_id": runner_id,
            "lat": np.round(lat, 6),
            "lon": np.round(lon, 6),
            "is_online": is_online,
            "location_updated_at": (now - timedelta(seconds=age_seconds)).isoformat(),
        })

        # Each runner has completed 0-8 tasks with 1-2 categories each
        for _ in range(int(rng.integers(0, 9))):
            picked = rng.choice(CATEGORIES, size=int(rng.integers(1, 3)), replace=False)
            history.append({"runner_id": runner_id, "categories": ",".join(picked)})

    runners_df = pd.DataFrame(runners)
    history_df = pd.DataFrame(history, columns=["runner_id", "categories"])

    runners_df.to_csv(output_file, index=False)
    history_df.to_csv(history_file, index=False)

    print(f"Successfully generated {len(runners_df)} mock runners into '{output_file}'.")
    print(f"Online: {int(runners_df['is_online'].sum())} | Completed tasks in history: {len(history_df)} ('{history_file}')")
    return runners_df, history_df


if __name__ == "__main__":
    generate_mock_runners()
