from errands.models import TaskStatus
from scripts.run_assignment_simulation import run_simulation


def test_simulation_runs_end_to_end(tmp_path):
    store = run_simulation(num_tasks=5, num_runners=15, output_dir=str(tmp_path))

    assert len(store) == 5
    assert (tmp_path / "mock_runners.csv").exists()
    assert (tmp_path / "mock_runner_history.csv").exists()
    # Every task was looked at; nothing is left in an unknown state
    counted = sum(len(store.list_tasks_by_status(status)) for status in TaskStatus)
    assert counted == 5
