import os
import random
from datetime import datetime, timedelta, timezone

from dispatch import AssignmentEngine, NotificationDispatcher, OfferTimeoutSweeper, OutcomeKind
from dispatch.errors import AssignmentError
from errands.models import Task, TaskStatus
from runners.policy import policy_from_env
from storage import InMemoryRunnerDirectory, InMemoryTaskStore

from scripts.generate_mock_runners import CATEGORIES, generate_mock_runners


class MockDeliveryClient:
    """
    Stands in for the assign-and-notify service: always reports "assigned".
    Fails now and then so the one-retry path shows up in the output.
    """
    def __init__(self, failure_rate=0.05):
        self.failure_rate = failure_rate
        self.calls = 0

    def deliver(self, task_id, runner_id):
        self.calls += 1
        if random.random() < self.failure_rate:
            raise ConnectionError("simulated network blip")
        return "assigned"


class PrintingCallerNotifier:
    def task_finalized(self, task):
        pass # The simulation prints outcomes itself.


def run_simulation(num_tasks=20, num_runners=60, output_dir=None):
    print("=== STARTING ASSIGNMENT SIMULATION ===")

    # 1. Load Data (CSVs land in the repo root unless told otherwise)
    base_dir = output_dir or os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    runners_path = os.path.join(base_dir, "mock_runners.csv")
    history_path = os.path.join(base_dir, "mock_runner_history.csv")
    generate_mock_runners(num_runners, runners_path, history_path)

    directory = InMemoryRunnerDirectory.from_csv(runners_path, history_path)
    store = InMemoryTaskStore()
    print(f"Loaded {len(directory.list_online_runners())} online runners.\n")

    # 2. Configure System
    policy = policy_from_env()
    clock_start = datetime.now(timezone.utc)
    dispatcher = NotificationDispatcher(MockDeliveryClient(), store, policy=policy, sleep=lambda _s: None)
    engine = AssignmentEngine(store, directory, dispatcher, PrintingCallerNotifier(), policy=policy)
    sweeper = OfferTimeoutSweeper(engine)

    # 3. Post tasks around the campus center
    for task_index in range(num_tasks):
        task = Task.new(
            f"Errand {task_index + 1}",
            caller_id=f"c_{random.randint(1000, 9999)}",
            categories=random.sample(CATEGORIES, k=random.randint(1, 2)),
            origin=(7.1107 + random.uniform(-0.004, 0.004), 125.6135 + random.uniform(-0.004, 0.004)),
            created_at=clock_start,
        )
        store.add(task)

        try:
            outcome = engine.assign_new_task(task.id, now=clock_start)
        except AssignmentError as exc:
            print(f"[ERROR] {task.title} -> {exc}")
            continue

        if outcome.kind == OutcomeKind.OFFERED:
            print(f"[OFFERED] {task.title} {sorted(task.categories)} -> {outcome.runner_id}")
        else:
            print(f"[CANCELLED] {task.title} -> {outcome.cancel_reason.value}")

    # 4. Runners react: accept, decline or ignore (timeout)
    print("\n--- Runner decisions ---")
    decision_time = clock_start + timedelta(seconds=30)
    for runner in directory.list_online_runners():
        for offer in engine.pending_offers_for(runner.id, now=decision_time):
            roll = random.random()
            try:
                if roll < 0.5:
                    engine.accept(offer.task_id, runner.id, now=decision_time)
                    print(f"[ACCEPTED] {offer.task_id[:8]} by {runner.id}")
                elif roll < 0.8:
                    outcome = engine.decline(offer.task_id, runner.id, now=decision_time)
                    print(f"[DECLINED] {offer.task_id[:8]} by {runner.id} -> now {outcome.kind.value} {outcome.runner_id or ''}")
                else:
                    print(f"[IGNORED]  {offer.task_id[:8]} by {runner.id}")
            except AssignmentError as exc:
                print(f"[ERROR] {exc}")

    # 5. Let the sweeper escalate whatever was ignored
    report = sweeper.run_cycle(now=clock_start + timedelta(seconds=policy.decision_window_seconds + 5))
    print(f"\nSweep: checked={report.checked} escalated={len(report.escalated)} "
          f"cancelled={len(report.cancelled)} reoffered={len(report.reoffered)} errors={len(report.errors)}")

    print("\n=== SIMULATION COMPLETE ===")
    for status in TaskStatus:
        count = len(store.list_tasks_by_status(status))
        if count:
            print(f"{status.value:>14}: {count}")

    return store


if __name__ == "__main__":
    run_simulation()
