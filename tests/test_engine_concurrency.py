import threading

import pytest

from dispatch import AssignmentEngine, NotificationDispatcher, OutcomeKind
from dispatch.errors import ConcurrentModification, OfferExpired
from errands.models import TaskStatus
from storage.memory import InMemoryRunnerDirectory, InMemoryTaskStore

from conftest import T0, FakeDeliveryClient, at, make_task, runner_at


def run_in_threads(count, target):
    barrier = threading.Barrier(count)
    results, errors = [], []

    def worker(index):
        barrier.wait()
        try:
            results.append(target(index))
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    return results, errors


def test_concurrent_assign_offers_exactly_once(engine, store, directory, delivery):
    for i in range(5):
        directory.upsert_runner(runner_at(f"r{i}", 10 + i * 50))
    task_id = store.add(make_task()).id

    results, errors = run_in_threads(8, lambda _: engine.assign_new_task(task_id))

    assert errors == []
    assert len(delivery.calls) == 1
    assert {outcome.runner_id for outcome in results} == {"r0"}
    assert all(outcome.kind == OutcomeKind.OFFERED for outcome in results)
    assert store.get_task(task_id).version == 1


def test_concurrent_timeout_checks_escalate_once(engine, store, directory, delivery):
    for i in range(3):
        directory.upsert_runner(runner_at(f"r{i}", 10 + i * 50))
    task_id = store.add(make_task()).id
    engine.assign_new_task(task_id)

    results, errors = run_in_threads(6, lambda _: engine.check_timeout(task_id, now=at(61)))

    assert errors == []
    stored = store.get_task(task_id)
    assert stored.assigned_runner == "r1"
    assert stored.escalation_attempts == 1
    assert [runner_id for _, runner_id in delivery.calls] == ["r0", "r1"]


def test_accept_racing_timeout_has_one_winner(engine, store, directory):
    directory.upsert_runner(runner_at("r0", 10))
    directory.upsert_runner(runner_at("r1", 60))
    task_id = store.add(make_task()).id
    engine.assign_new_task(task_id)

    def act(index):
        if index == 0:
            return engine.accept(task_id, "r0", now=at(59))
        return engine.check_timeout(task_id, now=at(61))

    results, errors = run_in_threads(2, act)

    stored = store.get_task(task_id)
    if stored.status == TaskStatus.ACCEPTED:
        assert stored.accepted_runner == "r0"
        assert stored.timed_out_runner_ids == frozenset()
        assert errors == []
    else:
        assert stored.assigned_runner == "r1"
        assert stored.timed_out_runner_ids == {"r0"}
        assert len(errors) == 1 and isinstance(errors[0], OfferExpired)


def test_many_tasks_many_threads_never_double_offer(engine, store, directory):
    for i in range(4):
        directory.upsert_runner(runner_at(f"r{i}", 10 + i * 30))
    task_ids = [store.add(make_task(task_id=f"task-{n}")).id for n in range(10)]

    results, errors = run_in_threads(10, lambda index: [engine.assign_new_task(t) for t in task_ids])

    assert errors == []
    for task_id in task_ids:
        stored = store.get_task(task_id)
        assert stored.status == TaskStatus.OFFER_PENDING
        assert stored.version == 1


class StaleWriteStore(InMemoryTaskStore):
    """
    Loses every compare-and-set without the task visibly changing, like a
    writer that only bumped the version.
    """
    def compare_and_set(self, expected, updated):
        return False


def test_unresolvable_conflict_raises():
    store = StaleWriteStore([make_task()])
    directory = InMemoryRunnerDirectory([runner_at("r0", 10)])
    delivery = FakeDeliveryClient()
    engine = AssignmentEngine(store, directory, NotificationDispatcher(delivery, store), clock=lambda: T0)

    with pytest.raises(ConcurrentModification):
        engine.assign_new_task("task-1")
    assert delivery.calls == []
