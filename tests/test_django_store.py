import django
from django.conf import settings

if not settings.configured:
    settings.configure(
        DATABASES={"default": {"ENGINE": "django.db.backends.sqlite3", "NAME": ":memory:"}},
        INSTALLED_APPS=["backend.marketplace"],
        USE_TZ=True,
        TIME_ZONE="UTC",
    )
    django.setup()

import pytest
from django.db import connection

from backend.marketplace.models import Errand, RunnerPresence
from backend.marketplace.store import DjangoRunnerDirectory, DjangoTaskStore
from dispatch import AssignmentEngine, NotificationDispatcher, OutcomeKind
from dispatch.state_machines import offer_to_runner, release_offer
from errands.models import TaskStatus
from storage import TaskNotFound

from conftest import ORIGIN, T0, FakeDeliveryClient, at, make_task, north_of


@pytest.fixture(scope="module", autouse=True)
def schema():
    with connection.schema_editor() as editor:
        editor.create_model(Errand)
        editor.create_model(RunnerPresence)
    yield
    with connection.schema_editor() as editor:
        editor.delete_model(RunnerPresence)
        editor.delete_model(Errand)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    Errand.objects.all().delete()
    RunnerPresence.objects.all().delete()


@pytest.fixture
def task_store():
    return DjangoTaskStore()


def presence(runner_id, meters, online=True, seen_at=T0):
    lat, lon = north_of(ORIGIN, meters)
    return RunnerPresence.objects.create(
        runner_id=runner_id, is_online=online, latitude=lat, longitude=lon, location_updated_at=seen_at
    )


def test_add_and_read_back(task_store):
    task_store.add(make_task(categories="Print, food"))

    task = task_store.get_task("task-1")

    assert task.title == "Print my thesis"
    assert task.categories == {"print", "food"}
    assert task.origin == ORIGIN
    assert task.status == TaskStatus.PENDING
    assert task.created_at == T0
    assert task.version == 0


def test_missing_task(task_store):
    with pytest.raises(TaskNotFound):
        task_store.get_task("nope")


def test_compare_and_set(task_store):
    task = task_store.add(make_task())

    assert task_store.compare_and_set(task, offer_to_runner(task, "r1", T0))
    assert not task_store.compare_and_set(task, offer_to_runner(task, "r2", T0))

    offered = task_store.get_task("task-1")
    assert offered.assigned_runner == "r1"
    assert offered.assigned_at == T0
    assert offered.version == 1

    assert task_store.compare_and_set(offered, release_offer(offered, "r1", timed_out=True))
    released = task_store.get_task("task-1")
    assert released.status == TaskStatus.PENDING
    assert released.declined_runner_ids == {"r1"}
    assert released.timed_out_runner_ids == {"r1"}
    assert released.version == 2


def test_list_tasks_by_status(task_store):
    for n in range(3):
        task = task_store.add(make_task(task_id=f"task-{n}"))
        if n:
            task_store.compare_and_set(task, offer_to_runner(task, "r1", at(10 - n)))

    offered = task_store.list_tasks_by_status(TaskStatus.OFFER_PENDING)
    assert [t.id for t in offered] == ["task-2", "task-1"]
    assert [t.id for t in task_store.list_tasks_by_status(TaskStatus.PENDING, limit=5)] == ["task-0"]


def test_runner_directory():
    presence("r1", 50)
    presence("r2", 80, online=False)
    Errand.objects.create(title="old", categories="print,food", status=Errand.Status.COMPLETED, runner_id="r1")
    Errand.objects.create(title="older", categories="laundry", status=Errand.Status.COMPLETED, runner_id="r1")
    Errand.objects.create(title="open", categories="print", status=Errand.Status.ACCEPTED, runner_id="r1")

    directory = DjangoRunnerDirectory()

    assert [r.id for r in directory.list_online_runners()] == ["r1"]
    assert sorted(directory.completed_categories("r1"), key=len) == [frozenset({"laundry"}), frozenset({"print", "food"})]
    assert directory.completed_categories("r2") == []


def test_engine_end_to_end(task_store):
    presence("near", 100)
    presence("expert", 450)
    Errand.objects.create(title="done", categories="print", status=Errand.Status.COMPLETED, runner_id="expert")
    task_store.add(make_task(categories="print"))

    delivery = FakeDeliveryClient()
    engine = AssignmentEngine(
        task_store, DjangoRunnerDirectory(), NotificationDispatcher(delivery, task_store), clock=lambda: T0
    )

    offered = engine.assign_new_task("task-1")
    assert offered.runner_id == "expert"

    escalated = engine.decline("task-1", "expert", now=at(5))
    assert escalated.runner_id == "near"

    accepted = engine.accept("task-1", "near", now=at(10))
    assert accepted.kind == OutcomeKind.ACCEPTED

    row = Errand.objects.get(pk="task-1")
    assert row.status == Errand.Status.ACCEPTED
    assert row.runner_id == "near"
    assert row.declined_runner_ids == ["expert"]
    assert row.version == 4
