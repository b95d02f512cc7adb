import math
from datetime import datetime, timedelta, timezone

import pytest

from dispatch import AssignmentEngine, NotificationDispatcher
from errands.models import Task
from geo.distance import EARTH_RADIUS_METERS
from runners.models import Runner
from runners.policy import AssignmentPolicy
from storage.memory import InMemoryRunnerDirectory, InMemoryTaskStore

ORIGIN = (7.1107, 125.6135)
T0 = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)


def north_of(point, meters):
    """
    A point exactly `meters` due north of `point` on the haversine sphere.
    Same longitude, so the distance is just the latitude arc.
    """
    lat, lon = point
    return (lat + math.degrees(meters / EARTH_RADIUS_METERS), lon)


def runner_at(runner_id, meters, *, origin=ORIGIN, online=True, seen_at=T0):
    lat, lon = north_of(origin, meters)
    return Runner(id=runner_id, is_online=online, location=(lat, lon), location_updated_at=seen_at)


def make_task(task_id="task-1", categories=(), origin=ORIGIN, created_at=T0):
    return Task.new("Print my thesis", task_id=task_id, caller_id="caller-1",
                    categories=categories, origin=origin, created_at=created_at)


class FakeDeliveryClient:
    """
    Returns queued statuses (or raises queued exceptions), "assigned" once the
    queue is empty. Records every call.
    """
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def deliver(self, task_id, runner_id):
        self.calls.append((task_id, runner_id))
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return "assigned"


class RecordingCallerNotifier:
    def __init__(self):
        self.finalized = []

    def task_finalized(self, task):
        self.finalized.append(task)


@pytest.fixture
def policy():
    return AssignmentPolicy()


@pytest.fixture
def store():
    return InMemoryTaskStore()


@pytest.fixture
def directory():
    return InMemoryRunnerDirectory()


@pytest.fixture
def delivery():
    return FakeDeliveryClient()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def caller_notifier():
    return RecordingCallerNotifier()


@pytest.fixture
def engine(store, directory, delivery, caller_notifier, policy, sleeps):
    dispatcher = NotificationDispatcher(delivery, store, policy=policy, sleep=sleeps.append)
    return AssignmentEngine(store, directory, dispatcher, caller_notifier, policy=policy, clock=lambda: T0)


def at(seconds):
    return T0 + timedelta(seconds=seconds)
