from dataclasses import replace
from datetime import timedelta

import pytest

import runners.eligibility as eligibility
from runners import Runner, filter_eligible_runners, is_location_fresh
from runners.policy import AssignmentPolicy

from conftest import ORIGIN, T0, make_task, runner_at


def ids(candidates):
    return [candidate.runner_id for candidate in candidates]


def test_radius_boundary():
    """
    A runner 499.99m away is eligible, one 500.01m away is not.
    """
    task = make_task()
    runners = [runner_at("near", 499.99), runner_at("far", 500.01)]

    eligible = filter_eligible_runners(task, runners, now=T0)

    assert ids(eligible) == ["near"]
    assert eligible[0].distance_m == pytest.approx(499.99, abs=1e-6)


def test_exactly_500m_is_eligible(monkeypatch):
    monkeypatch.setattr(eligibility, "haversine_meters", lambda *args: 500.0)
    eligible = filter_eligible_runners(make_task(), [runner_at("edge", 10)], now=T0)
    assert ids(eligible) == ["edge"]


def test_600m_runner_excluded():
    eligible = filter_eligible_runners(make_task(), [runner_at("r600", 600)], now=T0)
    assert eligible == []


def test_offline_runner_excluded():
    runners = [runner_at("online", 50), runner_at("offline", 20, online=False)]
    assert ids(filter_eligible_runners(make_task(), runners, now=T0)) == ["online"]


def test_stale_location_is_a_hard_gate():
    fresh = runner_at("fresh", 300, seen_at=T0 - timedelta(seconds=75))
    stale = runner_at("stale", 10, seen_at=T0 - timedelta(seconds=76))

    assert ids(filter_eligible_runners(make_task(), [fresh, stale], now=T0)) == ["fresh"]


def test_runner_without_location_excluded():
    nowhere = Runner(id="nowhere", is_online=True)
    assert filter_eligible_runners(make_task(), [nowhere], now=T0) == []
    assert not is_location_fresh(nowhere, T0, 75)


def test_task_without_origin_matches_nobody():
    task = make_task(origin=None)
    assert filter_eligible_runners(task, [runner_at("r1", 10)], now=T0) == []


def test_declined_runner_excluded():
    task = replace(make_task(), declined_runner_ids=frozenset({"r1"}))
    runners = [runner_at("r1", 10), runner_at("r2", 200)]
    assert ids(filter_eligible_runners(task, runners, now=T0)) == ["r2"]


def test_policy_radius_is_used():
    policy = AssignmentPolicy(service_radius_meters=1000.0)
    eligible = filter_eligible_runners(make_task(), [runner_at("r700", 700)], now=T0, policy=policy)
    assert ids(eligible) == ["r700"]
