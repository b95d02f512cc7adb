import pytest

from runners.policy import AssignmentPolicy, default_assignment_policy, policy_from_env


def test_defaults():
    policy = default_assignment_policy()
    assert policy.service_radius_meters == 500.0
    assert policy.location_freshness_seconds == 75
    assert policy.decision_window_seconds == 60
    assert policy.dispatch_retry_backoff_seconds == 1.0
    assert policy.sweep_batch_limit == 50


def test_validate_rejects_non_positive_radius():
    with pytest.raises(ValueError):
        AssignmentPolicy(service_radius_meters=0).validate()


def test_validate_rejects_negative_backoff():
    with pytest.raises(ValueError):
        AssignmentPolicy(dispatch_retry_backoff_seconds=-1).validate()


def test_policy_from_env_overrides():
    policy = policy_from_env({
        "ASSIGN_DECISION_WINDOW_SECONDS": "90",
        "ASSIGN_SERVICE_RADIUS_METERS": "750.5",
        "ASSIGN_SWEEP_BATCH_LIMIT": "",
    })
    assert policy.decision_window_seconds == 90
    assert isinstance(policy.decision_window_seconds, int)
    assert policy.service_radius_meters == 750.5
    assert policy.sweep_batch_limit == 50


def test_policy_from_env_rejects_garbage():
    with pytest.raises(ValueError):
        policy_from_env({"ASSIGN_DECISION_WINDOW_SECONDS": "soon"})

    with pytest.raises(ValueError):
        policy_from_env({"ASSIGN_DECISION_WINDOW_SECONDS": "0"})
