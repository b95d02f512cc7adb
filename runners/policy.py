"""
Purpose: Central configuration for runner matching and offer escalation.
What it does:

Stores all tunable thresholds for finding a runner and holding an offer:

SERVICE_RADIUS_METERS = 500
LOCATION_FRESHNESS_SECONDS = 75
DECISION_WINDOW_SECONDS = 60
DISPATCH_RETRY_BACKOFF_SECONDS = 1

Rule: No logic here, just parameters so you can tune without rewriting code.
Values can be overridden from the environment (.env supported) with
policy_from_env().
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

from dotenv import load_dotenv

ENV_PREFIX = "ASSIGN_"


@dataclass(frozen=True)
class AssignmentPolicy:
    """
    Central configuration for eligibility, ranking and offer timeouts.
    """

    # --- Eligibility gates ---
    # Hard radius around the task origin. Inclusive, no grace band for poor
    # GPS accuracy.
    service_radius_meters: float = 500.0

    # A runner location older than this is stale and the runner is skipped.
    location_freshness_seconds: int = 75

    # --- Offer lifecycle ---
    # How long a single runner holds the offer before it escalates.
    decision_window_seconds: int = 60

    # --- Notification delivery ---
    # Pause before the one and only delivery retry.
    dispatch_retry_backoff_seconds: float = 1.0

    # --- Timeout sweeper ---
    # How often the optional background sweep looks for expired offers,
    # and how many tasks it handles per cycle.
    sweep_interval_seconds: float = 10.0
    sweep_batch_limit: int = 50

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.service_radius_meters <= 0:
            raise ValueError("service_radius_meters must be > 0")

        if self.location_freshness_seconds <= 0:
            raise ValueError("location_freshness_seconds must be > 0")

        if self.decision_window_seconds <= 0:
            raise ValueError("decision_window_seconds must be > 0")

        if self.dispatch_retry_backoff_seconds < 0:
            raise ValueError("dispatch_retry_backoff_seconds must be >= 0")

        if self.sweep_interval_seconds <= 0:
            raise ValueError("sweep_interval_seconds must be > 0")

        if self.sweep_batch_limit <= 0:
            raise ValueError("sweep_batch_limit must be > 0")


def default_assignment_policy() -> AssignmentPolicy:
    """
    Convenience factory for the default policy.
    """
    p = AssignmentPolicy()
    p.validate()
    return p


def policy_from_env(environ: Optional[Mapping[str, str]] = None) -> AssignmentPolicy:
    """
    Build a policy from ASSIGN_* variables, e.g. ASSIGN_DECISION_WINDOW_SECONDS=90.
    Unset variables keep their defaults. A .env file in the working directory
    is loaded first when reading the real process environment.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    overrides = {}
    for policy_field in fields(AssignmentPolicy):
        raw = environ.get(ENV_PREFIX + policy_field.name.upper())
        if raw is None or raw == "":
            continue
        # Field types are strings because of `from __future__ import annotations`
        caster = int if policy_field.type == "int" else float
        try:
            overrides[policy_field.name] = caster(raw)
        except ValueError as exc:
            raise ValueError(f"{ENV_PREFIX}{policy_field.name.upper()} must be a number, got {raw!r}") from exc

    p = AssignmentPolicy(**overrides)
    p.validate()
    return p
