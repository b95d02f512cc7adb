"""
Runners domain package.

Public API:
- Domain model: Runner
- Eligibility gates: filter_eligible_runners, RunnerCandidate
- Fixture loading: load_runners, load_completed_history
"""
from .models import Runner, LatLon
from .eligibility import RunnerCandidate, filter_eligible_runners, is_location_fresh
from .loader import load_runners, load_completed_history

__all__ = [
    "Runner",
    "LatLon",
    "RunnerCandidate",
    "filter_eligible_runners",
    "is_location_fresh",
    "load_runners",
    "load_completed_history",
]
