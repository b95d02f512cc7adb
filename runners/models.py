"""
Purpose: Core data models for the runners domain.
What it does:
Defines the structure of a Runner (online flag, last known location, when that
location was reported) without relying on Django ORM constraints.

Completed-task history is NOT stored here. It is derived from task records by
the RunnerDirectory collaborator every time a ranking needs it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

LatLon = Tuple[float, float]


@dataclass(frozen=True)
class Runner:
    """
    A purely stateless snapshot of a Runner at a specific point in time.
    """
    id: str
    is_online: bool
    location: Optional[LatLon] = None
    location_updated_at: Optional[datetime] = None

    @classmethod
    def new(
        cls,
        runner_id: str,
        lat: Optional[float] = None,
        lon: Optional[float] = None,
        is_online: bool = True,
        location_updated_at: Optional[datetime] = None,
    ) -> Runner:
        location = None
        if lat is not None and lon is not None:
            location = (float(lat), float(lon))
            location_updated_at = location_updated_at or datetime.now(timezone.utc)

        return cls(
            id=runner_id,
            is_online=is_online,
            location=location,
            location_updated_at=location_updated_at,
        )
