#Expose the high-level pipeline pieces:
#Ranking (who is best)
#Notification delivery with one retry + verification
#AssignmentEngine orchestrator (the single-offer escalation loop)
#Timeout sweeper (optional heartbeat)

from .errors import (
    AssignmentError,
    ConcurrentModification,
    DispatchFailure,
    NoEligibleRunners,
    NoOriginLocation,
    OfferExpired,
    OfferNotActive,
    TaskStateException,
    VerificationFailure,
)
from .ranking import RankedRunner, affinity_score, rank_runners
from .notifier import AssignmentConfirmation, NotificationDispatcher
from .engine import AssignmentEngine, AssignmentOutcome, OutcomeKind #the main entry point
from .sweeper import OfferTimeoutSweeper, SweepReport

__all__ = [
    "AssignmentError",
    "ConcurrentModification",
    "DispatchFailure",
    "NoEligibleRunners",
    "NoOriginLocation",
    "OfferExpired",
    "OfferNotActive",
    "TaskStateException",
    "VerificationFailure",
    "RankedRunner",
    "affinity_score",
    "rank_runners",
    "AssignmentConfirmation",
    "NotificationDispatcher",
    "AssignmentEngine",
    "AssignmentOutcome",
    "OutcomeKind",
    "OfferTimeoutSweeper",
    "SweepReport",
]
