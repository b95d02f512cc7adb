from .task_state import (
    accept_offer,
    cancel_task,
    is_offer_expired,
    offer_to_runner,
    release_offer,
    rollback_offer,
)

__all__ = [
    "accept_offer",
    "cancel_task",
    "is_offer_expired",
    "offer_to_runner",
    "release_offer",
    "rollback_offer",
]
