#Marks notifications as a package.
#Re-exports the delivery / caller-facing collaborator interfaces and the
#HTTP delivery client so other modules import from notifications directly.
#No business logic.

from .base import CallerNotifier, DeliveryClient, DeliveryError, DeliveryStatus
from .delivery_client import HttpDeliveryClient

__all__ = [
    "CallerNotifier",
    "DeliveryClient",
    "DeliveryError",
    "DeliveryStatus",
    "HttpDeliveryClient",
]
