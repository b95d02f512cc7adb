"""
Purpose: Package entry + stable exports.

Errands domain package.

Public API:
- Domain models: Task, Offer
- Enums: TaskStatus, CancelReason
- Helpers: parse_categories
"""
from .models import CancelReason, LatLon, Offer, Task, TaskStatus, parse_categories

__all__ = ["Task",
           "Offer",
             "TaskStatus",
               "CancelReason",
               "LatLon",
               "parse_categories",
               ]
