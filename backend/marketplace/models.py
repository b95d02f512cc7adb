import uuid

from django.db import models
from django.utils import timezone


def _new_errand_id():
    return str(uuid.uuid4())


class Errand(models.Model):
    """
    A task posted by a caller (errand/commission).
    Tracks lifecycle: Pending -> Offer Pending -> Accepted -> In Progress -> Completed,
    or Cancelled with a reason.
    """
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        OFFER_PENDING = "offer_pending", "Offered to a runner"
        ACCEPTED = "accepted", "Accepted"
        IN_PROGRESS = "in_progress", "In Progress"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    class CancelReason(models.TextChoices):
        NO_ORIGIN_LOCATION = "no_origin_location", "No origin location"
        NO_ELIGIBLE_RUNNERS = "no_eligible_runners", "No eligible runners"
        NO_RUNNERS_WITHIN_DISTANCE = "no_runners_within_distance", "No runners within distance"
        NO_RUNNER_TO_ASSIGN = "no_runner_to_assign", "No runner to assign"
        CALLER_CANCELLED = "caller_cancelled", "Cancelled by caller"

    id = models.CharField(primary_key=True, max_length=64, default=_new_errand_id)
    title = models.CharField(max_length=255)
    caller_id = models.CharField(max_length=64, blank=True, null=True)

    # Comma separated tags, e.g. "print,food"
    categories = models.TextField(blank=True, default="")

    # Where the errand starts; null means the caller never shared a location
    origin_lat = models.FloatField(blank=True, null=True)
    origin_lng = models.FloatField(blank=True, null=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)

    # The runner currently holding the offer and when it was issued
    assigned_runner_id = models.CharField(max_length=64, blank=True, null=True)
    assigned_at = models.DateTimeField(blank=True, null=True)

    declined_runner_ids = models.JSONField(default=list)
    timed_out_runner_ids = models.JSONField(default=list)
    escalation_attempts = models.PositiveIntegerField(default=0)

    # Runner who accepted (and later completed) the errand
    runner_id = models.CharField(max_length=64, blank=True, null=True)
    cancel_reason = models.CharField(max_length=32, choices=CancelReason.choices, blank=True, null=True)

    created_at = models.DateTimeField(default=timezone.now)
    version = models.PositiveIntegerField(default=0)

    class Meta:
        app_label = "marketplace"
        indexes = [models.Index(fields=["status", "assigned_at"])]

    def __str__(self):
        return f"Errand {self.id} - {self.status}"


class RunnerPresence(models.Model):
    """
    Last reported availability and position of a runner.
    """
    runner_id = models.CharField(primary_key=True, max_length=64)
    is_online = models.BooleanField(default=False)
    latitude = models.FloatField(blank=True, null=True)
    longitude = models.FloatField(blank=True, null=True)
    location_updated_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        app_label = "marketplace"

    def __str__(self):
        return f"{self.runner_id} ({'online' if self.is_online else 'offline'})"
