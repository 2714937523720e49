from django.db import models


class AppointmentStatus(models.TextChoices):
    SCHEDULED = "SCHEDULED", "Scheduled"
    CONFIRMED = "CONFIRMED", "Confirmed"
    IN_PROGRESS = "IN_PROGRESS", "In progress"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"
    NO_SHOW = "NO_SHOW", "No-show"


class BookingType(models.TextChoices):
    WALK_IN = "WALK_IN", "Walk-in"
    REGISTERED_PATIENT = "REGISTERED_PATIENT", "Registered patient"


class LifecycleEvent(models.TextChoices):
    CONFIRM = "CONFIRM", "Confirm"
    START = "START", "Start treatment"
    COMPLETE = "COMPLETE", "Complete"
    CANCEL = "CANCEL", "Cancel"
    NO_SHOW = "NO_SHOW", "Mark no-show"
    REVERSE = "REVERSE", "Reverse completion"

