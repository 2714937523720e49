"""
Scheduling-specific exceptions.

These exceptions are raised by the scheduling, course and referral services
and are translated to DRF responses in the views. Every exception carries
the HTTP status it maps to and a ``to_dict()`` payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Conflict:
    """Represents a single scheduling conflict."""
    type: str  # 'practitioner_conflict', 'clinic_conflict'
    model: str
    id: int | None = None
    resource_id: int | None = None
    message: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result = {
            'type': self.type,
            'model': self.model,
        }
        if self.id is not None:
            result['id'] = self.id
        if self.resource_id is not None:
            result['resource_id'] = self.resource_id
        if self.message:
            result['message'] = self.message
        if self.meta:
            result['meta'] = self.meta
        return result


class SchedulingError(Exception):
    """Base exception for all scheduling-related errors."""
    status_code = 400

    def to_dict(self) -> dict[str, Any]:
        return {'detail': str(self)}


class SchedulingConflictError(SchedulingError):
    """
    Raised when the requested interval overlaps existing bookings.

    Contains a list of Conflict objects describing each overlapping appointment.
    """
    status_code = 409

    def __init__(self, conflicts: list[Conflict], message: str = "Scheduling conflicts detected"):
        self.conflicts = conflicts
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            'detail': self.message,
            'conflicts': [c.to_dict() for c in self.conflicts],
        }


class BookingValidationError(SchedulingError):
    """
    Raised when booking data is invalid (missing fields, bad time range,
    wrong combination of walk-in and patient fields).
    """
    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = {'detail': str(self)}
        if self.field:
            result['field'] = self.field
        return result


class InvalidStatusTransition(BookingValidationError):
    """Raised when a lifecycle event is not allowed from the current status."""
    def __init__(self, *, current: str, event: str, message: str | None = None):
        self.current = current
        self.event = event
        super().__init__(message or f"Cannot {event.lower()} an appointment in status {current}", field='status')

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result['current_status'] = self.current
        result['event'] = self.event
        return result


class CourseStateError(SchedulingError):
    """
    Raised when a treatment course cannot be used for a booking.

    Attributes:
        course_id: The ID of the course
        reason: 'not_found', 'not_owned', 'inactive', 'exhausted' or 'expired'
        remaining_sessions: Remaining sessions at the time of the check
    """
    def __init__(
        self,
        *,
        course_id: int | None,
        reason: str,
        message: str,
        course_code: str | None = None,
        remaining_sessions: int | None = None,
    ):
        self.course_id = course_id
        self.reason = reason
        self.course_code = course_code
        self.remaining_sessions = remaining_sessions
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = {
            'detail': str(self),
            'reason': self.reason,
            'course_id': self.course_id,
        }
        if self.course_code:
            result['course_code'] = self.course_code
        if self.remaining_sessions is not None:
            result['remaining_sessions'] = self.remaining_sessions
        return result


class AssessmentRequiredError(SchedulingError):
    """Raised when completing a referral that needs a PT assessment without one."""
    def __init__(self, missing_fields: list[str], message: str = "PT assessment is required to complete this appointment"):
        self.missing_fields = list(missing_fields)
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            'detail': str(self),
            'missing_fields': self.missing_fields,
        }


class SchedulingPermissionError(SchedulingError):
    """Raised when the actor's role does not allow the requested operation."""
    status_code = 403


class IntegrationError(Exception):
    """
    Raised by calendar and notification transports.

    The event emitter catches and logs it; only the on-demand patient SMS
    reports it to the client.
    """
    def __init__(self, channel: str, message: str):
        self.channel = channel
        super().__init__(f"{channel}: {message}")
