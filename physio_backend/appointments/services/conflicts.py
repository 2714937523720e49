"""
Conflict detection for appointment bookings.

Two appointments conflict when they share a schedule owner and date, neither
is cancelled, and their half-open intervals overlap:

    existing.start < candidate.end AND existing.end > candidate.start

The schedule owner is the practitioner. Public bookings have no practitioner
and are checked against the whole clinic.

Architecture Rules:
- Write paths call ``lock_schedule_owner`` inside ``transaction.atomic()``
  before checking, so check + insert is serialized per owner
- Reschedules pass ``exclude_appointment_id`` so an appointment never
  conflicts with itself
"""

from __future__ import annotations

from datetime import date, time

from physio_backend.appointments.enums import AppointmentStatus
from physio_backend.appointments.exceptions import (
    BookingValidationError,
    Conflict,
    SchedulingConflictError,
)
from physio_backend.appointments.models import Appointment
from physio_backend.core.models import Clinic, User


def _display_name(user) -> str:
    return user.get_full_name() or getattr(user, 'username', str(user.id))


def lock_schedule_owner(*, practitioner_id: int | None, clinic_id: int | None):
    """Take the row lock that serializes bookings for one schedule.

    Must be called inside a transaction. Returns the locked row.
    """
    if practitioner_id is not None:
        owner = User.objects.select_for_update().filter(pk=practitioner_id).first()
        if owner is None:
            raise BookingValidationError(f'Practitioner with ID {practitioner_id} not found', field='practitioner')
        return owner

    owner = Clinic.objects.select_for_update().filter(pk=clinic_id).first()
    if owner is None:
        raise BookingValidationError(f'Clinic with ID {clinic_id} not found', field='clinic')
    return owner


def find_conflicts(
    *,
    day: date,
    start_time: time,
    end_time: time,
    practitioner_id: int | None = None,
    clinic_id: int | None = None,
    exclude_appointment_id: int | None = None,
) -> list[Conflict]:
    """
    Return the non-cancelled appointments overlapping the candidate interval.

    Args:
        day: Appointment date
        start_time: Candidate start (inclusive)
        end_time: Candidate end (exclusive)
        practitioner_id: Schedule owner; when None the whole clinic is checked
        clinic_id: Clinic for practitioner-less bookings
        exclude_appointment_id: Appointment being rescheduled

    Returns:
        List of Conflict objects. Empty list means the slot is free.
    """
    if practitioner_id is None and clinic_id is None:
        raise BookingValidationError('practitioner or clinic is required for a conflict check')

    qs = (
        Appointment.objects
        .filter(
            appointment_date=day,
            start_time__lt=end_time,
            end_time__gt=start_time,
        )
        .exclude(status=AppointmentStatus.CANCELLED)
        .select_related('practitioner', 'patient')
        .order_by('start_time', 'id')
    )
    if practitioner_id is not None:
        qs = qs.filter(practitioner_id=practitioner_id)
        conflict_type = 'practitioner_conflict'
    else:
        qs = qs.filter(clinic_id=clinic_id)
        conflict_type = 'clinic_conflict'
    if exclude_appointment_id is not None:
        qs = qs.exclude(id=exclude_appointment_id)

    conflicts: list[Conflict] = []
    for appt in qs:
        who = _display_name(appt.practitioner) if appt.practitioner_id else 'clinic'
        conflicts.append(Conflict(
            type=conflict_type,
            model='Appointment',
            id=appt.id,
            resource_id=appt.practitioner_id,
            message=f'{who} has overlapping appointment #{appt.id}',
            meta={
                'appointment_date': appt.appointment_date.isoformat(),
                'start_time': appt.start_time.strftime('%H:%M'),
                'end_time': appt.end_time.strftime('%H:%M'),
                'status': appt.status,
                'patient_name': appt.display_name,
            },
        ))
    return conflicts


def check_conflict(**kwargs) -> dict:
    """Read-only conflict check used by the booking UI."""
    conflicts = find_conflicts(**kwargs)
    return {
        'has_conflict': bool(conflicts),
        'conflicts': [c.to_dict() for c in conflicts],
    }


def ensure_no_conflicts(**kwargs) -> None:
    """Raise SchedulingConflictError when ``find_conflicts`` finds anything."""
    conflicts = find_conflicts(**kwargs)
    if conflicts:
        raise SchedulingConflictError(conflicts, message='Time slot conflicts with an existing appointment')
