"""
Appointment Lifecycle Manager.

Entry points for every appointment write: create, public booking,
reschedule, status change, cancel, complete and reverse. Each runs in one
``transaction.atomic()`` block:

1. lock the appointment and/or the schedule owner row
2. validate (permissions, data, conflicts, course, transition table)
3. write the appointment, PN case, ledger and history rows
4. register the calendar/notification event to run after commit

Architecture Rules:
- All errors are raised before the first write, or roll the block back
- PN case and course effects go through referrals.services.sync_referral
- External systems are only reached from the Celery task queued on commit
- Views translate exceptions to DRF responses
"""

from __future__ import annotations

import logging
from datetime import date, time
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.utils import timezone

from physio_backend.appointments.enums import AppointmentStatus, BookingType, LifecycleEvent
from physio_backend.appointments.exceptions import (
    BookingValidationError,
    InvalidStatusTransition,
    SchedulingPermissionError,
)
from physio_backend.appointments.models import Appointment
from physio_backend.appointments.services.conflicts import ensure_no_conflicts, lock_schedule_owner
from physio_backend.appointments.transitions import ELEVATED_EVENTS, event_for, next_status
from physio_backend.core.models import Clinic, User
from physio_backend.core.permissions import ROLE_ADMIN, ROLE_PT, is_elevated
from physio_backend.core.utils import log_action
from physio_backend.courses.services import validate_course_for_booking
from physio_backend.integrations.events import emit_after_commit
from physio_backend.integrations.messages import EVENT_CANCELLED, EVENT_NEW, EVENT_RESCHEDULED
from physio_backend.patients.models import Patient
from physio_backend.referrals.models import ReferralCase, ReferralStatus
from physio_backend.referrals.services import create_pending_referral, sync_referral

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractUser

logger = logging.getLogger(__name__)

BOOKING_ROLES = frozenset({ROLE_ADMIN, ROLE_PT})
RESCHEDULABLE = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED})
PUBLIC_CANCELLABLE = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED})
PUBLIC_CANCEL_REASON = 'Cancelled by patient via public booking'


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _role(user) -> str | None:
    return getattr(getattr(user, 'role', None), 'name', None)


def _actor_or_none(user):
    return user if getattr(user, 'is_authenticated', False) else None


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ''


def _audit_state(appointment: Appointment) -> dict:
    return {
        'status': appointment.status,
        'appointment_date': appointment.appointment_date.isoformat(),
        'start_time': appointment.start_time.strftime('%H:%M'),
        'end_time': appointment.end_time.strftime('%H:%M'),
        'practitioner_id': appointment.practitioner_id,
        'referral_id': appointment.referral_id,
        'course_id': appointment.course_id,
    }


def _ensure_can_book(actor) -> None:
    if _role(actor) not in BOOKING_ROLES:
        raise SchedulingPermissionError('Only admin and PT users can create appointments')


def _ensure_can_modify(actor, appointment: Appointment) -> None:
    """Admins may change any appointment; PTs only their own."""
    role = _role(actor)
    if role == ROLE_ADMIN:
        return
    if role == ROLE_PT and appointment.practitioner_id == getattr(actor, 'id', None):
        return
    raise SchedulingPermissionError('You may only change your own appointments')


def _require_times(day, start_time, end_time) -> None:
    if day is None:
        raise BookingValidationError('appointment_date is required', field='appointment_date')
    if start_time is None:
        raise BookingValidationError('start_time is required', field='start_time')
    if end_time is None:
        raise BookingValidationError('end_time is required', field='end_time')
    if end_time <= start_time:
        raise BookingValidationError('end_time must be after start_time', field='end_time')


def _resolve_clinic(clinic_id) -> Clinic:
    if clinic_id is None:
        raise BookingValidationError('clinic is required', field='clinic')
    clinic = Clinic.objects.filter(pk=clinic_id, active=True).first()
    if clinic is None:
        raise BookingValidationError(f'Clinic with ID {clinic_id} not found or inactive', field='clinic')
    return clinic


def _resolve_practitioner(practitioner_id) -> User:
    if practitioner_id is None:
        raise BookingValidationError('practitioner is required', field='practitioner')
    practitioner = User.objects.select_related('role').filter(pk=practitioner_id, is_active=True).first()
    if practitioner is None:
        raise BookingValidationError(f'Practitioner with ID {practitioner_id} not found or inactive', field='practitioner')
    if _role(practitioner) != ROLE_PT:
        raise BookingValidationError('Specified user is not a physiotherapist', field='practitioner')
    return practitioner


def _booking_party(data: dict) -> tuple[str, Patient | None, dict]:
    """Validate the walk-in/registered fields; returns (type, patient, walk-in fields)."""
    booking_type = data.get('booking_type') or BookingType.REGISTERED_PATIENT
    if booking_type not in BookingType.values:
        raise BookingValidationError(f'Unknown booking_type {booking_type}', field='booking_type')

    walk_in = {
        'walk_in_name': _clean(data.get('walk_in_name')),
        'walk_in_email': _clean(data.get('walk_in_email')),
        'walk_in_phone': _clean(data.get('walk_in_phone')),
    }

    if booking_type == BookingType.WALK_IN:
        if data.get('patient_id') is not None:
            raise BookingValidationError('Walk-in bookings cannot reference a patient', field='patient')
        if not walk_in['walk_in_name']:
            raise BookingValidationError('walk_in_name is required for walk-in bookings', field='walk_in_name')
        if walk_in['walk_in_email']:
            _validate_email(walk_in['walk_in_email'])
        return booking_type, None, walk_in

    patient_id = data.get('patient_id')
    if patient_id is None:
        raise BookingValidationError('patient is required', field='patient')
    if any(walk_in.values()):
        raise BookingValidationError('Walk-in fields must be empty for registered patients', field='walk_in_name')
    patient = Patient.objects.select_related('clinic').filter(pk=patient_id).first()
    if patient is None:
        raise BookingValidationError(f'Patient with ID {patient_id} not found', field='patient')
    return booking_type, patient, walk_in


def _validate_email(value: str) -> None:
    try:
        validate_email(value)
    except DjangoValidationError:
        raise BookingValidationError('Invalid email address', field='walk_in_email') from None


def _resolve_referral(referral_id, patient: Patient) -> ReferralCase:
    referral = ReferralCase.objects.filter(pk=referral_id).first()
    if referral is None:
        raise BookingValidationError(f'PN case with ID {referral_id} not found', field='referral')
    if referral.patient_id != patient.id:
        raise BookingValidationError('PN case belongs to another patient', field='referral')
    if referral.status == ReferralStatus.CANCELLED:
        raise BookingValidationError(f'PN case {referral.pn_code} is cancelled', field='referral')
    return referral


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

def create_appointment(*, data: dict, actor: 'AbstractUser') -> Appointment:
    """
    Book an appointment for a registered patient or a walk-in visitor.

    Args:
        data: Dictionary with appointment data:
            - clinic_id, practitioner_id: int (required)
            - appointment_date: date, start_time/end_time: time (required)
            - booking_type: 'REGISTERED_PATIENT' (default) or 'WALK_IN'
            - patient_id: int (registered patients)
            - walk_in_name/walk_in_email/walk_in_phone: str (walk-ins)
            - referral_id, course_id: int (optional)
            - auto_create_pn: bool (default True) - create a PENDING PN case
              when no referral_id is given
            - appointment_type, reason, notes: str (optional)
        actor: The staff user creating the appointment

    Raises:
        SchedulingPermissionError: actor is not admin or PT
        BookingValidationError: missing or inconsistent data
        SchedulingConflictError: the practitioner is already booked
        CourseStateError: the course cannot be used
    """
    _ensure_can_book(actor)

    day: date | None = data.get('appointment_date')
    start_time: time | None = data.get('start_time')
    end_time: time | None = data.get('end_time')
    _require_times(day, start_time, end_time)

    clinic = _resolve_clinic(data.get('clinic_id'))
    practitioner = _resolve_practitioner(data.get('practitioner_id'))
    booking_type, patient, walk_in = _booking_party(data)

    course_id = data.get('course_id')
    referral_id = data.get('referral_id')
    if patient is None and (course_id or referral_id):
        raise BookingValidationError('Walk-in bookings cannot use a course or PN case', field='course')

    with transaction.atomic():
        lock_schedule_owner(practitioner_id=practitioner.id, clinic_id=clinic.id)
        ensure_no_conflicts(
            day=day,
            start_time=start_time,
            end_time=end_time,
            practitioner_id=practitioner.id,
        )

        course = None
        if course_id:
            course = validate_course_for_booking(course_id=course_id, patient_id=patient.id)

        referral = None
        auto_created = False
        if referral_id:
            referral = _resolve_referral(referral_id, patient)
        elif patient is not None and data.get('auto_create_pn', True):
            referral = create_pending_referral(
                patient=patient,
                target_clinic=clinic,
                appointment_date=day,
                actor=actor,
                course=course,
            )
            auto_created = True

        appointment = Appointment.objects.create(
            patient=patient,
            practitioner=practitioner,
            clinic=clinic,
            appointment_date=day,
            start_time=start_time,
            end_time=end_time,
            status=AppointmentStatus.SCHEDULED,
            booking_type=booking_type,
            referral=referral,
            course=course,
            auto_created_referral=auto_created,
            appointment_type=_clean(data.get('appointment_type')),
            reason=_clean(data.get('reason')),
            notes=_clean(data.get('notes')),
            created_by=_actor_or_none(actor),
            **walk_in,
        )

        log_action(actor, 'appointment_create', 'appointment', appointment.id, after=_audit_state(appointment))
        emit_after_commit(appointment.id, EVENT_NEW)

    logger.info(
        'Appointment %s booked for practitioner %s on %s %s-%s',
        appointment.id, practitioner.id, day, start_time, end_time,
    )
    return appointment


def book_public_appointment(*, data: dict, client_ip: str | None = None) -> Appointment:
    """
    Self-service walk-in booking from the public website.

    Name and a valid e-mail are required. Without a practitioner the slot is
    checked against every booking of the clinic.
    """
    walk_in_name = _clean(data.get('walk_in_name'))
    walk_in_email = _clean(data.get('walk_in_email'))
    if not walk_in_name:
        raise BookingValidationError('walk_in_name is required', field='walk_in_name')
    if not walk_in_email:
        raise BookingValidationError('walk_in_email is required', field='walk_in_email')
    _validate_email(walk_in_email)

    day: date | None = data.get('appointment_date')
    start_time: time | None = data.get('start_time')
    end_time: time | None = data.get('end_time')
    _require_times(day, start_time, end_time)
    if day < timezone.localdate():
        raise BookingValidationError('appointment_date cannot be in the past', field='appointment_date')

    clinic = _resolve_clinic(data.get('clinic_id'))

    with transaction.atomic():
        lock_schedule_owner(practitioner_id=None, clinic_id=clinic.id)
        ensure_no_conflicts(day=day, start_time=start_time, end_time=end_time, clinic_id=clinic.id)

        appointment = Appointment.objects.create(
            clinic=clinic,
            appointment_date=day,
            start_time=start_time,
            end_time=end_time,
            status=AppointmentStatus.SCHEDULED,
            booking_type=BookingType.WALK_IN,
            walk_in_name=walk_in_name,
            walk_in_email=walk_in_email,
            walk_in_phone=_clean(data.get('walk_in_phone')),
            appointment_type=_clean(data.get('appointment_type')),
            reason=_clean(data.get('reason')),
            client_ip_address=client_ip or None,
        )
        log_action(None, 'appointment_public_create', 'appointment', appointment.id, after=_audit_state(appointment))
        emit_after_commit(appointment.id, EVENT_NEW)

    logger.info('Public booking %s at clinic %s on %s %s-%s', appointment.id, clinic.code, day, start_time, end_time)
    return appointment


# ---------------------------------------------------------------------------
# Reschedule
# ---------------------------------------------------------------------------

def reschedule_appointment(
    *,
    appointment_id: int,
    actor: 'AbstractUser',
    appointment_date: date | None = None,
    start_time: time | None = None,
    end_time: time | None = None,
) -> Appointment:
    """
    Move an appointment to a new date and/or time.

    Raises:
        SchedulingPermissionError: actor may not change this appointment
        BookingValidationError: bad time range or appointment not reschedulable
        SchedulingConflictError: the new interval overlaps another booking
    """
    with transaction.atomic():
        appointment = Appointment.objects.select_for_update().get(pk=appointment_id)
        _ensure_can_modify(actor, appointment)
        if appointment.status not in RESCHEDULABLE:
            raise BookingValidationError(
                f'Cannot reschedule an appointment in status {appointment.status}',
                field='status',
            )

        before = _audit_state(appointment)
        day = appointment_date or appointment.appointment_date
        new_start = start_time or appointment.start_time
        new_end = end_time or appointment.end_time
        _require_times(day, new_start, new_end)

        changed = (
            day != appointment.appointment_date
            or new_start != appointment.start_time
            or new_end != appointment.end_time
        )
        if not changed:
            return appointment

        lock_schedule_owner(practitioner_id=appointment.practitioner_id, clinic_id=appointment.clinic_id)
        ensure_no_conflicts(
            day=day,
            start_time=new_start,
            end_time=new_end,
            practitioner_id=appointment.practitioner_id,
            clinic_id=appointment.clinic_id,
            exclude_appointment_id=appointment.id,
        )

        appointment.appointment_date = day
        appointment.start_time = new_start
        appointment.end_time = new_end
        appointment.save(update_fields=['appointment_date', 'start_time', 'end_time', 'updated_at'])

        log_action(actor, 'appointment_reschedule', 'appointment', appointment.id, before=before, after=_audit_state(appointment))
        emit_after_commit(appointment.id, EVENT_RESCHEDULED)

    logger.info('Appointment %s rescheduled to %s %s-%s', appointment.id, day, new_start, new_end)
    return appointment


# ---------------------------------------------------------------------------
# Status changes
# ---------------------------------------------------------------------------

def apply_event(
    *,
    appointment_id: int,
    event: str,
    actor: 'AbstractUser',
    assessment: dict | None = None,
    reason: str | None = None,
    body_annotation_id: int | None = None,
) -> Appointment:
    """
    Apply one lifecycle event and propagate it to the PN case and course.

    Raises:
        SchedulingPermissionError: actor may not change this appointment, or
            the event needs an elevated role
        InvalidStatusTransition: the event is not allowed from the current status
        AssessmentRequiredError: completion outside the home clinic without assessment
    """
    with transaction.atomic():
        appointment = (
            Appointment.objects.select_for_update(of=('self',))
            .select_related('clinic')
            .get(pk=appointment_id)
        )
        _ensure_can_modify(actor, appointment)
        if event in ELEVATED_EVENTS and not is_elevated(actor):
            raise SchedulingPermissionError('Only administrators can reverse a completed appointment')

        old_status = appointment.status
        new_status = next_status(old_status, event)
        before = _audit_state(appointment)

        if event == LifecycleEvent.COMPLETE and body_annotation_id is not None:
            appointment.body_annotation_id = body_annotation_id
        if event == LifecycleEvent.CANCEL:
            appointment.cancellation_reason = _clean(reason)
            appointment.cancelled_at = timezone.now()
            appointment.cancelled_by = _actor_or_none(actor)

        sync_referral(
            appointment,
            old_status=old_status,
            new_status=new_status,
            actor=actor,
            assessment=assessment,
            reason=_clean(reason) or None,
            body_annotation_id=body_annotation_id,
        )

        appointment.status = new_status
        appointment.save()

        log_action(
            actor,
            f'appointment_{str(event).lower()}',
            'appointment',
            appointment.id,
            before=before,
            after=_audit_state(appointment),
        )
        if event == LifecycleEvent.CANCEL:
            emit_after_commit(appointment.id, EVENT_CANCELLED)

    logger.info('Appointment %s: %s -> %s (%s)', appointment.id, old_status, new_status, event)
    return appointment


def change_status(
    *,
    appointment_id: int,
    new_status: str,
    actor: 'AbstractUser',
    assessment: dict | None = None,
    reason: str | None = None,
) -> Appointment:
    """Move an appointment to ``new_status`` via the matching lifecycle event."""
    current = Appointment.objects.filter(pk=appointment_id).values_list('status', flat=True).first()
    if current is None:
        raise Appointment.DoesNotExist(f'Appointment {appointment_id} not found')
    return apply_event(
        appointment_id=appointment_id,
        event=event_for(current, new_status),
        actor=actor,
        assessment=assessment,
        reason=reason,
    )


def update_appointment(
    *,
    appointment_id: int,
    actor: 'AbstractUser',
    appointment_date: date | None = None,
    start_time: time | None = None,
    end_time: time | None = None,
    new_status: str | None = None,
    assessment: dict | None = None,
    reason: str | None = None,
) -> Appointment:
    """
    Reschedule and/or change the status of an appointment as one unit.

    The move is applied first, then the status change. If either step fails
    nothing is saved and no event is emitted.
    """
    with transaction.atomic():
        appointment = None
        if any(v is not None for v in (appointment_date, start_time, end_time)):
            appointment = reschedule_appointment(
                appointment_id=appointment_id,
                actor=actor,
                appointment_date=appointment_date,
                start_time=start_time,
                end_time=end_time,
            )

        if new_status:
            current = Appointment.objects.values_list('status', flat=True).get(pk=appointment_id)
            if new_status != current:
                appointment = change_status(
                    appointment_id=appointment_id,
                    new_status=new_status,
                    actor=actor,
                    assessment=assessment,
                    reason=reason,
                )

        if appointment is None:
            appointment = Appointment.objects.get(pk=appointment_id)
    return appointment


def cancel_appointment(*, appointment_id: int, actor: 'AbstractUser', reason: str | None = None) -> Appointment:
    return apply_event(appointment_id=appointment_id, event=LifecycleEvent.CANCEL, actor=actor, reason=reason)


def complete_appointment(
    *,
    appointment_id: int,
    actor: 'AbstractUser',
    assessment: dict | None = None,
    body_annotation_id: int | None = None,
) -> Appointment:
    return apply_event(
        appointment_id=appointment_id,
        event=LifecycleEvent.COMPLETE,
        actor=actor,
        assessment=assessment,
        body_annotation_id=body_annotation_id,
    )


def reverse_completion(*, appointment_id: int, actor: 'AbstractUser', reason: str | None = None) -> Appointment:
    return apply_event(appointment_id=appointment_id, event=LifecycleEvent.REVERSE, actor=actor, reason=reason)


def cancel_public_appointment(*, appointment_id: int, email: str) -> Appointment:
    """
    Let a walk-in visitor cancel their own booking.

    The e-mail must match the booking; only SCHEDULED or CONFIRMED walk-ins
    can be cancelled this way.
    """
    with transaction.atomic():
        appointment = Appointment.objects.select_for_update().filter(pk=appointment_id).first()
        if (
            appointment is None
            or appointment.booking_type != BookingType.WALK_IN
            or appointment.walk_in_email.lower() != _clean(email).lower()
        ):
            raise BookingValidationError('No matching booking found', field='email')
        if appointment.status not in PUBLIC_CANCELLABLE:
            raise InvalidStatusTransition(current=appointment.status, event=LifecycleEvent.CANCEL)

        before = _audit_state(appointment)
        appointment.status = next_status(appointment.status, LifecycleEvent.CANCEL)
        appointment.cancellation_reason = PUBLIC_CANCEL_REASON
        appointment.cancelled_at = timezone.now()
        appointment.save()

        log_action(None, 'appointment_public_cancel', 'appointment', appointment.id, before=before, after=_audit_state(appointment))
        emit_after_commit(appointment.id, EVENT_CANCELLED)

    return appointment
