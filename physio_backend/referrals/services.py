"""
Referral (PN case) services.

- generate_pn_code: next ``PNYYMMXXXX`` code from a locked yearly counter
- create_pending_referral: auto-created PN case for a new booking
- sync_referral: apply an appointment status change to its PN case

Architecture Rules:
- Callers run these inside their own ``transaction.atomic()`` block
- Course balances are only touched through physio_backend.courses.services
- Every effective status change appends a ReferralStatusHistory row
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from django.db import transaction
from django.utils import timezone

from physio_backend.appointments.enums import AppointmentStatus
from physio_backend.appointments.exceptions import (
    AssessmentRequiredError,
    BookingValidationError,
    SchedulingError,
)
from physio_backend.courses import services as ledger
from physio_backend.referrals.models import (
    CodeSequence,
    ReferralCase,
    ReferralStatus,
    ReferralStatusHistory,
)

logger = logging.getLogger(__name__)

PN_PREFIX = 'PN'
PN_SEQUENCE_MAX = 9999

DEFAULT_DIAGNOSIS = 'Appointment for physiotherapy treatment'
DEFAULT_PURPOSE = 'Physiotherapy treatment from appointment booking'
DEFAULT_CANCEL_REASON = 'Cancelled from appointment'

ASSESSMENT_FIELDS = ('pt_diagnosis', 'pt_chief_complaint', 'pt_present_history', 'pt_pain_score')


def _actor_or_none(actor):
    return actor if getattr(actor, 'is_authenticated', False) else None


# ---------------------------------------------------------------------------
# PN codes
# ---------------------------------------------------------------------------

def generate_pn_code(now: datetime | None = None) -> str:
    """
    Return the next PN code, e.g. ``PN25010042``.

    The four-digit sequence restarts every year and the counter row is locked
    for the rest of the caller's transaction, so two concurrent bookings never
    receive the same code.
    """
    now = timezone.localtime(now or timezone.now())

    with transaction.atomic():
        sequence, _ = CodeSequence.objects.select_for_update().get_or_create(
            prefix=PN_PREFIX,
            year=now.year,
        )
        next_value = sequence.last_value + 1
        if next_value > PN_SEQUENCE_MAX:
            raise SchedulingError(f'PN code sequence exhausted for {now.year}')
        sequence.last_value = next_value
        sequence.save(update_fields=['last_value'])

    return f'{PN_PREFIX}{now:%y%m}{next_value:04d}'


# ---------------------------------------------------------------------------
# Creation & history
# ---------------------------------------------------------------------------

def record_status_change(
    referral: ReferralCase,
    *,
    old_status: str,
    new_status: str,
    actor=None,
    reason: str = '',
    is_reversal: bool = False,
) -> ReferralStatusHistory:
    return ReferralStatusHistory.objects.create(
        referral=referral,
        old_status=old_status or '',
        new_status=new_status,
        changed_by=_actor_or_none(actor),
        change_reason=reason or '',
        is_reversal=is_reversal,
    )


def create_pending_referral(*, patient, target_clinic, appointment_date: date, actor=None, course=None) -> ReferralCase:
    """Create the PENDING PN case that backs a new patient booking."""
    referral = ReferralCase.objects.create(
        pn_code=generate_pn_code(),
        patient=patient,
        source_clinic_id=patient.clinic_id,
        target_clinic=target_clinic,
        course=course,
        diagnosis=patient.diagnosis or DEFAULT_DIAGNOSIS,
        purpose=DEFAULT_PURPOSE,
        status=ReferralStatus.PENDING,
        notes=f'Auto-created from appointment on {appointment_date.isoformat()}',
        created_by=_actor_or_none(actor),
    )
    record_status_change(
        referral,
        old_status='',
        new_status=ReferralStatus.PENDING,
        actor=actor,
        reason='Created with appointment booking',
    )
    logger.info('Auto-created PN case %s for patient %s', referral.pn_code, patient.id)
    return referral


# ---------------------------------------------------------------------------
# Assessment
# ---------------------------------------------------------------------------

def assessment_required(appointment, referral: ReferralCase) -> bool:
    """True when none of the involved clinics is the home clinic."""
    clinics = (appointment.clinic, referral.source_clinic, referral.target_clinic)
    return not any(c is not None and c.is_home for c in clinics)


def clean_assessment(assessment: dict | None) -> dict:
    assessment = assessment or {}
    cleaned = {}
    for name in ('pt_diagnosis', 'pt_chief_complaint', 'pt_present_history'):
        value = assessment.get(name)
        cleaned[name] = value.strip() if isinstance(value, str) else ''

    score = assessment.get('pt_pain_score')
    if score in (None, ''):
        cleaned['pt_pain_score'] = None
    else:
        try:
            score = int(score)
        except (TypeError, ValueError):
            raise BookingValidationError('pt_pain_score must be an integer', field='pt_pain_score')
        if not 0 <= score <= 10:
            raise BookingValidationError('pt_pain_score must be between 0 and 10', field='pt_pain_score')
        cleaned['pt_pain_score'] = score
    return cleaned


def missing_assessment_fields(cleaned: dict) -> list[str]:
    missing = []
    for name in ASSESSMENT_FIELDS:
        value = cleaned.get(name)
        if value is None or value == '':
            missing.append(name)
    return missing


# ---------------------------------------------------------------------------
# Synchronisation
# ---------------------------------------------------------------------------

def sync_referral(
    appointment,
    *,
    old_status: str,
    new_status: str,
    actor=None,
    assessment: dict | None = None,
    reason: str | None = None,
    body_annotation_id: int | None = None,
) -> ReferralCase | None:
    """
    Propagate an appointment status change to its PN case and course.

    | appointment         | PN case                                   | course |
    |---------------------|-------------------------------------------|--------|
    | -> COMPLETED        | -> ACCEPTED (assessment outside home)     | debit  |
    | COMPLETED -> SCHED. | -> PENDING, assessment cleared (reversal) | credit |
    | -> CANCELLED        | -> CANCELLED                              | credit |

    Ledger calls are idempotent, so retries never double-count a session.

    Raises:
        AssessmentRequiredError: completion needs assessment fields that are missing
        BookingValidationError: assessment values are malformed, or the PN case is cancelled
    """
    if appointment.referral_id is None:
        return None

    referral = (
        ReferralCase.objects.select_for_update(of=('self',))
        .select_related('source_clinic', 'target_clinic')
        .get(pk=appointment.referral_id)
    )
    course_id = appointment.course_id or referral.course_id
    previous = referral.status

    if new_status == AppointmentStatus.COMPLETED:
        _accept(referral, appointment, actor=actor, assessment=assessment, body_annotation_id=body_annotation_id)
        if course_id:
            ledger.debit(
                course_id=course_id,
                referral_id=referral.id,
                actor=actor,
                notes=f'Session used by {referral.pn_code} (appointment #{appointment.id})',
            )

    elif old_status == AppointmentStatus.COMPLETED and new_status == AppointmentStatus.SCHEDULED:
        if previous == ReferralStatus.ACCEPTED:
            referral.status = ReferralStatus.PENDING
            referral.accepted_at = None
            referral.pt_diagnosis = ''
            referral.pt_chief_complaint = ''
            referral.pt_present_history = ''
            referral.pt_pain_score = None
            referral.save()
            record_status_change(
                referral,
                old_status=previous,
                new_status=ReferralStatus.PENDING,
                actor=actor,
                reason=reason or 'Appointment completion reversed',
                is_reversal=True,
            )
        if course_id:
            ledger.credit(
                course_id=course_id,
                referral_id=referral.id,
                actor=actor,
                notes=f'Session returned: completion of {referral.pn_code} reversed',
            )

    elif new_status == AppointmentStatus.CANCELLED:
        if course_id:
            ledger.credit(
                course_id=course_id,
                referral_id=referral.id,
                actor=actor,
                notes=f'Session returned: {referral.pn_code} cancelled',
            )
        if previous != ReferralStatus.CANCELLED:
            referral.status = ReferralStatus.CANCELLED
            referral.cancelled_at = timezone.now()
            referral.cancellation_reason = reason or DEFAULT_CANCEL_REASON
            referral.save()
            record_status_change(
                referral,
                old_status=previous,
                new_status=ReferralStatus.CANCELLED,
                actor=actor,
                reason=referral.cancellation_reason,
            )

    if referral.status != previous:
        logger.info('PN case %s: %s -> %s', referral.pn_code, previous, referral.status)
    return referral


def _accept(referral: ReferralCase, appointment, *, actor, assessment, body_annotation_id) -> None:
    if referral.status == ReferralStatus.CANCELLED:
        raise BookingValidationError(f'PN case {referral.pn_code} is cancelled', field='referral')

    if referral.status == ReferralStatus.ACCEPTED:
        # Retried completion; nothing to record.
        return

    cleaned = clean_assessment(assessment)
    if assessment_required(appointment, referral):
        missing = missing_assessment_fields(cleaned)
        if missing:
            raise AssessmentRequiredError(missing)

    for name, value in cleaned.items():
        if value not in (None, ''):
            setattr(referral, name, value)
    if body_annotation_id is not None:
        referral.body_annotation_id = body_annotation_id

    previous = referral.status
    referral.status = ReferralStatus.ACCEPTED
    referral.accepted_at = timezone.now()
    referral.save()
    record_status_change(
        referral,
        old_status=previous,
        new_status=ReferralStatus.ACCEPTED,
        actor=actor,
        reason='Appointment completed',
    )
