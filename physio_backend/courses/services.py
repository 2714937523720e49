"""
Course session ledger.

Every change to a course's counters goes through ``debit`` or ``credit``,
which lock the course row, apply the change and append a ``CourseUsage``
row. Both are idempotent per (course, referral case) pair: the pair's
outstanding balance is the number of USE rows minus the number of RETURN
rows, and a pair never holds more than one session.
"""

from __future__ import annotations

import logging
from datetime import date

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from physio_backend.appointments.exceptions import CourseStateError
from physio_backend.courses.models import (
    Course,
    CourseSharedPatient,
    CourseStatus,
    CourseUsage,
    UsageAction,
)

logger = logging.getLogger(__name__)


def outstanding_sessions(course_id: int, referral_id: int | None) -> int:
    """Sessions currently held by the (course, referral) pair."""
    counts = CourseUsage.objects.filter(course_id=course_id, referral_id=referral_id).aggregate(
        used=Count('id', filter=Q(action=UsageAction.USE)),
        returned=Count('id', filter=Q(action=UsageAction.RETURN)),
    )
    return (counts['used'] or 0) - (counts['returned'] or 0)


def debit(*, course_id: int, referral_id: int | None, actor=None, notes: str = '') -> CourseUsage | None:
    """
    Consume one session of a course for a referral case.

    Returns the ledger row, or None when the pair already holds a session.
    """
    with transaction.atomic():
        course = Course.objects.select_for_update().get(pk=course_id)

        if outstanding_sessions(course.id, referral_id) > 0:
            logger.info('Course %s already debited for referral %s; skipping', course.course_code, referral_id)
            return None

        if course.remaining_sessions <= 0:
            logger.warning(
                'Course %s debited with no remaining sessions (referral %s)',
                course.course_code,
                referral_id,
            )

        course.used_sessions += 1
        course.remaining_sessions = course.total_sessions - course.used_sessions
        if course.remaining_sessions <= 0 and course.status == CourseStatus.ACTIVE:
            course.status = CourseStatus.COMPLETED
        course.save(update_fields=['used_sessions', 'remaining_sessions', 'status', 'updated_at'])

        return CourseUsage.objects.create(
            course=course,
            referral_id=referral_id,
            action=UsageAction.USE,
            actor=actor if getattr(actor, 'is_authenticated', False) else None,
            notes=notes or 'Session used',
        )


def credit(*, course_id: int, referral_id: int | None, actor=None, notes: str = '') -> CourseUsage | None:
    """
    Return one session to a course.

    Returns the ledger row, or None when the pair holds no session.
    """
    with transaction.atomic():
        course = Course.objects.select_for_update().get(pk=course_id)

        if outstanding_sessions(course.id, referral_id) <= 0:
            logger.info('Course %s holds no session for referral %s; nothing to return', course.course_code, referral_id)
            return None

        course.used_sessions = max(0, course.used_sessions - 1)
        course.remaining_sessions = course.total_sessions - course.used_sessions
        if course.status == CourseStatus.COMPLETED and course.remaining_sessions > 0:
            course.status = CourseStatus.ACTIVE
        course.save(update_fields=['used_sessions', 'remaining_sessions', 'status', 'updated_at'])

        return CourseUsage.objects.create(
            course=course,
            referral_id=referral_id,
            action=UsageAction.RETURN,
            actor=actor if getattr(actor, 'is_authenticated', False) else None,
            notes=notes or 'Session returned',
        )


def course_available_to_patient(course: Course, patient_id: int) -> bool:
    if course.patient_id == patient_id:
        return True
    return CourseSharedPatient.objects.filter(
        course_id=course.id,
        patient_id=patient_id,
        is_active=True,
    ).exists()


def validate_course_for_booking(*, course_id: int, patient_id: int, today: date | None = None) -> Course:
    """
    Check that a course can be attached to a new booking.

    Raises:
        CourseStateError: not found, not owned/shared, inactive, exhausted or expired
    """
    today = today or timezone.localdate()

    course = Course.objects.filter(pk=course_id).first()
    if course is None:
        raise CourseStateError(course_id=course_id, reason='not_found', message='Course not found')

    if not course_available_to_patient(course, patient_id):
        raise CourseStateError(
            course_id=course.id,
            course_code=course.course_code,
            reason='not_owned',
            message='Course does not belong to this patient and is not shared with them',
        )

    if course.status != CourseStatus.ACTIVE:
        raise CourseStateError(
            course_id=course.id,
            course_code=course.course_code,
            reason='inactive',
            remaining_sessions=course.remaining_sessions,
            message=f'Course {course.course_code} is {course.status.lower()}',
        )

    if course.remaining_sessions <= 0:
        raise CourseStateError(
            course_id=course.id,
            course_code=course.course_code,
            reason='exhausted',
            remaining_sessions=course.remaining_sessions,
            message=f'Course {course.course_code} has no remaining sessions',
        )

    if course.expiry_date is not None and course.expiry_date < today:
        raise CourseStateError(
            course_id=course.id,
            course_code=course.course_code,
            reason='expired',
            remaining_sessions=course.remaining_sessions,
            message=f'Course {course.course_code} expired on {course.expiry_date.isoformat()}',
        )

    return course
