"""
Lifecycle manager tests.

Tests cover:
- Creating registered and walk-in bookings (validation, conflicts, courses, PN cases)
- Completion, reversal and cancellation with PN case and course effects
- Rescheduling, alone and combined with a status change
- Courses shared with a second patient
- Public self-service booking and cancellation
"""

from datetime import time, timedelta
from unittest.mock import patch

from django.test import TestCase
from django.utils import timezone

from physio_backend.appointments.enums import AppointmentStatus, BookingType
from physio_backend.appointments.exceptions import (
    AssessmentRequiredError,
    BookingValidationError,
    CourseStateError,
    InvalidStatusTransition,
    SchedulingConflictError,
    SchedulingPermissionError,
)
from physio_backend.appointments.models import Appointment
from physio_backend.appointments.services.lifecycle import (
    book_public_appointment,
    cancel_appointment,
    cancel_public_appointment,
    change_status,
    complete_appointment,
    create_appointment,
    reschedule_appointment,
    reverse_completion,
    update_appointment,
)
from physio_backend.core.models import AuditLog
from physio_backend.core.tests.mixins import PhysioTestMixin
from physio_backend.courses.models import CourseSharedPatient, CourseStatus, CourseUsage, UsageAction
from physio_backend.patients.models import Patient
from physio_backend.referrals.models import ReferralCase, ReferralStatus

EMIT = "physio_backend.integrations.tasks.emit_appointment_event.delay"

ASSESSMENT = {
    "pt_diagnosis": "Frozen shoulder",
    "pt_chief_complaint": "Cannot raise arm",
    "pt_present_history": "Three months",
    "pt_pain_score": 5,
}


class CreateAppointmentTests(PhysioTestMixin, TestCase):
    def test_registered_booking_auto_creates_pending_pn_case(self):
        appointment = create_appointment(data=self.booking_data(), actor=self.pt1)

        self.assertEqual(appointment.status, AppointmentStatus.SCHEDULED)
        self.assertTrue(appointment.auto_created_referral)
        referral = appointment.referral
        self.assertEqual(referral.status, ReferralStatus.PENDING)
        self.assertEqual(referral.patient, self.patient)
        self.assertEqual(referral.target_clinic, self.home_clinic)
        self.assertRegex(referral.pn_code, r"^PN\d{8}$")
        self.assertTrue(AuditLog.objects.filter(action="appointment_create", entity_id=appointment.id).exists())

    def test_auto_create_can_be_disabled(self):
        appointment = create_appointment(data=self.booking_data(auto_create_pn=False), actor=self.admin)
        self.assertIsNone(appointment.referral)
        self.assertFalse(ReferralCase.objects.exists())

    def test_existing_referral_is_linked(self):
        first = create_appointment(data=self.booking_data(), actor=self.pt1)
        second = create_appointment(
            data=self.booking_data(start="11:00", end="12:00", referral_id=first.referral_id),
            actor=self.pt1,
        )
        self.assertEqual(second.referral_id, first.referral_id)
        self.assertFalse(second.auto_created_referral)
        self.assertEqual(ReferralCase.objects.count(), 1)

    def test_new_appointment_event_fires_after_commit(self):
        with patch(EMIT) as delay, self.captureOnCommitCallbacks(execute=True):
            appointment = create_appointment(data=self.booking_data(), actor=self.pt1)
        delay.assert_called_once_with(appointment.id, "newAppointment")

    def test_overlapping_booking_is_rejected_without_side_effects(self):
        create_appointment(data=self.booking_data(), actor=self.pt1)

        with patch(EMIT) as delay, self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(SchedulingConflictError):
                create_appointment(data=self.booking_data(start="10:30", end="11:30"), actor=self.pt1)

        delay.assert_not_called()
        self.assertEqual(Appointment.objects.count(), 1)
        self.assertEqual(ReferralCase.objects.count(), 1)

    def test_touching_booking_is_accepted(self):
        create_appointment(data=self.booking_data(), actor=self.pt1)
        create_appointment(data=self.booking_data(start="11:00", end="12:00"), actor=self.pt1)
        self.assertEqual(Appointment.objects.count(), 2)

    def test_same_slot_for_other_practitioner_is_accepted(self):
        create_appointment(data=self.booking_data(), actor=self.admin)
        create_appointment(data=self.booking_data(practitioner_id=self.pt2.id), actor=self.admin)
        self.assertEqual(Appointment.objects.count(), 2)

    def test_end_must_follow_start(self):
        with self.assertRaises(BookingValidationError) as ctx:
            create_appointment(data=self.booking_data(start="11:00", end="11:00"), actor=self.pt1)
        self.assertEqual(ctx.exception.field, "end_time")

    def test_clinic_and_billing_roles_cannot_create(self):
        for user in (self.front_desk, self.billing):
            with self.assertRaises(SchedulingPermissionError):
                create_appointment(data=self.booking_data(), actor=user)

    def test_practitioner_must_be_pt(self):
        with self.assertRaises(BookingValidationError):
            create_appointment(data=self.booking_data(practitioner_id=self.front_desk.id), actor=self.admin)

    def test_walk_in_booking(self):
        data = self.booking_data(
            booking_type=BookingType.WALK_IN,
            patient_id=None,
            walk_in_name="  Jane Visitor ",
            walk_in_email="jane@example.com",
        )
        appointment = create_appointment(data=data, actor=self.pt1)

        self.assertIsNone(appointment.patient)
        self.assertIsNone(appointment.referral)
        self.assertEqual(appointment.walk_in_name, "Jane Visitor")
        self.assertEqual(appointment.display_name, "Jane Visitor")

    def test_walk_in_requires_name(self):
        data = self.booking_data(booking_type=BookingType.WALK_IN, patient_id=None, walk_in_name="   ")
        with self.assertRaises(BookingValidationError) as ctx:
            create_appointment(data=data, actor=self.pt1)
        self.assertEqual(ctx.exception.field, "walk_in_name")

    def test_walk_in_cannot_reference_patient(self):
        data = self.booking_data(booking_type=BookingType.WALK_IN, walk_in_name="Jane")
        with self.assertRaises(BookingValidationError):
            create_appointment(data=data, actor=self.pt1)

    def test_registered_booking_rejects_walk_in_fields(self):
        with self.assertRaises(BookingValidationError):
            create_appointment(data=self.booking_data(walk_in_name="Jane"), actor=self.pt1)

    def test_registered_booking_requires_patient(self):
        with self.assertRaises(BookingValidationError) as ctx:
            create_appointment(data=self.booking_data(patient_id=None), actor=self.pt1)
        self.assertEqual(ctx.exception.field, "patient")

    def test_course_is_validated_and_attached(self):
        course = self.make_course(total=5)
        appointment = create_appointment(data=self.booking_data(course_id=course.id), actor=self.pt1)

        self.assertEqual(appointment.course, course)
        self.assertEqual(appointment.referral.course, course)
        course.refresh_from_db()
        self.assertEqual(course.used_sessions, 0)

    def test_exhausted_course_blocks_booking(self):
        course = self.make_course(total=1, used_sessions=1)
        with self.assertRaises(CourseStateError) as ctx:
            create_appointment(data=self.booking_data(course_id=course.id), actor=self.pt1)
        self.assertEqual(ctx.exception.reason, "exhausted")
        self.assertFalse(Appointment.objects.exists())
        self.assertFalse(ReferralCase.objects.exists())


class CompletionLifecycleTests(PhysioTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.course = self.make_course(total=10)
        self.appointment = create_appointment(data=self.booking_data(course_id=self.course.id), actor=self.pt1)
        self.referral = self.appointment.referral

    def refresh(self):
        self.appointment.refresh_from_db()
        self.referral.refresh_from_db()
        self.course.refresh_from_db()

    def test_complete_accepts_pn_case_and_debits_course(self):
        complete_appointment(appointment_id=self.appointment.id, actor=self.pt1, body_annotation_id=42)

        self.refresh()
        self.assertEqual(self.appointment.status, AppointmentStatus.COMPLETED)
        self.assertEqual(self.appointment.body_annotation_id, 42)
        self.assertEqual(self.referral.status, ReferralStatus.ACCEPTED)
        self.assertEqual(self.referral.body_annotation_id, 42)
        self.assertEqual(self.course.used_sessions, 1)
        self.assertEqual(self.course.remaining_sessions, 9)

    def test_complete_reverse_complete_debits_once(self):
        complete_appointment(appointment_id=self.appointment.id, actor=self.pt1)
        reverse_completion(appointment_id=self.appointment.id, actor=self.admin)

        self.refresh()
        self.assertEqual(self.appointment.status, AppointmentStatus.SCHEDULED)
        self.assertEqual(self.referral.status, ReferralStatus.PENDING)
        self.assertEqual(self.course.used_sessions, 0)

        complete_appointment(appointment_id=self.appointment.id, actor=self.pt1)

        self.refresh()
        self.assertEqual(self.course.used_sessions, 1)
        self.assertEqual(self.course.remaining_sessions, 9)
        uses = CourseUsage.objects.filter(action=UsageAction.USE).count()
        returns = CourseUsage.objects.filter(action=UsageAction.RETURN).count()
        self.assertEqual(uses - returns, 1)

    def test_retried_completion_is_idempotent(self):
        complete_appointment(appointment_id=self.appointment.id, actor=self.pt1)
        complete_appointment(appointment_id=self.appointment.id, actor=self.pt1)

        self.refresh()
        self.assertEqual(self.course.used_sessions, 1)
        self.assertEqual(self.referral.status_history.filter(new_status=ReferralStatus.ACCEPTED).count(), 1)

    def test_reversal_requires_admin(self):
        complete_appointment(appointment_id=self.appointment.id, actor=self.pt1)

        with self.assertRaises(SchedulingPermissionError):
            reverse_completion(appointment_id=self.appointment.id, actor=self.pt1)

        self.refresh()
        self.assertEqual(self.appointment.status, AppointmentStatus.COMPLETED)
        self.assertEqual(self.course.used_sessions, 1)

    def test_reverse_of_uncompleted_appointment_is_rejected(self):
        with self.assertRaises(InvalidStatusTransition):
            reverse_completion(appointment_id=self.appointment.id, actor=self.admin)

    def test_cancel_accepted_appointment_credits_once(self):
        complete_appointment(appointment_id=self.appointment.id, actor=self.pt1)

        with patch(EMIT) as delay, self.captureOnCommitCallbacks(execute=True):
            cancel_appointment(appointment_id=self.appointment.id, actor=self.pt1, reason="Duplicate booking")
        delay.assert_called_once_with(self.appointment.id, "appointmentCancelled")

        self.refresh()
        self.assertEqual(self.appointment.status, AppointmentStatus.CANCELLED)
        self.assertEqual(self.appointment.cancellation_reason, "Duplicate booking")
        self.assertEqual(self.appointment.cancelled_by, self.pt1)
        self.assertIsNotNone(self.appointment.cancelled_at)
        self.assertEqual(self.referral.status, ReferralStatus.CANCELLED)
        self.assertEqual(self.course.used_sessions, 0)

        with self.assertRaises(InvalidStatusTransition):
            cancel_appointment(appointment_id=self.appointment.id, actor=self.pt1)
        self.course.refresh_from_db()
        self.assertEqual(self.course.used_sessions, 0)
        self.assertEqual(CourseUsage.objects.filter(action=UsageAction.RETURN).count(), 1)

    def test_cancel_unused_booking_does_not_credit(self):
        cancel_appointment(appointment_id=self.appointment.id, actor=self.admin)

        self.refresh()
        self.assertEqual(self.course.used_sessions, 0)
        self.assertFalse(CourseUsage.objects.exists())
        self.assertEqual(self.referral.status, ReferralStatus.CANCELLED)

    def test_other_pt_cannot_cancel(self):
        with self.assertRaises(SchedulingPermissionError):
            cancel_appointment(appointment_id=self.appointment.id, actor=self.pt2)

    def test_change_status_follows_transition_table(self):
        change_status(appointment_id=self.appointment.id, new_status=AppointmentStatus.CONFIRMED, actor=self.pt1)
        change_status(appointment_id=self.appointment.id, new_status=AppointmentStatus.IN_PROGRESS, actor=self.pt1)
        change_status(appointment_id=self.appointment.id, new_status=AppointmentStatus.NO_SHOW, actor=self.pt1)

        self.refresh()
        self.assertEqual(self.appointment.status, AppointmentStatus.NO_SHOW)
        with self.assertRaises(InvalidStatusTransition):
            change_status(appointment_id=self.appointment.id, new_status=AppointmentStatus.COMPLETED, actor=self.pt1)

    def test_change_status_back_to_scheduled_is_a_reversal(self):
        change_status(appointment_id=self.appointment.id, new_status=AppointmentStatus.COMPLETED, actor=self.pt1)
        with self.assertRaises(SchedulingPermissionError):
            change_status(appointment_id=self.appointment.id, new_status=AppointmentStatus.SCHEDULED, actor=self.pt1)
        change_status(appointment_id=self.appointment.id, new_status=AppointmentStatus.SCHEDULED, actor=self.admin)

        self.refresh()
        self.assertEqual(self.appointment.status, AppointmentStatus.SCHEDULED)
        last = self.referral.status_history.order_by("-id").first()
        self.assertTrue(last.is_reversal)


class BranchCompletionTests(PhysioTestMixin, TestCase):
    """Completion outside the home clinic needs the PT assessment."""

    def setUp(self):
        super().setUp()
        self.patient.clinic = self.branch
        self.patient.save()
        self.appointment = create_appointment(data=self.booking_data(clinic_id=self.branch.id), actor=self.pt1)

    def test_missing_assessment_rolls_back(self):
        with self.assertRaises(AssessmentRequiredError) as ctx:
            complete_appointment(appointment_id=self.appointment.id, actor=self.pt1)

        self.assertEqual(
            sorted(ctx.exception.missing_fields),
            sorted(["pt_diagnosis", "pt_chief_complaint", "pt_present_history", "pt_pain_score"]),
        )
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.status, AppointmentStatus.SCHEDULED)
        self.assertEqual(self.appointment.referral.status, ReferralStatus.PENDING)

    def test_move_and_failed_completion_roll_back_together(self):
        with patch(EMIT) as delay, self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(AssessmentRequiredError):
                update_appointment(
                    appointment_id=self.appointment.id,
                    actor=self.pt1,
                    start_time=time(14, 0),
                    end_time=time(15, 0),
                    new_status=AppointmentStatus.COMPLETED,
                )
        delay.assert_not_called()

        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.start_time, time(10, 0))
        self.assertEqual(self.appointment.status, AppointmentStatus.SCHEDULED)

    def test_move_and_completion_with_assessment(self):
        updated = update_appointment(
            appointment_id=self.appointment.id,
            actor=self.pt1,
            start_time=time(14, 0),
            end_time=time(15, 0),
            new_status=AppointmentStatus.COMPLETED,
            assessment=ASSESSMENT,
        )

        self.assertEqual(updated.start_time, time(14, 0))
        self.assertEqual(updated.status, AppointmentStatus.COMPLETED)

    def test_assessment_is_stored_on_pn_case(self):
        complete_appointment(appointment_id=self.appointment.id, actor=self.pt1, assessment=ASSESSMENT)

        referral = ReferralCase.objects.get(pk=self.appointment.referral_id)
        self.assertEqual(referral.status, ReferralStatus.ACCEPTED)
        self.assertEqual(referral.pt_diagnosis, "Frozen shoulder")
        self.assertEqual(referral.pt_pain_score, 5)


class SharedCourseLifecycleTests(PhysioTestMixin, TestCase):
    """A relative books and completes sessions against the owner's course."""

    def setUp(self):
        super().setUp()
        self.relative = Patient.objects.create(
            hn="HN0002",
            first_name="Malee",
            last_name="Dee",
            clinic=self.home_clinic,
        )
        self.course = self.make_course(total=2)
        CourseSharedPatient.objects.create(course=self.course, patient=self.relative)
        self.appointment = create_appointment(
            data=self.booking_data(patient_id=self.relative.id, course_id=self.course.id),
            actor=self.pt1,
        )

    def assert_balanced(self):
        self.course.refresh_from_db()
        self.assertEqual(self.course.remaining_sessions + self.course.used_sessions, self.course.total_sessions)

    def ledger_rows(self, action):
        return CourseUsage.objects.filter(
            course=self.course,
            referral_id=self.appointment.referral_id,
            action=action,
        ).count()

    def test_relative_completion_debits_owner_course_once(self):
        complete_appointment(appointment_id=self.appointment.id, actor=self.pt1)
        complete_appointment(appointment_id=self.appointment.id, actor=self.pt1)

        self.assert_balanced()
        self.assertEqual(self.course.patient, self.patient)
        self.assertEqual(self.course.used_sessions, 1)
        self.assertEqual(self.course.remaining_sessions, 1)
        self.assertEqual(self.ledger_rows(UsageAction.USE), 1)
        self.assertEqual(self.appointment.referral.patient, self.relative)

    def test_reversal_credits_exactly_once(self):
        complete_appointment(appointment_id=self.appointment.id, actor=self.pt1)
        reverse_completion(appointment_id=self.appointment.id, actor=self.admin)
        with self.assertRaises(InvalidStatusTransition):
            reverse_completion(appointment_id=self.appointment.id, actor=self.admin)

        self.assert_balanced()
        self.assertEqual(self.course.used_sessions, 0)
        self.assertEqual(self.ledger_rows(UsageAction.USE), 1)
        self.assertEqual(self.ledger_rows(UsageAction.RETURN), 1)

    def test_cancellation_credits_exactly_once(self):
        complete_appointment(appointment_id=self.appointment.id, actor=self.pt1)
        cancel_appointment(appointment_id=self.appointment.id, actor=self.pt1, reason="Moved abroad")
        with self.assertRaises(InvalidStatusTransition):
            cancel_appointment(appointment_id=self.appointment.id, actor=self.pt1)

        self.assert_balanced()
        self.assertEqual(self.course.used_sessions, 0)
        self.assertEqual(self.ledger_rows(UsageAction.RETURN), 1)

    def test_owner_and_relative_share_the_balance(self):
        own = create_appointment(
            data=self.booking_data(start="13:00", end="14:00", course_id=self.course.id),
            actor=self.pt1,
        )
        complete_appointment(appointment_id=self.appointment.id, actor=self.pt1)
        complete_appointment(appointment_id=own.id, actor=self.pt1)

        self.assert_balanced()
        self.assertEqual(self.course.remaining_sessions, 0)
        self.assertEqual(self.course.status, CourseStatus.COMPLETED)

        cancel_appointment(appointment_id=self.appointment.id, actor=self.pt1)

        self.assert_balanced()
        self.assertEqual(self.course.remaining_sessions, 1)
        self.assertEqual(self.course.status, CourseStatus.ACTIVE)


class RescheduleTests(PhysioTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.appointment = create_appointment(data=self.booking_data(), actor=self.pt1)
        self.other = create_appointment(data=self.booking_data(start="13:00", end="14:00"), actor=self.pt1)

    def test_move_to_free_slot(self):
        with patch(EMIT) as delay, self.captureOnCommitCallbacks(execute=True):
            moved = reschedule_appointment(
                appointment_id=self.appointment.id,
                actor=self.pt1,
                start_time=time(10, 30),
                end_time=time(11, 30),
            )
        self.assertEqual(moved.start_time, time(10, 30))
        delay.assert_called_once_with(self.appointment.id, "appointmentRescheduled")

    def test_move_onto_other_booking_conflicts(self):
        with self.assertRaises(SchedulingConflictError):
            reschedule_appointment(
                appointment_id=self.appointment.id,
                actor=self.pt1,
                start_time=time(13, 30),
                end_time=time(14, 30),
            )
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.start_time, time(10, 0))

    def test_move_to_another_day(self):
        new_day = self.day + timedelta(days=1)
        moved = reschedule_appointment(appointment_id=self.appointment.id, actor=self.admin, appointment_date=new_day)
        self.assertEqual(moved.appointment_date, new_day)
        self.assertEqual(moved.start_time, time(10, 0))

    def test_completed_appointment_cannot_be_moved(self):
        complete_appointment(appointment_id=self.appointment.id, actor=self.pt1)
        with self.assertRaises(BookingValidationError):
            reschedule_appointment(appointment_id=self.appointment.id, actor=self.pt1, start_time=time(15, 0), end_time=time(16, 0))

    def test_other_pt_cannot_move(self):
        with self.assertRaises(SchedulingPermissionError):
            reschedule_appointment(appointment_id=self.appointment.id, actor=self.pt2, start_time=time(15, 0), end_time=time(16, 0))


class PublicBookingTests(PhysioTestMixin, TestCase):
    def public_data(self, **overrides):
        data = {
            "clinic_id": self.home_clinic.id,
            "appointment_date": self.day,
            "start_time": time(15, 0),
            "end_time": time(15, 30),
            "walk_in_name": "Web Visitor",
            "walk_in_email": "visitor@example.com",
        }
        data.update(overrides)
        return data

    def test_booking_stores_visitor_and_ip(self):
        appointment = book_public_appointment(data=self.public_data(), client_ip="203.0.113.5")

        self.assertEqual(appointment.booking_type, BookingType.WALK_IN)
        self.assertIsNone(appointment.practitioner)
        self.assertEqual(appointment.client_ip_address, "203.0.113.5")
        self.assertEqual(appointment.status, AppointmentStatus.SCHEDULED)

    def test_email_is_required_and_validated(self):
        with self.assertRaises(BookingValidationError):
            book_public_appointment(data=self.public_data(walk_in_email=""))
        with self.assertRaises(BookingValidationError):
            book_public_appointment(data=self.public_data(walk_in_email="not-an-email"))

    def test_clinic_wide_conflict(self):
        self.make_appointment(start="15:00", end="16:00")
        with self.assertRaises(SchedulingConflictError):
            book_public_appointment(data=self.public_data())

    def test_past_date_is_rejected(self):
        with self.assertRaises(BookingValidationError):
            book_public_appointment(data=self.public_data(appointment_date=timezone.localdate() - timedelta(days=1)))

    def test_visitor_can_cancel_with_matching_email(self):
        appointment = book_public_appointment(data=self.public_data())

        with self.assertRaises(BookingValidationError):
            cancel_public_appointment(appointment_id=appointment.id, email="someone@else.com")

        cancelled = cancel_public_appointment(appointment_id=appointment.id, email="VISITOR@example.com")
        self.assertEqual(cancelled.status, AppointmentStatus.CANCELLED)

        with self.assertRaises(InvalidStatusTransition):
            cancel_public_appointment(appointment_id=appointment.id, email="visitor@example.com")
