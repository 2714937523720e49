"""Shared fixtures for the test suites of all apps."""

from datetime import time, timedelta

from django.utils import timezone

from physio_backend.appointments.enums import AppointmentStatus, BookingType
from physio_backend.appointments.models import Appointment
from physio_backend.core.models import Clinic, Role, User
from physio_backend.courses.models import Course
from physio_backend.patients.models import Patient


_DEFAULT = object()


class PhysioTestMixin:
    """Roles, clinics, staff users and one patient.

    ``home_clinic`` uses the configured HOME_CLINIC_CODE (CL001); ``branch``
    is any other clinic, where completion needs a PT assessment.
    """

    def setUp(self):
        super().setUp()
        self.role_admin, _ = Role.objects.get_or_create(name="admin", defaults={"label": "Administrator"})
        self.role_pt, _ = Role.objects.get_or_create(name="pt", defaults={"label": "Physiotherapist"})
        self.role_clinic, _ = Role.objects.get_or_create(name="clinic", defaults={"label": "Clinic staff"})
        self.role_billing, _ = Role.objects.get_or_create(name="billing", defaults={"label": "Billing"})

        self.home_clinic = Clinic.objects.create(code="CL001", name="Home Clinic", email="home@clinic.test")
        self.branch = Clinic.objects.create(code="CL002", name="Branch Clinic", email="branch@clinic.test")

        self.admin = User.objects.create_user(
            username="admin_test",
            email="admin_test@example.com",
            password="DummyPass123!",
            role=self.role_admin,
        )
        self.pt1 = User.objects.create_user(
            username="pt1",
            email="pt1@example.com",
            password="DummyPass123!",
            role=self.role_pt,
            first_name="Anna",
            last_name="Lee",
        )
        self.pt2 = User.objects.create_user(
            username="pt2",
            email="pt2@example.com",
            password="DummyPass123!",
            role=self.role_pt,
        )
        self.front_desk = User.objects.create_user(
            username="frontdesk",
            email="frontdesk@example.com",
            password="DummyPass123!",
            role=self.role_clinic,
        )
        self.billing = User.objects.create_user(
            username="billing",
            email="billing@example.com",
            password="DummyPass123!",
            role=self.role_billing,
        )

        self.patient = Patient.objects.create(
            hn="HN0001",
            first_name="Somchai",
            last_name="Dee",
            email="somchai@example.com",
            phone="081-234-5678",
            diagnosis="Low back pain",
            clinic=self.home_clinic,
        )

        self.day = timezone.localdate() + timedelta(days=7)

    def make_course(self, *, total=10, patient=None, clinic=None, **extra):
        return Course.objects.create(
            course_code=extra.pop("course_code", f"CRS-{Course.objects.count() + 1:04d}"),
            patient=patient or self.patient,
            clinic=clinic or self.home_clinic,
            course_name="Back rehab",
            total_sessions=total,
            **extra,
        )

    def make_appointment(self, *, start="10:00", end="11:00", practitioner=_DEFAULT, clinic=None, day=None, **extra):
        defaults = {
            "patient": self.patient,
            "booking_type": BookingType.REGISTERED_PATIENT,
            "status": AppointmentStatus.SCHEDULED,
        }
        defaults.update(extra)
        return Appointment.objects.create(
            practitioner=self.pt1 if practitioner is _DEFAULT else practitioner,
            clinic=clinic or self.home_clinic,
            appointment_date=day or self.day,
            start_time=_t(start),
            end_time=_t(end),
            **defaults,
        )

    def booking_data(self, *, start="10:00", end="11:00", **overrides) -> dict:
        data = {
            "booking_type": BookingType.REGISTERED_PATIENT,
            "patient_id": self.patient.id,
            "practitioner_id": self.pt1.id,
            "clinic_id": self.home_clinic.id,
            "appointment_date": self.day,
            "start_time": _t(start),
            "end_time": _t(end),
        }
        data.update(overrides)
        return data


def _t(value) -> time:
    if isinstance(value, time):
        return value
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))

