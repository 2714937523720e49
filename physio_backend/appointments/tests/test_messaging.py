"""Patient SMS tests; the SMS provider call is patched."""

from unittest.mock import MagicMock, patch

from django.test import TestCase

from physio_backend.appointments.enums import BookingType
from physio_backend.appointments.exceptions import (
    BookingValidationError,
    IntegrationError,
    SchedulingPermissionError,
)
from physio_backend.appointments.services.messaging import send_patient_sms
from physio_backend.core.models import AuditLog
from physio_backend.core.tests.mixins import PhysioTestMixin
from physio_backend.integrations.config import StaticConfigProvider

SMS_POST = "physio_backend.integrations.sms.httpx.post"


def sms_provider(**extra):
    config = {"enabled": 1, "apiKey": "k", "apiSecret": "s", **extra}
    return StaticConfigProvider({"sms": config})


def ok_response():
    response = MagicMock(status_code=200)
    response.json.return_value = {"remaining_credit": 10}
    return response


class PatientSmsTests(PhysioTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.appointment = self.make_appointment()

    @patch(SMS_POST)
    def test_registered_patient_gets_default_confirmation(self, post):
        post.return_value = ok_response()

        result = send_patient_sms(appointment_id=self.appointment.id, actor=self.pt1, provider=sms_provider())

        self.assertEqual(result["phone"], "0812345678")
        self.assertIn("Dear Somchai Dee", result["message"])
        self.assertIn("Therapist: Anna Lee", result["message"])
        self.assertIn("Time: 10:00 - 11:00", result["message"])
        self.assertEqual(post.call_args.kwargs["data"]["msisdn"], "0812345678")
        self.assertTrue(
            AuditLog.objects.filter(action="appointment_send_patient_sms", entity_id=self.appointment.id).exists()
        )

    @patch(SMS_POST)
    def test_walk_in_uses_visitor_phone_and_custom_template(self, post):
        post.return_value = ok_response()
        walk_in = self.make_appointment(
            start="13:00",
            end="13:30",
            patient=None,
            booking_type=BookingType.WALK_IN,
            walk_in_name="Web Visitor",
            walk_in_phone="089 999 0000",
        )

        result = send_patient_sms(
            appointment_id=walk_in.id,
            actor=self.front_desk,
            provider=sms_provider(patientTemplate="Hi {patientName}, see you at {startTime} ({clinicName})"),
        )

        self.assertEqual(result["phone"], "0899990000")
        self.assertEqual(result["message"], "Hi Web Visitor, see you at 13:00 (Home Clinic)")

    @patch(SMS_POST)
    def test_missing_phone_is_rejected(self, post):
        self.patient.phone = ""
        self.patient.save()

        with self.assertRaises(BookingValidationError):
            send_patient_sms(appointment_id=self.appointment.id, actor=self.pt1, provider=sms_provider())
        post.assert_not_called()

    @patch(SMS_POST)
    def test_disabled_channel_is_reported(self, post):
        with self.assertRaises(IntegrationError):
            send_patient_sms(
                appointment_id=self.appointment.id,
                actor=self.pt1,
                provider=StaticConfigProvider({"sms": {"enabled": 0, "apiKey": "k", "apiSecret": "s"}}),
            )
        post.assert_not_called()

    @patch(SMS_POST)
    def test_other_pt_and_billing_cannot_send(self, post):
        for actor in (self.pt2, self.billing):
            with self.assertRaises(SchedulingPermissionError):
                send_patient_sms(appointment_id=self.appointment.id, actor=actor, provider=sms_provider())
        post.assert_not_called()
