"""Event fan-out: dispatcher isolation and the Celery task."""

from unittest.mock import MagicMock, patch

from django.test import TestCase

from physio_backend.appointments.exceptions import IntegrationError
from physio_backend.appointments.models import Appointment
from physio_backend.core.tests.mixins import PhysioTestMixin
from physio_backend.integrations.config import StaticConfigProvider
from physio_backend.integrations.dispatcher import NotificationDispatcher
from physio_backend.integrations.messages import (
    EVENT_CANCELLED,
    EVENT_NEW,
    EVENT_RESCHEDULED,
    appointment_snapshot,
)
from physio_backend.integrations.models import NotificationSetting
from physio_backend.integrations.tasks import emit_appointment_event

ALL_EVENTS = {EVENT_NEW: True, EVENT_RESCHEDULED: True, EVENT_CANCELLED: True}


def channel(**extra):
    return {"enabled": True, "eventNotifications": ALL_EVENTS, **extra}


class DispatcherTests(PhysioTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.appointment = self.make_appointment(reason="Knee pain")
        self.snap = appointment_snapshot(self.appointment)

    def test_snapshot(self):
        self.assertEqual(self.snap["patient_name"], "Somchai Dee")
        self.assertEqual(self.snap["pt_name"], "Anna Lee")
        self.assertEqual(self.snap["start_time"], "10:00")
        self.assertFalse(self.snap["is_public"])
        self.assertIsNone(self.snap["pn_code"])

    @patch("physio_backend.integrations.dispatcher.send_patient_email")
    @patch("physio_backend.integrations.dispatcher.send_sms")
    @patch("physio_backend.integrations.dispatcher.send_line_message")
    def test_failing_channel_does_not_stop_others(self, line, sms, email):
        line.side_effect = IntegrationError("line", "HTTP 500")
        provider = StaticConfigProvider({"line": channel(), "sms": channel(), "smtp": channel()})

        with self.assertLogs("physio_backend.integrations.dispatcher", level="WARNING"):
            results = NotificationDispatcher(provider).notify(EVENT_NEW, self.snap)

        self.assertEqual(results, {"line": False, "sms": True, "email": True})
        email.assert_called_once()
        self.assertEqual(email.call_args.args[1], "somchai@example.com")

    @patch("physio_backend.integrations.dispatcher.send_line_message")
    def test_disabled_events_are_skipped(self, line):
        provider = StaticConfigProvider({
            "line": {"enabled": True, "eventNotifications": {EVENT_NEW: False}},
            "sms": {"enabled": False, "eventNotifications": ALL_EVENTS},
        })
        self.assertEqual(NotificationDispatcher(provider).notify(EVENT_NEW, self.snap), {})
        line.assert_not_called()

    @patch("physio_backend.integrations.dispatcher.send_patient_email")
    def test_email_needs_patient_address(self, email):
        provider = StaticConfigProvider({"smtp": channel()})
        results = NotificationDispatcher(provider).notify(EVENT_NEW, {**self.snap, "patient_email": ""})
        self.assertEqual(results, {})
        email.assert_not_called()

    def test_calendar_event_id_is_stored_and_cleared(self):
        calendar = MagicMock()
        calendar.create_event.return_value = "evt-9"
        provider = StaticConfigProvider({"google_calendar": {"enabled": True}})
        dispatcher = NotificationDispatcher(provider, calendar_factory=lambda config: calendar)

        self.assertTrue(dispatcher.sync_calendar(self.appointment, EVENT_NEW, self.snap))
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.calendar_event_id, "evt-9")

        self.assertTrue(dispatcher.sync_calendar(self.appointment, EVENT_RESCHEDULED, self.snap))
        calendar.update_event.assert_called_once_with("evt-9", self.snap)

        self.assertTrue(dispatcher.sync_calendar(self.appointment, EVENT_CANCELLED, self.snap))
        calendar.delete_event.assert_called_once_with("evt-9")
        self.appointment.refresh_from_db()
        self.assertIsNone(self.appointment.calendar_event_id)

    def test_calendar_disabled(self):
        dispatcher = NotificationDispatcher(StaticConfigProvider({}))
        self.assertIsNone(dispatcher.sync_calendar(self.appointment, EVENT_NEW, self.snap))

    def test_calendar_failure_is_reported(self):
        calendar = MagicMock()
        calendar.create_event.side_effect = IntegrationError("google_calendar", "Create failed: HTTP 403")
        dispatcher = NotificationDispatcher(
            StaticConfigProvider({"google_calendar": {"enabled": True}}),
            calendar_factory=lambda config: calendar,
        )
        with self.assertLogs("physio_backend.integrations.dispatcher", level="WARNING"):
            self.assertFalse(dispatcher.sync_calendar(self.appointment, EVENT_NEW, self.snap))


class EmitTaskTests(PhysioTestMixin, TestCase):
    @patch("physio_backend.integrations.dispatcher.send_line_message")
    def test_task_reads_database_settings(self, line):
        NotificationSetting.objects.create(setting_type="line", setting_value=channel(accessToken="t", targetId="U1"))
        appointment = self.make_appointment()

        results = emit_appointment_event(appointment.id, EVENT_NEW)

        self.assertEqual(results, {"google_calendar": None, "line": True})
        self.assertIn("New Appointment Created", line.call_args.args[1])

    def test_missing_appointment(self):
        with self.assertLogs("physio_backend.integrations.tasks", level="WARNING"):
            self.assertIsNone(emit_appointment_event(999999, EVENT_NEW))

    def test_walk_in_snapshot(self):
        appointment = self.make_appointment(
            patient=None,
            booking_type="WALK_IN",
            walk_in_name="Jane Visitor",
            walk_in_email="jane@example.com",
            practitioner=None,
        )
        appointment = Appointment.objects.get(pk=appointment.pk)
        snap = appointment_snapshot(appointment)
        self.assertEqual(snap["patient_name"], "Jane Visitor")
        self.assertEqual(snap["pt_name"], "Unassigned")
        self.assertEqual(snap["patient_email"], "jane@example.com")
