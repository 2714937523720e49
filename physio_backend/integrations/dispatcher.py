"""
Fan-out of appointment events to calendar and notification channels.

Each channel is isolated: a failing channel is logged and reported as False
in the result map, and the others still run. Nothing here touches the
appointment's committed state except storing or clearing the calendar event id.
"""

from __future__ import annotations

import logging

from physio_backend.appointments.exceptions import IntegrationError
from physio_backend.integrations.config import (
    NotificationConfigProvider,
    event_enabled,
    is_enabled,
)
from physio_backend.integrations.google_calendar import GoogleCalendarService
from physio_backend.integrations.line import send_line_message
from physio_backend.integrations.mail import send_patient_email
from physio_backend.integrations.messages import (
    EVENT_CANCELLED,
    EVENT_NEW,
    EVENT_RESCHEDULED,
    build_message,
)
from physio_backend.integrations.sms import send_sms

logger = logging.getLogger(__name__)

EMAIL_SUBJECTS = {
    EVENT_NEW: 'Appointment confirmation',
    EVENT_RESCHEDULED: 'Your appointment has been rescheduled',
    EVENT_CANCELLED: 'Your appointment has been cancelled',
}


class NotificationDispatcher:
    def __init__(self, provider: NotificationConfigProvider, calendar_factory=GoogleCalendarService):
        self.provider = provider
        self.calendar_factory = calendar_factory

    def notify(self, event_type: str, snap: dict) -> dict[str, bool]:
        """Send ``event_type`` to every enabled channel; returns channel -> sent."""
        text = build_message(event_type, snap)
        results: dict[str, bool] = {}

        line_config = self.provider.get('line')
        if event_enabled(line_config, event_type):
            results['line'] = self._run('line', send_line_message, line_config, text)

        sms_config = self.provider.get('sms')
        if event_enabled(sms_config, event_type):
            results['sms'] = self._run('sms', send_sms, sms_config, text)

        smtp_config = self.provider.get('smtp')
        if event_enabled(smtp_config, event_type) and snap.get('patient_email'):
            results['email'] = self._run(
                'email',
                send_patient_email,
                smtp_config,
                snap['patient_email'],
                EMAIL_SUBJECTS[event_type],
                text,
            )

        return results

    def sync_calendar(self, appointment, event_type: str, snap: dict) -> bool | None:
        """Mirror the appointment into Google Calendar.

        Returns None when the calendar is disabled or there is nothing to do.
        """
        config = self.provider.get('google_calendar')
        if not is_enabled(config):
            return None

        event_id = appointment.calendar_event_id
        if event_type != EVENT_NEW and not event_id:
            return None

        try:
            service = self.calendar_factory(config)
            if event_type == EVENT_NEW:
                event_id = service.create_event(snap)
                type(appointment).objects.filter(pk=appointment.pk).update(calendar_event_id=event_id)
            elif event_type == EVENT_RESCHEDULED:
                service.update_event(event_id, snap)
            elif event_type == EVENT_CANCELLED:
                service.delete_event(event_id)
                type(appointment).objects.filter(pk=appointment.pk).update(calendar_event_id=None)
        except (IntegrationError, ValueError) as exc:
            logger.warning('Calendar sync failed for appointment %s (%s): %s', appointment.pk, event_type, exc)
            return False
        return True

    def _run(self, channel: str, func, *args) -> bool:
        try:
            func(*args)
        except (IntegrationError, ValueError) as exc:
            logger.warning('%s notification failed: %s', channel, exc)
            return False
        return True
