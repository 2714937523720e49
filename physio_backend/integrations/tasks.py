"""
Celery tasks for appointment side effects.
"""
import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(name='physio_backend.integrations.tasks.emit_appointment_event')
def emit_appointment_event(appointment_id, event_type):
    """
    Push one appointment event to the calendar and notification channels.

    Args:
        appointment_id: Appointment model ID
        event_type: 'newAppointment', 'appointmentRescheduled' or 'appointmentCancelled'
    """
    from physio_backend.appointments.models import Appointment
    from physio_backend.integrations.config import get_config_provider
    from physio_backend.integrations.dispatcher import NotificationDispatcher
    from physio_backend.integrations.messages import appointment_snapshot

    appointment = (
        Appointment.objects
        .select_related('patient', 'practitioner', 'clinic', 'referral')
        .filter(pk=appointment_id)
        .first()
    )
    if appointment is None:
        logger.warning('Appointment %s vanished before %s could be emitted', appointment_id, event_type)
        return None

    dispatcher = NotificationDispatcher(get_config_provider())
    snap = appointment_snapshot(appointment)
    results = {'google_calendar': dispatcher.sync_calendar(appointment, event_type, snap)}
    results.update(dispatcher.notify(event_type, snap))
    logger.info('Appointment %s %s emitted: %s', appointment_id, event_type, results)
    return results
