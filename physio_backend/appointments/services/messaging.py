"""
On-demand messages to the booked patient or walk-in visitor.

Unlike the after-commit event fan-out, these are sent synchronously when a
staff member asks for them, and transport failures reach the caller.
"""

from __future__ import annotations

import logging

from physio_backend.appointments.exceptions import (
    BookingValidationError,
    IntegrationError,
    SchedulingPermissionError,
)
from physio_backend.appointments.models import Appointment
from physio_backend.core.permissions import ROLE_ADMIN, ROLE_CLINIC, ROLE_PT
from physio_backend.core.utils import log_action
from physio_backend.integrations.config import (
    NotificationConfigProvider,
    get_config_provider,
    is_enabled,
)
from physio_backend.integrations.messages import appointment_snapshot, build_patient_sms
from physio_backend.integrations.sms import clean_phone, send_sms

logger = logging.getLogger(__name__)


def _ensure_can_message(actor, appointment: Appointment) -> None:
    role = getattr(getattr(actor, 'role', None), 'name', None)
    if role in (ROLE_ADMIN, ROLE_CLINIC):
        return
    if role == ROLE_PT and appointment.practitioner_id == getattr(actor, 'id', None):
        return
    raise SchedulingPermissionError('You may not message the patient of this appointment')


def send_patient_sms(
    *,
    appointment_id: int,
    actor,
    provider: NotificationConfigProvider | None = None,
) -> dict:
    """
    Text the appointment details to the patient (or walk-in visitor).

    The message uses the SMS channel's ``patientTemplate`` when configured,
    otherwise the default confirmation text.

    Returns:
        {'phone': <number sent to>, 'message': <text sent>}

    Raises:
        SchedulingPermissionError: actor may not message this patient
        BookingValidationError: no phone number on the booking
        IntegrationError: SMS disabled, unconfigured or rejected by the provider
    """
    appointment = (
        Appointment.objects
        .select_related('patient', 'practitioner', 'clinic', 'referral')
        .get(pk=appointment_id)
    )
    _ensure_can_message(actor, appointment)

    snap = appointment_snapshot(appointment)
    phone = clean_phone(snap['patient_phone'])
    if not phone:
        raise BookingValidationError('Patient/visitor has no phone number', field='phone')

    config = (provider or get_config_provider()).get('sms')
    if not is_enabled(config):
        raise IntegrationError('sms', 'SMS notifications are disabled')

    text = build_patient_sms(snap, config.get('patientTemplate'))
    send_sms(config, text, msisdn=phone)

    log_action(actor, 'appointment_send_patient_sms', 'appointment', appointment.id, after={'phone': phone})
    logger.info('Patient SMS for appointment %s sent to %s', appointment.id, phone)
    return {'phone': phone, 'message': text}
