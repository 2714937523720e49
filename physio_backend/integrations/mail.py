"""Patient e-mail confirmations through Django's mail backend."""

from __future__ import annotations

import logging
import smtplib

from django.conf import settings
from django.core.mail import send_mail

from physio_backend.appointments.exceptions import IntegrationError

logger = logging.getLogger(__name__)


def send_patient_email(config: dict, to_address: str, subject: str, body: str) -> None:
    if not to_address:
        raise IntegrationError('smtp', 'No recipient address')

    from_address = config.get('fromEmail') or settings.DEFAULT_FROM_EMAIL
    try:
        send_mail(subject, body, from_address, [to_address], fail_silently=False)
    except (smtplib.SMTPException, OSError) as exc:
        raise IntegrationError('smtp', str(exc)) from exc
    logger.info('Appointment e-mail sent to %s', to_address)
