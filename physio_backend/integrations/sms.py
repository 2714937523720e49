"""Thai Bulk SMS transport."""

from __future__ import annotations

import logging
import re

import httpx
from django.conf import settings

from physio_backend.appointments.exceptions import IntegrationError

logger = logging.getLogger(__name__)

THAIBULKSMS_URL = "https://api-v2.thaibulksms.com/sms"
DEFAULT_SENDER = "RehabPlus"


def clean_phone(value: str) -> str:
    return re.sub(r'[\s\-()]', '', value or '')


def send_sms(config: dict, text: str, msisdn: str | None = None) -> dict:
    """Send an SMS to ``msisdn`` or, by default, the configured staff recipients.

    Returns the provider's JSON response.

    Raises:
        IntegrationError: missing credentials/recipients or a failed request
    """
    api_key = config.get('apiKey')
    api_secret = config.get('apiSecret')
    if not api_key or not api_secret:
        raise IntegrationError('sms', 'API key/secret not configured')

    recipients = clean_phone(msisdn) if msisdn else config.get('recipients')
    if not recipients:
        raise IntegrationError('sms', 'No recipients')

    try:
        response = httpx.post(
            THAIBULKSMS_URL,
            data={
                'msisdn': recipients,
                'message': text,
                'sender': config.get('sender') or DEFAULT_SENDER,
            },
            auth=(api_key, api_secret),
            headers={'accept': 'application/json'},
            timeout=settings.INTEGRATION_HTTP_TIMEOUT,
        )
    except httpx.HTTPError as exc:
        raise IntegrationError('sms', str(exc)) from exc

    if response.status_code != 200:
        raise IntegrationError('sms', f'HTTP {response.status_code}: {response.text[:200]}')

    payload = response.json()
    logger.info(
        'SMS sent (remaining credit=%s, failed=%s)',
        payload.get('remaining_credit'),
        payload.get('bad_phone_number_list'),
    )
    return payload
