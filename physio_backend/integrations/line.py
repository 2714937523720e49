"""LINE Messaging API push transport."""

from __future__ import annotations

import logging

import httpx
from django.conf import settings

from physio_backend.appointments.exceptions import IntegrationError

logger = logging.getLogger(__name__)

LINE_PUSH_URL = "https://api.line.me/v2/bot/message/push"


def send_line_message(config: dict, text: str) -> None:
    """Push a text message to the configured LINE user or group.

    Raises:
        IntegrationError: missing credentials or a non-2xx response
    """
    access_token = config.get('accessToken')
    target_id = config.get('targetId')
    if not access_token:
        raise IntegrationError('line', 'Channel access token not configured')
    if not target_id:
        raise IntegrationError('line', 'Target ID not configured')

    try:
        response = httpx.post(
            LINE_PUSH_URL,
            json={'to': target_id, 'messages': [{'type': 'text', 'text': text}]},
            headers={'Authorization': f'Bearer {access_token}'},
            timeout=settings.INTEGRATION_HTTP_TIMEOUT,
        )
    except httpx.HTTPError as exc:
        raise IntegrationError('line', str(exc)) from exc

    if response.status_code != 200:
        raise IntegrationError('line', f'HTTP {response.status_code}: {response.text[:200]}')
    logger.info('LINE message pushed to %s', target_id)
