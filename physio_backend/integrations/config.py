"""
Notification configuration providers.

Transports never read settings rows themselves; they receive the channel's
config dict from a provider. The default provider reads ``NotificationSetting``
rows; tests and scripts pass a ``StaticConfigProvider`` instead.
"""

from __future__ import annotations

import json
import logging

from django.conf import settings
from django.utils.module_loading import import_string

from physio_backend.integrations.models import NotificationSetting

logger = logging.getLogger(__name__)

TRUE_VALUES = (1, True, '1', 'true', 'True')


class NotificationConfigProvider:
    """Returns the config dict of a channel, or None when unconfigured."""

    def get(self, channel: str) -> dict | None:
        raise NotImplementedError


class DatabaseConfigProvider(NotificationConfigProvider):
    def get(self, channel: str) -> dict | None:
        row = NotificationSetting.objects.filter(setting_type=channel).first()
        if row is None:
            return None
        return normalize_config(row.setting_value)


class StaticConfigProvider(NotificationConfigProvider):
    def __init__(self, configs: dict[str, dict] | None = None):
        self.configs = configs or {}

    def get(self, channel: str) -> dict | None:
        config = self.configs.get(channel)
        return normalize_config(config) if config is not None else None


def get_config_provider() -> NotificationConfigProvider:
    path = getattr(
        settings,
        'NOTIFICATION_CONFIG_PROVIDER',
        'physio_backend.integrations.config.DatabaseConfigProvider',
    )
    return import_string(path)()


def _loads(value):
    # Older rows hold JSON strings, sometimes encoded twice.
    for _ in range(2):
        if not isinstance(value, str):
            break
        try:
            value = json.loads(value)
        except ValueError:
            logger.warning('Unparseable notification config value; treating as empty')
            return {}
    return value


def normalize_config(value) -> dict:
    config = _loads(value)
    if not isinstance(config, dict):
        return {}
    config = dict(config)
    events = _loads(config.get('eventNotifications') or {})
    config['eventNotifications'] = events if isinstance(events, dict) else {}
    return config


def is_enabled(config: dict | None) -> bool:
    return bool(config) and config.get('enabled') in TRUE_VALUES


def event_enabled(config: dict | None, event_type: str) -> bool:
    if not is_enabled(config):
        return False
    return bool(config['eventNotifications'].get(event_type))
