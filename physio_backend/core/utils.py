import logging

from django.db import transaction

from .models import AuditLog

logger = logging.getLogger(__name__)


def role_name_of(user):
    try:
        role = getattr(user, 'role', None)
        if role is not None:
            return getattr(role, 'name', '') or ''
    except Exception:
        return ''
    return ''


def log_action(user, action, entity_type='', entity_id=None, before=None, after=None):
    """Append an audit row. Never raises; a failed write is only logged."""

    try:
        # savepoint: a failed insert must not break the caller's transaction
        with transaction.atomic():
            AuditLog.objects.create(
                user=user if getattr(user, 'is_authenticated', False) else None,
                role_name=role_name_of(user),
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                before=before,
                after=after,
            )
    except Exception:
        logger.exception('AuditLog write failed (action=%s, %s=%s)', action, entity_type, entity_id)
