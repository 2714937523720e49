from functools import partial

from django.db import transaction

from physio_backend.integrations.tasks import emit_appointment_event


def emit_after_commit(appointment_id: int, event_type: str) -> None:
    """Queue the side effects of an appointment event once the transaction commits.

    A failure to enqueue is logged by Django and never affects the commit.
    """
    transaction.on_commit(partial(emit_appointment_event.delay, appointment_id, event_type), robust=True)
