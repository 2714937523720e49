"""Appointment status machine.

``next_status`` is a pure function over an explicit table; callers decide
what to do with the new status (persist, sync the PN case, emit events).
"""

from __future__ import annotations

from .enums import AppointmentStatus as S
from .enums import LifecycleEvent as E
from .exceptions import InvalidStatusTransition

TERMINAL = frozenset({S.CANCELLED, S.NO_SHOW})

TRANSITIONS: dict[tuple[str, str], str] = {
	(S.SCHEDULED, E.CONFIRM): S.CONFIRMED,
	(S.SCHEDULED, E.START): S.IN_PROGRESS,
	(S.CONFIRMED, E.START): S.IN_PROGRESS,

	(S.SCHEDULED, E.COMPLETE): S.COMPLETED,
	(S.CONFIRMED, E.COMPLETE): S.COMPLETED,
	(S.IN_PROGRESS, E.COMPLETE): S.COMPLETED,
	# Retried completion; downstream effects are idempotent.
	(S.COMPLETED, E.COMPLETE): S.COMPLETED,

	(S.SCHEDULED, E.CANCEL): S.CANCELLED,
	(S.CONFIRMED, E.CANCEL): S.CANCELLED,
	(S.IN_PROGRESS, E.CANCEL): S.CANCELLED,
	(S.COMPLETED, E.CANCEL): S.CANCELLED,

	(S.SCHEDULED, E.NO_SHOW): S.NO_SHOW,
	(S.CONFIRMED, E.NO_SHOW): S.NO_SHOW,
	(S.IN_PROGRESS, E.NO_SHOW): S.NO_SHOW,

	(S.COMPLETED, E.REVERSE): S.SCHEDULED,
}

# Events that only an elevated role may trigger.
ELEVATED_EVENTS = frozenset({E.REVERSE})

_EVENT_FOR_TARGET = {
	S.CONFIRMED: E.CONFIRM,
	S.IN_PROGRESS: E.START,
	S.COMPLETED: E.COMPLETE,
	S.CANCELLED: E.CANCEL,
	S.NO_SHOW: E.NO_SHOW,
}


def next_status(current: str, event: str) -> str:
	"""Return the status reached by applying ``event`` to ``current``.

	Raises:
		InvalidStatusTransition: the pair is not in the transition table
	"""
	try:
		return TRANSITIONS[(current, event)]
	except KeyError:
		raise InvalidStatusTransition(current=current, event=event) from None


def event_for(current: str, target: str) -> str:
	"""Map a requested target status to the lifecycle event that reaches it.

	``SCHEDULED`` is only reachable by reversing a completion.
	"""
	if target == S.SCHEDULED:
		if current == S.COMPLETED:
			return E.REVERSE
		raise InvalidStatusTransition(
			current=current,
			event=E.REVERSE,
			message=f"Cannot move an appointment from {current} back to {S.SCHEDULED}",
		)
	try:
		return _EVENT_FOR_TARGET[target]
	except KeyError:
		raise InvalidStatusTransition(current=current, event=str(target), message=f"Unknown status {target}") from None


def is_terminal(status: str) -> bool:
	return status in TERMINAL
