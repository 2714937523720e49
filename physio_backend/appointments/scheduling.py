from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from django.conf import settings
from django.utils import timezone

from .enums import AppointmentStatus
from .models import Appointment

DEFAULT_BUSINESS_HOURS = '09:00-20:00'
DEFAULT_SLOT_MINUTES = 30


@dataclass(frozen=True)
class Slot:
	start_time: time
	end_time: time

	def as_dict(self) -> dict:
		return {
			'start_time': hhmm(self.start_time),
			'end_time': hhmm(self.end_time),
		}


def hhmm(value: time) -> str:
	return value.strftime('%H:%M')


def parse_hhmm(value: str) -> time:
	hours, minutes = value.strip().split(':')[:2]
	return time(int(hours), int(minutes))


def business_hours() -> tuple[time, time]:
	raw = getattr(settings, 'SCHEDULING_BUSINESS_HOURS', DEFAULT_BUSINESS_HOURS)
	opening, closing = raw.split('-')
	return parse_hhmm(opening), parse_hhmm(closing)


def slot_minutes() -> int:
	return int(getattr(settings, 'SCHEDULING_SLOT_MINUTES', DEFAULT_SLOT_MINUTES))


def overlaps(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
	"""Half-open interval overlap; touching intervals do not overlap."""
	return a_start < b_end and a_end > b_start


def generate_slots(
	day: date,
	*,
	now: datetime | None = None,
	opening: time | None = None,
	closing: time | None = None,
	step_minutes: int | None = None,
) -> list[Slot]:
	"""Return the bookable grid for ``day`` in start order.

	For today, slots that have already ended are left out.
	"""
	default_opening, default_closing = business_hours()
	opening = opening or default_opening
	closing = closing or default_closing
	step = timedelta(minutes=step_minutes or slot_minutes())
	if step <= timedelta(0):
		return []

	now_local = timezone.localtime(now or timezone.now())
	is_today = day == now_local.date()
	now_time = now_local.time().replace(tzinfo=None)

	slots: list[Slot] = []
	cursor = datetime.combine(day, opening)
	last_end = datetime.combine(day, closing)
	while cursor + step <= last_end:
		slot_end = cursor + step
		if not (is_today and slot_end.time() <= now_time):
			slots.append(Slot(cursor.time(), slot_end.time()))
		cursor = slot_end
	return slots


def get_available_slots(
	*,
	clinic_id: int,
	day: date,
	practitioner_id: int | None = None,
	now: datetime | None = None,
) -> list[dict]:
	"""Slot grid for one clinic/day with each slot marked available or booked.

	Only non-cancelled appointments block a slot. With ``practitioner_id`` the
	check is narrowed to that practitioner's bookings.
	"""
	qs = (
		Appointment.objects
		.filter(clinic_id=clinic_id, appointment_date=day)
		.exclude(status=AppointmentStatus.CANCELLED)
	)
	if practitioner_id is not None:
		qs = qs.filter(practitioner_id=practitioner_id)
	booked = list(qs.values_list('start_time', 'end_time'))

	result = []
	for slot in generate_slots(day, now=now):
		is_booked = any(overlaps(slot.start_time, slot.end_time, start, end) for start, end in booked)
		result.append({**slot.as_dict(), 'available': not is_booked, 'booked': is_booked})
	return result
