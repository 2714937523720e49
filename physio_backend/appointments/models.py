"""Appointment model.

An appointment books one practitioner (PT) at one clinic for a half-open
interval ``[start_time, end_time)`` on ``appointment_date``. Appointments are
never deleted; cancelling is a status transition.

Booking kinds:

- ``REGISTERED_PATIENT``: ``patient`` is set, the walk-in fields stay empty.
- ``WALK_IN``: no patient, ``walk_in_name`` is required.

Public self-service bookings are walk-ins without a practitioner; their
conflicts are checked clinic-wide.
"""

from django.conf import settings
from django.db import models

from .enums import AppointmentStatus, BookingType


class Appointment(models.Model):
	"""A physiotherapy appointment.

	Lifecycle: SCHEDULED -> CONFIRMED -> IN_PROGRESS -> COMPLETED; CANCELLED
	and NO_SHOW from any non-terminal state; COMPLETED -> SCHEDULED only as
	an elevated reversal. See ``physio_backend.appointments.transitions``.
	"""
	patient = models.ForeignKey(
		'patients.Patient',
		null=True,
		blank=True,
		on_delete=models.PROTECT,
		related_name='appointments',
	)
	practitioner = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		null=True,
		blank=True,
		on_delete=models.PROTECT,
		related_name='appointments',
	)
	clinic = models.ForeignKey(
		'core.Clinic',
		on_delete=models.PROTECT,
		related_name='appointments',
	)
	appointment_date = models.DateField(db_index=True)
	start_time = models.TimeField()
	end_time = models.TimeField()
	status = models.CharField(
		max_length=20,
		choices=AppointmentStatus.choices,
		default=AppointmentStatus.SCHEDULED,
		db_index=True,
	)
	booking_type = models.CharField(
		max_length=20,
		choices=BookingType.choices,
		default=BookingType.REGISTERED_PATIENT,
	)
	walk_in_name = models.CharField(max_length=200, blank=True, default='')
	walk_in_email = models.EmailField(blank=True, default='')
	walk_in_phone = models.CharField(max_length=30, blank=True, default='')

	referral = models.ForeignKey(
		'referrals.ReferralCase',
		null=True,
		blank=True,
		on_delete=models.SET_NULL,
		related_name='appointments',
	)
	course = models.ForeignKey(
		'courses.Course',
		null=True,
		blank=True,
		on_delete=models.SET_NULL,
		related_name='appointments',
	)
	auto_created_referral = models.BooleanField(default=False)

	appointment_type = models.CharField(max_length=100, blank=True, default='')
	reason = models.TextField(blank=True, default='')
	notes = models.TextField(blank=True, default='')
	body_annotation_id = models.IntegerField(null=True, blank=True)
	calendar_event_id = models.CharField(max_length=255, blank=True, null=True)

	cancellation_reason = models.TextField(blank=True, default='')
	cancelled_at = models.DateTimeField(null=True, blank=True)
	cancelled_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		null=True,
		blank=True,
		on_delete=models.SET_NULL,
		related_name='cancelled_appointments',
	)
	client_ip_address = models.GenericIPAddressField(null=True, blank=True)
	created_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		null=True,
		blank=True,
		on_delete=models.SET_NULL,
		related_name='created_appointments',
	)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		ordering = ['-appointment_date', '-start_time', '-id']
		indexes = [
			models.Index(fields=['practitioner', 'appointment_date'], name='appt_practitioner_date_idx'),
			models.Index(fields=['clinic', 'appointment_date'], name='appt_clinic_date_idx'),
		]

	def __str__(self) -> str:
		return f"Appointment #{self.id} {self.appointment_date} {self.start_time}-{self.end_time}"

	@property
	def display_name(self) -> str:
		"""Patient or visitor name shown in notifications and calendars."""
		if self.patient_id is not None:
			return self.patient.full_name
		return self.walk_in_name or 'Walk-in Patient'

	@property
	def contact_email(self) -> str:
		if self.patient_id is not None:
			return self.patient.email
		return self.walk_in_email
