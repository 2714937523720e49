"""Treatment courses (prepaid session packages) and their session ledger.

Counters on ``Course`` are only changed by ``physio_backend.courses.services``
which writes a ``CourseUsage`` row for every change, so the ledger can always
explain the current balance.
"""

from django.conf import settings
from django.db import models


class CourseStatus(models.TextChoices):
	ACTIVE = "ACTIVE", "Active"
	COMPLETED = "COMPLETED", "Completed"
	EXPIRED = "EXPIRED", "Expired"


class UsageAction(models.TextChoices):
	USE = "USE", "Session used"
	RETURN = "RETURN", "Session returned"


class Course(models.Model):
	"""Prepaid course of treatment sessions owned by one patient.

	Invariant: ``remaining_sessions == total_sessions - used_sessions``.
	"""
	course_code = models.CharField(max_length=30, unique=True, db_index=True)
	patient = models.ForeignKey(
		'patients.Patient',
		on_delete=models.PROTECT,
		related_name='courses',
	)
	clinic = models.ForeignKey(
		'core.Clinic',
		null=True,
		blank=True,
		on_delete=models.SET_NULL,
		related_name='courses',
	)
	course_name = models.CharField(max_length=200, blank=True, default='')
	total_sessions = models.PositiveIntegerField()
	used_sessions = models.PositiveIntegerField(default=0)
	remaining_sessions = models.IntegerField()
	status = models.CharField(max_length=20, choices=CourseStatus.choices, default=CourseStatus.ACTIVE)
	expiry_date = models.DateField(null=True, blank=True)
	notes = models.TextField(blank=True, default='')
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		ordering = ["-created_at", "-id"]

	def __str__(self) -> str:
		return f"Course {self.course_code} ({self.remaining_sessions}/{self.total_sessions})"

	def save(self, *args, **kwargs):
		if self.remaining_sessions is None:
			self.remaining_sessions = self.total_sessions - (self.used_sessions or 0)
		super().save(*args, **kwargs)


class CourseSharedPatient(models.Model):
	"""Grants another patient (e.g. a family member) use of a course."""
	course = models.ForeignKey(
		Course,
		on_delete=models.CASCADE,
		related_name='shared_patients',
	)
	patient = models.ForeignKey(
		'patients.Patient',
		on_delete=models.CASCADE,
		related_name='shared_courses',
	)
	is_active = models.BooleanField(default=True)
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ["course_id", "patient_id"]
		constraints = [
			models.UniqueConstraint(fields=["course", "patient"], name="uniq_course_shared_patient"),
		]

	def __str__(self) -> str:
		return f"Course #{self.course_id} shared with patient #{self.patient_id}"


class CourseUsage(models.Model):
	"""Append-only ledger entry; one row per session used or returned."""
	course = models.ForeignKey(
		Course,
		on_delete=models.CASCADE,
		related_name='usages',
	)
	referral = models.ForeignKey(
		'referrals.ReferralCase',
		null=True,
		blank=True,
		on_delete=models.SET_NULL,
		related_name='course_usages',
	)
	action = models.CharField(max_length=10, choices=UsageAction.choices)
	actor = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		null=True,
		blank=True,
		on_delete=models.SET_NULL,
		related_name='course_usages',
	)
	notes = models.CharField(max_length=255, blank=True, default='')
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ["created_at", "id"]

	def __str__(self) -> str:
		return f"{self.action} course_id={self.course_id} referral_id={self.referral_id}"
