"""PN (referral) cases and their status timeline.

A PN case is the clinical referral a treatment appointment belongs to. Its
status follows the appointment lifecycle one-directionally; see
``physio_backend.referrals.services.sync_referral``.
"""

from django.conf import settings
from django.db import models


class ReferralStatus(models.TextChoices):
	PENDING = "PENDING", "Pending"
	ACCEPTED = "ACCEPTED", "Accepted"
	CANCELLED = "CANCELLED", "Cancelled"


class ReferralCase(models.Model):
	"""PN case: referral of a patient from a source clinic to a target clinic.

	Assessment fields (``pt_*``) are filled when the treating PT completes the
	appointment and are cleared again when that completion is reversed.
	"""
	pn_code = models.CharField(max_length=12, unique=True, db_index=True)
	patient = models.ForeignKey(
		'patients.Patient',
		on_delete=models.PROTECT,
		related_name='referral_cases',
	)
	source_clinic = models.ForeignKey(
		'core.Clinic',
		on_delete=models.PROTECT,
		related_name='referrals_sent',
	)
	target_clinic = models.ForeignKey(
		'core.Clinic',
		on_delete=models.PROTECT,
		related_name='referrals_received',
	)
	course = models.ForeignKey(
		'courses.Course',
		null=True,
		blank=True,
		on_delete=models.SET_NULL,
		related_name='referral_cases',
	)
	diagnosis = models.TextField(blank=True, default='')
	purpose = models.TextField(blank=True, default='')
	status = models.CharField(max_length=20, choices=ReferralStatus.choices, default=ReferralStatus.PENDING)

	pt_diagnosis = models.TextField(blank=True, default='')
	pt_chief_complaint = models.TextField(blank=True, default='')
	pt_present_history = models.TextField(blank=True, default='')
	pt_pain_score = models.PositiveSmallIntegerField(null=True, blank=True)
	body_annotation_id = models.IntegerField(null=True, blank=True)

	accepted_at = models.DateTimeField(null=True, blank=True)
	cancelled_at = models.DateTimeField(null=True, blank=True)
	cancellation_reason = models.TextField(blank=True, default='')
	notes = models.TextField(blank=True, default='')
	created_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		null=True,
		blank=True,
		on_delete=models.SET_NULL,
		related_name='referral_cases_created',
	)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		ordering = ["-created_at", "-id"]

	def __str__(self) -> str:
		return f"{self.pn_code} ({self.status})"


class ReferralStatusHistory(models.Model):
	"""Append-only status timeline of a PN case."""
	referral = models.ForeignKey(
		ReferralCase,
		on_delete=models.CASCADE,
		related_name='status_history',
	)
	old_status = models.CharField(max_length=20, blank=True, default='')
	new_status = models.CharField(max_length=20, choices=ReferralStatus.choices)
	changed_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		null=True,
		blank=True,
		on_delete=models.SET_NULL,
		related_name='referral_status_changes',
	)
	change_reason = models.TextField(blank=True, default='')
	is_reversal = models.BooleanField(default=False)
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ["created_at", "id"]
		verbose_name_plural = "Referral status history"

	def __str__(self) -> str:
		return f"{self.referral_id}: {self.old_status or '-'} -> {self.new_status}"


class CodeSequence(models.Model):
	"""Yearly counter for human-readable codes (locked with select_for_update)."""
	prefix = models.CharField(max_length=10)
	year = models.PositiveIntegerField()
	last_value = models.PositiveIntegerField(default=0)

	class Meta:
		ordering = ["prefix", "year"]
		constraints = [
			models.UniqueConstraint(fields=["prefix", "year"], name="uniq_code_sequence_prefix_year"),
		]

	def __str__(self) -> str:
		return f"{self.prefix}{self.year}: {self.last_value}"
