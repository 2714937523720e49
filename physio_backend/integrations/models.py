from django.db import models


class SettingType(models.TextChoices):
	LINE = "line", "LINE Messaging"
	SMS = "sms", "SMS (Thai Bulk SMS)"
	GOOGLE_CALENDAR = "google_calendar", "Google Calendar"
	SMTP = "smtp", "Email (SMTP)"


class NotificationSetting(models.Model):
	"""Per-channel integration settings stored as a JSON document.

	Common keys: ``enabled`` and ``eventNotifications`` (a map of event type
	to bool). The remaining keys are channel specific, e.g. ``accessToken``
	and ``targetId`` for LINE.
	"""
	setting_type = models.CharField(max_length=30, choices=SettingType.choices, unique=True)
	setting_value = models.JSONField(default=dict, blank=True)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		db_table = 'notification_settings'
		ordering = ["setting_type"]

	def __str__(self) -> str:
		return self.get_setting_type_display()
