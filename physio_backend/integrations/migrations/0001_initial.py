from django.db import migrations, models


class Migration(migrations.Migration):

	initial = True

	dependencies = []

	operations = [
		migrations.CreateModel(
			name='NotificationSetting',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('setting_type', models.CharField(choices=[('line', 'LINE Messaging'), ('sms', 'SMS (Thai Bulk SMS)'), ('google_calendar', 'Google Calendar'), ('smtp', 'Email (SMTP)')], max_length=30, unique=True)),
				('setting_value', models.JSONField(blank=True, default=dict)),
				('created_at', models.DateTimeField(auto_now_add=True)),
				('updated_at', models.DateTimeField(auto_now=True)),
			],
			options={
				'db_table': 'notification_settings',
				'ordering': ['setting_type'],
			},
		),
	]
