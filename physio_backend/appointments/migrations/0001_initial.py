from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

	initial = True

	dependencies = [
		('core', '0001_initial'),
		('patients', '0001_initial'),
		('courses', '0001_initial'),
		('referrals', '0001_initial'),
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.CreateModel(
			name='Appointment',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('appointment_date', models.DateField(db_index=True)),
				('start_time', models.TimeField()),
				('end_time', models.TimeField()),
				('status', models.CharField(choices=[('SCHEDULED', 'Scheduled'), ('CONFIRMED', 'Confirmed'), ('IN_PROGRESS', 'In progress'), ('COMPLETED', 'Completed'), ('CANCELLED', 'Cancelled'), ('NO_SHOW', 'No-show')], db_index=True, default='SCHEDULED', max_length=20)),
				('booking_type', models.CharField(choices=[('WALK_IN', 'Walk-in'), ('REGISTERED_PATIENT', 'Registered patient')], default='REGISTERED_PATIENT', max_length=20)),
				('walk_in_name', models.CharField(blank=True, default='', max_length=200)),
				('walk_in_email', models.EmailField(blank=True, default='', max_length=254)),
				('walk_in_phone', models.CharField(blank=True, default='', max_length=30)),
				('auto_created_referral', models.BooleanField(default=False)),
				('appointment_type', models.CharField(blank=True, default='', max_length=100)),
				('reason', models.TextField(blank=True, default='')),
				('notes', models.TextField(blank=True, default='')),
				('body_annotation_id', models.IntegerField(blank=True, null=True)),
				('calendar_event_id', models.CharField(blank=True, max_length=255, null=True)),
				('cancellation_reason', models.TextField(blank=True, default='')),
				('cancelled_at', models.DateTimeField(blank=True, null=True)),
				('client_ip_address', models.GenericIPAddressField(blank=True, null=True)),
				('created_at', models.DateTimeField(auto_now_add=True)),
				('updated_at', models.DateTimeField(auto_now=True)),
				(
					'cancelled_by',
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name='cancelled_appointments',
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					'clinic',
					models.ForeignKey(
						on_delete=django.db.models.deletion.PROTECT,
						related_name='appointments',
						to='core.clinic',
					),
				),
				(
					'course',
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name='appointments',
						to='courses.course',
					),
				),
				(
					'created_by',
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name='created_appointments',
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					'patient',
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.PROTECT,
						related_name='appointments',
						to='patients.patient',
					),
				),
				(
					'practitioner',
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.PROTECT,
						related_name='appointments',
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					'referral',
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name='appointments',
						to='referrals.referralcase',
					),
				),
			],
			options={
				'ordering': ['-appointment_date', '-start_time', '-id'],
				'indexes': [
					models.Index(fields=['practitioner', 'appointment_date'], name='appt_practitioner_date_idx'),
					models.Index(fields=['clinic', 'appointment_date'], name='appt_clinic_date_idx'),
				],
			},
		),
	]
