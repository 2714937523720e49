from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

	initial = True

	dependencies = [
		('core', '0001_initial'),
		('patients', '0001_initial'),
		('courses', '0001_initial'),
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.CreateModel(
			name='CodeSequence',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('prefix', models.CharField(max_length=10)),
				('year', models.PositiveIntegerField()),
				('last_value', models.PositiveIntegerField(default=0)),
			],
			options={
				'ordering': ['prefix', 'year'],
			},
		),
		migrations.AddConstraint(
			model_name='codesequence',
			constraint=models.UniqueConstraint(fields=('prefix', 'year'), name='uniq_code_sequence_prefix_year'),
		),
		migrations.CreateModel(
			name='ReferralCase',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('pn_code', models.CharField(db_index=True, max_length=12, unique=True)),
				('diagnosis', models.TextField(blank=True, default='')),
				('purpose', models.TextField(blank=True, default='')),
				('status', models.CharField(choices=[('PENDING', 'Pending'), ('ACCEPTED', 'Accepted'), ('CANCELLED', 'Cancelled')], default='PENDING', max_length=20)),
				('pt_diagnosis', models.TextField(blank=True, default='')),
				('pt_chief_complaint', models.TextField(blank=True, default='')),
				('pt_present_history', models.TextField(blank=True, default='')),
				('pt_pain_score', models.PositiveSmallIntegerField(blank=True, null=True)),
				('body_annotation_id', models.IntegerField(blank=True, null=True)),
				('accepted_at', models.DateTimeField(blank=True, null=True)),
				('cancelled_at', models.DateTimeField(blank=True, null=True)),
				('cancellation_reason', models.TextField(blank=True, default='')),
				('notes', models.TextField(blank=True, default='')),
				('created_at', models.DateTimeField(auto_now_add=True)),
				('updated_at', models.DateTimeField(auto_now=True)),
				(
					'course',
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name='referral_cases',
						to='courses.course',
					),
				),
				(
					'created_by',
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name='referral_cases_created',
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					'patient',
					models.ForeignKey(
						on_delete=django.db.models.deletion.PROTECT,
						related_name='referral_cases',
						to='patients.patient',
					),
				),
				(
					'source_clinic',
					models.ForeignKey(
						on_delete=django.db.models.deletion.PROTECT,
						related_name='referrals_sent',
						to='core.clinic',
					),
				),
				(
					'target_clinic',
					models.ForeignKey(
						on_delete=django.db.models.deletion.PROTECT,
						related_name='referrals_received',
						to='core.clinic',
					),
				),
			],
			options={
				'ordering': ['-created_at', '-id'],
			},
		),
		migrations.CreateModel(
			name='ReferralStatusHistory',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('old_status', models.CharField(blank=True, default='', max_length=20)),
				('new_status', models.CharField(choices=[('PENDING', 'Pending'), ('ACCEPTED', 'Accepted'), ('CANCELLED', 'Cancelled')], max_length=20)),
				('change_reason', models.TextField(blank=True, default='')),
				('is_reversal', models.BooleanField(default=False)),
				('created_at', models.DateTimeField(auto_now_add=True)),
				(
					'changed_by',
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name='referral_status_changes',
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					'referral',
					models.ForeignKey(
						on_delete=django.db.models.deletion.CASCADE,
						related_name='status_history',
						to='referrals.referralcase',
					),
				),
			],
			options={
				'verbose_name_plural': 'Referral status history',
				'ordering': ['created_at', 'id'],
			},
		),
	]
