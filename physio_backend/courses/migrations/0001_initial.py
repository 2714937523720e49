from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

	initial = True

	dependencies = [
		('core', '0001_initial'),
		('patients', '0001_initial'),
	]

	operations = [
		migrations.CreateModel(
			name='Course',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('course_code', models.CharField(db_index=True, max_length=30, unique=True)),
				('course_name', models.CharField(blank=True, default='', max_length=200)),
				('total_sessions', models.PositiveIntegerField()),
				('used_sessions', models.PositiveIntegerField(default=0)),
				('remaining_sessions', models.IntegerField()),
				('status', models.CharField(choices=[('ACTIVE', 'Active'), ('COMPLETED', 'Completed'), ('EXPIRED', 'Expired')], default='ACTIVE', max_length=20)),
				('expiry_date', models.DateField(blank=True, null=True)),
				('notes', models.TextField(blank=True, default='')),
				('created_at', models.DateTimeField(auto_now_add=True)),
				('updated_at', models.DateTimeField(auto_now=True)),
				(
					'clinic',
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name='courses',
						to='core.clinic',
					),
				),
				(
					'patient',
					models.ForeignKey(
						on_delete=django.db.models.deletion.PROTECT,
						related_name='courses',
						to='patients.patient',
					),
				),
			],
			options={
				'ordering': ['-created_at', '-id'],
			},
		),
		migrations.CreateModel(
			name='CourseSharedPatient',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('is_active', models.BooleanField(default=True)),
				('created_at', models.DateTimeField(auto_now_add=True)),
				(
					'course',
					models.ForeignKey(
						on_delete=django.db.models.deletion.CASCADE,
						related_name='shared_patients',
						to='courses.course',
					),
				),
				(
					'patient',
					models.ForeignKey(
						on_delete=django.db.models.deletion.CASCADE,
						related_name='shared_courses',
						to='patients.patient',
					),
				),
			],
			options={
				'ordering': ['course_id', 'patient_id'],
			},
		),
		migrations.AddConstraint(
			model_name='coursesharedpatient',
			constraint=models.UniqueConstraint(fields=('course', 'patient'), name='uniq_course_shared_patient'),
		),
	]
