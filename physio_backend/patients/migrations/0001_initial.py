from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

	initial = True

	dependencies = [
		('core', '0001_initial'),
	]

	operations = [
		migrations.CreateModel(
			name='Patient',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('hn', models.CharField(db_index=True, max_length=30, unique=True)),
				('first_name', models.CharField(max_length=100)),
				('last_name', models.CharField(max_length=100)),
				('email', models.EmailField(blank=True, default='', max_length=254)),
				('phone', models.CharField(blank=True, default='', max_length=30)),
				('diagnosis', models.TextField(blank=True, default='')),
				('created_at', models.DateTimeField(auto_now_add=True)),
				('updated_at', models.DateTimeField(auto_now=True)),
				(
					'clinic',
					models.ForeignKey(
						on_delete=django.db.models.deletion.PROTECT,
						related_name='patients',
						to='core.clinic',
					),
				),
			],
			options={
				'verbose_name': 'Patient',
				'verbose_name_plural': 'Patients',
				'db_table': 'patients_patient',
				'ordering': ['last_name', 'first_name', 'id'],
			},
		),
	]
