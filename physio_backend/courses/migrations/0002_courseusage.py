from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

	dependencies = [
		('courses', '0001_initial'),
		('referrals', '0001_initial'),
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.CreateModel(
			name='CourseUsage',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('action', models.CharField(choices=[('USE', 'Session used'), ('RETURN', 'Session returned')], max_length=10)),
				('notes', models.CharField(blank=True, default='', max_length=255)),
				('created_at', models.DateTimeField(auto_now_add=True)),
				(
					'actor',
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name='course_usages',
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					'course',
					models.ForeignKey(
						on_delete=django.db.models.deletion.CASCADE,
						related_name='usages',
						to='courses.course',
					),
				),
				(
					'referral',
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name='course_usages',
						to='referrals.referralcase',
					),
				),
			],
			options={
				'ordering': ['created_at', 'id'],
			},
		),
	]
