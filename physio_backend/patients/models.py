from django.db import models


class Patient(models.Model):
    """Registered patient.

    Only the fields the scheduling engine reads are kept here: the home
    clinic (source of auto-created referrals), the contact details used for
    calendar invites and the working diagnosis copied into new PN cases.
    """

    hn = models.CharField(max_length=30, unique=True, db_index=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField(blank=True, default='')
    phone = models.CharField(max_length=30, blank=True, default='')
    diagnosis = models.TextField(blank=True, default='')
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.PROTECT,
        related_name='patients',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patients_patient'
        ordering = ['last_name', 'first_name', 'id']
        verbose_name = 'Patient'
        verbose_name_plural = 'Patients'

    def __str__(self) -> str:
        return f"{self.last_name}, {self.first_name} (HN {self.hn})"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
