from django.contrib.auth.models import AbstractUser
from django.db import models
from django.conf import settings


class Role(models.Model):
    """User roles for RBAC (Role-Based Access Control).

    Standard roles: admin, pt, clinic, billing
    """

    name = models.CharField(max_length=64, unique=True, db_index=True)
    label = models.CharField(max_length=128)

    class Meta:
        db_table = 'core_role'
        ordering = ['name']
        verbose_name = 'Role'
        verbose_name_plural = 'Roles'

    def __str__(self) -> str:
        return self.label


class Clinic(models.Model):
    """A physical clinic (branch) of the practice.

    The clinic whose ``code`` equals ``settings.HOME_CLINIC_CODE`` is the
    home clinic; completing a referral that never touches it requires a PT
    assessment.
    """

    code = models.CharField(max_length=20, unique=True, db_index=True)
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True, default='')
    phone = models.CharField(max_length=30, blank=True, default='')
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'core_clinic'
        ordering = ['code']
        verbose_name = 'Clinic'
        verbose_name_plural = 'Clinics'

    def __str__(self) -> str:
        return f"{self.code} {self.name}"

    @property
    def is_home(self) -> bool:
        return self.code == getattr(settings, 'HOME_CLINIC_CODE', 'CL001')


class User(AbstractUser):
    """Custom User model with role-based access control.

    Extends Django's AbstractUser with:
    - role: ForeignKey to Role for RBAC
    - clinic: home clinic of staff members
    - calendar_color: Hex color for calendar display
    - email: Made unique (required for JWT auth)
    """

    email = models.EmailField('email address', blank=True, unique=True)
    calendar_color = models.CharField(max_length=7, blank=True, default='#1E90FF')
    role = models.ForeignKey(
        Role,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name='users',
    )
    clinic = models.ForeignKey(
        Clinic,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='staff',
    )

    class Meta:
        db_table = 'core_user'
        ordering = ['username']
        verbose_name = 'User'
        verbose_name_plural = 'Users'

    @property
    def role_name(self):
        return getattr(self.role, 'name', None)


class AuditLog(models.Model):
    """Audit log for scheduling-related actions.

    Stores a before/after snapshot of the touched entity so that status
    changes on appointments, referral cases and courses can be traced.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
    )
    role_name = models.CharField(max_length=50, db_index=True)
    action = models.CharField(max_length=50, db_index=True)
    entity_type = models.CharField(max_length=50, blank=True, default='', db_index=True)
    entity_id = models.IntegerField(null=True, blank=True, db_index=True)
    before = models.JSONField(null=True, blank=True)
    after = models.JSONField(null=True, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'core_auditlog'
        ordering = ['-timestamp', '-id']
        verbose_name = 'Audit Log'
        verbose_name_plural = 'Audit Logs'
        indexes = [
            models.Index(fields=['action', 'timestamp'], name='core_auditl_action_0c1a3e_idx'),
            models.Index(fields=['entity_type', 'entity_id'], name='core_auditl_entity__5b9f21_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.timestamp} {self.action} ({self.entity_type}={self.entity_id})"
