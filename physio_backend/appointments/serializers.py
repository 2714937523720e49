"""Serializers for the appointments app.

Write serializers only validate shape; business rules (conflicts, courses,
PN cases, transitions) live in ``services.lifecycle``.
"""

from rest_framework import serializers

from physio_backend.core.models import Clinic, User
from physio_backend.patients.models import Patient

from .enums import AppointmentStatus, BookingType
from .models import Appointment


class AppointmentSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source='display_name', read_only=True)
    practitioner_name = serializers.SerializerMethodField()
    clinic_code = serializers.CharField(source='clinic.code', read_only=True)
    clinic_name = serializers.CharField(source='clinic.name', read_only=True)
    pn_code = serializers.SerializerMethodField()
    course_code = serializers.SerializerMethodField()

    class Meta:
        model = Appointment
        fields = [
            'id',
            'patient',
            'patient_name',
            'practitioner',
            'practitioner_name',
            'clinic',
            'clinic_code',
            'clinic_name',
            'appointment_date',
            'start_time',
            'end_time',
            'status',
            'booking_type',
            'walk_in_name',
            'walk_in_email',
            'walk_in_phone',
            'referral',
            'pn_code',
            'course',
            'course_code',
            'auto_created_referral',
            'appointment_type',
            'reason',
            'notes',
            'body_annotation_id',
            'calendar_event_id',
            'cancellation_reason',
            'cancelled_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_practitioner_name(self, obj):
        user = getattr(obj, 'practitioner', None)
        if user is None:
            return None
        return user.get_full_name() or user.username

    def get_pn_code(self, obj):
        return obj.referral.pn_code if obj.referral_id else None

    def get_course_code(self, obj):
        return obj.course.course_code if obj.course_id else None


class AppointmentCreateSerializer(serializers.Serializer):
    booking_type = serializers.ChoiceField(choices=BookingType.choices, default=BookingType.REGISTERED_PATIENT)
    patient = serializers.PrimaryKeyRelatedField(queryset=Patient.objects.all(), required=False, allow_null=True)
    practitioner = serializers.PrimaryKeyRelatedField(queryset=User.objects.filter(is_active=True))
    clinic = serializers.PrimaryKeyRelatedField(queryset=Clinic.objects.filter(active=True))
    appointment_date = serializers.DateField()
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    walk_in_name = serializers.CharField(required=False, allow_blank=True, default='')
    walk_in_email = serializers.EmailField(required=False, allow_blank=True, default='')
    walk_in_phone = serializers.CharField(required=False, allow_blank=True, default='')
    referral = serializers.IntegerField(required=False, allow_null=True)
    course = serializers.IntegerField(required=False, allow_null=True)
    auto_create_pn = serializers.BooleanField(required=False, default=True)
    appointment_type = serializers.CharField(required=False, allow_blank=True, default='')
    reason = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['end_time'] <= attrs['start_time']:
            raise serializers.ValidationError({'end_time': 'end_time must be after start_time.'})
        return attrs

    def to_service_data(self) -> dict:
        data = self.validated_data
        patient = data.get('patient')
        return {
            'booking_type': data['booking_type'],
            'patient_id': patient.id if patient else None,
            'practitioner_id': data['practitioner'].id,
            'clinic_id': data['clinic'].id,
            'appointment_date': data['appointment_date'],
            'start_time': data['start_time'],
            'end_time': data['end_time'],
            'walk_in_name': data.get('walk_in_name', ''),
            'walk_in_email': data.get('walk_in_email', ''),
            'walk_in_phone': data.get('walk_in_phone', ''),
            'referral_id': data.get('referral'),
            'course_id': data.get('course'),
            'auto_create_pn': data.get('auto_create_pn', True),
            'appointment_type': data.get('appointment_type', ''),
            'reason': data.get('reason', ''),
            'notes': data.get('notes', ''),
        }


class AssessmentSerializer(serializers.Serializer):
    pt_diagnosis = serializers.CharField(required=False, allow_blank=True)
    pt_chief_complaint = serializers.CharField(required=False, allow_blank=True)
    pt_present_history = serializers.CharField(required=False, allow_blank=True)
    pt_pain_score = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=10)


class AppointmentUpdateSerializer(serializers.Serializer):
    """PATCH payload: reschedule fields and/or a target status."""

    appointment_date = serializers.DateField(required=False)
    start_time = serializers.TimeField(required=False)
    end_time = serializers.TimeField(required=False)
    status = serializers.ChoiceField(choices=AppointmentStatus.choices, required=False)
    cancellation_reason = serializers.CharField(required=False, allow_blank=True)
    assessment = AssessmentSerializer(required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('Nothing to update.')
        return attrs


class CompleteSerializer(serializers.Serializer):
    pt_diagnosis = serializers.CharField(required=False, allow_blank=True)
    pt_chief_complaint = serializers.CharField(required=False, allow_blank=True)
    pt_present_history = serializers.CharField(required=False, allow_blank=True)
    pt_pain_score = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=10)
    body_annotation_id = serializers.IntegerField(required=False, allow_null=True)

    def assessment(self) -> dict:
        return {k: v for k, v in self.validated_data.items() if k != 'body_annotation_id'}


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class ConflictCheckSerializer(serializers.Serializer):
    appointment_date = serializers.DateField()
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    practitioner = serializers.IntegerField(required=False, allow_null=True)
    clinic = serializers.IntegerField(required=False, allow_null=True)
    exclude_appointment_id = serializers.IntegerField(required=False, allow_null=True)

    def validate(self, attrs):
        if attrs['end_time'] <= attrs['start_time']:
            raise serializers.ValidationError({'end_time': 'end_time must be after start_time.'})
        if attrs.get('practitioner') is None and attrs.get('clinic') is None:
            raise serializers.ValidationError('practitioner or clinic is required.')
        return attrs


class PublicBookingSerializer(serializers.Serializer):
    clinic = serializers.IntegerField()
    appointment_date = serializers.DateField()
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    walk_in_name = serializers.CharField(max_length=200)
    walk_in_email = serializers.EmailField()
    walk_in_phone = serializers.CharField(required=False, allow_blank=True, default='')
    appointment_type = serializers.CharField(required=False, allow_blank=True, default='')
    reason = serializers.CharField(required=False, allow_blank=True, default='')

    def to_service_data(self) -> dict:
        data = dict(self.validated_data)
        data['clinic_id'] = data.pop('clinic')
        return data


class PublicBookingResultSerializer(serializers.ModelSerializer):
    clinic_name = serializers.CharField(source='clinic.name', read_only=True)

    class Meta:
        model = Appointment
        fields = [
            'id',
            'clinic',
            'clinic_name',
            'appointment_date',
            'start_time',
            'end_time',
            'status',
            'walk_in_name',
        ]
        read_only_fields = fields


class PublicCancelSerializer(serializers.Serializer):
    email = serializers.EmailField()
