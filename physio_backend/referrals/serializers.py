from rest_framework import serializers

from physio_backend.referrals.models import ReferralCase, ReferralStatusHistory


class ReferralCaseSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source='patient.full_name', read_only=True)
    source_clinic_code = serializers.CharField(source='source_clinic.code', read_only=True)
    target_clinic_code = serializers.CharField(source='target_clinic.code', read_only=True)

    class Meta:
        model = ReferralCase
        fields = [
            'id',
            'pn_code',
            'patient',
            'patient_name',
            'source_clinic',
            'source_clinic_code',
            'target_clinic',
            'target_clinic_code',
            'course',
            'diagnosis',
            'purpose',
            'status',
            'pt_diagnosis',
            'pt_chief_complaint',
            'pt_present_history',
            'pt_pain_score',
            'body_annotation_id',
            'accepted_at',
            'cancelled_at',
            'cancellation_reason',
            'notes',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ReferralStatusHistorySerializer(serializers.ModelSerializer):
    changed_by_name = serializers.SerializerMethodField()

    class Meta:
        model = ReferralStatusHistory
        fields = [
            'id',
            'old_status',
            'new_status',
            'changed_by',
            'changed_by_name',
            'change_reason',
            'is_reversal',
            'created_at',
        ]
        read_only_fields = fields

    def get_changed_by_name(self, obj):
        user = getattr(obj, 'changed_by', None)
        if user is None:
            return 'System'
        return user.get_full_name() or user.username
