from rest_framework import serializers

from members.serializers import MemberSerializer
from records.models import AssessmentResponse, CommunicationRecord, PreferenceRecord, SafetyProfile


class PreferenceRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = PreferenceRecord
        fields = (
            "id",
            "member",
            "email_notifications",
            "push_notifications",
            "profile_visibility",
            "data_sharing_research",
            "anonymous_usage_analytics",
            "crisis_detection_sensitivity",
            "updated_at",
        )
        read_only_fields = ("id", "member", "updated_at")


class SafetyProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = SafetyProfile
        fields = (
            "id",
            "member",
            "baseline_wellness_score",
            "monitoring_consent_level",
            "auto_intervention_consent",
            "partner_notification_consent",
            "updated_at",
        )


class MemberBundleSerializer(serializers.Serializer):
    member = MemberSerializer(required=False)
    preferences = PreferenceRecordSerializer(required=False)
    safety_profile = SafetyProfileSerializer(required=False)


class CommunicationRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = CommunicationRecord
        fields = ("id", "pairing", "sender", "payload", "message_type", "created_at")
        read_only_fields = ("id", "pairing", "sender", "created_at")


class AssessmentResponseSerializer(serializers.ModelSerializer):
    class Meta:
        model = AssessmentResponse
        fields = (
            "id",
            "member",
            "pairing",
            "question_id",
            "response_value",
            "sharing_consent",
            "version",
            "created_at",
        )
        read_only_fields = ("id", "member", "pairing", "sharing_consent", "version", "created_at")


class ConsentStateSerializer(serializers.Serializer):
    resource_type = serializers.CharField(read_only=True)
    resource_id = serializers.IntegerField(read_only=True)
    granted = serializers.BooleanField()
    version = serializers.IntegerField(read_only=True)


class ConsentUpdateSerializer(serializers.Serializer):
    granted = serializers.BooleanField()
    expected_version = serializers.IntegerField(min_value=1, required=False)
