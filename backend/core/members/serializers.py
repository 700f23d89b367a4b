from rest_framework import serializers

from members.models import Member, Pairing, PartnerInvite


class MemberSerializer(serializers.ModelSerializer):
    class Meta:
        model = Member
        fields = (
            "id",
            "display_name",
            "is_active",
            "safety_monitoring_enabled",
            "created_at",
        )


class PairingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Pairing
        fields = (
            "id",
            "member_a",
            "member_b",
            "relationship_type",
            "is_active",
            "status_changed_at",
            "version",
            "created_at",
        )


class PartnerInviteSerializer(serializers.ModelSerializer):
    class Meta:
        model = PartnerInvite
        fields = (
            "id",
            "code",
            "relationship_type",
            "expires_at",
            "created_at",
        )


class InviteCreateSerializer(serializers.Serializer):
    expires_in_days = serializers.IntegerField(min_value=1, max_value=30, default=7)
    relationship_type = serializers.ChoiceField(
        choices=Pairing.RELATIONSHIP_TYPE_CHOICES,
        default=Pairing.TYPE_DATING,
    )


class InviteAcceptSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=32)
