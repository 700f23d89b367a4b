from rest_framework import serializers

from safety.models import SafetySignal


class SafetySignalSerializer(serializers.ModelSerializer):
    class Meta:
        model = SafetySignal
        fields = (
            "id",
            "member",
            "signal_source",
            "signal_type",
            "risk_level",
            "confidence_score",
            "detected_indicators",
            "occurred_at",
            "chain_id",
            "prev_hash",
            "entry_hash",
        )
        read_only_fields = (
            "id",
            "member",
            "occurred_at",
            "chain_id",
            "prev_hash",
            "entry_hash",
        )
