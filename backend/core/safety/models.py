from __future__ import annotations

from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from tenancy.managers import AppendOnlyQuerySet


class SafetySignalQuerySet(AppendOnlyQuerySet):
    owner_field = "member"


class SafetySignal(models.Model):
    """Vital-interest record: append-only, owner-only, never deletable.

    Tamper-evident through a hash chain per member (``chain_id``). It outlives the
    member's deactivation.
    """

    SOURCE_COMMUNICATION_ANALYSIS = "communication_analysis"
    SOURCE_ASSESSMENT_RESPONSE = "assessment_response"
    SOURCE_USER_REPORT = "user_report"
    SOURCE_PATTERN_ANALYSIS = "pattern_analysis"
    SOURCE_MANUAL_FLAG = "manual_flag"
    SOURCE_CHOICES = [
        (SOURCE_COMMUNICATION_ANALYSIS, "Communication analysis"),
        (SOURCE_ASSESSMENT_RESPONSE, "Assessment response"),
        (SOURCE_USER_REPORT, "User report"),
        (SOURCE_PATTERN_ANALYSIS, "Pattern analysis"),
        (SOURCE_MANUAL_FLAG, "Manual flag"),
    ]

    TYPE_SUICIDAL_IDEATION = "suicidal_ideation"
    TYPE_DOMESTIC_VIOLENCE = "domestic_violence"
    TYPE_EMOTIONAL_DISTRESS = "emotional_distress"
    TYPE_SUBSTANCE_ABUSE = "substance_abuse"
    TYPE_RELATIONSHIP_CRISIS = "relationship_crisis"
    TYPE_ESCALATING_CONFLICT = "escalating_conflict"
    TYPE_SOCIAL_ISOLATION = "social_isolation"
    TYPE_CHOICES = [
        (TYPE_SUICIDAL_IDEATION, "Suicidal ideation"),
        (TYPE_DOMESTIC_VIOLENCE, "Domestic violence"),
        (TYPE_EMOTIONAL_DISTRESS, "Emotional distress"),
        (TYPE_SUBSTANCE_ABUSE, "Substance abuse"),
        (TYPE_RELATIONSHIP_CRISIS, "Relationship crisis"),
        (TYPE_ESCALATING_CONFLICT, "Escalating conflict"),
        (TYPE_SOCIAL_ISOLATION, "Social isolation"),
    ]

    RISK_LOW = "low"
    RISK_MEDIUM = "medium"
    RISK_HIGH = "high"
    RISK_CRITICAL = "critical"
    RISK_CHOICES = [
        (RISK_LOW, "Low"),
        (RISK_MEDIUM, "Medium"),
        (RISK_HIGH, "High"),
        (RISK_CRITICAL, "Critical"),
    ]

    member = models.ForeignKey(
        "members.Member",
        on_delete=models.PROTECT,
        related_name="safety_signals",
    )
    signal_source = models.CharField(max_length=40, choices=SOURCE_CHOICES)
    signal_type = models.CharField(max_length=40, choices=TYPE_CHOICES)
    risk_level = models.CharField(max_length=10, choices=RISK_CHOICES)
    confidence_score = models.DecimalField(
        max_digits=3,
        decimal_places=2,
        validators=[MinValueValidator(0), MaxValueValidator(1)],
    )
    detected_indicators = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    occurred_at = models.DateTimeField(default=timezone.now)

    chain_id = models.CharField(max_length=80, db_index=True)
    prev_hash = models.CharField(max_length=64, blank=True, default="")
    entry_hash = models.CharField(max_length=64, unique=True)

    objects = SafetySignalQuerySet.as_manager()

    class Meta:
        ordering = ("occurred_at", "id")
        constraints = [
            models.UniqueConstraint(
                fields=("chain_id", "prev_hash"),
                name="uq_safety_signal_prev_hash_per_chain",
            ),
        ]
        indexes = [
            models.Index(fields=("member", "occurred_at"), name="idx_signal_member_occurred"),
        ]
        verbose_name = "Safety Signal"
        verbose_name_plural = "Safety Signals"

    def __str__(self) -> str:  # pragma: no cover - admin/debug helper
        return f"{self.occurred_at:%Y-%m-%d %H:%M:%S} [{self.chain_id}] {self.signal_type}:{self.risk_level}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValidationError("Safety signals are immutable; updates are not allowed.")
        if self.member_id is None:
            raise ValidationError("member is required for safety signals.")
        if not self.chain_id:
            self.chain_id = f"member:{self.member_id}"
        if not self.entry_hash:
            raise ValidationError(
                "entry_hash is required. Use safety.services.append_safety_signal()."
            )
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Safety signals are immutable; deletes are not allowed.")
