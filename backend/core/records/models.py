from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from tenancy.managers import ScopedQuerySet
from tenancy.models import VersionedModel


class MemberScopedQuerySet(ScopedQuerySet):
    owner_field = "member"


class CommunicationQuerySet(ScopedQuerySet):
    owner_field = "sender"
    pairing_field = "pairing"


class AssessmentResponseQuerySet(ScopedQuerySet):
    owner_field = "member"
    pairing_field = "pairing"


class PreferenceRecord(models.Model):
    VISIBILITY_PRIVATE = "private"
    VISIBILITY_PARTNER_ONLY = "partner_only"
    VISIBILITY_COMMUNITY_ANONYMOUS = "community_anonymous"
    VISIBILITY_CHOICES = [
        (VISIBILITY_PRIVATE, "Private"),
        (VISIBILITY_PARTNER_ONLY, "Partner only"),
        (VISIBILITY_COMMUNITY_ANONYMOUS, "Community (anonymous)"),
    ]

    SENSITIVITY_LOW = "low"
    SENSITIVITY_MEDIUM = "medium"
    SENSITIVITY_HIGH = "high"
    SENSITIVITY_CHOICES = [
        (SENSITIVITY_LOW, "Low"),
        (SENSITIVITY_MEDIUM, "Medium"),
        (SENSITIVITY_HIGH, "High"),
    ]

    member = models.OneToOneField(
        "members.Member",
        on_delete=models.PROTECT,
        related_name="preferences",
    )
    email_notifications = models.BooleanField(default=True)
    push_notifications = models.BooleanField(default=True)
    profile_visibility = models.CharField(
        max_length=30,
        choices=VISIBILITY_CHOICES,
        default=VISIBILITY_PARTNER_ONLY,
    )
    data_sharing_research = models.BooleanField(default=False)
    anonymous_usage_analytics = models.BooleanField(default=True)
    crisis_detection_sensitivity = models.CharField(
        max_length=10,
        choices=SENSITIVITY_CHOICES,
        default=SENSITIVITY_MEDIUM,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = MemberScopedQuerySet.as_manager()

    class Meta:
        ordering = ("member_id",)
        verbose_name = "Preference Record"
        verbose_name_plural = "Preference Records"


class SafetyProfile(models.Model):
    MONITORING_NONE = "none"
    MONITORING_BASIC = "basic"
    MONITORING_ENHANCED = "enhanced"
    MONITORING_FULL = "full"
    MONITORING_CHOICES = [
        (MONITORING_NONE, "None"),
        (MONITORING_BASIC, "Basic"),
        (MONITORING_ENHANCED, "Enhanced"),
        (MONITORING_FULL, "Full"),
    ]

    member = models.OneToOneField(
        "members.Member",
        on_delete=models.PROTECT,
        related_name="safety_profile",
    )
    baseline_wellness_score = models.DecimalField(
        max_digits=3,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(1)],
    )
    monitoring_consent_level = models.CharField(
        max_length=10,
        choices=MONITORING_CHOICES,
        default=MONITORING_BASIC,
    )
    auto_intervention_consent = models.BooleanField(default=False)
    # Off by default: a partner is never told about safety state unless the owner opts in.
    partner_notification_consent = models.BooleanField(default=False)
    crisis_plan_encrypted = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = MemberScopedQuerySet.as_manager()

    class Meta:
        ordering = ("member_id",)
        verbose_name = "Safety Profile"
        verbose_name_plural = "Safety Profiles"


class CommunicationRecord(models.Model):
    TYPE_FREE_FORM = "free_form"
    TYPE_DAILY_PROMPT_RESPONSE = "daily_prompt_response"
    TYPE_APPRECIATION = "appreciation"
    TYPE_GOAL_UPDATE = "goal_update"
    MESSAGE_TYPE_CHOICES = [
        (TYPE_FREE_FORM, "Free form"),
        (TYPE_DAILY_PROMPT_RESPONSE, "Daily prompt response"),
        (TYPE_APPRECIATION, "Appreciation"),
        (TYPE_GOAL_UPDATE, "Goal update"),
    ]

    pairing = models.ForeignKey(
        "members.Pairing",
        on_delete=models.PROTECT,
        related_name="communications",
    )
    sender = models.ForeignKey(
        "members.Member",
        on_delete=models.PROTECT,
        related_name="sent_communications",
    )
    payload = models.TextField(help_text="Opaque, encrypted upstream.")
    message_type = models.CharField(
        max_length=30,
        choices=MESSAGE_TYPE_CHOICES,
        default=TYPE_FREE_FORM,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = CommunicationQuerySet.as_manager()

    class Meta:
        ordering = ("created_at", "id")
        indexes = [
            models.Index(fields=("pairing", "created_at"), name="idx_comm_pairing_created"),
        ]
        verbose_name = "Communication Record"
        verbose_name_plural = "Communication Records"


class AssessmentResponse(VersionedModel):
    member = models.ForeignKey(
        "members.Member",
        on_delete=models.PROTECT,
        related_name="assessment_responses",
    )
    pairing = models.ForeignKey(
        "members.Pairing",
        on_delete=models.PROTECT,
        related_name="assessment_responses",
        null=True,
        blank=True,
    )
    question_id = models.CharField(max_length=80)
    response_value = models.JSONField(default=dict)
    sharing_consent = models.BooleanField(default=False)

    objects = AssessmentResponseQuerySet.as_manager()

    class Meta:
        ordering = ("created_at", "id")
        indexes = [
            models.Index(fields=("member", "created_at"), name="idx_assessment_member_created"),
            models.Index(fields=("pairing", "sharing_consent"), name="idx_assessment_pairing_consent"),
        ]
        verbose_name = "Assessment Response"
        verbose_name_plural = "Assessment Responses"
